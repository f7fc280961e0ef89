"""
Tests for loading agent settings from the environment.
"""

import pytest
from pydantic import ValidationError

from pvevm.config import DEFAULT_OPERATION_TIMEOUT, AgentSettings

AGENT_ENV = (
    "OCF_RESKEY_vmid",
    "OCF_RESKEY_status_program",
    "RGMANAGER_meta_timeout",
    "OCF_RESKEY_RGMANAGER_meta_timeout",
    "OCF_CHECK_LEVEL",
    "PVEVM_NODE",
    "PVEVM_CLUSTER_ROOT",
    "PVEVM_API_TOKEN",
    "PVEVM_VERIFY_TLS",
    "PVEVM_LOG_COMMAND",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in AGENT_ENV:
        monkeypatch.delenv(key, raising=False)


class TestAgentSettings:

    def test_defaults(self):
        settings = AgentSettings()

        assert settings.vmid is None
        assert settings.status_program is None
        assert settings.check_depth == 0
        assert settings.cluster_root == "/etc/pve"
        assert settings.log_command == "clulog"
        assert settings.node_name
        assert "." not in settings.node_name
        assert settings.operation_timeout() == DEFAULT_OPERATION_TIMEOUT

    def test_reads_resource_parameters(self, monkeypatch):
        monkeypatch.setenv("OCF_RESKEY_vmid", "104")
        monkeypatch.setenv("OCF_RESKEY_status_program", "/usr/local/bin/check-web")
        monkeypatch.setenv("OCF_CHECK_LEVEL", "10")
        monkeypatch.setenv("PVEVM_NODE", "pve-b")

        settings = AgentSettings()

        assert settings.vmid == "104"
        assert settings.status_program == "/usr/local/bin/check-web"
        assert settings.node_name == "pve-b"
        assert settings.deep_check is True

    def test_vmid_is_not_validated_here(self, monkeypatch):
        monkeypatch.setenv("OCF_RESKEY_vmid", "abc")
        assert AgentSettings().vmid == "abc"

    def test_blank_values_are_unset(self, monkeypatch):
        monkeypatch.setenv("OCF_RESKEY_vmid", "  ")
        monkeypatch.setenv("OCF_RESKEY_status_program", "")
        monkeypatch.setenv("RGMANAGER_meta_timeout", "")

        settings = AgentSettings()

        assert settings.vmid is None
        assert settings.status_program is None
        assert settings.meta_timeout is None

    def test_first_timeout_key_wins(self, monkeypatch):
        monkeypatch.setenv("RGMANAGER_meta_timeout", "30")
        monkeypatch.setenv("OCF_RESKEY_RGMANAGER_meta_timeout", "90")
        assert AgentSettings().operation_timeout() == 30

    def test_second_timeout_key_used_when_first_absent(self, monkeypatch):
        monkeypatch.setenv("OCF_RESKEY_RGMANAGER_meta_timeout", "90")
        assert AgentSettings().operation_timeout() == 90

    @pytest.mark.parametrize("value", ["0", "-1", "60s", "1.5", "soon"])
    def test_unusable_timeout_falls_back(self, monkeypatch, value):
        monkeypatch.setenv("RGMANAGER_meta_timeout", value)
        assert AgentSettings().operation_timeout() == DEFAULT_OPERATION_TIMEOUT

    def test_deep_check_needs_status_program(self, monkeypatch):
        monkeypatch.setenv("OCF_CHECK_LEVEL", "20")
        assert AgentSettings().deep_check is False

    def test_shallow_depth(self, monkeypatch):
        monkeypatch.setenv("OCF_CHECK_LEVEL", "9")
        monkeypatch.setenv("OCF_RESKEY_status_program", "true")
        assert AgentSettings().deep_check is False

    def test_malformed_check_level_is_shallow(self, monkeypatch):
        monkeypatch.setenv("OCF_CHECK_LEVEL", "deep")
        monkeypatch.setenv("OCF_RESKEY_status_program", "true")

        settings = AgentSettings()

        assert settings.check_depth == 0
        assert settings.deep_check is False

    def test_malformed_flag_is_rejected(self, monkeypatch):
        monkeypatch.setenv("PVEVM_VERIFY_TLS", "maybe")
        with pytest.raises(ValidationError):
            AgentSettings()

    def test_keyword_construction(self):
        settings = AgentSettings(vmid="7", node_name="n1", meta_timeout=15)
        assert settings.vmid == "7"
        assert settings.node_name == "n1"
        assert settings.operation_timeout() == 15
