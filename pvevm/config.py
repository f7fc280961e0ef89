"""
Configuration management for pvevm.

This module uses Pydantic's BaseSettings to collect the agent's inputs from
the environment the cluster resource manager prepares for every invocation.
Settings are read once at process entry and handed to the lifecycle
controller; nothing else in the package reads the environment.
"""
import socket
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_OPERATION_TIMEOUT = 60  # seconds
DEEP_CHECK_LEVEL = 10


def _local_node_name() -> str:
    return socket.gethostname().split(".", 1)[0]


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


class AgentSettings(BaseSettings):
    """
    Agent settings.

    The resource manager exports resource parameters as OCF_RESKEY_* and
    action metadata as RGMANAGER_meta_* variables.
    """

    # Resource parameters
    vmid: Optional[str] = Field(None, validation_alias=AliasChoices("OCF_RESKEY_vmid", "vmid"))
    status_program: Optional[str] = Field(
        None, validation_alias=AliasChoices("OCF_RESKEY_status_program", "status_program")
    )

    # Action metadata
    meta_timeout: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "RGMANAGER_meta_timeout", "OCF_RESKEY_RGMANAGER_meta_timeout", "meta_timeout"
        ),
    )
    check_depth: int = Field(0, validation_alias=AliasChoices("OCF_CHECK_LEVEL", "check_depth"))

    # Node and cluster
    node_name: str = Field(default_factory=_local_node_name, validation_alias=AliasChoices("PVEVM_NODE", "node_name"))
    cluster_root: str = Field("/etc/pve", validation_alias=AliasChoices("PVEVM_CLUSTER_ROOT", "cluster_root"))

    # Management API
    api_url: str = Field(
        "https://localhost:8006/api2/json", validation_alias=AliasChoices("PVEVM_API_URL", "api_url")
    )
    api_token: Optional[str] = Field(None, validation_alias=AliasChoices("PVEVM_API_TOKEN", "api_token"))
    verify_tls: bool = Field(False, validation_alias=AliasChoices("PVEVM_VERIFY_TLS", "verify_tls"))

    # Logging
    log_command: str = Field("clulog", validation_alias=AliasChoices("PVEVM_LOG_COMMAND", "log_command"))
    log_level: str = Field("INFO", validation_alias=AliasChoices("PVEVM_LOG_LEVEL", "log_level"))

    model_config = SettingsConfigDict(
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("vmid", "status_program", "api_token", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("meta_timeout", mode="before")
    @classmethod
    def _unusable_timeout_is_unset(cls, value):
        """Blank, malformed or non-positive overrides fall back to the default timeout."""
        timeout = _as_int(value)
        if timeout is None or timeout <= 0:
            return None
        return timeout

    @field_validator("check_depth", mode="before")
    @classmethod
    def _malformed_depth_is_shallow(cls, value):
        depth = _as_int(value)
        return 0 if depth is None else depth

    def operation_timeout(self) -> int:
        """
        Timeout in seconds for stop and for status-program polling after start.

        Non-positive or missing overrides fall back to the default.
        """
        if self.meta_timeout is not None and self.meta_timeout > 0:
            return self.meta_timeout
        return DEFAULT_OPERATION_TIMEOUT

    @property
    def deep_check(self) -> bool:
        """Whether status/monitor should also run the status program."""
        return self.check_depth >= DEEP_CHECK_LEVEL and self.status_program is not None
