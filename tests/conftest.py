import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from unittest.mock import AsyncMock

import pytest
from click.testing import CliRunner

from pvevm.cluster.models import WorkloadKind
from pvevm.cluster.resolver import StatusResolver
from pvevm.config import AgentSettings
from pvevm.utils.retry import RetryPolicy


# Skip integration tests unless explicitly enabled
def pytest_addoption(parser):
    parser.addoption("--integration", action="store_true", default=False, help="Run integration tests")


def pytest_collection_modifyitems(config, items):
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    package_logger = logging.getLogger("pvevm")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


LOCAL_NODE = "node1"
REMOTE_NODE = "node2"

START_UPID = "UPID:node1:00001A2B:0012D687:5F5E1000:qmstart:100:root@pam:"
STOP_UPID = "UPID:node1:00001A2C:0012D700:5F5E1001:qmstop:100:root@pam:"
MIGRATE_UPID = "UPID:node1:00001A2D:0012D800:5F5E1002:qmigrate:100:root@pam:"


class FakePlacement:
    """Placement source returning a scripted sequence of views."""

    def __init__(self, views: Iterable[Optional[Dict]]):
        self.views: List[Optional[Dict]] = list(views)
        self.fetches = 0
        self.refreshes = 0

    def fetch(self):
        index = min(self.fetches, len(self.views) - 1)
        self.fetches += 1
        return self.views[index]

    def refresh(self):
        self.refreshes += 1


class FakeProbe:
    def __init__(self, running: Iterable[int] = ()):
        self.running = set(running)
        self.calls = 0

    def is_running(self, vmid: int) -> bool:
        self.calls += 1
        return vmid in self.running


class FakeLiveness:
    """Reports the task alive for a fixed number of polls."""

    def __init__(self, alive_polls: int = 0):
        self.alive_polls = alive_polls
        self.checks = []

    def is_alive(self, pid: int, pstart: int) -> bool:
        self.checks.append((pid, pstart))
        return len(self.checks) <= self.alive_polls


class SleepRecorder:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


def placement(vmid: int = 100, node: str = LOCAL_NODE, kind: str = "qemu") -> Dict:
    return {str(vmid): {"node": node, "type": kind, "version": 1}}


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def cluster_root(tmp_path) -> Path:
    root = tmp_path / "pve"
    for node in (LOCAL_NODE, REMOTE_NODE):
        for kind in WorkloadKind:
            (root / "nodes" / node / kind.config_dir).mkdir(parents=True)
    return root


@pytest.fixture
def write_vmlist(cluster_root):
    def _write(ids: Dict) -> Path:
        path = cluster_root / ".vmlist"
        path.write_text(json.dumps({"version": 7, "ids": ids}))
        return path
    return _write


@pytest.fixture
def settings(cluster_root) -> AgentSettings:
    return AgentSettings(
        vmid="100",
        node_name=LOCAL_NODE,
        cluster_root=str(cluster_root),
        log_command="",
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def probes():
    return {WorkloadKind.VM: FakeProbe(), WorkloadKind.CONTAINER: FakeProbe()}


@pytest.fixture
def make_resolver(probes, sleep_recorder):
    def _make(views, max_attempts: int = 10, delay: float = 2.0) -> StatusResolver:
        return StatusResolver(
            FakePlacement(views),
            probes=probes,
            retry=RetryPolicy(max_attempts=max_attempts, delay=delay, sleep=sleep_recorder),
        )
    return _make


@pytest.fixture
def backend():
    mock = AsyncMock()
    mock.start.return_value = START_UPID
    mock.stop.return_value = STOP_UPID
    mock.migrate.return_value = MIGRATE_UPID
    return mock
