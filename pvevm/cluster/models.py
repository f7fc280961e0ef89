"""
Data models for guests managed by the agent.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Tuple

from pvevm.outcome import InvariantViolation


class WorkloadKind(Enum):
    """Guest type, valued as it appears in the cluster placement list."""
    VM = "qemu"
    CONTAINER = "lxc"

    @classmethod
    def from_placement(cls, value: str) -> "WorkloadKind":
        """
        Map a placement-list type string to a kind.

        Raises:
            InvariantViolation: If the type is not one the agent manages
        """
        for kind in cls:
            if kind.value == value:
                return kind
        raise InvariantViolation(f"unknown guest type '{value}'")

    @property
    def config_dir(self) -> str:
        return "qemu-server" if self is WorkloadKind.VM else "lxc"

    @property
    def label(self) -> str:
        return "VM" if self is WorkloadKind.VM else "CT"


# Hook scripts a container may carry next to its configuration.
CONTAINER_SCRIPT_SUFFIXES: Tuple[str, ...] = ("mount", "umount", "start", "stop")


@dataclass(frozen=True)
class WorkloadStatus:
    """Authoritative state of one guest, as resolved for a single invocation."""

    vmid: int
    kind: WorkloadKind
    owning_node: str
    display_name: str
    running: bool

    def is_local(self, node_name: str) -> bool:
        return self.owning_node == node_name


def node_dir(cluster_root: str, node: str, kind: WorkloadKind) -> Path:
    return Path(cluster_root) / "nodes" / node / kind.config_dir


def config_path(cluster_root: str, node: str, kind: WorkloadKind, vmid: int) -> Path:
    """Path of the primary configuration file of a guest on a node."""
    return node_dir(cluster_root, node, kind) / f"{vmid}.conf"


def script_paths(cluster_root: str, node: str, vmid: int) -> Tuple[Path, ...]:
    """Paths of the container hook scripts of a guest on a node, in relocation order."""
    base = node_dir(cluster_root, node, WorkloadKind.CONTAINER)
    return tuple(base / f"{vmid}.{suffix}" for suffix in CONTAINER_SCRIPT_SUFFIXES)
