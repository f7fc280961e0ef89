"""
Kind-specific checks of whether a guest is running on the local node.

The checks look at local process state only; a guest owned by a failed node
is reported as not running here.
"""

import logging
from pathlib import Path
from typing import Dict, Protocol

from pvevm.cluster.models import WorkloadKind

logger = logging.getLogger(__name__)


class RunningProbe(Protocol):
    def is_running(self, vmid: int) -> bool:
        ...


class QemuRunningProbe:
    """
    A VM runs when its pid file names a live process started with that pid file.
    """

    def __init__(self, run_dir: str = "/var/run/qemu-server", proc_root: str = "/proc"):
        self.run_dir = Path(run_dir)
        self.proc_root = Path(proc_root)

    def pidfile(self, vmid: int) -> Path:
        return self.run_dir / f"{vmid}.pid"

    def is_running(self, vmid: int) -> bool:
        pidfile = self.pidfile(vmid)
        try:
            pid = int(pidfile.read_text().strip())
        except (OSError, ValueError):
            return False

        try:
            cmdline = (self.proc_root / str(pid) / "cmdline").read_bytes()
        except OSError:
            return False

        # A recycled pid would not carry our pid file on its command line.
        args = cmdline.split(b"\0")
        return str(pidfile).encode() in args


class ContainerRunningProbe:
    """
    A container runs when its monitor listens on the per-container command socket.
    """

    def __init__(self, proc_root: str = "/proc", lxc_path: str = "/var/lib/lxc"):
        self.proc_root = Path(proc_root)
        self.lxc_path = lxc_path

    def is_running(self, vmid: int) -> bool:
        socket_name = f"@{self.lxc_path}/{vmid}/command"
        try:
            with open(self.proc_root / "net" / "unix") as handle:
                for line in handle:
                    if line.rstrip("\n").endswith(" " + socket_name):
                        return True
        except OSError as e:
            logger.warning(f"Unable to inspect unix sockets: {e}")
        return False


def default_probes() -> Dict[WorkloadKind, RunningProbe]:
    return {
        WorkloadKind.VM: QemuRunningProbe(),
        WorkloadKind.CONTAINER: ContainerRunningProbe(),
    }
