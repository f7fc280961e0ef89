"""
Blocking wait for backend tasks.

Completion is detected by polling whether the worker process named by the
task handle is still alive. No timeout is applied here; the cluster manager
bounds the whole invocation.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

from pvevm.tasks.upid import TaskHandle
from pvevm.utils.retry import Sleep

logger = logging.getLogger(__name__)


class ProcessLiveness(Protocol):
    def is_alive(self, pid: int, pstart: int) -> bool:
        """Whether the process with this pid and start time still exists."""
        ...


def read_process_start(pid: int, proc_root: str = "/proc") -> Optional[int]:
    """
    Start time of a process in clock ticks since boot, or None if it is gone.
    """
    try:
        stat = (Path(proc_root) / str(pid) / "stat").read_text()
    except OSError:
        return None

    # The command name may contain spaces and parentheses; fields resume after the last ')'.
    _, sep, rest = stat.rpartition(")")
    if not sep:
        return None
    fields = rest.split()
    # rest starts at field 3 (state); starttime is field 22.
    try:
        return int(fields[19])
    except (IndexError, ValueError):
        return None


class ProcStatLiveness:
    """Liveness check against the local /proc filesystem."""

    def __init__(self, proc_root: str = "/proc"):
        self.proc_root = proc_root

    def is_alive(self, pid: int, pstart: int) -> bool:
        start = read_process_start(pid, self.proc_root)
        return start is not None and start == pstart


class TaskWaiter:
    """
    Waits until the process behind a task handle has exited.
    """

    def __init__(
        self,
        liveness: Optional[ProcessLiveness] = None,
        poll_interval: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.liveness = liveness or ProcStatLiveness()
        self.poll_interval = poll_interval
        self.sleep = sleep

    async def wait(self, handle: TaskHandle) -> None:
        """
        Return once the task's worker process is no longer alive.

        Args:
            handle: Task to wait for
        """
        while self.liveness.is_alive(handle.pid, handle.pstart):
            logger.debug(f"Task still active, waiting: {handle.upid}")
            await self.sleep(self.poll_interval)
        logger.debug(f"Task finished: {handle.upid}")
