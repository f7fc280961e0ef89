"""
Running the user-configured status program.

The status program is an arbitrary shell command line that exits 0 while the
service inside the guest is healthy.
"""

import asyncio
import logging
import os
import signal
import time
from typing import Callable, Optional

from pvevm.outcome import ProbeTimeout
from pvevm.utils.retry import Sleep

logger = logging.getLogger(__name__)


async def run_status_program(command: str, timeout: Optional[float] = None) -> Optional[int]:
    """
    Run the status program once.

    Args:
        command: Shell command line
        timeout: Seconds to let the program run; None waits indefinitely

    Returns:
        The exit status, or None if the program could not run or was killed on timeout
    """
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.error(f"Unable to run status program '{command}': {e}")
        return None

    try:
        return await asyncio.wait_for(proc.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Status program '{command}' still running after {timeout:.1f}s, killing it")
        _kill_group(proc)
        await proc.wait()
        return None


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    # The program runs in its own session, so its pid is also the process group id.
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def wait_for_status_program(
    command: str,
    timeout: float,
    interval: float = 1.0,
    sleep: Sleep = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """
    Run the status program until it succeeds or the timeout elapses.

    Args:
        command: Shell command line
        timeout: Overall time budget in seconds
        interval: Pause between runs in seconds

    Returns:
        Number of runs it took

    Raises:
        ProbeTimeout: If the program did not exit 0 within the timeout
    """
    deadline = clock() + timeout
    runs = 0
    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            break

        runs += 1
        status = await run_status_program(command, timeout=remaining)
        if status == 0:
            logger.debug(f"Status program succeeded after {runs} run(s)")
            return runs
        logger.debug(f"Status program exited with {status}, run {runs}")

        remaining = deadline - clock()
        if remaining <= 0:
            break
        await sleep(min(interval, remaining))

    raise ProbeTimeout(f"status program '{command}' did not succeed within {timeout}s")
