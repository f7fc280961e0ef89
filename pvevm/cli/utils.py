import asyncio
import logging
from typing import Awaitable

from pvevm.outcome import StatusCode, status_for_exception

logger = logging.getLogger("pvevm.cli")


def run_async(action: str, coro: Awaitable[StatusCode]) -> int:
    """
    Run an action coroutine to completion and return the process exit status.

    This is the last-resort trap: anything escaping the action is logged at
    error severity and turned into a status code.
    """
    try:
        return int(asyncio.run(coro))
    except KeyboardInterrupt:
        logger.error(f"{action} interrupted")
        return int(StatusCode.ERR_GENERIC)
    except Exception as e:
        logger.error(f"{action} aborted: {e}", exc_info=True)
        return int(status_for_exception(e))
