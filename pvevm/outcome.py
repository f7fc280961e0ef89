"""
Outcome vocabulary and error taxonomy for the resource agent.

Every invocation ends with exactly one StatusCode, which becomes the process
exit status. Errors raised inside the agent carry the StatusCode they map to,
so the outermost handler only has to ask the exception for it.
"""

import logging
from enum import IntEnum
from typing import Optional

logger = logging.getLogger(__name__)


class StatusCode(IntEnum):
    """Exit statuses understood by the cluster resource manager."""
    SUCCESS = 0
    ERR_GENERIC = 1
    ERR_ARGS = 2
    ERR_UNIMPLEMENTED = 3
    ERR_PERM = 4
    ERR_INSTALLED = 5
    ERR_CONFIGURED = 6
    NOT_RUNNING = 7
    RUNNING_MASTER = 8
    FAILED_MASTER = 9
    # Migration may have partially succeeded; the guest could still be on the source.
    MIGRATE_UNKNOWN = 150


class AgentError(Exception):
    """Base exception for all agent failures."""

    status: StatusCode = StatusCode.ERR_GENERIC

    def __init__(self, message: str, status: Optional[StatusCode] = None):
        super().__init__(message)
        if status is not None:
            self.status = status


class InvalidArgument(AgentError):
    """Bad or missing guest id, missing migration target, malformed settings."""
    status = StatusCode.ERR_ARGS


class ResolutionError(AgentError):
    """The guest could not be resolved against the placement view."""
    status = StatusCode.ERR_ARGS


class WorkloadNotFound(ResolutionError):
    pass


class ResolutionTimeout(ResolutionError):
    pass


class RelocationError(AgentError):
    """Moving the guest configuration to the local node failed."""
    status = StatusCode.ERR_GENERIC


class CopyFailure(RelocationError):
    pass


class RenameFailure(RelocationError):
    pass


class BackendOperationError(AgentError):
    """A backend call failed or left the guest in an unexpected state."""
    status = StatusCode.ERR_GENERIC


class ProbeTimeout(AgentError):
    """The configured status program did not succeed within the timeout."""
    status = StatusCode.ERR_GENERIC


class AmbiguousMigration(AgentError):
    """Migration task finished but the guest may still run on the source node."""
    status = StatusCode.MIGRATE_UNKNOWN


class InvariantViolation(AgentError):
    """
    Internal state the agent cannot reason about, e.g. an unknown guest type.

    Never handled below the top-level trap.
    """
    status = StatusCode.ERR_GENERIC


def status_for_exception(exc: BaseException) -> StatusCode:
    """Map any exception to the status code reported for it."""
    if isinstance(exc, AgentError):
        return exc.status
    return StatusCode.ERR_GENERIC


def report_outcome(action: str, status: StatusCode, error: Optional[BaseException] = None) -> StatusCode:
    """
    Log the terminal outcome of an action and return its status code.

    Args:
        action: Action name as given on the command line
        status: Terminal status of the action
        error: Exception that produced the status, if any

    Returns:
        The status code, unchanged
    """
    if error is not None:
        if isinstance(error, AgentError):
            logger.error(f"{action} failed: {error}")
        else:
            logger.error(f"{action} failed with unexpected error: {error}", exc_info=error)
    elif status == StatusCode.SUCCESS:
        logger.debug(f"{action} finished successfully")
    elif status == StatusCode.NOT_RUNNING:
        logger.info(f"{action}: guest is not running")
    else:
        logger.error(f"{action} finished with status {status.name} ({int(status)})")
    return status
