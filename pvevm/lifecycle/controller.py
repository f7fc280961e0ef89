"""
The lifecycle action state machine.

Every invocation of the agent runs exactly one action against one guest and
ends with one StatusCode. Nothing is remembered between invocations; the
cluster resource manager calls the agent again for every check.
"""

import asyncio
import logging
import sys
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from pvevm.backend.base import WorkloadBackend
from pvevm.cluster.models import WorkloadStatus, config_path
from pvevm.cluster.relocate import ConfigRelocator
from pvevm.cluster.resolver import StatusResolver
from pvevm.config import AgentSettings
from pvevm.lifecycle.probe_program import run_status_program, wait_for_status_program
from pvevm.metadata import load_metadata
from pvevm.outcome import (
    AgentError,
    AmbiguousMigration,
    BackendOperationError,
    InvalidArgument,
    InvariantViolation,
    StatusCode,
    report_outcome,
)
from pvevm.tasks.upid import InvalidTaskHandle, TaskHandle
from pvevm.tasks.waiter import TaskWaiter
from pvevm.utils.retry import Sleep

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Actions accepted on the command line."""
    START = "start"
    STOP = "stop"
    STATUS = "status"
    MONITOR = "monitor"
    MIGRATE = "migrate"
    RECONFIG = "reconfig"
    RECOVER = "recover"
    RESTART = "restart"
    RELOAD = "reload"
    VALIDATE_ALL = "validate-all"
    META_DATA = "meta-data"


class LifecycleController:
    """
    Runs lifecycle actions for the guest named in the agent settings.

    Collaborators are injected so each can be replaced in tests; backend
    operations are only reached through the backend, and completion of their
    tasks only through the task waiter.
    """

    def __init__(
        self,
        settings: AgentSettings,
        resolver: StatusResolver,
        backend: Optional[WorkloadBackend] = None,
        relocator: Optional[ConfigRelocator] = None,
        waiter: Optional[TaskWaiter] = None,
        probe_interval: float = 1.0,
        sleep: Sleep = asyncio.sleep,
        emit: Callable[[str], None] = sys.stdout.write,
    ):
        self.settings = settings
        self.resolver = resolver
        self.backend = backend
        self.relocator = relocator or ConfigRelocator(settings.cluster_root)
        self.waiter = waiter or TaskWaiter()
        self.probe_interval = probe_interval
        self.sleep = sleep
        self.emit = emit

        self._handlers: Dict[Action, Callable[[Optional[str]], Awaitable[StatusCode]]] = {
            Action.START: self.start,
            Action.STOP: self.stop,
            Action.STATUS: self.status,
            Action.MONITOR: self.status,
            Action.MIGRATE: self.migrate,
            Action.RECONFIG: self.validate,
            Action.VALIDATE_ALL: self.validate,
            Action.RECOVER: self.noop,
            Action.RESTART: self.noop,
            Action.RELOAD: self.noop,
            Action.META_DATA: self.meta_data,
        }

    @property
    def node(self) -> str:
        return self.settings.node_name

    async def run(self, action: Action, target: Optional[str] = None) -> StatusCode:
        """
        Run one action and return its terminal status.

        Agent errors are reported and converted to their status here.
        Invariant violations and unexpected exceptions propagate to the caller.
        """
        handler = self._handlers[action]
        try:
            status = await handler(target)
        except InvariantViolation:
            raise
        except AgentError as e:
            return report_outcome(action.value, e.status, e)
        return report_outcome(action.value, status)

    async def start(self, target: Optional[str] = None) -> StatusCode:
        guest = await self.resolver.resolve(self.settings.vmid)
        if guest.running:
            logger.info(f"{guest.display_name} is already running")
            return StatusCode.SUCCESS

        if not guest.is_local(self.node):
            logger.info(
                f"{guest.display_name} is owned by node '{guest.owning_node}', "
                f"moving its configuration to '{self.node}'"
            )
            self.relocator.relocate(guest.vmid, guest.kind, guest.owning_node, self.node)

        logger.info(f"Starting {guest.display_name}")
        upid = await self._backend().start(guest, self.node)
        await self._wait(upid)

        guest = await self.resolver.resolve(guest.vmid)
        if not guest.running:
            raise BackendOperationError(f"{guest.display_name} is not running after start")

        if self.settings.status_program:
            timeout = self.settings.operation_timeout()
            logger.info(f"Waiting up to {timeout}s for status program to succeed")
            await wait_for_status_program(
                self.settings.status_program,
                timeout=timeout,
                interval=self.probe_interval,
                sleep=self.sleep,
            )

        logger.info(f"Started {guest.display_name}")
        return StatusCode.SUCCESS

    async def stop(self, target: Optional[str] = None) -> StatusCode:
        guest = await self.resolver.resolve(self.settings.vmid)
        if not guest.running:
            logger.info(f"{guest.display_name} is already stopped")
            return StatusCode.SUCCESS

        timeout = self.settings.operation_timeout()
        logger.info(f"Stopping {guest.display_name} (timeout {timeout}s)")
        upid = await self._backend().stop(guest, self.node, timeout)
        await self._wait(upid)

        guest = await self.resolver.resolve(guest.vmid)
        if guest.running:
            raise BackendOperationError(f"{guest.display_name} is still running after stop")

        logger.info(f"Stopped {guest.display_name}")
        return StatusCode.SUCCESS

    async def status(self, target: Optional[str] = None) -> StatusCode:
        guest = await self.resolver.resolve(self.settings.vmid)
        if not guest.running:
            return StatusCode.NOT_RUNNING

        if self.settings.deep_check:
            exit_status = await run_status_program(
                self.settings.status_program,
                timeout=self.settings.operation_timeout(),
            )
            if exit_status != 0:
                logger.error(f"Status program failed for {guest.display_name} (exit {exit_status})")
                return StatusCode.NOT_RUNNING

        return StatusCode.SUCCESS

    async def migrate(self, target: Optional[str] = None) -> StatusCode:
        if not target:
            raise InvalidArgument("migrate requires a target node")

        guest = await self.resolver.resolve(self.settings.vmid)
        if not guest.running:
            raise BackendOperationError(f"{guest.display_name} is not running, nothing to migrate")

        source_config = config_path(self.settings.cluster_root, self.node, guest.kind, guest.vmid)

        logger.info(f"Migrating {guest.display_name} to node '{target}'")
        upid = await self._backend().migrate(guest, self.node, target, self.settings.operation_timeout())
        await self._wait(upid)

        # The backend moves the configuration to the target as its last step.
        if not source_config.exists():
            logger.info(f"Migrated {guest.display_name} to node '{target}'")
            return StatusCode.SUCCESS

        guest = await self.resolver.resolve(guest.vmid)
        if guest.running:
            raise AmbiguousMigration(
                f"migration of {guest.display_name} to '{target}' failed, "
                f"guest may still be running on '{self.node}'"
            )
        raise BackendOperationError(f"migration of {guest.display_name} to '{target}' failed")

    async def validate(self, target: Optional[str] = None) -> StatusCode:
        guest: WorkloadStatus = await self.resolver.resolve(self.settings.vmid)
        logger.debug(f"{guest.display_name} resolved on node '{guest.owning_node}'")
        return StatusCode.SUCCESS

    async def noop(self, target: Optional[str] = None) -> StatusCode:
        return StatusCode.SUCCESS

    async def meta_data(self, target: Optional[str] = None) -> StatusCode:
        self.emit(load_metadata())
        return StatusCode.SUCCESS

    def _backend(self) -> WorkloadBackend:
        if self.backend is None:
            raise InvariantViolation("no guest management backend configured")
        return self.backend

    async def _wait(self, upid: str) -> None:
        try:
            handle = TaskHandle.parse(upid)
        except InvalidTaskHandle as e:
            raise BackendOperationError(str(e)) from e
        await self.waiter.wait(handle)
