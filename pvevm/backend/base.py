"""
Base interface for guest management backends.
"""
from typing import Protocol

from pvevm.cluster.models import WorkloadStatus


class WorkloadBackend(Protocol):
    """
    Protocol for a guest management backend.

    Each operation only schedules the work and returns the task id (UPID) of
    the worker process carrying it out. Completion and the resulting guest
    state are observed separately.
    """

    async def start(self, guest: WorkloadStatus, node: str) -> str:
        """
        Starts a guest.

        Args:
            guest: The guest to start.
            node: The node whose configuration directory holds the guest.

        Returns:
            The UPID of the start task.
        """
        ...

    async def stop(self, guest: WorkloadStatus, node: str, timeout: int) -> str:
        """
        Stops a guest immediately, without a clean shutdown.

        Args:
            guest: The guest to stop.
            node: The node the guest runs on.
            timeout: Seconds the backend may spend stopping the guest.

        Returns:
            The UPID of the stop task.
        """
        ...

    async def migrate(self, guest: WorkloadStatus, node: str, target: str, timeout: int) -> str:
        """
        Moves a running guest to another node.

        Args:
            guest: The guest to migrate.
            node: The node the guest runs on.
            target: Name of the destination node.
            timeout: Seconds a container may take to shut down for a restart migration.

        Returns:
            The UPID of the migration task.
        """
        ...

    async def close(self) -> None:
        """
        Releases any resources held by the backend.
        """
        ...
