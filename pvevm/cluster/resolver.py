"""
Resolution of a guest id into its authoritative placement and running state.
"""

import logging
import re
from typing import Any, Dict, Optional

from pvevm.cluster.models import WorkloadKind, WorkloadStatus
from pvevm.cluster.probes import RunningProbe, default_probes
from pvevm.cluster.vmlist import PlacementSource
from pvevm.outcome import InvalidArgument, InvariantViolation, ResolutionTimeout, WorkloadNotFound
from pvevm.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

_VMID_RE = re.compile(r"^[0-9]+$")


def parse_vmid(value: Any) -> int:
    """
    Validate a guest id.

    Raises:
        InvalidArgument: If the id is missing or not a positive integer
    """
    if value is None:
        raise InvalidArgument("guest id (vmid) is not set")
    text = str(value).strip()
    if not _VMID_RE.match(text) or int(text) <= 0:
        raise InvalidArgument(f"invalid guest id '{value}'")
    return int(text)


class StatusResolver:
    """
    Resolves guest ids against a possibly stale placement view.

    Every call produces a fresh WorkloadStatus; callers resolve again to
    observe changes.
    """

    def __init__(
        self,
        source: PlacementSource,
        probes: Optional[Dict[WorkloadKind, RunningProbe]] = None,
        retry: Optional[RetryPolicy] = None,
    ):
        self.source = source
        self.probes = probes if probes is not None else default_probes()
        self.retry = retry or RetryPolicy()

    async def resolve(self, vmid: Any) -> WorkloadStatus:
        """
        Resolve a guest id.

        Args:
            vmid: Guest id, as configured

        Returns:
            Placement and running state of the guest

        Raises:
            InvalidArgument: If the id is malformed
            ResolutionTimeout: If no placement list became available
            WorkloadNotFound: If the id is not in the placement list
            InvariantViolation: If the guest has a type the agent cannot probe
        """
        guest_id = parse_vmid(vmid)
        placement = await self._fetch_placement()

        entry = placement.get(str(guest_id))
        if entry is None:
            raise WorkloadNotFound(f"no such guest '{guest_id}'")

        kind = WorkloadKind.from_placement(entry.get("type"))
        node = entry.get("node")
        if not node:
            raise InvariantViolation(f"guest {guest_id} has no owning node in placement list")

        return WorkloadStatus(
            vmid=guest_id,
            kind=kind,
            owning_node=node,
            display_name=f"{kind.label} {guest_id}",
            running=self.is_running(kind, guest_id),
        )

    def is_running(self, kind: WorkloadKind, vmid: int) -> bool:
        probe = self.probes.get(kind)
        if probe is None:
            raise InvariantViolation(f"no running-state probe for guest type '{kind.value}'")
        return probe.is_running(vmid)

    async def _fetch_placement(self) -> Dict[str, Dict[str, Any]]:
        for attempt in self.retry.attempts():
            if attempt > 1:
                logger.warning(
                    f"Placement list unavailable, retrying "
                    f"({attempt}/{self.retry.max_attempts}) in {self.retry.delay}s"
                )
                await self.retry.pause(attempt)
                self.source.refresh()

            placement = self.source.fetch()
            if placement:
                return placement

        raise ResolutionTimeout(
            f"placement list unavailable after {self.retry.max_attempts} attempts"
        )
