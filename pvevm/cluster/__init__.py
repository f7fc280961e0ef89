"""
Cluster-side view of a guest: placement, running state and configuration files.
"""

from pvevm.cluster.models import WorkloadKind, WorkloadStatus
from pvevm.cluster.relocate import ConfigRelocator, RelocationPlan, RelocationResult
from pvevm.cluster.resolver import StatusResolver

__all__ = [
    "WorkloadKind",
    "WorkloadStatus",
    "ConfigRelocator",
    "RelocationPlan",
    "RelocationResult",
    "StatusResolver",
]
