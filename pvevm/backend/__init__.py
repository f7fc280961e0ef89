"""
Guest management backends.
"""

from pvevm.backend.api import ProxmoxApiBackend
from pvevm.backend.base import WorkloadBackend

__all__ = ["ProxmoxApiBackend", "WorkloadBackend"]
