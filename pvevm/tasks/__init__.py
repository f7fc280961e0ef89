"""
Tracking of asynchronous backend tasks.
"""

from pvevm.tasks.upid import TaskHandle
from pvevm.tasks.waiter import ProcStatLiveness, TaskWaiter

__all__ = ["TaskHandle", "ProcStatLiveness", "TaskWaiter"]
