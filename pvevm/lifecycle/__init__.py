"""
Lifecycle actions invoked by the cluster resource manager.
"""

from pvevm.lifecycle.controller import Action, LifecycleController

__all__ = ["Action", "LifecycleController"]
