"""
Access to the cluster-wide placement list.

The cluster filesystem publishes a JSON document listing every guest id with
its owning node and type. Its content may lag behind the cluster state right
after a node failure, which the resolver compensates for by retrying.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

Placement = Dict[str, Dict[str, Any]]


class PlacementSource(Protocol):
    """
    Protocol for a source of the authoritative placement list.
    """

    def fetch(self) -> Optional[Placement]:
        """
        Return the placement list keyed by guest id (as string), or None.

        Each entry carries at least "node" and "type".
        """
        ...

    def refresh(self) -> None:
        """Force the next fetch to observe a fresh view of the cluster."""
        ...


class ClusterVmList:
    """
    Placement source backed by the `.vmlist` file of the cluster filesystem.
    """

    def __init__(self, cluster_root: str = "/etc/pve"):
        self.path = Path(cluster_root) / ".vmlist"
        self._cached: Optional[Placement] = None

    def fetch(self) -> Optional[Placement]:
        if self._cached is not None:
            return self._cached

        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            logger.debug(f"Placement list {self.path} does not exist")
            return None
        except OSError as e:
            logger.warning(f"Unable to read placement list {self.path}: {e}")
            return None

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Placement list {self.path} is not valid JSON: {e}")
            return None

        ids = document.get("ids") if isinstance(document, dict) else None
        if not isinstance(ids, dict) or not ids:
            return None

        self._cached = {str(key): value for key, value in ids.items() if isinstance(value, dict)}
        return self._cached

    def refresh(self) -> None:
        self._cached = None
