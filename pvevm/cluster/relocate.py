"""
Hand-over of a guest configuration from its previous owner to the local node.

Used after a node failure, when the cluster manager starts a guest on a node
other than the one recorded as its owner. The primary configuration file is
moved with a single rename, so the configuration is either complete at the
source or complete at the destination, never present in both.
"""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from pvevm.cluster.models import WorkloadKind, config_path, script_paths
from pvevm.outcome import CopyFailure, RenameFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelocationPlan:
    """Files to move for one relocation."""

    source_config: Path
    dest_config: Path
    auxiliary_files: Tuple[Tuple[Path, Path], ...] = ()


@dataclass
class RelocationResult:
    """Outcome of a relocation."""

    plan: RelocationPlan
    copied: List[Path] = field(default_factory=list)
    already_relocated: bool = False
    cleanup_failures: List[Path] = field(default_factory=list)


class ConfigRelocator:
    """
    Moves guest configuration files between node directories of the cluster filesystem.
    """

    def __init__(self, cluster_root: str = "/etc/pve"):
        self.cluster_root = cluster_root

    def plan(self, vmid: int, kind: WorkloadKind, from_node: str, to_node: str) -> RelocationPlan:
        aux: Tuple[Tuple[Path, Path], ...] = ()
        if kind is WorkloadKind.CONTAINER:
            aux = tuple(zip(
                script_paths(self.cluster_root, from_node, vmid),
                script_paths(self.cluster_root, to_node, vmid),
            ))
        return RelocationPlan(
            source_config=config_path(self.cluster_root, from_node, kind, vmid),
            dest_config=config_path(self.cluster_root, to_node, kind, vmid),
            auxiliary_files=aux,
        )

    def relocate(self, vmid: int, kind: WorkloadKind, from_node: str, to_node: str) -> RelocationResult:
        """
        Move the configuration of a guest from one node to another.

        Args:
            vmid: Guest id
            kind: Guest type; container hook scripts are moved along
            from_node: Node currently holding the configuration
            to_node: Node that should hold it afterwards

        Returns:
            Relocation result

        Raises:
            CopyFailure: If a hook script could not be copied
            RenameFailure: If the primary configuration could not be moved
        """
        plan = self.plan(vmid, kind, from_node, to_node)
        result = RelocationResult(plan=plan)

        if not plan.source_config.exists() and plan.dest_config.exists():
            # A previous attempt got past the rename.
            logger.info(f"Configuration of {vmid} already at {plan.dest_config}")
            result.already_relocated = True
            self._remove_sources(plan, result)
            return result

        logger.info(f"Relocating configuration of {vmid} from node '{from_node}' to '{to_node}'")

        for source, dest in plan.auxiliary_files:
            if not source.exists():
                continue
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, dest)
            except OSError as e:
                self._rollback(result.copied)
                raise CopyFailure(f"copy of {source} to {dest} failed: {e}") from e
            result.copied.append(dest)
            logger.info(f"Copied {source} to {dest}")

        try:
            plan.dest_config.parent.mkdir(parents=True, exist_ok=True)
            plan.source_config.rename(plan.dest_config)
        except OSError as e:
            self._rollback(result.copied)
            raise RenameFailure(
                f"rename of {plan.source_config} to {plan.dest_config} failed: {e}"
            ) from e
        logger.info(f"Moved {plan.source_config} to {plan.dest_config}")

        self._remove_sources(plan, result)
        return result

    def _rollback(self, copied: List[Path]) -> None:
        for path in copied:
            try:
                path.unlink()
                logger.info(f"Removed partially relocated {path}")
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Unable to remove partially relocated {path}: {e}")
        copied.clear()

    def _remove_sources(self, plan: RelocationPlan, result: RelocationResult) -> None:
        for source, _ in plan.auxiliary_files:
            try:
                source.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Unable to remove {source}: {e}")
                result.cleanup_failures.append(source)
