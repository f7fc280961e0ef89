import logging
import sys
from typing import Optional

import click
from pydantic import ValidationError

from pvevm import __version__
from pvevm.backend.api import ProxmoxApiBackend
from pvevm.cluster.resolver import StatusResolver
from pvevm.cluster.vmlist import ClusterVmList
from pvevm.config import AgentSettings
from pvevm.lifecycle.controller import Action, LifecycleController
from pvevm.outcome import StatusCode
from pvevm.utils.logging import setup_logging

from .utils import run_async

logger = logging.getLogger("pvevm.cli")


def _echo(text: str) -> None:
    click.echo(text, nl=False)


async def execute(settings: AgentSettings, action: Action, target: Optional[str] = None) -> StatusCode:
    """Wire the production collaborators together and run one action."""
    resolver = StatusResolver(ClusterVmList(settings.cluster_root))
    async with ProxmoxApiBackend(
        base_url=settings.api_url,
        api_token=settings.api_token,
        verify_tls=settings.verify_tls,
    ) as backend:
        controller = LifecycleController(settings, resolver, backend=backend, emit=_echo)
        return await controller.run(action, target)


def run(action: Action, target: Optional[str] = None) -> int:
    """
    Load settings from the environment and run an action.

    Returns:
        Process exit status
    """
    try:
        settings = AgentSettings()
    except ValidationError as e:
        setup_logging()
        logger.error(f"invalid agent settings: {e}")
        return int(StatusCode.ERR_ARGS)

    setup_logging(settings.log_level, settings.log_command)
    logger.debug(f"{action.value} on node '{settings.node_name}' for guest {settings.vmid}")
    return run_async(action.value, execute(settings, action, target))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("action", type=click.Choice([a.value for a in Action]))
@click.argument("target", required=False)
@click.version_option(__version__, prog_name="pvevm")
def app(action: str, target: Optional[str]):
    """
    Cluster resource agent for Proxmox VE guests.

    Runs ACTION for the guest named by OCF_RESKEY_vmid. TARGET is the
    destination node and is accepted only by the migrate action.
    """
    if target is not None and action != Action.MIGRATE.value:
        raise click.UsageError(f"action '{action}' takes no further arguments")
    sys.exit(run(Action(action), target))


if __name__ == '__main__':
    app()
