"""
Guest management through the node-local Proxmox VE REST API.

Lifecycle calls return immediately with the UPID of the worker task that
carries out the operation; the agent waits for that task separately.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from pvevm.cluster.models import WorkloadKind, WorkloadStatus
from pvevm.outcome import BackendOperationError

logger = logging.getLogger(__name__)


class ProxmoxApiBackend:
    """
    Backend for interacting with the Proxmox VE API over httpx.

    Implements:
      - start: POST /nodes/{node}/{qemu|lxc}/{vmid}/status/start
      - stop: POST /nodes/{node}/{qemu|lxc}/{vmid}/status/stop
      - migrate: POST /nodes/{node}/{qemu|lxc}/{vmid}/migrate
    """

    def __init__(
        self,
        base_url: str = "https://localhost:8006/api2/json",
        api_token: Optional[str] = None,
        verify_tls: bool = False,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        headers = {"Accept": "application/json"}
        if api_token:
            # Authorization: PVEAPIToken=<user@realm!tokenid>=<secret>
            headers["Authorization"] = (
                api_token if api_token.startswith("PVEAPIToken=") else f"PVEAPIToken={api_token}"
            )

        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            verify=verify_tls,
            timeout=timeout_s,
        )
        logger.debug("Initialized API backend base_url=%s verify_tls=%s", self.base_url, verify_tls)

    async def __aenter__(self) -> "ProxmoxApiBackend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _guest_path(guest: WorkloadStatus, node: str) -> str:
        return f"/nodes/{node}/{guest.kind.value}/{guest.vmid}"

    async def start(self, guest: WorkloadStatus, node: str) -> str:
        return await self._task("POST", f"{self._guest_path(guest, node)}/status/start")

    async def stop(self, guest: WorkloadStatus, node: str, timeout: int) -> str:
        return await self._task(
            "POST",
            f"{self._guest_path(guest, node)}/status/stop",
            {"timeout": timeout},
        )

    async def migrate(self, guest: WorkloadStatus, node: str, target: str, timeout: int) -> str:
        params: Dict[str, Any] = {"target": target}
        if guest.kind is WorkloadKind.VM:
            params["online"] = 1
        else:
            # Containers cannot move live; they are shut down and restarted on the target.
            params["restart"] = 1
            params["timeout"] = timeout
        return await self._task("POST", f"{self._guest_path(guest, node)}/migrate", params)

    async def _task(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        """
        Issue a request that starts a worker task and return its UPID.

        Raises:
            BackendOperationError: If the request fails or returns no task id
        """
        t0 = time.monotonic()
        try:
            response = await self._client.request(method, path, data=params)
            latency_ms = int((time.monotonic() - t0) * 1000)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.warning("API %s %s -> %s: %s", method, path, e.response.status_code, message)
            raise BackendOperationError(
                f"{method} {path} failed with status {e.response.status_code}: {message}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("API %s %s failed: %s", method, path, e)
            raise BackendOperationError(f"{method} {path} failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise BackendOperationError(f"{method} {path} returned a non-JSON reply") from e

        upid = body.get("data") if isinstance(body, dict) else None
        if not isinstance(upid, str) or not upid:
            raise BackendOperationError(f"{method} {path} returned no task id")

        logger.info("API %s %s -> %s in %dms", method, path, upid, latency_ms)
        return upid


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"]).strip()
        if body.get("errors"):
            return str(body["errors"])
    return response.reason_phrase
