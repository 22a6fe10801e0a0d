"""HTTP client for the worker node contract (``/health`` and ``/run``)."""

import json
import logging
import time
from typing import Any

import httpx
from pydantic import BaseModel

from core.node_registry import NodeInfo
from core.types_registry import NodeExecutionError, NodeInputs, NodeOutputs

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_TIMEOUT = 5.0


class NodeHealthStatus(BaseModel):
    node_id: str
    label: str
    port: int
    healthy: bool
    response_time_ms: int | None = None
    error: str | None = None


class NodeClient:
    """Calls worker nodes listening on their assigned ports.

    ``/run`` calls carry no timeout unless ``run_timeout`` is set: a stalled
    worker stalls the graph execution that called it. Health probes always
    use ``health_timeout``.
    """

    def __init__(
        self,
        host: str = "localhost",
        run_timeout: float | None = None,
        health_timeout: float = DEFAULT_HEALTH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.host = host
        self.run_timeout = run_timeout
        self.health_timeout = health_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def base_url(self, port: int) -> str:
        return f"http://{self.host}:{port}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                transport=self._transport, timeout=httpx.Timeout(self.run_timeout)
            )
        return self._client

    async def run(
        self,
        instance_id: str,
        port: int,
        inputs: NodeInputs,
        target_directory: str | None = None,
    ) -> NodeOutputs:
        """POST ``/run`` and return the worker's outputs.

        Raises:
            NodeExecutionError: On network failure, non-success status, or a
                response body that is not ``{"outputs": {...}}``.
        """
        body: dict[str, Any] = {"inputs": inputs}
        if target_directory is not None:
            body["target_directory"] = target_directory

        url = f"{self.base_url(port)}/run"
        try:
            response = await self._get_client().post(url, json=body)
        except httpx.HTTPError as e:
            raise NodeExecutionError(
                instance_id, f"Failed to call node '{instance_id}': {e}", original_exc=e
            ) from e

        if not response.is_success:
            error_text = response.text or "Unknown error"
            raise NodeExecutionError(
                instance_id, f"Node '{instance_id}' returned error: {error_text}"
            )

        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise NodeExecutionError(
                instance_id,
                f"Failed to parse response from node '{instance_id}': {e}",
                original_exc=e,
            ) from e

        outputs = payload.get("outputs") if isinstance(payload, dict) else None
        if not isinstance(outputs, dict):
            raise NodeExecutionError(
                instance_id,
                f"Failed to parse response from node '{instance_id}': missing 'outputs' object",
            )
        return outputs

    async def check_health(self, node_info: NodeInfo) -> NodeHealthStatus:
        """Probe a worker's ``/health`` endpoint."""
        client = self._get_client()
        url = f"{self.base_url(node_info.port)}/health"
        start = time.perf_counter()
        try:
            response = await client.get(url, timeout=self.health_timeout)
        except httpx.HTTPError as e:
            logger.warning(f"Health check failed for node {node_info.node_id}: {e}")
            return NodeHealthStatus(
                node_id=node_info.node_id,
                label=node_info.config.label,
                port=node_info.port,
                healthy=False,
                error=str(e) or type(e).__name__,
            )

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        healthy = response.is_success
        return NodeHealthStatus(
            node_id=node_info.node_id,
            label=node_info.config.label,
            port=node_info.port,
            healthy=healthy,
            response_time_ms=elapsed_ms,
            error=None if healthy else f"HTTP {response.status_code}",
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
