import json
import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest


def _ensure_project_root_on_path() -> None:
    this_file = Path(__file__).resolve()
    project_root = this_file.parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


_ensure_project_root_on_path()

from core.node_client import NodeClient  # noqa: E402
from core.node_config import NodeConfig  # noqa: E402
from core.node_registry import NodeInfo, NodeRegistry  # noqa: E402

ECHO_CONFIG_YAML = """\
node_id_hash: "{node_id}"
label: "{label}"
node_type: "processing"
sections:
  - section_name: "inputs"
    section_label: "Input Files"
    behavior: "auto_increment"
    slot_template:
      input:
        name: "file_input"
        label: "File {{index}}"
        type: "FILE_CONTENT"
        connections: 1
      output:
        name: "file_output"
        label: "Processed File {{index}}"
        type: "FILE_CONTENT"
        connections: "n"
input_fields:
  - name: "target_directory"
    label: "Target Directory"
    type: "directory_path"
    default: "/tmp"
"""


def write_node_dir(root: Path, dirname: str, node_id: str, label: str = "Echo Node") -> Path:
    """Create a worker directory with a valid config.yaml."""
    node_dir = root / dirname
    node_dir.mkdir(parents=True, exist_ok=True)
    (node_dir / "config.yaml").write_text(ECHO_CONFIG_YAML.format(node_id=node_id, label=label))
    return node_dir


def make_node_info(node_id: str, port: int = 3001, label: str = "Test Node") -> NodeInfo:
    return NodeInfo(
        node_id=node_id,
        config=NodeConfig(node_id_hash=node_id, label=label, node_type="test"),
        path=Path("/test") / node_id,
        port=port,
        is_running=False,
    )


class WorkerStub:
    """Fake worker processes behind an httpx.MockTransport.

    Handlers are registered per port and receive the decoded ``/run`` body.
    Returning a dict answers 200 with ``{"outputs": <dict>}``; returning an
    ``httpx.Response`` sends it as is.
    """

    def __init__(self):
        self.handlers: dict[int, Callable[[dict[str, Any]], Any]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, port: int, handler: Callable[[dict[str, Any]], Any]) -> None:
        self.handlers[port] = handler

    def run_bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/run"]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        port = request.url.port
        if request.url.path == "/health":
            if port in self.handlers:
                return httpx.Response(200)
            raise httpx.ConnectError("Connection refused", request=request)

        handler = self.handlers.get(port)
        if handler is None:
            raise httpx.ConnectError("Connection refused", request=request)
        result = handler(json.loads(request.content))
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json={"outputs": result})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def client(self) -> NodeClient:
        return NodeClient(transport=self.transport)


def echo_handler(body: dict[str, Any]) -> dict[str, Any]:
    """Echo worker: forwards its ``in`` input to ``out`` (``"seed"`` when unconnected)."""
    return {"out": body["inputs"].get("in", "seed")}


@pytest.fixture
def worker_stub() -> WorkerStub:
    return WorkerStub()


@pytest.fixture
def echo_registry() -> NodeRegistry:
    """Registry with an ``echo`` node on port 3001 and a ``sink`` node on 3002."""
    registry = NodeRegistry()
    registry.register(make_node_info("echo", port=3001, label="Echo"))
    registry.register(make_node_info("sink", port=3002, label="Sink"))
    return registry


@pytest.fixture
def node_dir_writer() -> Callable[..., Path]:
    return write_node_dir


@pytest.fixture
def node_info_factory() -> Callable[..., NodeInfo]:
    return make_node_info


@pytest.fixture
def echo() -> Callable[[dict[str, Any]], dict[str, Any]]:
    return echo_handler
