# core/node_registry.py
# In-memory directory of every worker node discovered at startup.

import logging
import threading
from pathlib import Path

from pydantic import BaseModel, Field

from core.node_config import NodeConfig
from core.types_registry import NodeConflictError

logger = logging.getLogger(__name__)


class NodeInfo(BaseModel):
    """Registry entry for a discovered node type."""

    node_id: str = Field(..., description="Equals the descriptor's node_id_hash")
    config: NodeConfig
    path: Path
    port: int
    # Advisory only: nothing in the execution path updates it
    is_running: bool = False


class NodeRegistry:
    """Keyed store of NodeInfo entries.

    Built once by discovery and read-only afterwards; the lock only
    serialises the mutators used during startup.
    """

    def __init__(self):
        self._nodes: dict[str, NodeInfo] = {}
        self._lock = threading.Lock()

    def register(self, node_info: NodeInfo) -> None:
        """Register a node.

        Raises:
            NodeConflictError: If the node id is already registered. The
                registry is left unchanged.
        """
        with self._lock:
            if node_info.node_id in self._nodes:
                raise NodeConflictError(node_info.node_id)
            self._nodes[node_info.node_id] = node_info

    def get_node(self, node_id: str) -> NodeInfo | None:
        return self._nodes.get(node_id)

    def get_all_nodes(self) -> list[NodeInfo]:
        return list(self._nodes.values())

    def contains(self, node_id: str) -> bool:
        return node_id in self._nodes

    def count(self) -> int:
        return len(self._nodes)

    def set_node_running(self, node_id: str, is_running: bool) -> None:
        """Update the running flag; unknown ids are ignored."""
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None:
                return
            self._nodes[node_id] = node.model_copy(update={"is_running": is_running})

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes
