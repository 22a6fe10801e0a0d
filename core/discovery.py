# core/discovery.py
# Scans the nodes directory for worker directories and builds the registry.

import logging
import os
from pathlib import Path

from core.node_config import CONFIG_FILENAME, load_config
from core.node_registry import NodeInfo, NodeRegistry
from core.types_registry import EngineError, InternalError

logger = logging.getLogger(__name__)

DEFAULT_BASE_PORT = 3001  # the engine itself listens on 3000


class DiscoveryService:
    """Discovers worker nodes in the immediate subdirectories of ``nodes_dir``.

    Ports are assigned sequentially from ``base_port`` in enumeration order.
    Filesystem enumeration order is not stable across platforms; pass
    ``sort_entries=True`` for reproducible port assignment.
    """

    def __init__(
        self,
        nodes_dir: str | Path,
        base_port: int = DEFAULT_BASE_PORT,
        sort_entries: bool = False,
    ):
        self.nodes_dir = Path(nodes_dir)
        self.base_port = base_port
        self.sort_entries = sort_entries

    def discover_nodes(self) -> NodeRegistry:
        """Load every worker descriptor and register it.

        A missing root is created and yields an empty registry. Failures for
        one directory are logged and do not stop discovery of the others.

        Raises:
            InternalError: If the missing root directory cannot be created.
        """
        registry = NodeRegistry()

        if not self.nodes_dir.exists():
            logger.warning(f"Nodes directory {self.nodes_dir} does not exist, creating it")
            try:
                self.nodes_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise InternalError(f"Failed to create nodes directory: {e}") from e
            return registry

        port_counter = 0

        for entry in self._subdirectories():
            config_path = entry / CONFIG_FILENAME
            if not config_path.is_file():
                logger.warning(f"Skipping {entry.name} - no {CONFIG_FILENAME} found")
                continue

            try:
                config = load_config(config_path)
            except EngineError as e:
                logger.error(f"Failed to load config at {config_path}: {e}")
                continue

            port = self.base_port + port_counter
            port_counter += 1
            node_info = NodeInfo(
                node_id=config.node_id_hash,
                config=config,
                path=entry,
                port=port,
                is_running=False,
            )

            try:
                registry.register(node_info)
            except EngineError as e:
                logger.error(f"Failed to register node '{node_info.node_id}': {e}")
                continue

            logger.info(f"Registered node '{node_info.node_id}' at {entry} (port {port})")

        return registry

    def scan_node_paths(self) -> list[Path]:
        """Directories that contain a descriptor file, without loading them."""
        if not self.nodes_dir.exists():
            return []
        return [entry for entry in self._subdirectories() if (entry / CONFIG_FILENAME).is_file()]

    def _subdirectories(self) -> list[Path]:
        # Depth one only: nested worker directories are not discovered
        try:
            with os.scandir(self.nodes_dir) as it:
                entries = [Path(e.path) for e in it if e.is_dir()]
        except OSError as e:
            logger.error(f"Failed to read nodes directory {self.nodes_dir}: {e}")
            return []
        if self.sort_entries:
            entries.sort(key=lambda p: p.name)
        return entries
