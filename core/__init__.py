"""Core package for node discovery, graph orchestration and workspace persistence.

Modules:
- node_config: Worker descriptor model and config.yaml loader
- node_registry: In-memory registry of discovered nodes
- discovery: Scans the nodes directory and assigns worker ports
- node_client: HTTP client for the worker contract
- graph_executor: Graph validation, execution ordering and orchestration
- workspace: Named workspace persistence
- types_registry: Graph/result types and engine exceptions
"""

# No explicit imports to avoid circular dependencies
# Import these modules directly (e.g., from core.graph_executor import Orchestrator)
# instead of from core import graph_executor

__all__ = []
