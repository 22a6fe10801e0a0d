from enum import Enum
from typing import Any, TypeAlias

from pydantic import BaseModel, Field

# Freely-shaped JSON values exchanged with workers, keyed by handle name
NodeInputs: TypeAlias = dict[str, Any]
NodeOutputs: TypeAlias = dict[str, Any]
OutputsCache: TypeAlias = dict[str, NodeOutputs]


# ============================================================================
# Graph definition (submitted by clients)
# ============================================================================


class Position(BaseModel):
    """Position of a node in the UI. Ignored by the engine."""

    x: float
    y: float


class GraphNode(BaseModel):
    """A node instance in a graph."""

    instance_id: str = Field(..., description="Unique instance ID within the graph")
    node_type_id: str = Field(..., description="References node_id_hash from the registry")
    input_values: dict[str, Any] = Field(default_factory=dict)
    position: Position | None = None


class Connection(BaseModel):
    """Connection from an output handle to an input handle."""

    from_node: str
    from_handle: str
    to_node: str
    to_handle: str


class GraphDefinition(BaseModel):
    nodes: list[GraphNode] = Field(default_factory=list)
    connections: list[Connection] = Field(default_factory=list)

    def get_node(self, instance_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.instance_id == instance_id:
                return node
        return None


class GraphExecutionRequest(BaseModel):
    execution_id: str | None = Field(None, description="Generated when not provided")
    graph: GraphDefinition


# ============================================================================
# Execution results
# ============================================================================


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    # Part of the result vocabulary; synchronous execution never produces it
    IN_PROGRESS = "in_progress"


class NodeExecutionResult(BaseModel):
    instance_id: str
    status: ExecutionStatus
    outputs: NodeOutputs | None = None
    error: str | None = None


class GraphExecutionResponse(BaseModel):
    execution_id: str
    status: ExecutionStatus
    node_results: dict[str, NodeExecutionResult] = Field(default_factory=dict)
    error: str | None = None


ExecutionResults: TypeAlias = dict[str, NodeExecutionResult]


# ============================================================================
# Engine exceptions
# ============================================================================


class EngineError(Exception):
    """Base exception for all engine errors.

    Every subclass carries the HTTP status the server answers with, so
    handlers never need to inspect the concrete type.
    """

    status_code: int = 500
    prefix: str = "Engine error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class BadRequestError(EngineError):
    """Invalid client input: unknown node type, dangling connection, cycle."""

    status_code = 400
    prefix = "Bad request"


class ConfigurationError(EngineError):
    """Descriptor file missing, unparsable or invalid."""

    status_code = 400
    prefix = "Configuration error"


class InternalError(EngineError):
    """Worker call failure, malformed worker response, filesystem failure."""

    status_code = 500
    prefix = "Internal error"


class NodeConflictError(BadRequestError):
    def __init__(self, node_id: str):
        super().__init__(f"Node '{node_id}' already registered")
        self.node_id = node_id


class WorkspaceNotFoundError(BadRequestError):
    def __init__(self, name: str):
        super().__init__(f"Workspace '{name}' not found")
        self.name = name


class NodeExecutionError(InternalError):
    """Raised when a single node instance fails during graph execution."""

    def __init__(self, instance_id: str, message: str, original_exc: Exception | None = None):
        super().__init__(message)
        self.instance_id = instance_id
        self.original_exc = original_exc


__all__ = [
    "NodeInputs",
    "NodeOutputs",
    "OutputsCache",
    "Position",
    "GraphNode",
    "Connection",
    "GraphDefinition",
    "GraphExecutionRequest",
    "ExecutionStatus",
    "NodeExecutionResult",
    "GraphExecutionResponse",
    "ExecutionResults",
    "EngineError",
    "BadRequestError",
    "ConfigurationError",
    "InternalError",
    "NodeConflictError",
    "WorkspaceNotFoundError",
    "NodeExecutionError",
]
