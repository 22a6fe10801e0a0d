"""HTTP routes for the node registry, graph execution and health checks."""

import logging

from fastapi import APIRouter, Request, Response, status

from core.graph_executor import Orchestrator
from core.node_registry import NodeInfo, NodeRegistry
from core.types_registry import BadRequestError, GraphExecutionRequest, GraphExecutionResponse

from . import nexus
from .schemas import NodeRegistryResponse, ServiceStatus, SystemHealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()

# Include workspace routes
router.include_router(nexus.router)


def _get_registry(request: Request) -> NodeRegistry:
    return request.app.state.registry


def _get_orchestrator(request: Request) -> Orchestrator:
    return request.app.state.orchestrator


@router.get("/health", summary="Health Check")
def health_check() -> Response:
    """Liveness probe for the engine itself."""
    return Response(status_code=status.HTTP_200_OK)


@router.get("/health/all", response_model=SystemHealthResponse, summary="System Health Check")
async def health_check_all(request: Request) -> SystemHealthResponse:
    """Check the engine and every registered node.

    Each node's ``/health`` endpoint is probed with a fixed timeout. The
    overall status is ``degraded`` as soon as one node does not answer.
    """
    node_statuses = await _get_orchestrator(request).check_nodes_health()
    all_healthy = all(n.healthy for n in node_statuses)
    return SystemHealthResponse(
        status="healthy" if all_healthy else "degraded",
        engine=ServiceStatus(healthy=True, message="Orchestrator running"),
        nodes=node_statuses,
    )


@router.get("/nodes/registry", response_model=NodeRegistryResponse, summary="List Registered Nodes")
def get_node_registry(request: Request) -> NodeRegistryResponse:
    """Get every discovered node, including sections, slots and settings."""
    return NodeRegistryResponse(nodes=_get_registry(request).get_all_nodes())


@router.get("/nodes/{node_id}", response_model=NodeInfo, summary="Get Node")
def get_node_info(node_id: str, request: Request) -> NodeInfo:
    node = _get_registry(request).get_node(node_id)
    if node is None:
        raise BadRequestError(f"Node '{node_id}' not found")
    return node


@router.post("/graphs/run", response_model=GraphExecutionResponse, summary="Execute Graph")
async def execute_graph(body: GraphExecutionRequest, request: Request) -> GraphExecutionResponse:
    """Validate a graph and execute it in dependency order.

    Validation and cycle errors answer 400. A failing node does not fail the
    request: the response reports ``failed`` with the partial results.
    """
    logger.info("Received graph execution request")
    return await _get_orchestrator(request).execute_graph(body)
