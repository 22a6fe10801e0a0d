"""
FastAPI server for the node graph control plane.

This module provides:
- Node discovery at startup (registry built once, then read-only)
- Graph execution endpoint driving worker nodes over HTTP
- Workspace persistence endpoints
- Error translation from engine exceptions to HTTP responses
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from uvicorn import run  # type: ignore[import-untyped]

from config.settings import EngineSettings, load_settings
from core.discovery import DiscoveryService
from core.graph_executor import Orchestrator, get_scheduler
from core.node_client import NodeClient
from core.node_registry import NodeRegistry
from core.types_registry import EngineError
from core.workspace import WorkspaceManager
from server.api.routes import router as api_router

logger = logging.getLogger(__name__)


# ============================================================================
# Startup
# ============================================================================


def build_registry(settings: EngineSettings) -> NodeRegistry:
    """Discover worker nodes and log what was found."""
    discovery = DiscoveryService(
        settings.nodes_dir,
        base_port=settings.node_base_port,
        sort_entries=settings.sort_node_dirs,
    )
    logger.info(f"Discovering nodes in {settings.nodes_dir} directory...")
    registry = discovery.discover_nodes()
    logger.info(f"Discovered {registry.count()} nodes")

    for node_info in registry.get_all_nodes():
        logger.info(
            f"  - {node_info.config.label} ({node_info.node_id}): "
            f"{len(node_info.config.sections)} sections, "
            f"{len(node_info.config.input_fields)} input fields"
        )
    return registry


def _install_state(
    app: FastAPI,
    settings: EngineSettings,
    registry: NodeRegistry,
    node_client: NodeClient | None,
) -> None:
    client = node_client or NodeClient(
        host=settings.node_host, health_timeout=settings.health_timeout
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.orchestrator = Orchestrator(
        registry, client=client, scheduler=get_scheduler(settings.scheduler)
    )
    app.state.workspace_manager = WorkspaceManager(settings.nexus_dir)


# ============================================================================
# Application Initialization
# ============================================================================


def create_app(
    settings: EngineSettings | None = None,
    registry: NodeRegistry | None = None,
    node_client: NodeClient | None = None,
) -> FastAPI:
    """Build the application.

    When ``registry`` is given, discovery is skipped and the state is installed
    immediately; otherwise discovery runs in the lifespan handler.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "orchestrator", None) is None:
            _install_state(app, settings, build_registry(settings), node_client)

        yield

        await app.state.orchestrator.aclose()

    app = FastAPI(
        title="Node Graph Engine API",
        description="Node discovery, graph orchestration and workspace persistence",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    if registry is not None:
        _install_state(app, settings, registry, node_client)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    @app.exception_handler(EngineError)
    async def engine_exception_handler(request: Request, exc: EngineError):
        """Map engine errors to their status code with the originating message."""
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors."""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": "Validation error", "details": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "message": str(exc)},
        )

    return app


app: FastAPI = create_app()


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    settings = load_settings()
    run(app, host=settings.host, port=settings.port)
