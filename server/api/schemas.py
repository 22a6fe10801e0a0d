"""Pydantic schemas for HTTP API request/response validation."""

from typing import Literal

from pydantic import BaseModel, Field

from core.node_client import NodeHealthStatus
from core.node_registry import NodeInfo
from core.workspace import WorkspaceData


class NodeRegistryResponse(BaseModel):
    """Response model for listing all registered nodes."""
    nodes: list[NodeInfo] = Field(..., description="Every discovered node with its full config")


class SaveWorkspaceRequest(BaseModel):
    """Request model for saving a workspace."""
    name: str = Field(..., description="Workspace name, sanitized before use as a file name")
    data: WorkspaceData


class WorkspaceListResponse(BaseModel):
    """Response model for listing saved workspaces."""
    workspaces: list[str] = Field(..., description="Sorted workspace names")


class ServiceStatus(BaseModel):
    healthy: bool
    message: str | None = None


class SystemHealthResponse(BaseModel):
    """Response model for the system-wide health check."""
    status: Literal["healthy", "degraded"]
    engine: ServiceStatus
    nodes: list[NodeHealthStatus]


class APIError(BaseModel):
    """Standard API error response."""
    error: str = Field(..., description="Error message")
