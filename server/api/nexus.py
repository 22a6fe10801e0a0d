"""Workspace ("nexus") persistence endpoints."""

import logging

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from core.workspace import WorkspaceManager

from .schemas import SaveWorkspaceRequest, WorkspaceListResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/nexus")


def _get_workspace_manager(request: Request) -> WorkspaceManager:
    return request.app.state.workspace_manager


@router.post("/save", summary="Save Workspace")
def save_workspace(body: SaveWorkspaceRequest, request: Request) -> Response:
    logger.info(f"Saving workspace: {body.name}")
    _get_workspace_manager(request).save_workspace(body.name, body.data)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/load/{name}", summary="Load Workspace")
def load_workspace(name: str, request: Request) -> JSONResponse:
    """Return the saved workspace exactly as stored; absent metadata stays absent."""
    logger.info(f"Loading workspace: {name}")
    data = _get_workspace_manager(request).load_workspace(name)
    return JSONResponse(content=data.to_json_dict())


@router.get("/list", response_model=WorkspaceListResponse, summary="List Workspaces")
def list_workspaces(request: Request) -> WorkspaceListResponse:
    return WorkspaceListResponse(workspaces=_get_workspace_manager(request).list_workspaces())


@router.delete("/{name}", summary="Delete Workspace")
def delete_workspace(name: str, request: Request) -> Response:
    logger.info(f"Deleting workspace: {name}")
    _get_workspace_manager(request).delete_workspace(name)
    return Response(status_code=status.HTTP_200_OK)
