"""Persistence of named workspaces (graph definitions plus metadata).

One pretty-printed ``<name>.json`` per workspace under the nexus directory.
Saves overwrite unconditionally; there is no versioning or locking.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from core.types_registry import InternalError, WorkspaceNotFoundError

logger = logging.getLogger(__name__)


class WorkspaceMetadata(BaseModel):
    created_at: str | None = None
    modified_at: str | None = None
    created_by: str | None = None
    description: str | None = None


class WorkspaceData(BaseModel):
    # Same shape as a submitted graph, opaque at this layer
    graph: Any
    metadata: WorkspaceMetadata | None = None

    def to_json_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"graph": self.graph}
        if self.metadata is not None:
            payload["metadata"] = self.metadata.model_dump(exclude_none=True)
        return payload


def sanitize_filename(name: str) -> str:
    """Replace every character that is not alphanumeric, ``-`` or ``_`` with ``_``."""
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in name)


class WorkspaceManager:
    def __init__(self, nexus_dir: str | Path):
        self.nexus_dir = Path(nexus_dir)
        if not self.nexus_dir.exists():
            try:
                self.nexus_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(f"Failed to create nexus directory: {e}")

    def _path_for(self, name: str) -> Path:
        return self.nexus_dir / f"{sanitize_filename(name)}.json"

    def save_workspace(self, name: str, data: WorkspaceData) -> None:
        file_path = self._path_for(name)
        logger.info(f"Saving workspace to: {file_path}")

        try:
            contents = json.dumps(data.to_json_dict(), indent=2)
        except (TypeError, ValueError) as e:
            raise InternalError(f"Failed to serialize workspace data: {e}") from e

        try:
            file_path.write_text(contents, encoding="utf-8")
        except OSError as e:
            raise InternalError(f"Failed to write workspace file: {e}") from e

        logger.info(f"Workspace '{name}' saved successfully")

    def load_workspace(self, name: str) -> WorkspaceData:
        """Load a saved workspace.

        Raises:
            WorkspaceNotFoundError: If no file exists for the sanitized name.
            InternalError: If the file cannot be read or parsed.
        """
        file_path = self._path_for(name)
        if not file_path.exists():
            raise WorkspaceNotFoundError(name)

        logger.info(f"Loading workspace from: {file_path}")

        try:
            contents = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise InternalError(f"Failed to read workspace file: {e}") from e

        try:
            data = WorkspaceData.model_validate(json.loads(contents))
        except (json.JSONDecodeError, ValidationError) as e:
            raise InternalError(f"Failed to parse workspace data: {e}") from e

        logger.info(f"Workspace '{name}' loaded successfully")
        return data

    def list_workspaces(self) -> list[str]:
        """Sorted names (file stems) of every saved workspace."""
        if not self.nexus_dir.exists():
            return []

        try:
            entries = list(self.nexus_dir.iterdir())
        except OSError as e:
            raise InternalError(f"Failed to read nexus directory: {e}") from e

        return sorted(p.stem for p in entries if p.is_file() and p.suffix == ".json")

    def delete_workspace(self, name: str) -> None:
        file_path = self._path_for(name)
        if not file_path.exists():
            raise WorkspaceNotFoundError(name)

        try:
            file_path.unlink()
        except OSError as e:
            raise InternalError(f"Failed to delete workspace file: {e}") from e

        logger.info(f"Workspace '{name}' deleted successfully")
