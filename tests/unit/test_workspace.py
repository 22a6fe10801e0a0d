import json

import pytest

from core.types_registry import BadRequestError, InternalError, WorkspaceNotFoundError
from core.workspace import WorkspaceData, WorkspaceManager, WorkspaceMetadata, sanitize_filename


@pytest.fixture
def manager(tmp_path) -> WorkspaceManager:
    return WorkspaceManager(tmp_path / "nexus")


def _graph_payload() -> dict:
    return {
        "nodes": [{"instance_id": "n1", "node_type_id": "echo", "position": {"x": 1.5, "y": 2}}],
        "connections": [],
    }


class TestSanitizeFilename:
    def test_examples(self):
        assert sanitize_filename("hello world") == "hello_world"
        assert sanitize_filename("test/file.txt") == "test_file_txt"
        assert sanitize_filename("valid-name_123") == "valid-name_123"

    def test_idempotent(self):
        for name in ("a b/c", "../../etc/passwd", "ok-name", "ünïcode näme"):
            once = sanitize_filename(name)
            assert sanitize_filename(once) == once

    def test_path_traversal_neutralised(self):
        assert "/" not in sanitize_filename("../../etc/passwd")
        assert "." not in sanitize_filename("../../etc/passwd")


class TestWorkspaceManager:
    """Tests for workspace save/load/list/delete."""

    def test_creates_directory(self, tmp_path):
        WorkspaceManager(tmp_path / "a" / "b")
        assert (tmp_path / "a" / "b").is_dir()

    def test_uncreatable_directory_is_not_fatal(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")

        manager = WorkspaceManager(blocker / "nexus")

        assert manager.list_workspaces() == []

    def test_save_and_load_with_metadata(self, manager):
        data = WorkspaceData(
            graph=_graph_payload(),
            metadata=WorkspaceMetadata(
                created_at="2024-01-01",
                created_by="test_user",
                description="Test workspace",
            ),
        )

        manager.save_workspace("demo", data)
        loaded = manager.load_workspace("demo")

        assert loaded == data
        assert loaded.metadata.modified_at is None
        assert loaded.to_json_dict() == data.to_json_dict()

    def test_absent_metadata_round_trips_as_absent(self, manager):
        data = WorkspaceData(graph=_graph_payload())

        manager.save_workspace("demo", data)

        stored = json.loads((manager.nexus_dir / "demo.json").read_text())
        assert stored == {"graph": _graph_payload()}
        loaded = manager.load_workspace("demo")
        assert loaded.metadata is None
        assert loaded.to_json_dict() == {"graph": _graph_payload()}

    def test_file_is_pretty_json(self, manager):
        manager.save_workspace("demo", WorkspaceData(graph={"nodes": []}))
        contents = (manager.nexus_dir / "demo.json").read_text()
        assert contents.startswith("{\n  ")

    def test_save_overwrites(self, manager):
        manager.save_workspace("demo", WorkspaceData(graph={"version": 1}))
        manager.save_workspace("demo", WorkspaceData(graph={"version": 2}))

        assert manager.load_workspace("demo").graph == {"version": 2}
        assert manager.list_workspaces() == ["demo"]

    def test_name_is_sanitized(self, manager):
        manager.save_workspace("my flow/v1", WorkspaceData(graph={}))

        assert (manager.nexus_dir / "my_flow_v1.json").exists()
        assert manager.load_workspace("my flow/v1").graph == {}

    def test_load_missing(self, manager):
        with pytest.raises(WorkspaceNotFoundError, match="Workspace 'nope' not found"):
            manager.load_workspace("nope")

    def test_not_found_is_bad_request(self, manager):
        with pytest.raises(BadRequestError):
            manager.load_workspace("nope")

    def test_load_malformed(self, manager):
        (manager.nexus_dir / "broken.json").write_text("{not json")
        with pytest.raises(InternalError, match="Failed to parse workspace data"):
            manager.load_workspace("broken")

    def test_load_missing_graph_key(self, manager):
        (manager.nexus_dir / "partial.json").write_text('{"metadata": {}}')
        with pytest.raises(InternalError, match="Failed to parse workspace data"):
            manager.load_workspace("partial")

    def test_list_workspaces(self, manager):
        assert manager.list_workspaces() == []

        for name in ("zeta", "alpha", "mid"):
            manager.save_workspace(name, WorkspaceData(graph={"nodes": []}))
        (manager.nexus_dir / "notes.txt").write_text("ignored")

        assert manager.list_workspaces() == ["alpha", "mid", "zeta"]

    def test_list_missing_directory(self, tmp_path):
        manager = WorkspaceManager(tmp_path / "nexus")
        (tmp_path / "nexus").rmdir()
        assert manager.list_workspaces() == []

    def test_delete(self, manager):
        manager.save_workspace("demo", WorkspaceData(graph={}))

        manager.delete_workspace("demo")

        assert manager.list_workspaces() == []
        with pytest.raises(WorkspaceNotFoundError):
            manager.delete_workspace("demo")
