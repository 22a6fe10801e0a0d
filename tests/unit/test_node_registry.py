import pytest

from core.node_registry import NodeRegistry
from core.types_registry import BadRequestError, NodeConflictError


class TestNodeRegistry:
    """Tests for node registration and lookup."""

    def test_register_node(self, node_info_factory):
        registry = NodeRegistry()
        registry.register(node_info_factory("test_node"))

        assert registry.count() == 1
        assert len(registry) == 1
        assert registry.contains("test_node")
        assert "test_node" in registry

    def test_duplicate_registration_leaves_registry_unchanged(self, node_info_factory):
        registry = NodeRegistry()
        registry.register(node_info_factory("test_node", port=3001))

        with pytest.raises(NodeConflictError, match="already registered"):
            registry.register(node_info_factory("test_node", port=3999))

        assert registry.count() == 1
        assert registry.get_node("test_node").port == 3001

    def test_conflict_is_a_bad_request(self, node_info_factory):
        registry = NodeRegistry()
        registry.register(node_info_factory("test_node"))
        with pytest.raises(BadRequestError):
            registry.register(node_info_factory("test_node"))

    def test_get_node(self, node_info_factory):
        registry = NodeRegistry()
        registry.register(node_info_factory("test_node"))

        retrieved = registry.get_node("test_node")
        assert retrieved is not None
        assert retrieved.node_id == "test_node"

    def test_get_missing_node(self):
        registry = NodeRegistry()
        assert registry.get_node("missing") is None
        assert not registry.contains("missing")

    def test_get_all_nodes(self, node_info_factory):
        registry = NodeRegistry()
        for node_id in ("a", "b", "c"):
            registry.register(node_info_factory(node_id))

        assert sorted(n.node_id for n in registry.get_all_nodes()) == ["a", "b", "c"]

    def test_set_node_running(self, node_info_factory):
        registry = NodeRegistry()
        registry.register(node_info_factory("test_node"))

        registry.set_node_running("test_node", True)
        assert registry.get_node("test_node").is_running is True

        registry.set_node_running("test_node", False)
        assert registry.get_node("test_node").is_running is False

    def test_set_running_on_missing_node_is_noop(self):
        registry = NodeRegistry()
        registry.set_node_running("missing", True)
        assert registry.count() == 0
