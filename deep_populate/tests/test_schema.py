"""Tests for schema graphs and target type resolution."""

import pytest

from deep_populate.error_handling import UsageError
from deep_populate.schema import (
    DictSchema,
    FieldMeta,
    SchemaGraph,
    SchemaRegistry,
    resolve_target_type,
)


class TestDictSchema:
    """Building schemas from definitions."""

    def test_reference_field(self):
        schema = DictSchema.from_definition({"user": {"ref": "User"}})
        meta = schema.lookup_field("user")

        assert meta.is_reference
        assert meta.ref == "User"
        assert not meta.is_collection

    def test_collection_of_references(self):
        meta = DictSchema.from_definition({"comments": [{"ref": "Comment"}]}).lookup_field("comments")

        assert meta.is_collection
        assert not meta.is_reference
        assert meta.element().ref == "Comment"

    def test_nested_structure(self):
        meta = DictSchema.from_definition(
            {"approved": {"status": "bool", "user": {"ref": "User"}}}
        ).lookup_field("approved")

        assert not meta.is_reference
        assert meta.schema.lookup_field("user").ref == "User"
        assert meta.schema.lookup_field("status").schema is None

    def test_collection_of_structures(self):
        meta = DictSchema.from_definition({"likes": [{"user": {"ref": "User"}}]}).lookup_field("likes")

        assert meta.element().schema.lookup_field("user").ref == "User"

    def test_unknown_field(self):
        assert DictSchema.from_definition({}).lookup_field("missing") is None

    def test_satisfies_protocol(self):
        assert isinstance(DictSchema(), SchemaGraph)


class TestSchemaRegistry:
    """Registry lookups."""

    def test_require_unknown_type_raises(self, registry):
        with pytest.raises(UsageError) as exc_info:
            registry.require("Missing")

        assert exc_info.value.context == {"type": "Missing"}

    def test_register_custom_graph(self):
        class FlatSchema:
            def lookup_field(self, name):
                return FieldMeta(name=name, ref="Leaf") if name == "child" else None

        registry = SchemaRegistry()
        registry.register("Node", FlatSchema())

        assert "Node" in registry
        assert resolve_target_type(registry, "Node", "child") == "Leaf"


class TestResolveTargetType:
    """Walking paths across type boundaries."""

    @pytest.mark.parametrize("path, expected", [
        ("user", "User"),
        ("user.manager", "User"),
        ("user.mainPage", "Post"),
        ("user.mainPage.comments", "Comment"),
        ("comments", "Comment"),
        ("comments.user", "User"),
        ("comments.user.manager", "User"),
        ("reviewers.mainPage", "Post"),
        ("likes.user", "User"),
        ("likes.user.manager", "User"),
        ("approved.user", "User"),
        ("approved.user.manager", "User"),
    ])
    def test_fetchable_paths(self, registry, path, expected):
        assert resolve_target_type(registry, "Post", path) == expected

    @pytest.mark.parametrize("path", ["approved", "likes", "loaded", "approved.status", "user.loaded"])
    def test_structural_and_scalar_paths_have_no_target(self, registry, path):
        assert resolve_target_type(registry, "Post", path) is None

    @pytest.mark.parametrize("path", ["invalid1", "invalid2.invalid3", "user.invalid"])
    def test_unknown_paths_have_no_target(self, registry, path):
        assert resolve_target_type(registry, "Post", path) is None

    def test_unknown_segment_joins_structural_prefix(self):
        """Flattened schemas declare nested fields under dotted names."""
        registry = SchemaRegistry.from_definitions({
            "Post": {"approved.user": {"ref": "User"}},
            "User": {},
        })

        assert resolve_target_type(registry, "Post", "approved") is None
        assert resolve_target_type(registry, "Post", "approved.user") == "User"

    def test_walk_continues_after_unknown_segment(self):
        registry = SchemaRegistry.from_definitions({
            "Post": {"meta.user": {"ref": "User"}, "user": {"ref": "User"}},
            "User": {"manager": {"ref": "User"}},
        })

        assert resolve_target_type(registry, "Post", "meta.user.manager") == "User"

    def test_unregistered_reference_target_is_still_returned(self):
        registry = SchemaRegistry.from_definitions({"Post": {"tag": {"ref": "Tag"}}})

        assert resolve_target_type(registry, "Post", "tag") == "Tag"
        assert resolve_target_type(registry, "Post", "tag.name") is None

    def test_unknown_root_type_raises(self, registry):
        with pytest.raises(UsageError):
            resolve_target_type(registry, "Missing", "user")
