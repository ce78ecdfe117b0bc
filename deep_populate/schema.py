"""Entity type schemas and the walk that finds a path's target type.

Each entity type exposes a :class:`SchemaGraph`. A field is either a reference
to another type, a nested structure with its own graph, or a plain value.
Walking a dotted path switches the active graph every time a reference is
crossed, so ``comments.user.manager`` on ``Post`` ends on ``User``.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from . import constants
from .error_handling import UsageError


@dataclass(frozen=True)
class FieldMeta:
    """Metadata for one schema field."""

    name: str
    ref: Optional[str] = None
    is_collection: bool = False
    item: Optional["FieldMeta"] = None
    schema: Optional["SchemaGraph"] = None

    @property
    def is_reference(self) -> bool:
        return self.ref is not None

    def element(self) -> "FieldMeta":
        """The collection element wrapper when present, otherwise self."""
        return self.item if self.item is not None else self


@runtime_checkable
class SchemaGraph(Protocol):
    """Field lookup capability of an entity type or nested structure."""

    def lookup_field(self, name: str) -> Optional[FieldMeta]:
        """Return metadata for ``name`` or None if unknown."""
        ...


class DictSchema:
    """SchemaGraph backed by a mapping of field name to FieldMeta."""

    def __init__(self, fields: Optional[Mapping[str, FieldMeta]] = None):
        self.fields: Dict[str, FieldMeta] = dict(fields or {})

    def lookup_field(self, name: str) -> Optional[FieldMeta]:
        return self.fields.get(name)

    def __repr__(self) -> str:
        return f"DictSchema({sorted(self.fields)})"

    @classmethod
    def from_definition(cls, definition: Mapping[str, Any]) -> "DictSchema":
        """Build a schema from a plain definition.

        ``{"ref": "User"}`` declares a reference, a one-element list declares
        a collection of its element, a nested mapping declares a structure,
        anything else is a scalar.

        Example:
            DictSchema.from_definition({
                "user": {"ref": "User"},
                "comments": [{"ref": "Comment"}],
                "likes": [{"user": {"ref": "User"}}],
                "approved": {"status": "bool", "user": {"ref": "User"}},
            })
        """
        return cls({name: _field_from_definition(name, value) for name, value in definition.items()})


EMPTY_SCHEMA = DictSchema()


def _field_from_definition(name: str, value: Any) -> FieldMeta:
    if isinstance(value, (list, tuple)):
        item = _field_from_definition(name, value[0]) if value else FieldMeta(name=name)
        return FieldMeta(name=name, is_collection=True, item=item)
    if isinstance(value, Mapping):
        ref = value.get("ref")
        if isinstance(ref, str):
            return FieldMeta(name=name, ref=ref)
        return FieldMeta(name=name, schema=DictSchema.from_definition(value))
    return FieldMeta(name=name)


class SchemaRegistry:
    """Registry of entity type name to SchemaGraph."""

    def __init__(self):
        self._schemas: Dict[str, SchemaGraph] = {}

    def register(self, type_name: str, schema: SchemaGraph) -> None:
        self._schemas[type_name] = schema

    def register_definition(self, type_name: str, definition: Mapping[str, Any]) -> DictSchema:
        schema = DictSchema.from_definition(definition)
        self.register(type_name, schema)
        return schema

    def get(self, type_name: str) -> Optional[SchemaGraph]:
        return self._schemas.get(type_name)

    def require(self, type_name: str) -> SchemaGraph:
        """Schema for ``type_name``; raises UsageError when not registered."""
        schema = self._schemas.get(type_name)
        if schema is None:
            raise UsageError(
                f"Type '{type_name}' has no registered schema",
                context={"type": type_name}
            )
        return schema

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._schemas

    def __len__(self) -> int:
        return len(self._schemas)

    @classmethod
    def from_definitions(cls, definitions: Mapping[str, Mapping[str, Any]]) -> "SchemaRegistry":
        registry = cls()
        for type_name, definition in definitions.items():
            registry.register_definition(type_name, definition)
        return registry


def resolve_target_type(registry: SchemaRegistry, root_type: str, path: str) -> Optional[str]:
    """Walk ``path`` from ``root_type`` and return the type its last segment fetches.

    Unknown segments clear the target but do not stop the walk: the segment
    joins the structural prefix and later segments are looked up as
    ``prefix.segment``, so flattened schemas and partially unknown schemas
    both keep resolving. Returns None for structural-only paths.
    """
    schema = registry.require(root_type)
    target = None
    prefix = None

    for segment in path.split(constants.PATH_SEPARATOR):
        prefix = segment if prefix is None else f"{prefix}{constants.PATH_SEPARATOR}{segment}"
        meta = schema.lookup_field(prefix)

        if meta is None:
            target = None
            continue

        prefix = None
        meta = meta.element()

        if meta.is_reference:
            target = meta.ref
            schema = registry.get(meta.ref) or EMPTY_SCHEMA
        else:
            target = None
            schema = meta.schema or EMPTY_SCHEMA

    return target
