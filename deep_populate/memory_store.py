"""In-memory document store implementing the DocumentStore protocol.

Entities are stored as plain dicts per type. ``fetch_and_attach`` walks the
documents along a path, through nested structures, lists and entities
attached at earlier levels, and replaces reference ids with fetched
entities.
"""

import asyncio
import copy
from typing import Any, Dict, Iterable, List, Mapping, Optional

from . import constants
from .error_handling import ErrorContext, FetchError
from .interfaces import DocumentStore, is_batch
from .logging_config import get_logger
from .models import FetchOptions

logger = get_logger(__name__)


class Document(dict):
    """An entity materialised by a store, carrying its type and owning store."""

    def __init__(self, data: Mapping[str, Any], entity_type: str, store: DocumentStore):
        super().__init__(data)
        self.entity_type = entity_type
        self.store = store

    def __repr__(self) -> str:
        return f"Document({self.entity_type}, {dict.__repr__(self)})"


class InMemoryStore:
    """Dict-backed store for tests, examples and small in-process graphs."""

    def __init__(self, id_field: str = constants.DEFAULT_ID_FIELD, latency: float = 0.0):
        """Initialize the store.

        Args:
            id_field: Field holding each entity's identifier
            latency: Seconds each fetch sleeps, to simulate I/O
        """
        self.id_field = id_field
        self.latency = latency
        self._collections: Dict[str, Dict[Any, Dict[str, Any]]] = {}

    def add(self, entity_type: str, *entities: Mapping[str, Any]) -> None:
        """Store raw entities under ``entity_type``, keyed by their id."""
        collection = self._collections.setdefault(entity_type, {})
        for entity in entities:
            collection[entity[self.id_field]] = dict(entity)

    def has_type(self, entity_type: str) -> bool:
        return entity_type in self._collections

    def get(self, entity_type: str, entity_id: Any, lean: bool = False) -> Optional[Dict[str, Any]]:
        """Load one entity by id, or None."""
        raw = self._collections.get(entity_type, {}).get(entity_id)
        if raw is None:
            return None
        return self._materialize(entity_type, raw, lean=lean)

    def find(self, entity_type: str, lean: bool = False, **filters) -> List[Dict[str, Any]]:
        """Load every entity of a type matching the equality filters."""
        return [
            self._materialize(entity_type, raw, lean=lean)
            for raw in self._collections.get(entity_type, {}).values()
            if _matches(raw, filters)
        ]

    async def fetch_and_attach(self, documents: Any, path: str, options: FetchOptions) -> None:
        """Replace reference ids at ``path`` with the referenced entities.

        Raises:
            FetchError: If the target type is unknown to this store
        """
        entity_type = options.model
        if entity_type not in self._collections:
            raise FetchError(
                f"Unknown entity type '{entity_type}'",
                path=path,
                entity_type=entity_type
            )

        await asyncio.sleep(self.latency)

        *parents_path, leaf = path.split(constants.PATH_SEPARATOR)
        roots = documents if is_batch(documents) else [documents]
        attached = 0

        for parent in _descend(roots, parents_path):
            if leaf not in parent:
                continue
            value = parent[leaf]
            if isinstance(value, list):
                parent[leaf] = self._resolve_many(entity_type, value, options)
                attached += len(parent[leaf])
            else:
                parent[leaf] = self._resolve_one(entity_type, value, options)
                attached += int(parent[leaf] is not None)

        logger.debug("Attached %d %s entities at %s", attached, entity_type, path)

    def _resolve_one(self, entity_type: str, value: Any, options: FetchOptions) -> Any:
        if value is None or isinstance(value, Mapping):
            return value
        raw = self._collections[entity_type].get(value)
        if raw is None or not _matches(raw, options.match):
            return None
        return self._materialize(entity_type, raw, options.select, options.lean)

    def _resolve_many(self, entity_type: str, values: List[Any], options: FetchOptions) -> List[Any]:
        resolved = []
        for value in values:
            if isinstance(value, Mapping):
                resolved.append(value)
                continue
            entity = self._resolve_one(entity_type, value, options)
            if entity is not None:
                resolved.append(entity)

        sort = options.options.get("sort")
        if sort:
            with ErrorContext("sort", convert_to=FetchError, path=options.path, entity_type=entity_type, sort=sort):
                resolved = _sorted(resolved, sort)

        limit = options.options.get("limit")
        if limit is not None:
            resolved = resolved[:int(limit)]
        return resolved

    def _materialize(
        self,
        entity_type: str,
        raw: Mapping[str, Any],
        select: Optional[str] = None,
        lean: bool = False
    ) -> Dict[str, Any]:
        data = _project(copy.deepcopy(dict(raw)), select, self.id_field)
        if lean:
            return data
        return Document(data, entity_type, self)


def _descend(roots: Iterable[Any], segments: List[str]) -> List[Mapping[str, Any]]:
    """Containers reached by following ``segments`` through dicts and lists."""
    containers = [root for root in roots if isinstance(root, Mapping)]
    for segment in segments:
        reached = []
        for container in containers:
            value = container.get(segment)
            if isinstance(value, list):
                reached.extend(item for item in value if isinstance(item, Mapping))
            elif isinstance(value, Mapping):
                reached.append(value)
        containers = reached
    return containers


def _matches(raw: Mapping[str, Any], match: Optional[Mapping[str, Any]]) -> bool:
    if not match:
        return True
    return all(raw.get(key) == expected for key, expected in match.items())


def _project(data: Dict[str, Any], select: Optional[str], id_field: str) -> Dict[str, Any]:
    """Apply a ``"a b"`` include or ``"-a -b"`` exclude projection."""
    if not select:
        return data

    fields = select.split()
    excluded = {name[1:] for name in fields if name.startswith("-")}
    included = {name for name in fields if not name.startswith("-")}

    if included:
        included.add(id_field)
        data = {key: value for key, value in data.items() if key in included}
    return {key: value for key, value in data.items() if key not in excluded}


def _sorted(entities: List[Any], sort: Any) -> List[Any]:
    """Sort by ``"field"``/``"-field"`` or ``{"field": 1 | -1}``; later keys are secondary."""
    if isinstance(sort, str):
        keys = [(name.lstrip("-"), name.startswith("-")) for name in sort.split()]
    else:
        keys = [(name, direction in (-1, "desc", "descending")) for name, direction in dict(sort).items()]

    for name, descending in reversed(keys):
        entities = sorted(
            entities,
            key=lambda entity: (entity.get(name) is None, entity.get(name)),
            reverse=descending
        )
    return entities
