"""Shared fixtures data and test stores."""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from deep_populate.memory_store import InMemoryStore
from deep_populate.models import FetchOptions
from deep_populate.schema import SchemaRegistry


SCHEMAS = {
    "User": {
        "loaded": "bool",
        "manager": {"ref": "User"},
        "mainPage": {"ref": "Post"},
    },
    "Comment": {
        "loaded": "bool",
        "user": {"ref": "User"},
    },
    "Post": {
        "loaded": "bool",
        "user": {"ref": "User"},                       # linked doc
        "reviewers": [{"ref": "User"}],                # linked docs
        "comments": [{"ref": "Comment"}],              # linked docs
        "likes": [{"user": {"ref": "User"}}],          # subdocs
        "approved": {"status": "bool", "user": {"ref": "User"}},  # subdoc
    },
}


class RecordingStore(InMemoryStore):
    """InMemoryStore that records every call and can fail chosen paths."""

    def __init__(self, fail_paths: Optional[Dict[str, Exception]] = None, **kwargs):
        super().__init__(**kwargs)
        self.fail_paths = fail_paths or {}
        self.calls: List[Tuple[str, FetchOptions]] = []
        self.events: List[Tuple[str, str]] = []

    @property
    def called_paths(self) -> List[str]:
        return [path for path, _ in self.calls]

    async def fetch_and_attach(self, documents: Any, path: str, options: FetchOptions) -> None:
        self.calls.append((path, options))
        self.events.append(("start", path))
        try:
            if path in self.fail_paths:
                await asyncio.sleep(0)
                raise self.fail_paths[path]
            await super().fetch_and_attach(documents, path, options)
        finally:
            self.events.append(("end", path))


def make_registry() -> SchemaRegistry:
    return SchemaRegistry.from_definitions(SCHEMAS)


def seed(store: InMemoryStore) -> InMemoryStore:
    store.add(
        "User",
        {"id": 1, "manager": 2, "mainPage": 1, "loaded": True},
        {"id": 2, "mainPage": 2, "loaded": True},
    )
    store.add(
        "Comment",
        {"id": 1, "user": 1, "loaded": True},
        {"id": 2, "user": 1, "loaded": True},
        {"id": 3, "user": 1, "loaded": True},
    )
    store.add(
        "Post",
        {"id": 1, "user": 1, "reviewers": [1, 2], "comments": [1, 2],
         "likes": [{"user": 1}], "approved": {"status": True, "user": 1}, "loaded": True},
        {"id": 2, "user": 1, "reviewers": [1, 2], "comments": [3],
         "likes": [{"user": 1}], "approved": {"status": True, "user": 1}, "loaded": True},
    )
    return store


def is_loaded(value: Any) -> bool:
    """True when ``value`` is a fully fetched entity."""
    return isinstance(value, dict) and value.get("loaded") is True


def as_plain(value: Any) -> Any:
    """Plain dict/list copy, for comparing snapshots of populated graphs."""
    if isinstance(value, dict):
        return {key: as_plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [as_plain(item) for item in value]
    return value


def check_post(post: Dict[str, Any]) -> None:
    assert is_loaded(post["user"])
    assert is_loaded(post["user"]["manager"])

    assert is_loaded(post["approved"]["user"])
    assert is_loaded(post["approved"]["user"]["manager"])

    for comment in post["comments"]:
        assert is_loaded(comment)
        assert is_loaded(comment["user"])
        assert is_loaded(comment["user"]["manager"])

    for like in post["likes"]:
        assert is_loaded(like["user"])
        assert is_loaded(like["user"]["manager"])
