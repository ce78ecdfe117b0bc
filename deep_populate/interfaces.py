"""Collaborator protocols for deep population.

The core never touches storage itself; it hands each fetchable path to a
:class:`DocumentStore`, which loads the referenced entities and attaches them
to the documents in place.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Optional, Protocol, runtime_checkable

from .error_handling import ConfigurationError
from .models import FetchOptions


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for the store that fetches and attaches referenced entities."""

    async def fetch_and_attach(self, documents: Any, path: str, options: FetchOptions) -> None:
        """Fetch entities referenced at ``path`` and attach them in place.

        Args:
            documents: A list of documents or a single document
            path: Dotted path whose parent segments are already attached
            options: Fetch options; ``options.model`` names the target type

        Raises:
            Exception: Any failure; it is propagated to the caller unchanged
        """
        ...


def is_batch(documents: Any) -> bool:
    """True for a sequence of documents, false for a single document."""
    return isinstance(documents, Sequence) and not isinstance(documents, (str, bytes, Mapping))


def first_document(documents: Any) -> Any:
    if is_batch(documents):
        return documents[0] if documents else None
    return documents


def resolve_store(store: Optional[DocumentStore], documents: Any) -> DocumentStore:
    """Find the store to fetch through.

    An explicit store wins; otherwise the owning store of the first document
    is used (documents materialised by a store carry it as ``store``).

    Raises:
        ConfigurationError: If no store can be found
    """
    if store is not None:
        return store

    owner = getattr(first_document(documents), "store", None)
    if owner is not None and hasattr(owner, "fetch_and_attach"):
        return owner

    raise ConfigurationError(
        "Cannot retrieve a document store for these documents",
        config_key="store"
    )
