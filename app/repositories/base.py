"""Storage interface shared by every backend."""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from bson import ObjectId


class StorageError(Exception):
    """Raised when a storage backend fails to complete an operation."""


def new_id() -> str:
    """Generate a document ID."""
    return str(ObjectId())


def to_document(value: Any) -> Any:
    """
    Convert a value into something a backend can store.

    Enums become their values; dicts and lists are converted recursively.
    """
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: to_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document(item) for item in value]
    return value


class Repository(ABC):
    """
    Async document store for one collection.

    Documents are plain dicts keyed by ``_id``. Queries are equality filters:
    a document matches when every key in the query equals the document's value.
    """

    @abstractmethod
    async def get(self, doc_id: str) -> Optional[dict]:
        """Return the document or None."""

    @abstractmethod
    async def list(self, query: Optional[dict] = None) -> list[dict]:
        """Return all documents matching the query, in insertion order."""

    @abstractmethod
    async def create(self, doc: dict) -> dict:
        """Insert a document, assigning ``_id`` when absent. Returns the stored document."""

    @abstractmethod
    async def update(self, doc_id: str, changes: dict) -> Optional[dict]:
        """Merge changes into a document. Returns the updated document or None."""

    @abstractmethod
    async def delete(self, doc_id: str) -> bool:
        """Remove a document. Returns whether it existed."""

    @abstractmethod
    async def delete_many(self, query: dict) -> int:
        """Remove all documents matching the query. Returns the count removed."""
