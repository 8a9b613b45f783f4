"""In-process repository used for development and tests."""
import asyncio
import copy
import logging
import random
from typing import Optional

from app.repositories.base import Repository, StorageError, new_id, to_document
from app.utils.logging import get_logger, log_with_context

logger = get_logger(__name__)


def _matches(doc: dict, query: Optional[dict]) -> bool:
    return all(doc.get(key) == value for key, value in to_document(query or {}).items())


class InMemoryRepository(Repository):
    """
    Dict-backed repository.

    Callers always receive copies, so mutating a returned document never
    changes stored state. Latency and random failures can be simulated to
    exercise error paths.
    """

    def __init__(
        self,
        name: str,
        latency_ms: int = 0,
        failure_rate: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        self.name = name
        self.latency_ms = latency_ms
        self.failure_rate = failure_rate
        self._rng = rng or random.Random()
        self._docs: dict[str, dict] = {}

    async def _simulate(self, operation: str) -> None:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)
        if self.failure_rate and self._rng.random() < self.failure_rate:
            log_with_context(
                logger,
                logging.WARNING,
                "Simulated storage failure",
                collection=self.name,
                operation=operation,
            )
            raise StorageError(f"Simulated failure during {operation} on {self.name}")

    async def get(self, doc_id: str) -> Optional[dict]:
        await self._simulate("get")
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def list(self, query: Optional[dict] = None) -> list[dict]:
        await self._simulate("list")
        return [copy.deepcopy(doc) for doc in self._docs.values() if _matches(doc, query)]

    async def create(self, doc: dict) -> dict:
        await self._simulate("create")
        stored = to_document(copy.deepcopy(doc))
        stored.setdefault("_id", new_id())
        self._docs[stored["_id"]] = stored
        return copy.deepcopy(stored)

    async def update(self, doc_id: str, changes: dict) -> Optional[dict]:
        await self._simulate("update")
        doc = self._docs.get(doc_id)
        if doc is None:
            return None
        changes = {key: value for key, value in changes.items() if key != "_id"}
        doc.update(to_document(copy.deepcopy(changes)))
        return copy.deepcopy(doc)

    async def delete(self, doc_id: str) -> bool:
        await self._simulate("delete")
        return self._docs.pop(doc_id, None) is not None

    async def delete_many(self, query: dict) -> int:
        await self._simulate("delete_many")
        doomed = [doc_id for doc_id, doc in self._docs.items() if _matches(doc, query)]
        for doc_id in doomed:
            del self._docs[doc_id]
        return len(doomed)

    def clear(self) -> None:
        """Drop every document."""
        self._docs.clear()
