"""MongoDB repository over a Motor collection."""
from typing import Optional

from pymongo import ReturnDocument

from app.repositories.base import Repository, new_id, to_document


class MongoRepository(Repository):
    """Repository backed by a MongoDB collection. IDs are stored as strings."""

    def __init__(self, collection):
        self.collection = collection

    async def get(self, doc_id: str) -> Optional[dict]:
        return await self.collection.find_one({"_id": doc_id})

    async def list(self, query: Optional[dict] = None) -> list[dict]:
        cursor = self.collection.find(to_document(query or {}))
        return await cursor.to_list(length=None)

    async def create(self, doc: dict) -> dict:
        stored = to_document(dict(doc))
        stored.setdefault("_id", new_id())
        await self.collection.insert_one(stored)
        return stored

    async def update(self, doc_id: str, changes: dict) -> Optional[dict]:
        changes = {key: value for key, value in changes.items() if key != "_id"}
        if not changes:
            return await self.get(doc_id)
        return await self.collection.find_one_and_update(
            {"_id": doc_id},
            {"$set": to_document(changes)},
            return_document=ReturnDocument.AFTER,
        )

    async def delete(self, doc_id: str) -> bool:
        result = await self.collection.delete_one({"_id": doc_id})
        return result.deleted_count > 0

    async def delete_many(self, query: dict) -> int:
        result = await self.collection.delete_many(to_document(query))
        return result.deleted_count
