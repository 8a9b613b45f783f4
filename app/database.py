"""Storage backend wiring: one repository per collection."""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from app.config import settings
from app.repositories.base import Repository
from app.repositories.memory import InMemoryRepository
from app.repositories.mongo import MongoRepository
from app.utils.logging import get_logger

logger = get_logger(__name__)

COLLECTIONS = ("goals", "tasks", "subtasks", "checkpoints")


class Database:
    """Holds the repositories for the configured storage backend."""

    def __init__(self, backend: Optional[str] = None):
        self.backend = backend or settings.storage_backend
        self.client: AsyncIOMotorClient | None = None
        self.repositories: dict[str, Repository] = {}
        if self.backend == "memory":
            self._use_memory()

    def _use_memory(self) -> None:
        self.repositories = {
            name: InMemoryRepository(
                name,
                latency_ms=settings.simulated_latency_ms,
                failure_rate=settings.simulated_failure_rate,
            )
            for name in COLLECTIONS
        }

    async def connect(self) -> None:
        """Open the backend connection."""
        if self.backend == "mongo":
            if not settings.mongodb_url:
                raise RuntimeError("MONGODB_URL must be set when STORAGE_BACKEND=mongo")
            self.client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)
            db = self.client[settings.mongodb_db_name]
            self.repositories = {name: MongoRepository(db[name]) for name in COLLECTIONS}
            logger.info(f"Connected to MongoDB: {settings.mongodb_db_name}")
        else:
            logger.info("Using in-memory storage")

    async def disconnect(self) -> None:
        """Close the backend connection."""
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")

    def __getitem__(self, name: str) -> Repository:
        if name not in self.repositories:
            raise RuntimeError("Database not connected")
        return self.repositories[name]


# Global database instance
database = Database()


async def get_database() -> Database:
    """Dependency to get database instance."""
    return database
