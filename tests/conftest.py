"""Pytest configuration and fixtures."""
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from app.main import app
from app.database import Database, get_database
from app.utils.dates import utcnow


@pytest.fixture
def memory_db():
    """Fresh in-memory database with no simulated latency or failures."""
    db = Database(backend="memory")
    for repository in db.repositories.values():
        repository.latency_ms = 0
        repository.failure_rate = 0.0
    return db


@pytest_asyncio.fixture
async def app_client(memory_db):
    """
    Create a test client backed by a clean in-memory database.

    This fixture:
    - Overrides the database dependency with a fresh in-memory database
    - Yields an async HTTP client for testing
    - Removes the override afterwards
    """
    app.dependency_overrides[get_database] = lambda: memory_db

    # Unhandled errors become 500 responses instead of propagating into the test
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.pop(get_database, None)


@pytest.fixture
def goal_payload():
    """Valid goal creation body."""
    now = utcnow()
    return {
        "title": "Run a half marathon",
        "description": "Build up running distance over the spring",
        "specific_objective": "Finish a 21km race under 2 hours",
        "success_criteria": ["Complete the race", "Stay injury free"],
        "category": "health",
        "tags": ["running", "fitness"],
        "measurable": {
            "metric_type": "number",
            "target_value": 21,
            "current_value": 5,
            "unit": "km",
            "direction": "increase",
            "measurement_frequency": "weekly",
        },
        "timebound": {
            "start_date": now.isoformat(),
            "target_date": (now + timedelta(days=90)).isoformat(),
            "estimated_duration": 90,
        },
        "priority": "high",
    }
