"""
Shared fixtures: a throwaway SQLite database, an in-process change feed and
the wired service graph.
"""

from typing import Any, Dict

import httpx
import pytest
import pytest_asyncio

from grc_sync.infrastructure.db.connection import DatabaseManager
from grc_sync.infrastructure.realtime import MemoryChangeFeed
from grc_sync.main import create_application
from grc_sync.services import build_sync_services


# ============================================================================
# INFRASTRUCTURE FIXTURES
# ============================================================================

@pytest_asyncio.fixture
async def database(tmp_path):
    """File-backed SQLite database with every table created."""
    manager = DatabaseManager(
        url=f"sqlite+aiosqlite:///{tmp_path / 'grc_sync_test.db'}", echo=False, create_schema=True
    )
    await manager.connect()
    yield manager
    await manager.disconnect()


@pytest_asyncio.fixture
async def change_feed():
    feed = MemoryChangeFeed()
    await feed.connect()
    yield feed
    await feed.disconnect()


@pytest_asyncio.fixture
async def services(database, change_feed):
    services = build_sync_services(database, change_feed)
    yield services
    await services.realtime.cleanup()


@pytest.fixture
def orchestration(services):
    return services.orchestration


@pytest.fixture
def quality(services):
    return services.quality


@pytest.fixture
def realtime(services):
    return services.realtime


@pytest.fixture
def consumer(services):
    return services.consumer


@pytest_asyncio.fixture
async def client(services):
    """HTTP client talking to the API in-process. The lifespan is not run."""
    app = create_application(services)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


# ============================================================================
# TEST DATA FIXTURES
# ============================================================================

@pytest.fixture
def sample_control() -> Dict[str, Any]:
    """A fully populated control record."""
    return {
        "id": "ctrl-1",
        "control_name": "Quarterly access review",
        "owner_email": "owner@example.com",
        "effectiveness": 4,
        "status": "active",
        "created_at": "2026-01-05T10:00:00+00:00",
        "updated_at": "2026-01-05T10:00:00+00:00",
    }
