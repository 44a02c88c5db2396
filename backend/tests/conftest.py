"""Shared pytest fixtures for TreeChat tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from treechat.conversations.router import get_node_store
from treechat.conversations.service import NodeStore
from treechat.db.connection import Database
from treechat.events.projector import StateProjector
from treechat.events.store import EventStore
from treechat.layout.engines.registry import reset_engines
from treechat.layout.router import get_layout_service
from treechat.layout.service import LayoutService
from treechat.main import app


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def event_store(db):
    """EventStore backed by in-memory database."""
    return EventStore(db)


@pytest.fixture
async def projector(db):
    """StateProjector backed by in-memory database."""
    return StateProjector(db)


@pytest.fixture
async def store(db):
    """NodeStore without a summary generator."""
    return NodeStore(db)


@pytest.fixture
def layout_service():
    service = LayoutService()
    yield service
    reset_engines()


@pytest.fixture
async def client(store, layout_service):
    """Async test client with in-memory DB wired into the app."""
    app.dependency_overrides[get_node_store] = lambda: store
    app.dependency_overrides[get_layout_service] = lambda: layout_service
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
