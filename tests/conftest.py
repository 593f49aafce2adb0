import os
import uuid
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from standards_helper.api.deps import get_db, get_embedding_generator, get_vector_store
from standards_helper.main import create_app
from standards_helper.models import Base
from standards_helper.services.embedding_service import EmbeddingGenerator
from standards_helper.services.search_service import StandardSearchService
from standards_helper.storage.memory import InMemoryVectorStore

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

TEST_COLLECTION = "cah_standards"

# Small dimension keeps tests fast; production uses 384
TEST_DIMENSION = 32


@pytest.fixture
def embedder() -> EmbeddingGenerator:
    return EmbeddingGenerator(dimension=TEST_DIMENSION)


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    """Return a fresh in-memory vector store."""
    return InMemoryVectorStore()


@pytest.fixture
def search_service(vector_store, embedder) -> StandardSearchService:
    return StandardSearchService(
        vector_store=vector_store,
        embedder=embedder,
        collection=TEST_COLLECTION,
    )


@pytest_asyncio.fixture
async def test_engine():
    kwargs = {}
    if TEST_DATABASE_URL.startswith("sqlite"):
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, **kwargs)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession]:
    """Provide a transactional session that rolls back after each test."""
    connection = await test_engine.connect()
    transaction = await connection.begin()
    session = AsyncSession(bind=connection, expire_on_commit=False)

    yield session

    await session.close()
    await transaction.rollback()
    await connection.close()


@pytest.fixture
def app(db_session, vector_store) -> FastAPI:
    app = create_app()

    # Yield the test session directly, no commit or rollback
    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_vector_store] = lambda: vector_store
    app.dependency_overrides[get_embedding_generator] = lambda: EmbeddingGenerator(
        dimension=TEST_DIMENSION
    )
    return app


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", follow_redirects=True
    ) as ac:
        yield ac


def make_standard_payload(**overrides):
    """Helper to create a valid standard payload with a unique title."""
    data = {
        "title": f"Use type hints {uuid.uuid4().hex[:6]}",
        "description": "Annotate public function signatures with type hints",
        "category": "python",
        "priority": "medium",
        "tags": ["typing"],
    }
    data.update(overrides)
    return data
