from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cache import get_redis
from database import Base, get_async_db
from dependencies import ROLE_ADMIN, ROLE_USER, get_current_roles
from main import app
from models import Author, Book
from tests.mocks.fake_redis import FakeRedis

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# --- Database ---


@pytest_asyncio.fixture
async def engine():
    """A fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def seed(session_factory):
    """Insert ORM objects directly, bypassing the API and its cache."""

    async def _seed(*objs) -> None:
        async with session_factory() as session:
            session.add_all(objs)
            await session.commit()

    return _seed


@pytest.fixture
def make_author(seed):
    async def _make(first_name: str = "Jules", last_name: str = "Verne", books: int = 0):
        author = Author(first_name=first_name, last_name=last_name)
        for idx in range(books):
            author.books.append(Book(title=f"{last_name} book {idx}", cover_text="..."))
        await seed(author)
        return author

    return _make


# --- Cache and roles ---


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def roles() -> set:
    """Roles of the caller; anonymous unless a test adds some."""
    return set()


@pytest.fixture
def as_admin(roles) -> set:
    roles.update({ROLE_USER, ROLE_ADMIN})
    return roles


@pytest.fixture
def as_user(roles) -> set:
    roles.add(ROLE_USER)
    return roles


# --- HTTP client ---


@pytest_asyncio.fixture
async def client(session_factory, fake_redis, roles) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app with the database, Redis and roles overridden."""

    async def override_get_async_db():
        async with session_factory() as db:
            yield db

    async def override_get_redis():
        return fake_redis

    async def override_get_current_roles():
        return roles

    app.dependency_overrides[get_async_db] = override_get_async_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_current_roles] = override_get_current_roles

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver"
    ) as c:
        yield c

    app.dependency_overrides.clear()
