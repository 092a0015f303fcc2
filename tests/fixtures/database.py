import itertools

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from devconnect.connections import ConnectionEngine
from devconnect.db.base import Base, configure_sqlite_engine, make_session_factory
from devconnect.db.models import User, Relationship  # noqa: F401  (registers tables)
from devconnect.users import NewUser, UserDirectory


@pytest.fixture
async def test_engine(tmp_path):
    """
    Create a file-backed SQLite engine for testing.

    A file rather than :memory: so that concurrent sessions get their own
    connections and contend for the database lock the way real writers do.
    """
    engine = configure_sqlite_engine(
        create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'devconnect_test.db'}", echo=False)
    )

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_session_maker(test_engine):
    """Create a session factory for the test database."""
    return make_session_factory(test_engine)


@pytest.fixture
async def test_session(test_session_maker):
    """Create a new session for a test."""
    async with test_session_maker() as session:
        yield session


@pytest.fixture
def directory(test_session_maker):
    return UserDirectory(test_session_maker)


@pytest.fixture
def connection_engine(test_session_maker, directory):
    return ConnectionEngine(test_session_maker, directory)


@pytest.fixture
def make_user(directory):
    """Factory registering users with unique handles."""
    counter = itertools.count(1)

    async def _make_user(username=None, **overrides):
        n = next(counter)
        username = username or f"user{n:03d}"
        data = {
            "first_name": "Test",
            "last_name": f"User{n}",
            "username": username,
            "email": f"{username}@example.com",
            "password_hash": "$2b$10$hashedpasswordvalue",
        }
        data.update(overrides)
        return await directory.register_user(NewUser(**data))

    return _make_user


@pytest.fixture
async def alice(make_user):
    return await make_user("alice")


@pytest.fixture
async def bob(make_user):
    return await make_user("bob")


@pytest.fixture
async def carol(make_user):
    return await make_user("carol")
