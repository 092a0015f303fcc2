from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

from loguru import logger
from sqlalchemy import MetaData, event, inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from devconnect.core.config import Settings, get_settings

SQLITE_FALLBACK_URL = "sqlite+aiosqlite:///./devconnect.db"

# Naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """Base class for all models."""
    metadata = metadata


def utcnow() -> datetime:
    """Naive UTC timestamp used for created_at/updated_at columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def process_database_url(url: Optional[str]) -> str:
    """Normalise a database URL to an async driver."""
    if not url:
        logger.warning("No database URL provided, falling back to SQLite")
        return SQLITE_FALLBACK_URL

    logger.info(f"Processing database URL (starts with): {url[:15]}...")

    if url.startswith("sqlite"):
        if "aiosqlite" not in url:
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    if url.startswith("postgres://") or url.startswith("postgresql://"):
        # For asyncpg, we need to use postgresql+asyncpg://
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)

    if url.startswith("postgresql+asyncpg://"):
        return url

    logger.warning(f"Unrecognized database URL format: {url[:10]}...")
    return url


def configure_sqlite_engine(engine: AsyncEngine) -> AsyncEngine:
    """
    Make SQLite transactions take the write lock up front.

    pysqlite/aiosqlite defer BEGIN until the first write, which lets two
    transactions read the same state and then race to write it. Emitting
    BEGIN IMMEDIATE ourselves serialises writers so a find-then-insert
    inside one transaction is atomic.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def create_engine_from_settings(settings: Optional[Settings] = None) -> AsyncEngine:
    """Create the async engine for the configured database."""
    settings = settings or get_settings()
    url = process_database_url(settings.db_url)
    logger.info(f"Using database driver: {url.split('://')[0]}")

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=settings.debug, future=True)
        return configure_sqlite_engine(engine)

    return create_async_engine(
        url,
        echo=settings.debug,
        future=True,
        pool_pre_ping=True,               # Verify connections before using them
        pool_recycle=300,
        pool_size=5,
        max_overflow=10,
        connect_args={
            "timeout": 60,
            "command_timeout": 60,
            "server_settings": {"application_name": settings.app_name.lower()},
        },
    )


@lru_cache
def get_engine() -> AsyncEngine:
    """Get the process-wide SQLAlchemy engine."""
    return create_engine_from_settings()


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the process-wide session factory."""
    return make_session_factory(get_engine())


async def init_models(engine: AsyncEngine):
    """Create any missing tables."""
    logger.info("Initializing database models...")
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        if tables:
            logger.info(f"Found existing tables: {tables}")
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database models initialized successfully")
    return Base.metadata


async def check_database(engine: AsyncEngine) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database check failed: {e}")
        return False
