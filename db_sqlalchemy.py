import logging
import os

from sqlalchemy import (MetaData, Table, Column, Integer, String, Text, DateTime, Index, text)
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine
from databases import Database

logger = logging.getLogger(__name__)

metadata = MetaData()

pastes = Table(
    "pastes",
    metadata,
    Column("id", String(16), primary_key=True),
    Column("content", Text, nullable=False),
    Column("language", String, nullable=True),
    Column("password_hash", String, nullable=True),
    Column("expires_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False),
    Column("view_count", Integer, nullable=False, default=0, server_default=text("0")),
    Column("owner_id", Integer, nullable=True),
    # sweeper scan and dashboard lookups
    Index("idx_pastes_expires_at", "expires_at"),
    Index("idx_pastes_owner_id", "owner_id"),
)

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String, nullable=False, unique=True),
    Column("password_hash", String, nullable=False),
    Column("created_at", DateTime, nullable=False),
    Index("idx_users_username", "username"),
)


def is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def create_database(url: str, pool_size: int = 5) -> Database:
    """Build the shared ``databases`` handle.

    Server backends get a bounded pool; SQLite has no pool options and opens
    a connection per task.
    """
    if is_sqlite(url):
        return Database(url)
    return Database(url, min_size=1, max_size=pool_size)


def ensure_sqlite_dir(url: str) -> None:
    if not is_sqlite(url):
        return
    path = make_url(url).database
    if path and path != ":memory:":
        # ensure folder exists before any DB IO
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)


async def init_db(url: str):
    """Create tables and indexes. Call this at application startup."""
    ensure_sqlite_dir(url)
    async_engine = create_async_engine(url, echo=False)
    try:
        async with async_engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
    finally:
        await async_engine.dispose()
    logger.info("Database schema ready")
