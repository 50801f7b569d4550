"""Async engine and session handling for the event store."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from oracle_network.db import models  # noqa: F401  pylint: disable=unused-import
from oracle_network.db.no_op_session import NoOpSession

logger = logging.getLogger("database")

engine = None
AsyncSessionLocal = None


def configure_database(url: Optional[str]) -> None:
    """Point the module at ``url``; None disables persistence."""
    global engine, AsyncSessionLocal  # pylint: disable=global-statement

    engine = None
    AsyncSessionLocal = None
    if not url:
        logger.warning("No database URL configured, events will not be persisted.")
        return

    logger.info(
        "Using database %s", make_url(url).render_as_string(hide_password=True)
    )
    engine = create_async_engine(url)
    AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_database_url(config: dict) -> Optional[str]:
    """The `database.url` entry, if any."""
    return (config.get("database") or {}).get("url")


def is_database_configured() -> bool:
    return engine is not None


async def init_db() -> None:
    """Create the tables that do not exist yet."""
    if engine is None:
        return
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


@asynccontextmanager
async def get_session():
    """Session committed when the block exits cleanly and rolled back otherwise.

    Without a database a NoOpSession is handed out instead.
    """
    if AsyncSessionLocal is None:
        yield NoOpSession()
        return

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Database session rolled back")
            raise


async def close_db() -> None:
    """Release pooled connections at shutdown."""
    if engine is not None:
        await engine.dispose()
