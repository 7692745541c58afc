# backend/mailsift/db.py

import logging
import asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.exc import OperationalError
import sqlalchemy

from .config import settings

logger = logging.getLogger("mailsift.db")

# ---------------------------------------------------------
# Define Base (needed by Alembic)
# ---------------------------------------------------------
Base = declarative_base()

# ---------------------------------------------------------
# Lazy engine + Lazy session maker
# ---------------------------------------------------------
_engine = None
_session_maker = None


def get_engine():
    """Lazy async engine creation."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.DATABASE_URL,
            echo=bool(settings.DEBUG),
            future=True,
            pool_pre_ping=True,
        )
    return _engine


def get_session_maker():
    """Lazy sessionmaker creation."""
    global _session_maker
    if _session_maker is None:
        _session_maker = sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_maker


async def dispose_engine():
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


# ---------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------
async def get_db():
    SessionLocal = get_session_maker()
    async with SessionLocal() as session:
        yield session


# ---------------------------------------------------------
# DB readiness check for container startup
# ---------------------------------------------------------
async def wait_for_db(max_retries: int = 8, delay: float = 2.0):
    """
    Wait for DB to accept connections. Used before migrations and by the worker.
    """
    engine = get_engine()

    last_exc = None
    for attempt in range(1, max_retries + 1):
        try:
            async with engine.connect() as conn:
                await conn.execute(sqlalchemy.text("SELECT 1"))
                logger.info("Database connected (attempt %d)", attempt)
                return True

        except OperationalError as e:
            last_exc = e
            msg = str(e.__cause__ or e)

            if "password authentication failed" in msg.lower():
                logger.error("Database authentication failed: %s", msg)
                raise

            logger.warning(
                "DB not ready (attempt %d/%d): %s",
                attempt, max_retries, msg
            )
            await asyncio.sleep(delay)

    logger.error("Failed to connect to DB after %d retries. Last error: %s",
                 max_retries, last_exc)
    raise last_exc
