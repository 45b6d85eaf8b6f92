"""
Database connection management

The service keeps no domain data; the engine is opened at startup so that
deployment health checks can report connectivity.
"""
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
import logging

from coderefactor.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {"pool_size": 10, "pool_pre_ping": True}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    **_engine_kwargs(settings.DATABASE_URL),
)


async def check_db_connection() -> bool:
    """Return True when a trivial query succeeds"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connectivity check failed: {e}")
        return False


async def init_db() -> bool:
    """Open the connection pool and report whether the database is reachable"""
    connected = await check_db_connection()
    if connected:
        logger.info(f"Database connected: {engine.url.render_as_string(hide_password=True)}")
    else:
        logger.error("Database unavailable, continuing without it")
    return connected


async def close_db():
    """Close database connections"""
    await engine.dispose()
