"""
Database engine management with SQLAlchemy async
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def create_engine(database_url: str = None) -> AsyncEngine:
    """
    Create the async engine used by the importer.

    NullPool keeps every connection dedicated: the advisory lock lives on
    its own session and must not be handed back to a pool.
    """
    url = database_url or settings.DATABASE_URL
    logger.debug(f"Creating engine for {url.split('@')[-1]}")
    return create_async_engine(
        url,
        echo=False,
        poolclass=NullPool,
        future=True
    )
