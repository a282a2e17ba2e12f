import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine
from core.logging import setup_logging
from ingestion.shadow_tables import ShadowTableCoordinator

logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to database...")
    engine = create_engine()

    try:
        coordinator = ShadowTableCoordinator(engine, lock_key=settings.ADDRESS_IMPORT_LOCK_KEY)
        logger.info("Creating extension and tables...")
        await coordinator.ensure_schema()
        logger.info("Tables created successfully.")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
