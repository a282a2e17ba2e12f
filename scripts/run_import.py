"""
Script to run one address import
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine
from core.logging import setup_logging
from ingestion.runner import AddressImportRunner
from ingestion.shadow_tables import ShadowTableCoordinator

logger = logging.getLogger(__name__)


async def run_import() -> int:
    """Run the import once; returns the process exit code"""
    engine = create_engine()
    coordinator = ShadowTableCoordinator(engine, lock_key=settings.ADDRESS_IMPORT_LOCK_KEY)

    try:
        result = await AddressImportRunner(coordinator).run()
        if result["status"] == "skipped":
            logger.info(f"Import skipped for {result['month']}: {result['reason']}")
        else:
            logger.info(
                f"Import completed for {result['month']}: "
                f"Loaded={result['records_loaded']}, Skipped={result['records_skipped']}"
            )
        return 0
    except Exception as e:
        logger.error(f"Address import error: {str(e)}")
        return 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_import()))
