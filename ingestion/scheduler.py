import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.database import create_engine
from ingestion.runner import AddressImportRunner
from ingestion.shadow_tables import ShadowTableCoordinator

logger = logging.getLogger(__name__)


class ImportScheduler:
    """
    Periodic address import.

    Every tick runs the importer; months already completed are skipped by the
    runner itself, so a tick is cheap unless a new month is due or the last
    attempt failed.
    """

    def __init__(self, interval_hours: int = None):
        self.interval_hours = interval_hours or settings.ADDRESS_IMPORT_INTERVAL_HOURS
        self.scheduler = AsyncIOScheduler()
        self.engine = create_engine()
        self.coordinator = ShadowTableCoordinator(self.engine, lock_key=settings.ADDRESS_IMPORT_LOCK_KEY)

    async def run_import_job(self):
        """Job to run one address import"""
        logger.info("Scheduler: Starting address import job")
        try:
            runner = AddressImportRunner(self.coordinator)
            result = await runner.run()
            logger.info(f"Scheduler: Import job finished - {result['status']} ({result['month']})")
        except Exception as e:
            # Failure is already recorded in the import state; the next tick retries
            logger.error(f"Scheduler: Address import job failed - {e}")

    def start(self, run_now: bool = True):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_import_job,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id="address_import_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        if run_now:
            self.scheduler.add_job(self.run_import_job, id="address_import_startup")
        self.scheduler.start()
        logger.info(f"Import Scheduler started (every {self.interval_hours}h)")

    async def stop(self):
        self.scheduler.shutdown()
        await self.engine.dispose()
        logger.info("Import Scheduler stopped")
