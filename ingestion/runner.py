# ============================================================================
# File: ingestion/runner.py
# Description: Monthly address import orchestrator
# ============================================================================
"""
Address Import Runner - Orchestrates download, index, load and swap.

One run imports one month of the national registry:
- Single-instance via a Postgres advisory lock
- Skips months already marked completed
- Loads into the shadow table while readers keep using the served one
- Promotes the shadow table only after it is verified non-empty
- Records the month's import state (in_progress / completed / failed)
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import re
import shutil
import tempfile
import time
import zipfile

from core.config import Settings, settings as default_settings
from core.exceptions import ShadowTableEmptyError
from ingestion.extractors.archive_downloader import ArchiveDownloader, build_download_url, percent
from ingestion.extractors.archive_reader import RegistryArchive
from ingestion.extractors.line_reader import iter_lines, resolve_encoding
from ingestion.loaders.batch_loader import BatchLoader
from ingestion.shadow_tables import ShadowLoadSession, ShadowTableCoordinator
from ingestion.transformers.address_transformer import FormatOptions, transform_line
from ingestion.transformers.road_index import RoadIndex
from models.addresses import TableGeneration
from models.base import ImportMode, ImportPhase, ImportStatus

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{6}$")


def resolve_month(override: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Override if it is YYYYMM, otherwise the current local month"""
    if override and MONTH_PATTERN.match(override):
        return override
    return (now or datetime.now()).strftime("%Y%m")


class LoadProgress:
    """Counters for the load phase, logged at most once per interval"""

    def __init__(self, log_every: float, expected_total: Optional[int] = None):
        self.log_every = log_every
        self.expected_total = expected_total
        self.processed = 0
        self.skipped = 0
        self.started_at = time.monotonic()
        self._last_log_at = self.started_at

    def rate(self) -> float:
        elapsed = time.monotonic() - self.started_at
        return self.processed / elapsed if elapsed > 0 else 0.0

    def summary(self, inserted: int) -> str:
        line = f"processed={self.processed} inserted={inserted} skipped={self.skipped} rate={self.rate():.0f}/s"
        if self.expected_total:
            line += f" {percent(self.processed, self.expected_total):.1f}%"
        return line

    def maybe_log(self, inserted: int) -> None:
        now = time.monotonic()
        if now - self._last_log_at >= self.log_every:
            self._last_log_at = now
            logger.info(f"[load] {self.summary(inserted)}")


class AddressImportRunner:
    """
    Address import orchestrator

    Responsibilities:
    - Resolve the target month and download URL
    - Drive decode → road index → transform → batch load
    - Verify, index and atomically promote the shadow table
    - Record import state and always release the lock and temp files
    """

    def __init__(
        self,
        coordinator: ShadowTableCoordinator,
        downloader: Optional[ArchiveDownloader] = None,
        config: Settings = default_settings,
        work_dir: Optional[Path] = None
    ):
        self.coordinator = coordinator
        self.config = config
        self.downloader = downloader or ArchiveDownloader(
            timeout=config.ADDRESS_DOWNLOAD_TIMEOUT_MS / 1000,
            log_every=config.ADDRESS_DOWNLOAD_LOG_MS / 1000
        )
        self.work_dir = work_dir
        self.mode = ImportMode(config.ADDRESS_IMPORT_MODE)
        self.format_options = FormatOptions.from_settings(config)
        self.phase = ImportPhase.NOT_STARTED

    def resolve_month(self) -> str:
        return resolve_month(self.config.ADDRESS_DATA_MONTH)

    def _enter(self, phase: ImportPhase) -> None:
        logger.info(f"Import phase: {self.phase.value} -> {phase.value}")
        self.phase = phase

    async def run(self) -> Dict[str, Any]:
        """
        Run one import.

        Returns:
            Dictionary with run statistics:
            - status: "completed" or "skipped"
            - month: YYYYMM imported (or skipped)
            - reason: why a run was skipped ("locked", "already_completed")
            - records_processed / records_loaded / records_skipped
            - shadow_count: exact row count promoted by the swap

        Raises:
            DecoderUnavailableError: Before any I/O when no decoder is usable
            ETLException: Any failure after the lock was taken; the month is
                marked failed and the served table is left untouched
        """
        # No decoder means no run at all: check before touching network or DB
        encoding = resolve_encoding(self.config.source_encodings)
        month = self.resolve_month()
        self.phase = ImportPhase.NOT_STARTED
        started_at = time.monotonic()

        if not await self.coordinator.try_acquire_lock():
            logger.info(f"Another import holds lock {self.coordinator.lock_key}; skipping {month}")
            return {"status": "skipped", "reason": "locked", "month": month}

        temp_dir: Optional[Path] = None
        load_session: Optional[ShadowLoadSession] = None
        expected_total: Optional[int] = None

        try:
            self._enter(ImportPhase.LOCK_ACQUIRED)

            await self.coordinator.ensure_schema()
            self._enter(ImportPhase.SCHEMA_ENSURED)

            state = await self.coordinator.get_import_state(month)
            if state is not None and state.status == ImportStatus.COMPLETED.value:
                logger.info(f"Month {month} already imported; skipping")
                return {"status": "skipped", "reason": "already_completed", "month": month}

            await self.coordinator.set_import_state(month, ImportStatus.IN_PROGRESS)
            await self.coordinator.truncate(TableGeneration.NEXT)

            # --------------------------------------------------
            # DOWNLOAD
            # --------------------------------------------------
            self._enter(ImportPhase.DOWNLOADING)
            temp_dir = Path(tempfile.mkdtemp(prefix="juso-import-", dir=self.work_dir))
            zip_path = temp_dir / f"{month}ALLRDNM00.zip"
            await self.downloader.download(build_download_url(month), zip_path)

            if self.config.ADDRESS_DROP_INDEXES:
                await self.coordinator.drop_search_indexes(TableGeneration.NEXT)

            with RegistryArchive(zip_path) as archive:
                road_info = archive.road_entry()
                build_infos = archive.build_entries()
                logger.info(f"Archive: road={road_info.filename} build_files={len(build_infos)}")

                if self.config.ADDRESS_COUNT_LINES_FOR_PERCENT:
                    self._enter(ImportPhase.COUNTING_LINES)
                    expected_total = archive.count_build_lines()
                    logger.info(f"Expected building lines: {expected_total}")
                    await self.coordinator.set_import_state(
                        month, ImportStatus.IN_PROGRESS, expected_count=expected_total
                    )

                # --------------------------------------------------
                # ROAD DICTIONARY
                # --------------------------------------------------
                self._enter(ImportPhase.INDEXING_ROAD)
                with archive.open(road_info) as stream:
                    road_index = RoadIndex.from_lines(iter_lines(stream, encoding))

                # --------------------------------------------------
                # LOAD
                # --------------------------------------------------
                self._enter(ImportPhase.LOADING)
                load_session = await self.coordinator.open_load_session(
                    self.mode, self.config.ADDRESS_COMMIT_EVERY_BATCHES
                )
                progress = LoadProgress(self.config.ADDRESS_INSERT_LOG_MS / 1000, expected_total)
                await self._load(archive, build_infos, road_index, encoding, load_session, progress)
                await load_session.commit()
                logger.info(f"[load] done {progress.summary(load_session.inserted)}")

            # --------------------------------------------------
            # VERIFY, INDEX, SWAP
            # --------------------------------------------------
            self._enter(ImportPhase.VERIFYING_NON_EMPTY)
            shadow_count = await self.coordinator.count_rows(TableGeneration.NEXT)
            if shadow_count <= 0:
                raise ShadowTableEmptyError(
                    "Shadow table is empty after load; refusing to swap",
                    context={
                        "table_name": TableGeneration.NEXT.table_name,
                        "month": month,
                        "records_processed": progress.processed,
                    }
                )

            self._enter(ImportPhase.REBUILDING_INDEXES)
            await self.coordinator.ensure_search_indexes(TableGeneration.NEXT)

            self._enter(ImportPhase.SWAPPING)
            await self.coordinator.swap()

            await self.coordinator.set_import_state(
                month,
                ImportStatus.COMPLETED,
                finished_at=datetime.now(timezone.utc),
                expected_count=expected_total
            )
            self._enter(ImportPhase.COMPLETED)

            result = {
                "status": "completed",
                "month": month,
                "records_processed": progress.processed,
                "records_loaded": load_session.inserted,
                "records_skipped": progress.skipped,
                "road_entries": len(road_index),
                "road_rows_skipped": road_index.rows_skipped,
                "shadow_count": shadow_count,
                "duration_seconds": round(time.monotonic() - started_at, 1),
            }
            logger.info(
                f"Import {month} completed - Processed: {result['records_processed']}, "
                f"Loaded: {result['records_loaded']}, Skipped: {result['records_skipped']}, "
                f"Rows: {shadow_count}"
            )
            return result

        except Exception as e:
            failed_in = self.phase
            self._enter(ImportPhase.FAILED)
            logger.error(f"Import {month} failed during {failed_in.value}: {e}")

            if load_session is not None:
                try:
                    await load_session.rollback()
                except Exception as rollback_error:
                    logger.error(f"Rollback of load transaction failed: {rollback_error}")

            try:
                await self.coordinator.set_import_state(
                    month,
                    ImportStatus.FAILED,
                    finished_at=datetime.now(timezone.utc),
                    expected_count=expected_total
                )
            except Exception as state_error:
                logger.error(f"Could not mark {month} as failed: {state_error}")

            raise

        finally:
            if load_session is not None:
                try:
                    await load_session.close()
                except Exception as close_error:
                    logger.error(f"Closing load connection failed: {close_error}")
            try:
                await self.coordinator.release_lock()
            finally:
                if temp_dir is not None:
                    shutil.rmtree(temp_dir, ignore_errors=True)

    async def _load(
        self,
        archive: RegistryArchive,
        build_infos: List[zipfile.ZipInfo],
        road_index: RoadIndex,
        encoding: str,
        load_session: ShadowLoadSession,
        progress: LoadProgress
    ) -> None:
        """Stream every building file through the transformer into the shadow table"""
        for info in build_infos:
            batcher = BatchLoader(load_session.write_batch, self.config.ADDRESS_CHUNK_SIZE)
            skipped_before = progress.skipped

            with archive.open(info) as stream:
                for line in iter_lines(stream, encoding):
                    progress.processed += 1
                    document = transform_line(line, road_index, self.format_options)
                    if document is None:
                        progress.skipped += 1
                    else:
                        await batcher.add(document)
                    progress.maybe_log(load_session.inserted)

            await batcher.finish()
            logger.info(
                f"File {info.filename}: loaded {batcher.documents_flushed} "
                f"in {batcher.batches_flushed} batches, skipped {progress.skipped - skipped_before}"
            )
