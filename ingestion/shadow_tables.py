"""
Shadow table coordination: advisory lock, schema, import state and the
atomic promotion of the freshly loaded table.

Readers query `addresses` for the whole import. The load writes only into
`addresses_next`; the served table changes in exactly one place, the
rotation transaction in `swap`, so a failure anywhere earlier is invisible
to readers.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker
from models.addresses import TableGeneration
from models.base import ImportMode, ImportStatus, metadata
from models.import_state import AddressImportState
from ingestion.loaders.postgres_loader import PostgresLoader
from core.exceptions import DatabaseError, SchemaError, SwapError
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT_LOCK_KEY = 9127341


class ShadowLoadSession:
    """
    One long-lived connection writing into the shadow table.

    Commits every `commit_every_batches` batches so a multi-gigabyte load
    never accumulates a single huge transaction.
    """

    def __init__(self, connection: AsyncConnection, loader: PostgresLoader, commit_every_batches: int):
        self.connection = connection
        self.loader = loader
        self.commit_every_batches = commit_every_batches
        self.batches_since_commit = 0
        self.inserted = 0
        self.commits = 0

    async def write_batch(self, batch) -> None:
        self.inserted += await self.loader.load(batch)
        self.batches_since_commit += 1
        if self.batches_since_commit >= self.commit_every_batches:
            await self.commit()

    async def commit(self) -> None:
        await self.connection.commit()
        self.commits += 1
        self.batches_since_commit = 0

    async def rollback(self) -> None:
        await self.connection.rollback()
        self.batches_since_commit = 0

    async def close(self) -> None:
        await self.connection.close()


class ShadowTableCoordinator:
    """
    Database side of the import.

    Responsibilities:
    - Cluster-wide advisory lock (one import at a time)
    - Idempotent schema creation
    - Per-month import state
    - Shadow table truncate, index drop/rebuild, exact count
    - Atomic three-table rotation
    """

    def __init__(
        self,
        engine: AsyncEngine,
        lock_key: int = DEFAULT_LOCK_KEY,
        session_maker: Optional[async_sessionmaker] = None
    ):
        self.engine = engine
        self.lock_key = lock_key
        self.session_maker = session_maker or async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
        self._lock_connection: Optional[AsyncConnection] = None

    # ------------------------------------------------------------------
    # Advisory lock
    # ------------------------------------------------------------------

    async def try_acquire_lock(self) -> bool:
        """
        Take the session-level advisory lock on a dedicated connection.

        Returns False when another session holds it.
        """
        conn = await self.engine.connect()
        try:
            result = await conn.execute(
                text("SELECT pg_try_advisory_lock(:key) AS locked"),
                {"key": self.lock_key}
            )
            locked = result.scalar() is True
            # Session-level lock survives the commit; don't sit idle in transaction
            await conn.commit()
        except Exception:
            await conn.close()
            raise

        if not locked:
            await conn.close()
            return False

        self._lock_connection = conn
        logger.info(f"Advisory lock {self.lock_key} acquired")
        return True

    async def release_lock(self) -> None:
        conn = self._lock_connection
        if conn is None:
            return
        self._lock_connection = None
        try:
            await conn.execute(
                text("SELECT pg_advisory_unlock(:key)"),
                {"key": self.lock_key}
            )
            await conn.commit()
            logger.info(f"Advisory lock {self.lock_key} released")
        finally:
            await conn.close()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    async def ensure_schema(self) -> None:
        """Create pg_trgm, the three addresses tables and the state table if missing"""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("CREATE EXTENSION IF NOT EXISTS pg_trgm"))
                await conn.run_sync(metadata.create_all, checkfirst=True)
        except Exception as e:
            raise SchemaError("Failed to ensure address schema", original_exception=e)
        logger.info("Schema ensured")

    async def drop_search_indexes(self, generation: TableGeneration) -> None:
        try:
            async with self.engine.begin() as conn:
                for index_name in generation.search_indexes.values():
                    await conn.execute(text(f"DROP INDEX IF EXISTS {index_name}"))
        except Exception as e:
            raise SchemaError(
                "Failed to drop search indexes",
                context={"table_name": generation.table_name},
                original_exception=e
            )

    async def ensure_search_indexes(self, generation: TableGeneration) -> None:
        """Trigram GIN indexes backing ILIKE '%term%' search"""
        t0 = time.monotonic()
        try:
            async with self.engine.begin() as conn:
                for column, index_name in generation.search_indexes.items():
                    await conn.execute(text(
                        f"CREATE INDEX IF NOT EXISTS {index_name} "
                        f"ON {generation.table_name} USING gin ({column} gin_trgm_ops)"
                    ))
        except Exception as e:
            raise SchemaError(
                "Failed to build search indexes",
                context={"table_name": generation.table_name},
                original_exception=e
            )
        logger.info(f"Search indexes on {generation.table_name} ready in {time.monotonic() - t0:.1f}s")

    # ------------------------------------------------------------------
    # Import state
    # ------------------------------------------------------------------

    async def get_import_state(self, month: str) -> Optional[AddressImportState]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(AddressImportState).where(AddressImportState.month == month)
            )
            return result.scalar_one_or_none()

    async def set_import_state(
        self,
        month: str,
        status: ImportStatus,
        finished_at: Optional[datetime] = None,
        expected_count: Optional[int] = None
    ) -> None:
        """Upsert the state row for a month"""
        stmt = insert(AddressImportState).values(
            month=month,
            status=ImportStatus(status).value,
            finished_at=finished_at,
            expected_count=expected_count,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["month"],
            set_={
                "status": stmt.excluded.status,
                "finished_at": stmt.excluded.finished_at,
                "expected_count": stmt.excluded.expected_count,
            }
        )

        async with self.session_maker() as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except Exception as e:
                await session.rollback()
                raise DatabaseError(
                    "Failed to write import state",
                    context={"operation": "UPSERT", "table_name": AddressImportState.__tablename__,
                             "month": month, "status": ImportStatus(status).value},
                    original_exception=e
                )
        logger.info(f"Import state {month} -> {ImportStatus(status).value}")

    # ------------------------------------------------------------------
    # Shadow table
    # ------------------------------------------------------------------

    async def truncate(self, generation: TableGeneration) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text(f"TRUNCATE TABLE {generation.table_name}"))
        except Exception as e:
            raise DatabaseError(
                "Failed to truncate table",
                context={"operation": "TRUNCATE", "table_name": generation.table_name},
                original_exception=e
            )

    async def count_rows(self, generation: TableGeneration) -> int:
        """Exact COUNT(*), not the planner estimate"""
        t0 = time.monotonic()
        async with self.engine.connect() as conn:
            result = await conn.execute(text(f"SELECT COUNT(*) FROM {generation.table_name}"))
            count = int(result.scalar() or 0)
        logger.info(f"COUNT(*) on {generation.table_name} = {count} ({time.monotonic() - t0:.1f}s)")
        return count

    async def open_load_session(
        self,
        mode: ImportMode,
        commit_every_batches: int,
        generation: TableGeneration = TableGeneration.NEXT
    ) -> ShadowLoadSession:
        """
        Connection for the bulk load.

        No statement timeout (a batch may legitimately run long) and
        asynchronous commit for throughput.
        """
        conn = await self.engine.connect()
        try:
            await conn.execute(text("SET statement_timeout = 0"))
            await conn.execute(text("SET synchronous_commit = off"))
            await conn.commit()
        except Exception:
            await conn.close()
            raise
        loader = PostgresLoader(conn, generation, mode)
        return ShadowLoadSession(conn, loader, commit_every_batches)

    async def swap(self) -> None:
        """
        Promote NEXT to CURRENT and CURRENT to PREV in one transaction.

        Any failing statement rolls back every rename, leaving the served
        table untouched.
        """
        statements = TableGeneration.rotation_statements()
        try:
            async with self.engine.begin() as conn:
                for sql in statements:
                    await conn.execute(text(sql))
        except Exception as e:
            raise SwapError(
                "Table rotation failed and was rolled back",
                context={"statements": len(statements)},
                original_exception=e
            )
        logger.info(
            f"Swapped tables: {TableGeneration.NEXT.table_name} -> {TableGeneration.CURRENT.table_name}, "
            f"{TableGeneration.CURRENT.table_name} -> {TableGeneration.PREV.table_name}"
        )
