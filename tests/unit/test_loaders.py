"""
Unit tests for data loaders
"""

import pytest
from unittest.mock import AsyncMock
from ingestion.loaders.batch_loader import BatchLoader
from ingestion.loaders.postgres_loader import (
    INSERT_COLS_PER_ROW,
    INSERT_COLUMNS,
    PostgresLoader,
    build_unnest_sql,
    to_column_arrays,
)
from ingestion.transformers.address_transformer import transform_line
from models.addresses import ADDRESS_COLUMN_NAMES, TableGeneration
from models.base import ImportMode
from core.exceptions import DatabaseError


@pytest.fixture
def documents(make_build_line, road_index):
    return [
        transform_line(make_build_line({15: f"id-{i}"}), road_index)
        for i in range(3)
    ]


class TestUnnestStatement:
    """Test the bulk insert statement"""

    def test_columns_follow_table_order(self):
        assert len(INSERT_COLUMNS) == INSERT_COLS_PER_ROW
        assert [c.name for c in INSERT_COLUMNS] == ADDRESS_COLUMN_NAMES

    def test_array_types(self):
        types = {c.name: c.pg_array for c in INSERT_COLUMNS}

        assert types["id"] == "text[]"
        assert types["x"] == "float8[]"
        assert types["road_ko_is_underground"] == "boolean[]"
        assert types["parcel_en_is_mountain_lot"] == "boolean[]"

    def test_upsert_statement(self):
        sql = build_unnest_sql(TableGeneration.NEXT, ImportMode.UPSERT)

        assert sql.startswith("INSERT INTO addresses_next (id, x, y, display_ko")
        assert "SELECT * FROM UNNEST(CAST(:id AS text[]), CAST(:x AS float8[])" in sql
        assert "ON CONFLICT (id) DO UPDATE SET x = EXCLUDED.x" in sql
        assert "parcel_legal_area_code = EXCLUDED.parcel_legal_area_code" in sql
        assert "id = EXCLUDED.id" not in sql
        # One bind parameter per column, independent of batch size
        assert sql.count("CAST(:") == INSERT_COLS_PER_ROW

    def test_replace_statement_has_no_conflict_clause(self):
        sql = build_unnest_sql(TableGeneration.NEXT, ImportMode.REPLACE)

        assert "ON CONFLICT" not in sql
        assert sql.count("CAST(:") == INSERT_COLS_PER_ROW

    def test_column_arrays_are_aligned(self, documents):
        arrays = to_column_arrays(documents)

        assert set(arrays) == set(ADDRESS_COLUMN_NAMES)
        assert all(len(values) == 3 for values in arrays.values())
        assert arrays["id"] == ["id-0", "id-1", "id-2"]
        assert arrays["x"] == [None, None, None]
        assert arrays["road_code"] == ["111104100135"] * 3
        assert arrays["road_ko_is_underground"] == [False] * 3
        assert arrays["parcel_en_region4"] == [None] * 3
        assert arrays["search_en"][0] == "seoul jongno-gu sejong-daero 175 03172"


class TestPostgresLoader:
    """Test PostgreSQL loader functionality"""

    @pytest.mark.asyncio
    async def test_load_batch_issues_one_statement(self, documents):
        mock_conn = AsyncMock()
        loader = PostgresLoader(mock_conn, TableGeneration.NEXT, ImportMode.UPSERT)

        result = await loader.load(documents)

        assert result == 3
        mock_conn.execute.assert_called_once()
        statement, params = mock_conn.execute.call_args.args
        assert "INSERT INTO addresses_next" in str(statement)
        assert params["id"] == ["id-0", "id-1", "id-2"]

    @pytest.mark.asyncio
    async def test_load_empty_list(self):
        mock_conn = AsyncMock()
        loader = PostgresLoader(mock_conn)

        result = await loader.load([])

        assert result == 0
        mock_conn.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_load_failure_is_wrapped(self, documents):
        mock_conn = AsyncMock()
        mock_conn.execute.side_effect = RuntimeError("connection reset")
        loader = PostgresLoader(mock_conn, mode=ImportMode.REPLACE)

        with pytest.raises(DatabaseError) as exc_info:
            await loader.load(documents)

        assert exc_info.value.context["table_name"] == "addresses_next"
        assert exc_info.value.context["batch_size"] == 3
        assert exc_info.value.context["first_id"] == "id-0"
        assert exc_info.value.context["operation"] == "REPLACE"


class TestBatchLoader:
    """Test fixed-size batching"""

    @pytest.mark.asyncio
    async def test_flushes_full_and_final_partial_batch(self, documents):
        batches = []

        async def on_batch(batch):
            batches.append([d.id for d in batch])

        loader = BatchLoader(on_batch, chunk_size=2)
        for doc in documents:
            await loader.add(doc)

        assert batches == [["id-0", "id-1"]]
        assert len(loader) == 1

        await loader.finish()

        assert batches == [["id-0", "id-1"], ["id-2"]]
        assert loader.batches_flushed == 2
        assert loader.documents_flushed == 3

    @pytest.mark.asyncio
    async def test_finish_without_documents_does_nothing(self):
        on_batch = AsyncMock()
        loader = BatchLoader(on_batch, chunk_size=2)

        await loader.finish()

        on_batch.assert_not_called()

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ValueError):
            BatchLoader(AsyncMock(), chunk_size=0)
