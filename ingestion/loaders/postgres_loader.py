"""
Bulk write address documents into PostgreSQL with UNNEST array binding
"""

from operator import attrgetter
from typing import Any, Callable, Dict, List, NamedTuple, Sequence
from sqlalchemy import Boolean, Float, Text, text
from sqlalchemy.ext.asyncio import AsyncConnection
from models.addresses import ADDRESS_COLUMN_NAMES, TableGeneration, addresses_tables
from models.base import ImportMode
from schemas.normalized import AddressDocument
from core.exceptions import DatabaseError
import logging

logger = logging.getLogger(__name__)

INSERT_COLS_PER_ROW = 44

# Table column -> attribute path on AddressDocument
COLUMN_PATHS: Dict[str, str] = {
    "id": "id",
    "x": "x",
    "y": "y",
    "display_ko": "display.ko",
    "display_en": "display.en",
    "search_ko": "search.ko",
    "search_en": "search.en",
    "road_ko_region1": "road.ko.region1",
    "road_ko_region2": "road.ko.region2",
    "road_ko_region3": "road.ko.region3",
    "road_ko_road_name": "road.ko.road_name",
    "road_ko_building_no": "road.ko.building_no",
    "road_ko_is_underground": "road.ko.is_underground",
    "road_ko_full": "road.ko.full",
    "road_en_region1": "road.en.region1",
    "road_en_region2": "road.en.region2",
    "road_en_region3": "road.en.region3",
    "road_en_road_name": "road.en.road_name",
    "road_en_building_no": "road.en.building_no",
    "road_en_is_underground": "road.en.is_underground",
    "road_en_full": "road.en.full",
    "road_code": "road.codes.road_code",
    "road_local_area_serial": "road.codes.local_area_serial",
    "road_postal_code": "road.codes.postal_code",
    "road_building_name_ko": "road.building.name_ko",
    "parcel_ko_region1": "parcel.ko.region1",
    "parcel_ko_region2": "parcel.ko.region2",
    "parcel_ko_region3": "parcel.ko.region3",
    "parcel_ko_region4": "parcel.ko.region4",
    "parcel_ko_is_mountain_lot": "parcel.ko.is_mountain_lot",
    "parcel_ko_main_no": "parcel.ko.main_no",
    "parcel_ko_sub_no": "parcel.ko.sub_no",
    "parcel_ko_parcel_no": "parcel.ko.parcel_no",
    "parcel_ko_full": "parcel.ko.full",
    "parcel_en_region1": "parcel.en.region1",
    "parcel_en_region2": "parcel.en.region2",
    "parcel_en_region3": "parcel.en.region3",
    "parcel_en_region4": "parcel.en.region4",
    "parcel_en_is_mountain_lot": "parcel.en.is_mountain_lot",
    "parcel_en_main_no": "parcel.en.main_no",
    "parcel_en_sub_no": "parcel.en.sub_no",
    "parcel_en_parcel_no": "parcel.en.parcel_no",
    "parcel_en_full": "parcel.en.full",
    "parcel_legal_area_code": "parcel.codes.legal_area_code",
}


class ColumnDef(NamedTuple):
    name: str
    pg_array: str
    pick: Callable[[AddressDocument], Any]


def _pg_array_type(column) -> str:
    if isinstance(column.type, Boolean):
        return "boolean[]"
    if isinstance(column.type, Float):
        return "float8[]"
    if isinstance(column.type, Text):
        return "text[]"
    raise TypeError(f"No array type for column {column.name}")


def build_insert_columns() -> List[ColumnDef]:
    """Column definitions in table order, checked against the table schema"""
    table = addresses_tables[TableGeneration.NEXT]
    cols = [
        ColumnDef(name, _pg_array_type(table.c[name]), attrgetter(COLUMN_PATHS[name]))
        for name in ADDRESS_COLUMN_NAMES
    ]
    if len(cols) != INSERT_COLS_PER_ROW:
        raise ValueError(f"Insert columns mismatch: got {len(cols)}, expected {INSERT_COLS_PER_ROW}")
    return cols


INSERT_COLUMNS: List[ColumnDef] = build_insert_columns()


def build_unnest_sql(table: TableGeneration, mode: ImportMode, cols: Sequence[ColumnDef] = INSERT_COLUMNS) -> str:
    """
    INSERT ... SELECT * FROM UNNEST(...) with one array parameter per column.

    The parameter count is fixed regardless of batch size.
    """
    col_names = ", ".join(c.name for c in cols)
    unnest_args = ", ".join(f"CAST(:{c.name} AS {c.pg_array})" for c in cols)

    sql = (
        f"INSERT INTO {table.table_name} ({col_names}) "
        f"SELECT * FROM UNNEST({unnest_args})"
    )
    if mode == ImportMode.REPLACE:
        # Target was truncated before the load, no conflicts expected
        return sql

    updates = ", ".join(f"{c.name} = EXCLUDED.{c.name}" for c in cols if c.name != "id")
    return f"{sql} ON CONFLICT (id) DO UPDATE SET {updates}"


def to_column_arrays(documents: Sequence[AddressDocument], cols: Sequence[ColumnDef] = INSERT_COLUMNS) -> Dict[str, List[Any]]:
    """One list per column, aligned by document index"""
    arrays: Dict[str, List[Any]] = {c.name: [] for c in cols}
    for doc in documents:
        for c in cols:
            arrays[c.name].append(c.pick(doc))
    return arrays


class PostgresLoader:
    """
    Write batches of documents into one addresses table generation.

    Knows nothing about encodings or address rules: it only serializes
    documents into column arrays and issues one statement per batch.
    """

    def __init__(
        self,
        connection: AsyncConnection,
        table: TableGeneration = TableGeneration.NEXT,
        mode: ImportMode = ImportMode.UPSERT
    ):
        self.connection = connection
        self.table = table
        self.mode = ImportMode(mode)
        self.statement = text(build_unnest_sql(self.table, self.mode))

    async def load(self, documents: Sequence[AddressDocument]) -> int:
        """
        Insert one batch.

        Returns:
            Number of documents written
        """
        if not documents:
            return 0

        try:
            await self.connection.execute(self.statement, to_column_arrays(documents))
        except Exception as e:
            raise DatabaseError(
                "Batch insert failed",
                context={
                    "operation": self.mode.value.upper(),
                    "table_name": self.table.table_name,
                    "batch_size": len(documents),
                    "first_id": documents[0].id,
                },
                original_exception=e
            )

        logger.debug(f"Loaded {len(documents)} documents into {self.table.table_name}")
        return len(documents)
