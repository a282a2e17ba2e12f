from typing import Dict, List
from sqlalchemy import Boolean, Column, Float, Table, Text
from models.base import metadata
import enum


def _address_columns() -> List[Column]:
    """Column set shared by every addresses table generation (44 columns)."""
    return [
        Column("id", Text, primary_key=True),
        Column("x", Float(precision=53), nullable=True),
        Column("y", Float(precision=53), nullable=True),
        Column("display_ko", Text),
        Column("display_en", Text),
        Column("search_ko", Text),
        Column("search_en", Text),

        Column("road_ko_region1", Text),
        Column("road_ko_region2", Text),
        Column("road_ko_region3", Text),
        Column("road_ko_road_name", Text),
        Column("road_ko_building_no", Text),
        Column("road_ko_is_underground", Boolean),
        Column("road_ko_full", Text),

        Column("road_en_region1", Text),
        Column("road_en_region2", Text),
        Column("road_en_region3", Text),
        Column("road_en_road_name", Text),
        Column("road_en_building_no", Text),
        Column("road_en_is_underground", Boolean),
        Column("road_en_full", Text),

        Column("road_code", Text),
        Column("road_local_area_serial", Text),
        Column("road_postal_code", Text),
        Column("road_building_name_ko", Text),

        Column("parcel_ko_region1", Text),
        Column("parcel_ko_region2", Text),
        Column("parcel_ko_region3", Text),
        Column("parcel_ko_region4", Text),
        Column("parcel_ko_is_mountain_lot", Boolean),
        Column("parcel_ko_main_no", Text),
        Column("parcel_ko_sub_no", Text),
        Column("parcel_ko_parcel_no", Text),
        Column("parcel_ko_full", Text),

        Column("parcel_en_region1", Text),
        Column("parcel_en_region2", Text),
        Column("parcel_en_region3", Text),
        Column("parcel_en_region4", Text),
        Column("parcel_en_is_mountain_lot", Boolean),
        Column("parcel_en_main_no", Text),
        Column("parcel_en_sub_no", Text),
        Column("parcel_en_parcel_no", Text),
        Column("parcel_en_full", Text),

        Column("parcel_legal_area_code", Text),
    ]


class TableGeneration(str, enum.Enum):
    """
    The three generations of the addresses table.

    CURRENT is served to readers, NEXT is the import write target (the
    shadow table) and PREV keeps the previous generation for one cycle.
    Generations change identity only by renaming tables and their search
    indexes, see `rotation_statements`.
    """
    CURRENT = "addresses"
    NEXT = "addresses_next"
    PREV = "addresses_prev"

    @property
    def table_name(self) -> str:
        return self.value

    @property
    def search_indexes(self) -> Dict[str, str]:
        """Trigram index name per search column"""
        return {
            "search_ko": f"{self.value}_search_ko_idx",
            "search_en": f"{self.value}_search_en_idx",
        }

    @property
    def primary_key_index(self) -> str:
        """Name PostgreSQL gives the id primary key index on create"""
        return f"{self.value}_pkey"

    @property
    def rotated_indexes(self) -> List[str]:
        """Indexes renamed together with the table"""
        return [self.primary_key_index, *self.search_indexes.values()]

    @classmethod
    def rotation_statements(cls) -> List[str]:
        """
        DDL that promotes NEXT to CURRENT and CURRENT to PREV.

        Must run inside one transaction. Indexes keep their names across a
        table rename, so they are renamed too; otherwise the next
        `create_all` of the shadow table collides with its old primary key
        name. Index renames use IF EXISTS so a generation whose search
        indexes were never built still rotates.
        """
        current, nxt, prev = cls.CURRENT, cls.NEXT, cls.PREV
        statements = [
            f"DROP TABLE IF EXISTS {prev.table_name}",
            f"ALTER TABLE {current.table_name} RENAME TO {prev.table_name}",
            f"ALTER TABLE {nxt.table_name} RENAME TO {current.table_name}",
        ]
        for source, target in ((current, prev), (nxt, current)):
            for old_name, new_name in zip(source.rotated_indexes, target.rotated_indexes):
                statements.append(f"ALTER INDEX IF EXISTS {old_name} RENAME TO {new_name}")
        return statements


def build_addresses_table(generation: TableGeneration) -> Table:
    return Table(generation.table_name, metadata, *_address_columns())


addresses_tables: Dict[TableGeneration, Table] = {
    generation: build_addresses_table(generation) for generation in TableGeneration
}

ADDRESS_COLUMN_NAMES: List[str] = [c.name for c in addresses_tables[TableGeneration.CURRENT].columns]
