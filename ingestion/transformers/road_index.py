"""
In-memory road dictionary built from road_code_total*.txt
"""

from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple
from schemas.normalized import RoadIndexEntry, RoadLocale
from ingestion.transformers.fields import norm, pad_cols
import logging

logger = logging.getLogger(__name__)

ROAD_MIN_COLS = 5
ROAD_PAD_COLS = 20


class RoadRow(NamedTuple):
    """Named view over one road dictionary row"""
    district_code: Optional[str]
    road_no: Optional[str]
    road_name_ko: Optional[str]
    road_name_en: Optional[str]
    local_area_serial: Optional[str]
    region1_ko: Optional[str]
    region2_ko: Optional[str]
    area_ko: Optional[str]
    region1_en: Optional[str]
    region2_en: Optional[str]
    area_en: Optional[str]


def parse_road_row(cols: List[str]) -> RoadRow:
    """The only place that knows the dictionary column layout"""
    row = pad_cols(cols, ROAD_PAD_COLS)
    return RoadRow(
        district_code=norm(row[0]),
        road_no=norm(row[1]),
        road_name_ko=norm(row[2]),
        road_name_en=norm(row[3]),
        local_area_serial=norm(row[4]),
        region1_ko=norm(row[5]),
        region2_ko=norm(row[6]),
        area_ko=norm(row[9]),
        region1_en=norm(row[15]),
        region2_en=norm(row[16]),
        area_en=norm(row[17]),
    )


def road_key(road_code: str, local_area_serial: str) -> str:
    return f"{road_code}|{local_area_serial}"


def index_road_row(cols: List[str]) -> Optional[Tuple[str, RoadIndexEntry]]:
    """
    Build the (key, entry) pair for one dictionary row.

    Returns None when the road code (district code + road number) or the
    local area serial is missing.
    """
    row = parse_road_row(cols)

    road_code = f"{row.district_code}{row.road_no}" if row.district_code and row.road_no else None
    if not road_code or not row.local_area_serial:
        return None

    entry = RoadIndexEntry(
        ko=RoadLocale(
            region1=row.region1_ko,
            region2=row.region2_ko,
            area=row.area_ko,
            road_name=row.road_name_ko,
        ),
        en=RoadLocale(
            region1=row.region1_en,
            region2=row.region2_en,
            area=row.area_en,
            road_name=row.road_name_en,
        ),
    )
    return road_key(road_code, row.local_area_serial), entry


class RoadIndex:
    """
    Map from road key to localized names.

    The first entry for a key wins; later duplicates are ignored.
    """

    def __init__(self):
        self._entries: Dict[str, RoadIndexEntry] = {}
        self.rows_skipped = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def add(self, key: str, entry: RoadIndexEntry) -> bool:
        """Insert unless the key exists; returns whether it was inserted"""
        if key in self._entries:
            return False
        self._entries[key] = entry
        return True

    def get(self, road_code: str, local_area_serial: str) -> Optional[RoadIndexEntry]:
        return self._entries.get(road_key(road_code, local_area_serial))

    def add_line(self, line: str) -> None:
        cols = line.split("|")
        if len(cols) < ROAD_MIN_COLS:
            self.rows_skipped += 1
            return

        indexed = index_road_row(cols)
        if indexed is None:
            self.rows_skipped += 1
            return

        self.add(*indexed)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "RoadIndex":
        index = cls()
        for line in lines:
            index.add_line(line)
        logger.info(f"Road index built: {len(index)} entries, {index.rows_skipped} rows skipped")
        return index
