"""
Transform building-file rows into normalized address documents.

A build_*.txt row describes one building: its parcel (lot) address, its
road-name address and a few codes. The road dictionary supplies the region
names for the road address and the only source of English names, so English
output exists only for rows whose road key is in the dictionary.
"""

from typing import List, NamedTuple, Optional
from schemas.normalized import (
    AddressDocument,
    FrozenModel,
    LocalizedText,
    ParcelAddress,
    ParcelCodes,
    ParcelLocaleAddress,
    RoadAddress,
    RoadBuilding,
    RoadCodes,
    RoadIndexEntry,
    RoadLocale,
    RoadLocaleAddress,
)
from ingestion.transformers.fields import join_parts, make_number, norm, pad_cols
from ingestion.transformers.road_index import RoadIndex

BUILD_MIN_COLS = 16
BUILD_PAD_COLS = 31

KO_MOUNTAIN_PREFIX = "\uC0B0"  # 산
KO_UNDERGROUND_PREFIX = "\uC9C0\uD558"  # 지하
EN_MOUNTAIN_WORD = "Mountain"
EN_UNDERGROUND_WORD = "Underground"

_EMPTY_LOCALE = RoadLocale()


class FormatOptions(FrozenModel):
    """Prefix switches for building and parcel numbers"""
    include_mountain_prefix_ko: bool = True
    include_underground_prefix_ko: bool = True
    include_mountain_word_en: bool = True
    include_underground_word_en: bool = False

    @classmethod
    def from_settings(cls, settings) -> "FormatOptions":
        return cls(
            include_mountain_prefix_ko=settings.ADDRESS_FORMAT_MOUNTAIN_PREFIX_KO,
            include_underground_prefix_ko=settings.ADDRESS_FORMAT_UNDERGROUND_PREFIX_KO,
            include_mountain_word_en=settings.ADDRESS_FORMAT_MOUNTAIN_WORD_EN,
            include_underground_word_en=settings.ADDRESS_FORMAT_UNDERGROUND_WORD_EN,
        )


DEFAULT_FORMAT = FormatOptions()


class BuildRow(NamedTuple):
    """Named view over one build_*.txt row"""
    legal_area_code: Optional[str]
    parcel_region1: Optional[str]
    parcel_region2: Optional[str]
    parcel_region3: Optional[str]
    parcel_region4: Optional[str]
    mountain_flag: Optional[str]
    parcel_main_no: Optional[str]
    parcel_sub_no: Optional[str]
    road_code: Optional[str]
    road_name: Optional[str]
    underground_flag: Optional[str]
    building_main_no: Optional[str]
    building_sub_no: Optional[str]
    building_name_ledger: Optional[str]
    building_name_detail: Optional[str]
    id: Optional[str]
    local_area_serial: Optional[str]
    postal_code_legacy: Optional[str]
    building_name_sigungu: Optional[str]
    postal_code: Optional[str]


def parse_build_row(cols: List[str]) -> BuildRow:
    """The only place that knows the building file column layout"""
    row = pad_cols(cols, BUILD_PAD_COLS)
    return BuildRow(
        legal_area_code=norm(row[0]),
        parcel_region1=norm(row[1]),
        parcel_region2=norm(row[2]),
        parcel_region3=norm(row[3]),
        parcel_region4=norm(row[4]),
        mountain_flag=norm(row[5]),
        parcel_main_no=norm(row[6]),
        parcel_sub_no=norm(row[7]),
        road_code=norm(row[8]),
        road_name=norm(row[9]),
        underground_flag=norm(row[10]),
        building_main_no=norm(row[11]),
        building_sub_no=norm(row[12]),
        building_name_ledger=norm(row[13]),
        building_name_detail=norm(row[14]),
        id=norm(row[15]),
        local_area_serial=norm(row[16]),
        postal_code_legacy=norm(row[19]),
        building_name_sigungu=norm(row[25]),
        postal_code=norm(row[27]),
    )


def _prefixed(value: Optional[str], enabled: bool, prefix: str, sep: str = "") -> Optional[str]:
    if enabled and value:
        return f"{prefix}{sep}{value}"
    return value


def _lower_or_none(text: str) -> Optional[str]:
    lowered = text.lower()
    return lowered or None


def transform_build_row(
    cols: List[str],
    road_index: RoadIndex,
    options: FormatOptions = DEFAULT_FORMAT
) -> Optional[AddressDocument]:
    """
    Turn one split building row into an AddressDocument.

    Returns None for short rows and for rows missing id, road code, local
    area serial or building main number. Never raises on missing data.
    """
    if len(cols) < BUILD_MIN_COLS:
        return None

    row = parse_build_row(cols)
    if not (row.id and row.road_code and row.local_area_serial and row.building_main_no):
        return None

    is_mountain_lot = row.mountain_flag == "1"
    is_underground = row.underground_flag == "1"

    parcel_no = make_number(row.parcel_main_no, row.parcel_sub_no)
    building_no = make_number(row.building_main_no, row.building_sub_no)

    postal_code = row.postal_code or row.postal_code_legacy
    building_name_ko = row.building_name_sigungu or row.building_name_ledger or row.building_name_detail

    entry: Optional[RoadIndexEntry] = road_index.get(row.road_code, row.local_area_serial)
    dict_ko = entry.ko if entry else _EMPTY_LOCALE
    dict_en = entry.en if entry else _EMPTY_LOCALE

    # Dictionary first, parcel regions as fallback; the row's own road name wins
    road_ko_region1 = dict_ko.region1 or row.parcel_region1
    road_ko_region2 = dict_ko.region2 or row.parcel_region2
    road_ko_area = dict_ko.area or row.parcel_region3
    road_ko_name = row.road_name or dict_ko.road_name

    building_no_ko = _prefixed(
        building_no, is_underground and options.include_underground_prefix_ko, KO_UNDERGROUND_PREFIX
    )
    building_no_en = _prefixed(
        building_no, is_underground and options.include_underground_word_en, EN_UNDERGROUND_WORD, " "
    )
    parcel_no_ko = _prefixed(
        parcel_no, is_mountain_lot and options.include_mountain_prefix_ko, KO_MOUNTAIN_PREFIX
    )
    parcel_no_en = _prefixed(
        parcel_no, is_mountain_lot and options.include_mountain_word_en, EN_MOUNTAIN_WORD, " "
    )

    road_full_ko = join_parts([
        road_ko_region1, road_ko_region2, road_ko_area, road_ko_name, building_no_ko,
    ]) or None

    road_full_en = None
    if dict_en.region1 and dict_en.region2 and dict_en.road_name and building_no_en:
        road_full_en = join_parts([
            dict_en.region1, dict_en.region2, dict_en.area, dict_en.road_name, building_no_en,
        ]) or None

    parcel_full_ko = join_parts([
        row.parcel_region1, row.parcel_region2, row.parcel_region3, row.parcel_region4, parcel_no_ko,
    ]) or None

    parcel_full_en = None
    if dict_en.region1 and dict_en.region2 and dict_en.area and parcel_no_en:
        parcel_full_en = join_parts([
            dict_en.region1, dict_en.region2, dict_en.area, parcel_no_en,
        ]) or None

    search_ko = _lower_or_none(join_parts([road_full_ko, parcel_full_ko, postal_code, building_name_ko]))
    search_en = _lower_or_none(join_parts([road_full_en, parcel_full_en, postal_code]))

    return AddressDocument(
        id=row.id,
        x=None,
        y=None,
        display=LocalizedText(
            ko=road_full_ko or parcel_full_ko,
            en=road_full_en or parcel_full_en,
        ),
        road=RoadAddress(
            ko=RoadLocaleAddress(
                region1=road_ko_region1,
                region2=road_ko_region2,
                region3=road_ko_area,
                road_name=road_ko_name,
                building_no=building_no_ko,
                is_underground=is_underground,
                full=road_full_ko,
            ),
            en=RoadLocaleAddress(
                region1=dict_en.region1,
                region2=dict_en.region2,
                region3=dict_en.area,
                road_name=dict_en.road_name,
                building_no=building_no_en,
                is_underground=is_underground,
                full=road_full_en,
            ),
            codes=RoadCodes(
                road_code=row.road_code,
                local_area_serial=row.local_area_serial,
                postal_code=postal_code,
            ),
            building=RoadBuilding(name_ko=building_name_ko),
        ),
        parcel=ParcelAddress(
            ko=ParcelLocaleAddress(
                region1=row.parcel_region1,
                region2=row.parcel_region2,
                region3=row.parcel_region3,
                region4=row.parcel_region4,
                is_mountain_lot=is_mountain_lot,
                main_no=row.parcel_main_no,
                sub_no=row.parcel_sub_no,
                parcel_no=parcel_no_ko,
                full=parcel_full_ko,
            ),
            en=ParcelLocaleAddress(
                region1=dict_en.region1,
                region2=dict_en.region2,
                region3=dict_en.area,
                region4=None,
                is_mountain_lot=is_mountain_lot,
                main_no=row.parcel_main_no,
                sub_no=row.parcel_sub_no,
                parcel_no=parcel_no_en,
                full=parcel_full_en,
            ),
            codes=ParcelCodes(legal_area_code=row.legal_area_code),
        ),
        search=LocalizedText(ko=search_ko, en=search_en),
    )


def transform_line(
    line: str,
    road_index: RoadIndex,
    options: FormatOptions = DEFAULT_FORMAT
) -> Optional[AddressDocument]:
    return transform_build_row(line.split("|"), road_index, options)
