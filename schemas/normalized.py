"""
Pydantic schemas for the normalized address document and the road dictionary
"""

from pydantic import BaseModel
from typing import Optional


class FrozenModel(BaseModel):
    """Immutable base: documents are built once and never mutated"""

    class Config:
        frozen = True


# ============================================================================
# Road dictionary
# ============================================================================

class RoadLocale(FrozenModel):
    """Road dictionary fields for one locale"""
    region1: Optional[str] = None
    region2: Optional[str] = None
    area: Optional[str] = None
    road_name: Optional[str] = None


class RoadIndexEntry(FrozenModel):
    """Localized names for one (road code, local area serial) pair"""
    ko: RoadLocale
    en: RoadLocale


# ============================================================================
# Address document
# ============================================================================

class LocalizedText(FrozenModel):
    ko: Optional[str] = None
    en: Optional[str] = None


class RoadLocaleAddress(FrozenModel):
    region1: Optional[str] = None
    region2: Optional[str] = None
    region3: Optional[str] = None
    road_name: Optional[str] = None
    building_no: Optional[str] = None
    is_underground: bool = False
    full: Optional[str] = None


class RoadCodes(FrozenModel):
    road_code: str
    local_area_serial: str
    postal_code: Optional[str] = None


class RoadBuilding(FrozenModel):
    name_ko: Optional[str] = None


class RoadAddress(FrozenModel):
    ko: RoadLocaleAddress
    en: RoadLocaleAddress
    codes: RoadCodes
    building: RoadBuilding


class ParcelLocaleAddress(FrozenModel):
    region1: Optional[str] = None
    region2: Optional[str] = None
    region3: Optional[str] = None
    region4: Optional[str] = None
    is_mountain_lot: bool = False
    main_no: Optional[str] = None
    sub_no: Optional[str] = None
    parcel_no: Optional[str] = None
    full: Optional[str] = None


class ParcelCodes(FrozenModel):
    legal_area_code: Optional[str] = None


class ParcelAddress(FrozenModel):
    ko: ParcelLocaleAddress
    en: ParcelLocaleAddress
    codes: ParcelCodes


class AddressDocument(FrozenModel):
    """
    One normalized address, the unit written to the addresses table.

    Ensures:
    - id, road code, local area serial and building number are present
      (the transformer returns None instead of building an incomplete document)
    - Coordinates stay null; the registry carries none
    - search texts are lower-cased and null rather than empty
    """
    id: str
    x: Optional[float] = None
    y: Optional[float] = None
    display: LocalizedText
    road: RoadAddress
    parcel: ParcelAddress
    search: LocalizedText
