"""
Pydantic schemas for data validation and serialization.

Schemas:
    normalized: AddressDocument and its nested road/parcel parts,
        RoadIndexEntry for the road dictionary

Features:
    - Immutable (frozen) models
    - Type validation on construction
    - Nested attribute access used by the bulk loader's column mapping

Usage:
    from schemas.normalized import AddressDocument, RoadIndexEntry, RoadLocale
"""

__all__ = [
    "AddressDocument",
    "RoadIndexEntry",
    "RoadLocale",
]
