"""
SQLAlchemy table definitions for the address importer.

Models:
    base: Shared metadata, declarative Base and enums (ImportStatus, ImportMode, ImportPhase)
    addresses: The 44-column addresses table in its three generations
    import_state: Per-month import bookkeeping

Database Schema:
    addresses / addresses_next / addresses_prev share one column set and are
    rotated by renaming, never by copying rows. Trigram search indexes are
    managed by the shadow table coordinator rather than declared here, because
    they are dropped and rebuilt around the bulk load.

Usage:
    from models.addresses import TableGeneration, addresses_tables
    from models.import_state import AddressImportState
    from models.base import ImportStatus

Example:
    table = addresses_tables[TableGeneration.NEXT]
    assert table.name == "addresses_next"
"""

__all__ = [
    "Base",
    "metadata",
    "ImportStatus",
    "ImportMode",
    "ImportPhase",
    "TableGeneration",
    "addresses_tables",
    "AddressImportState",
]
