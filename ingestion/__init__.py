"""
Address import pipeline components.

Modules:
    runner: AddressImportRunner, one monthly import from download to swap
    shadow_tables: Advisory lock, schema, import state and table rotation
    scheduler: APScheduler integration for periodic imports

Subpackages:
    extractors: Archive download, zip access and legacy-encoded line reading
    transformers: Road dictionary and building-row to AddressDocument mapping
    loaders: Fixed-size batching and the UNNEST bulk writer

Architecture:
    download zip -> build road index -> decode building lines -> transform
    -> batch -> write into addresses_next -> verify -> index -> swap

    Readers keep querying `addresses` until the final rotation, which is a
    single transaction.

Usage:
    from core.database import create_engine
    from ingestion.shadow_tables import ShadowTableCoordinator
    from ingestion.runner import AddressImportRunner

Example:
    coordinator = ShadowTableCoordinator(create_engine())
    result = await AddressImportRunner(coordinator).run()

    print(f"Loaded {result.get('records_loaded', 0)} records")
"""

__all__ = [
    "AddressImportRunner",
    "ShadowTableCoordinator",
    "ImportScheduler",
]
