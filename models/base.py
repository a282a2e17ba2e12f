from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base
import enum

metadata = MetaData()
Base = declarative_base(metadata=metadata)


# ============================================================================
# ENUMS
# ============================================================================

class ImportStatus(str, enum.Enum):
    """Persisted status of a monthly import"""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportMode(str, enum.Enum):
    """How batches are written into the shadow table"""
    UPSERT = "upsert"
    REPLACE = "replace"


class ImportPhase(str, enum.Enum):
    """Run phases of a single import, in order"""
    NOT_STARTED = "not_started"
    LOCK_ACQUIRED = "lock_acquired"
    SCHEMA_ENSURED = "schema_ensured"
    DOWNLOADING = "downloading"
    COUNTING_LINES = "counting_lines"
    INDEXING_ROAD = "indexing_road"
    LOADING = "loading"
    VERIFYING_NON_EMPTY = "verifying_non_empty"
    REBUILDING_INDEXES = "rebuilding_indexes"
    SWAPPING = "swapping"
    COMPLETED = "completed"
    FAILED = "failed"
