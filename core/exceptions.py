"""
Custom exceptions for the address import pipeline with structured error context.

Each exception carries a context dictionary so failures can be logged and
persisted with enough detail to diagnose a multi-hour import after the fact.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   ├── DownloadError
    │   └── ArchiveFormatError
    ├── ConfigurationError
    │   └── DecoderUnavailableError
    └── LoadError
        ├── SchemaError
        ├── DatabaseError
        ├── ShadowTableEmptyError
        └── SwapError

Rows that fail structural checks are skipped and counted, not raised, and a
held advisory lock is a normal skip, so neither has an exception type.
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class ETLException(Exception):
    """
    Base exception for all import-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (month, table, url, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for archive acquisition and reading failures."""
    pass


class DownloadError(ExtractionError):
    """
    Raised when the registry archive cannot be downloaded.

    Covers non-2xx final responses, timeouts and connection failures.
    The import does not retry; the next scheduled run starts over.

    Context should include:
        - url: The download URL
        - status_code: HTTP status code (if applicable)
    """
    pass


class ArchiveFormatError(ExtractionError):
    """
    Raised when the downloaded archive lacks the expected entries.

    Context should include:
        - zip_path: Path to the archive
        - missing: Which entry kind was not found
    """
    pass


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(ETLException):
    """Base exception for fatal configuration problems."""
    pass


class DecoderUnavailableError(ConfigurationError):
    """
    Raised when none of the candidate source encodings is available.

    Context should include:
        - encodings: The candidate encodings that were tried
    """
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for shadow table load and promotion failures."""
    pass


class SchemaError(LoadError):
    """Raised when schema DDL (tables, extension, indexes) fails."""
    pass


class DatabaseError(LoadError):
    """
    Raised when a database write fails during the load.

    Context should include:
        - operation: INSERT, UPSERT, TRUNCATE, COUNT, ...
        - table_name: Name of the table
        - batch_size: Number of documents in the failed batch (if applicable)
    """
    pass


class ShadowTableEmptyError(LoadError):
    """Raised when the shadow table holds no rows after the load."""
    pass


class SwapError(LoadError):
    """Raised when the table rotation fails; the rename transaction is rolled back."""
    pass
