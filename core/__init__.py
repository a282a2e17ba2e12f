"""
Core utilities and configuration for the address importer.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Async engine creation
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import create_engine
    from core.exceptions import DownloadError, ShadowTableEmptyError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    engine = create_engine()
"""

__all__ = [
    "settings",
    "create_engine",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "DownloadError",
    "ArchiveFormatError",
    "ConfigurationError",
    "DecoderUnavailableError",
    "LoadError",
    "SchemaError",
    "DatabaseError",
    "ShadowTableEmptyError",
    "SwapError",
]
