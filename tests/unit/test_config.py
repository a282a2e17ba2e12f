"""
Unit tests for settings validation
"""

import pytest
from pydantic import ValidationError
from core.config import Settings
from models.base import ImportMode


def test_defaults():
    s = Settings(_env_file=None)

    assert s.ADDRESS_CHUNK_SIZE == 5000
    assert s.ADDRESS_COMMIT_EVERY_BATCHES == 40
    assert s.ADDRESS_DROP_INDEXES is True
    assert s.ADDRESS_COUNT_LINES_FOR_PERCENT is False
    assert s.ADDRESS_IMPORT_LOCK_KEY == 9127341
    assert s.ADDRESS_IMPORT_MODE == ImportMode.UPSERT
    assert s.source_encodings == ["cp949", "euc_kr", "utf-8"]


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("ADDRESS_IMPORT_MODE", "replace")
    monkeypatch.setenv("ADDRESS_CHUNK_SIZE", "1000")
    monkeypatch.setenv("ADDRESS_DROP_INDEXES", "false")
    monkeypatch.setenv("ADDRESS_DATA_MONTH", "202312")

    s = Settings(_env_file=None)

    assert s.ADDRESS_IMPORT_MODE == ImportMode.REPLACE
    assert s.ADDRESS_CHUNK_SIZE == 1000
    assert s.ADDRESS_DROP_INDEXES is False
    assert s.ADDRESS_DATA_MONTH == "202312"


@pytest.mark.parametrize("value", ["2023-12", "20231", "latest", ""])
def test_malformed_month_is_ignored(value):
    assert Settings(_env_file=None, ADDRESS_DATA_MONTH=value).ADDRESS_DATA_MONTH is None


@pytest.mark.parametrize("field", ["ADDRESS_CHUNK_SIZE", "ADDRESS_COMMIT_EVERY_BATCHES"])
def test_non_positive_sizes_rejected(field):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


def test_encoding_list_parsing():
    s = Settings(_env_file=None, ADDRESS_SOURCE_ENCODINGS=" euc_kr , ,utf-8 ")

    assert s.source_encodings == ["euc_kr", "utf-8"]
