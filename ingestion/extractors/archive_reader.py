"""
Zip archive access for the monthly registry download
"""

import re
import zipfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, List, Optional
from core.exceptions import ArchiveFormatError
from ingestion.extractors.line_reader import count_lines
import logging

logger = logging.getLogger(__name__)

ROAD_FILE_PATTERN = re.compile(r"road_code_total", re.IGNORECASE)


def _base_name(info: zipfile.ZipInfo) -> str:
    return PurePosixPath(info.filename).name


def _is_txt(name: str) -> bool:
    return name.lower().endswith(".txt")


class RegistryArchive:
    """
    Read-only view of the downloaded registry zip.

    Holds exactly one road dictionary file (road_code_total*.txt) and one or
    more building files (build_*.txt), processed in path order.
    """

    def __init__(self, zip_path: Path):
        self.zip_path = Path(zip_path)
        self._zip: Optional[zipfile.ZipFile] = None

    def __enter__(self) -> "RegistryArchive":
        self._zip = zipfile.ZipFile(self.zip_path, "r")
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    @property
    def files(self) -> List[zipfile.ZipInfo]:
        if self._zip is None:
            raise RuntimeError("Archive is not open")
        return [info for info in self._zip.infolist() if not info.is_dir()]

    def road_entry(self) -> zipfile.ZipInfo:
        """First road dictionary entry"""
        for info in self.files:
            name = _base_name(info)
            if ROAD_FILE_PATTERN.search(name) and _is_txt(name):
                return info

        raise ArchiveFormatError(
            "road_code_total*.txt not found in zip",
            context={"zip_path": str(self.zip_path), "missing": "road"}
        )

    def build_entries(self) -> List[zipfile.ZipInfo]:
        """Building entries sorted by path"""
        entries = [
            info for info in self.files
            if _base_name(info).startswith("build_") and _is_txt(_base_name(info))
        ]
        if not entries:
            raise ArchiveFormatError(
                "build_*.txt not found in zip",
                context={"zip_path": str(self.zip_path), "missing": "build"}
            )
        return sorted(entries, key=lambda info: info.filename)

    def open(self, info: zipfile.ZipInfo) -> BinaryIO:
        return self._zip.open(info, "r")

    def count_build_lines(self) -> int:
        """Total line count across building files (optional percentage pre-pass)"""
        total = 0
        for info in self.build_entries():
            with self.open(info) as stream:
                total += count_lines(stream)
        logger.debug(f"Counted {total} lines in {self.zip_path.name}")
        return total
