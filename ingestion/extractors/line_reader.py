"""
Line reader for the legacy-encoded registry text files.

The registry ships cp949 (EUC-KR superset) text. Zip entries are read in
fixed-size byte chunks, so a multi-byte character can straddle two chunks;
an incremental decoder keeps those bytes until the rest arrives.
"""

import codecs
from typing import BinaryIO, Iterable, Iterator
from core.exceptions import DecoderUnavailableError
import logging

logger = logging.getLogger(__name__)

DEFAULT_ENCODINGS = ("cp949", "euc_kr", "utf-8")
DEFAULT_CHUNK_SIZE = 1 << 16
BOM = "\ufeff"


def resolve_encoding(encodings: Iterable[str] = DEFAULT_ENCODINGS) -> str:
    """
    Return the first candidate encoding that can decode a test byte.

    Raises:
        DecoderUnavailableError: If no candidate is available
    """
    tried = []
    for encoding in encodings:
        tried.append(encoding)
        try:
            codecs.getincrementaldecoder(encoding)().decode(b"A")
        except (LookupError, UnicodeDecodeError):
            logger.debug(f"Encoding {encoding} unavailable, trying next")
            continue
        return encoding

    raise DecoderUnavailableError(
        "No usable decoder for registry files",
        context={"encodings": tried}
    )


def _clean(line: str) -> str:
    if line.endswith("\r"):
        line = line[:-1]
    if line.startswith(BOM):
        line = line[1:]
    return line


def iter_lines(
    stream: BinaryIO,
    encoding: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[str]:
    """
    Yield decoded, non-blank lines from a binary stream.

    Trailing CR and a leading BOM are stripped. The last fragment is emitted
    even without a terminating newline. Undecodable bytes become U+FFFD.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    remainder = ""

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break

        parts = (remainder + decoder.decode(chunk)).split("\n")
        remainder = parts.pop()

        for line in parts:
            line = _clean(line)
            if line:
                yield line

    last = _clean(remainder + decoder.decode(b"", final=True))
    if last:
        yield last


def count_lines(stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Count newline-terminated lines, plus one for an unterminated tail."""
    count = 0
    saw_any = False
    last_is_newline = False

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        saw_any = True
        count += chunk.count(b"\n")
        last_is_newline = chunk.endswith(b"\n")

    if saw_any and not last_is_newline:
        count += 1
    return count
