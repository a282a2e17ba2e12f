"""
Small helpers shared by the registry row parsers
"""

from typing import Any, Iterable, List, Optional


def norm(value: Any) -> Optional[str]:
    """Trimmed string, or None for missing/blank values"""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        text = str(value).strip()
        return text or None
    return None


def pad_cols(cols: List[str], min_len: int) -> List[str]:
    if len(cols) >= min_len:
        return cols
    return cols + [""] * (min_len - len(cols))


def join_parts(parts: Iterable[Optional[str]]) -> str:
    """Space-join the non-blank parts"""
    return " ".join(p.strip() for p in parts if p and p.strip())


def make_number(main: Optional[str], sub: Optional[str]) -> Optional[str]:
    """
    Compose a lot/building number.

    make_number("10", "0") == "10"; make_number("10", "2") == "10-2";
    make_number(None, anything) is None.
    """
    if not main:
        return None
    if sub and sub != "0":
        return f"{main}-{sub}"
    return main
