"""Date parsing under an explicit field-order format tag.

Tags name the field order and the separator class, e.g. ``"DD/MM/YYYY"``.
``"YYYYMMDD"`` is fixed-width without separators. Validation is structural
only: month in 1..12, day in 1..31 (``"31/02/2024"`` is accepted).
"""

from __future__ import annotations

import re
from typing import Literal

DateFormat = Literal[
    "DD/MM/YYYY",
    "MM/DD/YYYY",
    "YYYY-MM-DD",
    "YYYY/MM/DD",
    "DD-MM-YYYY",
    "MM-DD-YYYY",
    "DD.MM.YYYY",
    "YYYYMMDD",
]

# Priority order used by auto-detection; earlier tags win ties.
DATE_FORMATS: tuple[str, ...] = (
    "DD/MM/YYYY",
    "MM/DD/YYYY",
    "YYYY-MM-DD",
    "YYYY/MM/DD",
    "DD-MM-YYYY",
    "DD.MM.YYYY",
    "YYYYMMDD",
)

_FIELD_ORDER: dict[str, tuple[str, str, str]] = {
    "DD/MM/YYYY": ("d", "m", "y"),
    "DD-MM-YYYY": ("d", "m", "y"),
    "DD.MM.YYYY": ("d", "m", "y"),
    "MM/DD/YYYY": ("m", "d", "y"),
    "MM-DD-YYYY": ("m", "d", "y"),
    "YYYY-MM-DD": ("y", "m", "d"),
    "YYYY/MM/DD": ("y", "m", "d"),
}

_SEPARATORS_RE = re.compile(r"[/\-.]")
_DIGITS_RE = re.compile(r"[0-9]+")
_FIXED_WIDTH_RE = re.compile(r"[0-9]{8}")


def _expand_year(y: int) -> int:
    if y >= 100:
        return y
    return 1900 + y if y > 50 else 2000 + y


def parse_date(raw: str | None, fmt: str) -> str:
    """Return ``raw`` as ``YYYY-MM-DD`` under ``fmt``, or ``""`` when it does not fit.

    Only the first whitespace-separated token is considered so exports that
    append a time (``"31/12/2023 10:45"``) still parse. Raises ``ValueError``
    for an unknown format tag since that is a configuration bug, not a data
    problem.
    """

    if fmt != "YYYYMMDD" and fmt not in _FIELD_ORDER:
        raise ValueError(f"unsupported date format: {fmt!r}")
    if not raw:
        return ""
    tokens = raw.split()
    if not tokens:
        return ""
    s = tokens[0]

    if fmt == "YYYYMMDD":
        if not _FIXED_WIDTH_RE.fullmatch(s):
            return ""
        parts = {"y": s[0:4], "m": s[4:6], "d": s[6:8]}
    else:
        pieces = _SEPARATORS_RE.split(s)
        if len(pieces) != 3 or not all(_DIGITS_RE.fullmatch(p) for p in pieces):
            return ""
        parts = dict(zip(_FIELD_ORDER[fmt], pieces, strict=True))

    year = _expand_year(int(parts["y"]))
    month = int(parts["m"])
    day = int(parts["d"])
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return ""
    return f"{year:04d}-{month:02d}-{day:02d}"


def is_date(raw: str | None) -> bool:
    """True when ``raw`` parses under any detectable format."""

    return any(parse_date(raw, fmt) for fmt in DATE_FORMATS)


__all__ = ["DateFormat", "DATE_FORMATS", "parse_date", "is_date"]
