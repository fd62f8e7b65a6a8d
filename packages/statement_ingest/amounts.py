"""Locale-ambiguous amount parsing (French/English dual convention).

The same function is used by detection sampling and by the row parser so the
inferred configuration and the executed parse can never disagree about what
counts as a number.
"""

from __future__ import annotations

import math
import re

_NOISE_RE = re.compile(r"[€$£\s\u00a0\u202f]")
# Comma followed by one or two trailing digits: comma is the decimal mark.
_COMMA_DECIMAL_RE = re.compile(r",\d{1,2}$")
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_amount(raw: str | None) -> float:
    """Parse ``raw`` into a signed float, or ``math.nan`` when it is not a number.

    Examples: ``"1 234,56"`` → ``1234.56``, ``"-1.234,56"`` → ``-1234.56``,
    ``"1,234.56"`` → ``1234.56``, ``"12,5 €"`` → ``12.5``.
    """

    if not raw:
        return math.nan

    s = _NOISE_RE.sub("", raw)
    if _COMMA_DECIMAL_RE.search(s):
        s = s.replace(".", "").replace(",", ".", 1)
    else:
        s = s.replace(",", "")

    if not _NUMBER_RE.fullmatch(s):
        return math.nan
    return float(s)


def is_amount(raw: str | None) -> bool:
    return not math.isnan(parse_amount(raw))


__all__ = ["parse_amount", "is_amount"]
