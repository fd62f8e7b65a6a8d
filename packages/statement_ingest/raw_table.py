"""Raw text → table helpers shared by detection and parsing.

- :func:`unwrap_quoted_lines` reverses the vendor convention (seen in
  Desjardins exports) where every line is wrapped in one outer quote pair
  with inner quotes doubled. It is a no-op on regular files and must run
  before both detection and parsing.
- :func:`split_rows` splits text into a :data:`RawTable` with the stdlib
  :mod:`csv` reader, dropping empty lines.
"""

from __future__ import annotations

import csv
from io import StringIO

from .models import RawTable


def _is_wrapped_line(line: str) -> bool:
    t = line.strip()
    return len(t) >= 2 and t.startswith('"') and t.endswith('"') and ',""' in t


def unwrap_quoted_lines(text: str) -> str:
    """Strip whole-line quoting when *every* non-blank line carries it."""

    lines = text.splitlines()
    non_blank = [ln for ln in lines if ln.strip()]
    if not non_blank or not all(_is_wrapped_line(ln) for ln in non_blank):
        return text

    out: list[str] = []
    for ln in lines:
        t = ln.strip()
        out.append(t[1:-1].replace('""', '"') if t else "")
    return "\n".join(out)


def non_blank_lines(text: str) -> list[str]:
    return [ln for ln in text.splitlines() if ln.strip()]


def split_line(line: str, delimiter: str) -> list[str]:
    """Split a single line, honoring standard CSV quoting."""

    return next(csv.reader([line], delimiter=delimiter), [])


def split_rows(text: str, delimiter: str) -> RawTable:
    """Split ``text`` into rows of cells; fully empty lines are dropped."""

    # A leading BOM would otherwise stick to the first header cell.
    if text.startswith("\ufeff"):
        text = text[1:]
    with StringIO(text, newline="") as f:
        return [tuple(row) for row in csv.reader(f, delimiter=delimiter) if row]


__all__ = ["unwrap_quoted_lines", "non_blank_lines", "split_line", "split_rows"]
