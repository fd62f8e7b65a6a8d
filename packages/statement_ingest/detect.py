"""Format inference: raw statement text → suggested :class:`SourceConfig`.

Steps, in order:

1. Unwrap whole-line quoting (:func:`~statement_ingest.raw_table.unwrap_quoted_lines`).
2. Pick the delimiter by column-count consistency over the first lines.
3. Skip preamble rows narrower than the table's dominant width.
4. Decide whether the first remaining row is a header.
5. Infer column roles over a sample of data rows
   (:func:`~statement_ingest.columns.detect_column_roles`).

Failure to find a delimiter or a date column raises
:class:`~statement_ingest.errors.DetectionError`; callers then fall back to a
manually configured mapping rather than importing with a guessed date column.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from .amounts import is_amount
from .columns import AmountLayout, ColumnRoles, detect_column_roles
from .dates import is_date
from .errors import DetectionError
from .logging_setup import get_logger
from .models import DELIMITERS, ColumnMapping, RawTable, SourceConfig
from .raw_table import non_blank_lines, split_line, split_rows, unwrap_quoted_lines

# ---- Tunables (private) ------------------------------------------------------

_DELIMITER_SAMPLE_LINES: int = 10
_WIDTH_SAMPLE_ROWS: int = 10
_ROLE_SAMPLE_ROWS: int = 20

_logger = get_logger("statement_ingest.detect")


def _failure(reason: str) -> DetectionError:
    _logger.info("auto-detection failed", extra={"reason": reason})
    return DetectionError(reason)


def detect_delimiter(lines: Sequence[str]) -> str | None:
    """Choose the delimiter producing the widest, most stable split.

    For each candidate, score = (share of lines whose width equals the first
    line's width) × that width. Candidates splitting the first line into a
    single column are rejected. Returns ``None`` when nothing scores above
    zero.
    """

    best: str | None = None
    best_score = 0.0
    sample = list(lines[:_DELIMITER_SAMPLE_LINES])
    if not sample:
        return None

    for delim in DELIMITERS:
        widths = [len(split_line(line, delim)) for line in sample]
        first = widths[0]
        if first <= 1:
            continue
        score = sum(1 for w in widths if w == first) / len(widths) * first
        if score > best_score:
            best_score = score
            best = delim
    return best


def detect_header(first_row: Sequence[str]) -> bool:
    """True when no non-blank cell of ``first_row`` looks like a date or an amount.

    A header with a numeric cell (an account number, a year) is misread as
    data; that limitation is accepted.
    """

    for cell in first_row:
        s = cell.strip()
        if not s:
            continue
        if is_amount(s) or is_date(s):
            return False
    return True


def detect_skip_lines(rows: RawTable) -> int:
    """Count leading preamble rows narrower than the dominant table width.

    The dominant width is the most frequent row width above one; ties go to
    the width seen first.
    """

    widths = Counter(len(r) for r in rows if len(r) > 1)
    if not widths:
        return 0
    expected = widths.most_common(1)[0][0]

    skip = 0
    for r in rows:
        if len(r) >= expected:
            break
        skip += 1
    return skip


def _mapping_from_roles(roles: ColumnRoles) -> tuple[ColumnMapping, AmountLayout]:
    layout = roles.amount_layout
    if layout is None:
        raise _failure("no_amount_column")
    if layout.mode == "debit_credit":
        mapping = ColumnMapping(
            date=roles.date_column,
            description=roles.description_column,
            debit_amount=layout.debit_column,
            credit_amount=layout.credit_column,
        )
    else:
        mapping = ColumnMapping(
            date=roles.date_column,
            description=roles.description_column,
            amount=layout.amount_column,
        )
    return mapping, layout


def detect_config(text: str, *, base: SourceConfig | None = None) -> SourceConfig:
    """Infer a complete configuration from decoded file ``text``.

    Inferred fields (delimiter, skip lines, header, date format, column
    mapping, amount mode, sign convention) fully replace those of ``base``;
    ``name`` and ``encoding`` are carried over from ``base`` when given.

    Raises
    ------
    DetectionError
        When the text has fewer than two lines, no delimiter scores, or no
        column parses as dates consistently enough.
    """

    content = unwrap_quoted_lines(text)
    lines = non_blank_lines(content)
    if len(lines) < 2:
        raise _failure("too_few_lines")

    delimiter = detect_delimiter(lines)
    if delimiter is None:
        raise _failure("no_delimiter")

    rows = split_rows(content, delimiter)
    skip_lines = detect_skip_lines(rows)
    table = rows[skip_lines:]
    if len(table) < 2:
        raise _failure("too_few_rows")

    has_header = detect_header(table[0])
    start = 1 if has_header else 0
    sample = table[start : start + _ROLE_SAMPLE_ROWS]
    if not sample:
        raise _failure("no_data_rows")

    col_count = max(len(r) for r in table[:_WIDTH_SAMPLE_ROWS])
    roles = detect_column_roles(sample, col_count)
    if roles is None:
        raise _failure("no_date_column")

    mapping, layout = _mapping_from_roles(roles)

    _logger.debug(
        "detected delimiter=%r skip_lines=%d has_header=%s date_format=%s",
        delimiter,
        skip_lines,
        has_header,
        roles.date_format,
    )

    return SourceConfig(
        name=base.name if base is not None else "",
        encoding=base.encoding if base is not None else "utf-8",
        delimiter=delimiter,
        skip_lines=skip_lines,
        has_header=has_header,
        date_format=roles.date_format,
        column_mapping=mapping,
        amount_mode=layout.mode,
        # Only meaningful in single mode; debit/credit layouts keep the default.
        sign_convention=layout.sign_convention,
    )


__all__ = [
    "detect_delimiter",
    "detect_header",
    "detect_skip_lines",
    "detect_config",
]
