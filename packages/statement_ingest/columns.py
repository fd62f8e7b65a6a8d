"""Column role detection over a small sample of data rows.

Given rows with the header and preamble already removed, infer which column
holds the date (and in which format), which columns are amounts, which of
those are running balances, whether the file uses a single signed amount or a
debit/credit pair, and which column carries the free-text description.

Everything here is a pure function of the sample. Only a missing date column
is treated as a failure (``detect_column_roles`` returns ``None``); the other
roles degrade to best-effort defaults.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from itertools import combinations
from typing import NamedTuple

from .amounts import parse_amount
from .dates import DATE_FORMATS, parse_date
from .logging_setup import get_logger
from .models import AmountMode, SignConvention

# ---- Tunables (private) ------------------------------------------------------

_DATE_RATE_MIN: float = 0.8
_NUMERIC_RATE_MIN: float = 0.5
_BALANCE_TOLERANCE: float = 0.015
_BALANCE_MATCH_MIN: float = 0.8
_BALANCE_MIN_TESTED: int = 2
_COMPLEMENTARY_MIN: float = 0.7

_logger = get_logger("statement_ingest.columns")

type SampleRows = Sequence[Sequence[str]]


class DateColumn(NamedTuple):
    column: int
    date_format: str
    rate: float


class AmountLayout(NamedTuple):
    mode: AmountMode
    amount_column: int | None = None
    debit_column: int | None = None
    credit_column: int | None = None
    sign_convention: SignConvention = "negative_expense"


@dataclass(frozen=True, slots=True)
class ColumnRoles:
    date_column: int
    date_format: str
    description_column: int
    numeric_columns: tuple[int, ...]
    balance_columns: frozenset[int]
    date_like_columns: frozenset[int]
    # ``None`` only when the sample has no numeric column at all.
    amount_layout: AmountLayout | None


# ---- Cell helpers ------------------------------------------------------------


def _cell(row: Sequence[str], col: int) -> str:
    return row[col].strip() if col < len(row) else ""


def _non_blank(rows: SampleRows, col: int) -> list[str]:
    return [c for c in (_cell(r, col) for r in rows) if c]


def _column_values(rows: SampleRows, col: int) -> list[float | None]:
    out: list[float | None] = []
    for r in rows:
        v = parse_amount(_cell(r, col))
        out.append(None if math.isnan(v) else v)
    return out


def _date_rate(cells: Sequence[str], fmt: str) -> float:
    return sum(1 for c in cells if parse_date(c, fmt)) / len(cells)


# ---- Date --------------------------------------------------------------------


def detect_date_column(rows: SampleRows, col_count: int) -> DateColumn | None:
    """Pick the (column, format) pair with the best parse rate (≥ 0.8).

    Columns are scanned left to right and formats in ``DATE_FORMATS`` order;
    only a strictly better rate replaces the current best, so ties go to the
    first pair encountered.
    """

    best: DateColumn | None = None
    for col in range(col_count):
        cells = _non_blank(rows, col)
        if not cells:
            continue
        for fmt in DATE_FORMATS:
            rate = _date_rate(cells, fmt)
            if best is None or rate > best.rate:
                best = DateColumn(col, fmt, rate)

    if best is None or best.rate < _DATE_RATE_MIN:
        return None
    return best


def find_date_like_columns(rows: SampleRows, col_count: int) -> set[int]:
    """Columns whose cells parse as dates (≥ 0.8) under any format.

    Statements often carry both an operation date and a value date; the one
    not chosen as *the* date must still never be taken for an amount.
    """

    found: set[int] = set()
    for col in range(col_count):
        cells = _non_blank(rows, col)
        if cells and any(_date_rate(cells, fmt) >= _DATE_RATE_MIN for fmt in DATE_FORMATS):
            found.add(col)
    return found


# ---- Numbers -----------------------------------------------------------------


def detect_numeric_columns(rows: SampleRows, col_count: int) -> list[int]:
    """Columns where at least half the non-blank cells parse as amounts.

    Near-constant columns (a single distinct value over more than two cells,
    e.g. an account or transit number repeated on every line) are skipped.
    """

    result: list[int] = []
    for col in range(col_count):
        cells = _non_blank(rows, col)
        if not cells:
            continue
        parsed = [v for v in (parse_amount(c) for c in cells) if not math.isnan(v)]
        if len(parsed) / len(cells) < _NUMERIC_RATE_MIN:
            continue
        if len(set(parsed)) <= 1 and len(cells) > 2:
            continue
        result.append(col)
    return result


def _tracks_single(balance: list[float | None], amounts: list[float | None]) -> bool:
    matches = tested = 0
    for i in range(1, len(balance)):
        cur, prev, amt = balance[i], balance[i - 1], amounts[i]
        if cur is None or prev is None or amt is None:
            continue
        tested += 1
        diff = cur - prev
        if abs(diff - amt) < _BALANCE_TOLERANCE or abs(diff + amt) < _BALANCE_TOLERANCE:
            matches += 1
    return tested >= _BALANCE_MIN_TESTED and matches / tested >= _BALANCE_MATCH_MIN


def _tracks_pair(
    balance: list[float | None],
    first: list[float | None],
    second: list[float | None],
) -> bool:
    # Debit/credit columns are sparse: a blank side counts as zero.
    matches = tested = 0
    for i in range(1, len(balance)):
        cur, prev = balance[i], balance[i - 1]
        if cur is None or prev is None:
            continue
        tested += 1
        diff = cur - prev
        a = first[i] or 0.0
        b = second[i] or 0.0
        if any(
            abs(diff - (sa * a + sb * b)) < _BALANCE_TOLERANCE
            for sa in (1.0, -1.0)
            for sb in (1.0, -1.0)
        ):
            matches += 1
    return tested >= _BALANCE_MIN_TESTED and matches / tested >= _BALANCE_MATCH_MIN


def detect_balance_columns(rows: SampleRows, numeric_columns: Sequence[int]) -> set[int]:
    """Numeric columns that behave like a running balance.

    A column ``B`` is a balance when, row over row, ``B[i] - B[i-1]`` equals
    ``±A[i]`` for some other numeric column ``A``, or ``±A[i] ± C[i]`` for two
    others (debit/credit netting), on at least 80% of at least two compared
    pairs.
    """

    balance_cols: set[int] = set()
    if len(numeric_columns) < 2 or len(rows) < 3:
        return balance_cols

    values = {col: _column_values(rows, col) for col in numeric_columns}

    for bal in numeric_columns:
        others = [c for c in numeric_columns if c != bal]
        if any(_tracks_single(values[bal], values[a]) for a in others):
            balance_cols.add(bal)
            continue
        for a, b in combinations(others, 2):
            if _tracks_pair(values[bal], values[a], values[b]):
                balance_cols.add(bal)
                break

    return balance_cols


# ---- Amount layout -----------------------------------------------------------


def detect_sign_convention(rows: SampleRows, col: int) -> SignConvention:
    """``negative_expense`` when most non-zero sampled values are negative."""

    nonzero = [v for v in _column_values(rows, col) if v]
    negatives = sum(1 for v in nonzero if v < 0)
    if nonzero and negatives / len(nonzero) > 0.5:
        return "negative_expense"
    return "positive_expense"


def is_sparse_complementary(rows: SampleRows, col_a: int, col_b: int) -> bool:
    """True when, on rows where either column is non-zero, exactly one usually is."""

    complementary = total = 0
    for r in rows:
        va = parse_amount(_cell(r, col_a))
        vb = parse_amount(_cell(r, col_b))
        has_a = not math.isnan(va) and va != 0
        has_b = not math.isnan(vb) and vb != 0
        if not has_a and not has_b:
            continue
        total += 1
        if has_a != has_b:
            complementary += 1
    return total > 0 and complementary / total >= _COMPLEMENTARY_MIN


def detect_amount_layout(rows: SampleRows, candidates: Sequence[int]) -> AmountLayout | None:
    """Decide between one signed amount column and a debit/credit pair.

    The first sparse-complementary pair (ascending pair order) is taken as
    ``(debit, credit)``. Without one, the first candidate is used as a single
    signed column.
    """

    if not candidates:
        return None

    if len(candidates) >= 2:
        for debit, credit in combinations(candidates, 2):
            if is_sparse_complementary(rows, debit, credit):
                return AmountLayout("debit_credit", debit_column=debit, credit_column=credit)

    col = candidates[0]
    return AmountLayout(
        "single", amount_column=col, sign_convention=detect_sign_convention(rows, col)
    )


# ---- Description -------------------------------------------------------------


def detect_description_column(rows: SampleRows, col_count: int, excluded: set[int]) -> int:
    """Longest average non-blank text among non-excluded columns; column 0 by default."""

    best_col = 0
    best_avg = 0.0
    for col in range(col_count):
        if col in excluded:
            continue
        cells = _non_blank(rows, col)
        avg = sum(len(c) for c in cells) / len(cells) if cells else 0.0
        if avg > best_avg:
            best_avg = avg
            best_col = col
    return best_col


# ---- Composition -------------------------------------------------------------


def detect_column_roles(rows: SampleRows, col_count: int) -> ColumnRoles | None:
    """Infer every column role from ``rows``; ``None`` when no date column qualifies."""

    date = detect_date_column(rows, col_count)
    if date is None:
        _logger.debug("no date column reached %.0f%% parse rate", _DATE_RATE_MIN * 100)
        return None

    date_like = find_date_like_columns(rows, col_count) | {date.column}
    numeric = detect_numeric_columns(rows, col_count)
    balance = detect_balance_columns(rows, numeric)
    candidates = [c for c in numeric if c not in balance and c not in date_like]

    layout = detect_amount_layout(rows, candidates)
    if layout is None:
        # Best effort: a lone balance-looking column beats no amount at all.
        fallback = [c for c in numeric if c not in date_like]
        if fallback:
            layout = AmountLayout(
                "single",
                amount_column=fallback[0],
                sign_convention=detect_sign_convention(rows, fallback[0]),
            )

    description = detect_description_column(rows, col_count, set(numeric) | date_like)

    _logger.debug(
        "column roles: date=%d (%s, rate=%.2f) numeric=%s balance=%s description=%d layout=%s",
        date.column,
        date.date_format,
        date.rate,
        numeric,
        sorted(balance),
        description,
        layout,
    )

    return ColumnRoles(
        date_column=date.column,
        date_format=date.date_format,
        description_column=description,
        numeric_columns=tuple(numeric),
        balance_columns=frozenset(balance),
        date_like_columns=frozenset(date_like),
        amount_layout=layout,
    )


__all__ = [
    "DateColumn",
    "AmountLayout",
    "ColumnRoles",
    "detect_date_column",
    "find_date_like_columns",
    "detect_numeric_columns",
    "detect_balance_columns",
    "detect_sign_convention",
    "is_sparse_complementary",
    "detect_amount_layout",
    "detect_description_column",
    "detect_column_roles",
]
