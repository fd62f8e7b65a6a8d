"""Apply a :class:`SourceConfig` to raw statement tables.

The parser is a pure function of ``(tables, config)``: it yields one
:class:`ParsedRow` per emitted data row and never raises for bad data. Row
indices are dense over the emitted rows of all tables together, so skipped
blank lines leave no gaps; downstream duplicate/exclusion bookkeeping relies
on that sequence.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence

from .amounts import parse_amount
from .dates import parse_date
from .errors import INVALID_AMOUNT, INVALID_DATE
from .models import ParsedRow, ParsedValue, RawRow, RawTable, SourceConfig
from .raw_table import split_rows, unwrap_quoted_lines


def load_table(text: str, config: SourceConfig) -> RawTable:
    """Unwrap and split decoded file ``text`` with the configured delimiter."""

    return split_rows(unwrap_quoted_lines(text), config.delimiter)


def header_row(table: RawTable, config: SourceConfig) -> RawRow | None:
    """Return the trimmed header cells when the config declares a header."""

    if not config.has_header or len(table) <= config.skip_lines:
        return None
    return tuple(c.strip() for c in table[config.skip_lines])


def data_rows(table: RawTable, config: SourceConfig) -> Sequence[RawRow]:
    start = config.skip_lines + (1 if config.has_header else 0)
    return table[start:]


def _cell(row: RawRow, col: int | None) -> str:
    if col is None or col >= len(row):
        return ""
    return row[col].strip()


def _is_blank(row: RawRow) -> bool:
    return len(row) <= 1 and (not row or not row[0].strip())


def resolve_amount(row: RawRow, config: SourceConfig) -> float:
    """Signed amount for ``row`` under the config's amount mode (``nan`` if unreadable).

    - ``debit_credit``: the credit when it parses, else the negated debit,
      else ``nan``.
    - ``single``: the amount column, negated under ``positive_expense``.
    """

    mapping = config.column_mapping
    if config.amount_mode == "debit_credit":
        credit = parse_amount(_cell(row, mapping.credit_amount))
        if not math.isnan(credit):
            return credit
        debit = parse_amount(_cell(row, mapping.debit_amount))
        if not math.isnan(debit):
            return -debit
        return math.nan

    amount = parse_amount(_cell(row, mapping.amount))
    if config.sign_convention == "positive_expense" and not math.isnan(amount):
        return -amount
    return amount


def parse_row(row: RawRow, config: SourceConfig, row_index: int) -> ParsedRow:
    mapping = config.column_mapping
    date = parse_date(_cell(row, mapping.date), config.date_format)
    if not date:
        return ParsedRow(row_index, row, error_message=INVALID_DATE)

    amount = resolve_amount(row, config)
    if math.isnan(amount):
        return ParsedRow(row_index, row, error_message=INVALID_AMOUNT)

    value = ParsedValue(date=date, description=_cell(row, mapping.description), amount=amount)
    return ParsedRow(row_index, row, parsed_value=value)


def parse_tables(tables: Iterable[RawTable], config: SourceConfig) -> Iterator[ParsedRow]:
    """Yield parsed rows for every data row of every table, indexed densely from 0."""

    index = 0
    for table in tables:
        for row in data_rows(table, config):
            if _is_blank(row):
                continue
            yield parse_row(row, config, index)
            index += 1


def parse_texts(texts: Iterable[str], config: SourceConfig) -> Iterator[ParsedRow]:
    """Like :func:`parse_tables` but starting from decoded file contents."""

    return parse_tables((load_table(t, config) for t in texts), config)


__all__ = [
    "load_table",
    "header_row",
    "data_rows",
    "resolve_amount",
    "parse_row",
    "parse_tables",
    "parse_texts",
]
