"""Data models and type aliases for ``statement_ingest``.

Two families live here:

- Persisted configuration (:class:`SourceConfig`, :class:`ColumnMapping`) as
  pydantic models. They are validated on construction and round-trip through
  JSON, both for the ``import_sources`` table and for CLI config files.
- Pipeline records (:class:`ParsedRow`, :class:`DuplicateMatch`,
  :class:`Keyword`, ...) as frozen dataclasses / named tuples. These are
  transient and recomputed from scratch whenever inputs change.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, NamedTuple, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .dates import DateFormat

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

Delimiter = Literal[",", ";", "\t", "|"]
AmountMode = Literal["single", "debit_credit"]
SignConvention = Literal["negative_expense", "positive_expense"]

DELIMITERS: tuple[str, ...] = (",", ";", "\t", "|")


class ColumnMapping(BaseModel):
    """Zero-based column indices for each role.

    Either ``amount`` (single signed column) or the ``debit_amount`` /
    ``credit_amount`` pair is populated; which one is enforced by
    :class:`SourceConfig` since it depends on ``amount_mode``. Indices beyond
    a row's width are tolerated at parse time (the cell reads as empty).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    date: int = Field(ge=0)
    description: int = Field(ge=0)
    amount: int | None = Field(default=None, ge=0)
    debit_amount: int | None = Field(default=None, ge=0)
    credit_amount: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _indices_unique(self) -> Self:
        # ``description`` is read-only text and may alias another column (the
        # detector defaults it to column 0); value-bearing roles may not overlap.
        used = [
            v
            for v in (self.date, self.amount, self.debit_amount, self.credit_amount)
            if v is not None
        ]
        if len(used) != len(set(used)):
            raise ValueError(f"date/amount column indices must be unique, got {used}")
        return self


class SourceConfig(BaseModel):
    """Per-source import configuration (persisted, user-editable)."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = ""
    delimiter: Delimiter = ";"
    encoding: str = "utf-8"
    date_format: DateFormat = "DD/MM/YYYY"
    skip_lines: int = Field(default=0, ge=0)
    has_header: bool = True
    column_mapping: ColumnMapping
    amount_mode: AmountMode = "single"
    sign_convention: SignConvention = "negative_expense"

    @model_validator(mode="after")
    def _amount_mode_matches_mapping(self) -> Self:
        m = self.column_mapping
        if self.amount_mode == "single":
            if m.amount is None or m.debit_amount is not None or m.credit_amount is not None:
                raise ValueError(
                    "single amount mode requires column_mapping.amount and no debit/credit columns"
                )
        else:
            if m.amount is not None or m.debit_amount is None or m.credit_amount is None:
                raise ValueError(
                    "debit_credit amount mode requires debit_amount and credit_amount "
                    "and no amount column"
                )
        return self

    def with_updates(self, **changes: Any) -> SourceConfig:
        """Return a validated copy with ``changes`` applied.

        Unlike ``model_copy(update=...)`` the result is re-validated, so an
        edit that breaks the amount-mode invariant raises immediately.
        """

        data = self.model_dump()
        for key, value in changes.items():
            data[key] = value.model_dump() if isinstance(value, BaseModel) else value
        return SourceConfig.model_validate(data)


# ---------------------------------------------------------------------------
# Pipeline records
# ---------------------------------------------------------------------------

type RawRow = tuple[str, ...]
type RawTable = list[RawRow]

type Fingerprint = tuple[str, str, float]
"""Exact-match identity of a transaction: ``(date, description, amount)``."""


@dataclass(frozen=True, slots=True)
class ParsedValue:
    date: str
    description: str
    amount: float

    @property
    def fingerprint(self) -> Fingerprint:
        return (self.date, self.description, self.amount)


@dataclass(frozen=True, slots=True)
class ParsedRow:
    """One emitted data row: either a parsed value or a short error tag.

    ``row_index`` is dense over the emitted rows of every selected file taken
    together; duplicate and error reports refer to rows by this index.
    """

    row_index: int
    raw_cells: RawRow
    parsed_value: ParsedValue | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        if (self.parsed_value is None) == (self.error_message is None):
            raise ValueError("exactly one of parsed_value/error_message must be set")

    @property
    def ok(self) -> bool:
        return self.parsed_value is not None


@dataclass(frozen=True, slots=True)
class DuplicateMatch:
    """A parsed row that collides with a stored (or earlier in-batch) transaction.

    ``row_index`` is the position within the list handed to the duplicate
    detector. ``existing_record_id`` is ``None`` for in-batch repeats.
    """

    row_index: int
    existing_record_id: int | None
    date: str
    description: str
    amount: float


@dataclass(frozen=True, slots=True)
class Keyword:
    text: str
    category_id: int
    supplier_id: int | None = None
    priority: int = 0
    is_active: bool = True

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> Keyword:
        """Build from a store row ``{keyword, category_id, supplier_id?, priority, is_active}``."""

        text = row.get("keyword", row.get("text"))
        return cls(
            text=str(text or ""),
            category_id=int(row["category_id"]),
            supplier_id=(int(row["supplier_id"]) if row.get("supplier_id") is not None else None),
            priority=int(row.get("priority") or 0),
            is_active=bool(row.get("is_active", True)),
        )


class CategorizationResult(NamedTuple):
    """Category/supplier assignment for one description; both ``None`` on no match."""

    category_id: int | None = None
    supplier_id: int | None = None


__all__ = [
    "DELIMITERS",
    "Delimiter",
    "AmountMode",
    "SignConvention",
    "ColumnMapping",
    "SourceConfig",
    "RawRow",
    "RawTable",
    "Fingerprint",
    "ParsedValue",
    "ParsedRow",
    "DuplicateMatch",
    "Keyword",
    "CategorizationResult",
]
