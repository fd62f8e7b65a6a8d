"""Persistence integration for statement_ingest.

Functions here read from and write to the ledger database owned by
``libs/ledger_db``. They take an active SQLAlchemy session (see
``ledger_db.client.session_scope``) and never commit on their own; the
caller's scope decides the transaction boundary.

Scope:
- Exact-triple lookups of existing transactions (duplicate detection).
- Active keyword list for categorization.
- Saved per-source configurations (``import_sources``).
- Imported file bookkeeping (``imported_files``).
- Batched transaction inserts.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from ledger_db.models.ledger import ImportedFile, ImportSource, Transaction
from ledger_db.models.ledger import Keyword as KeywordRow

from .logging_setup import get_logger
from .models import (
    CategorizationResult,
    ColumnMapping,
    Fingerprint,
    Keyword,
    ParsedRow,
    SourceConfig,
)

# ---- Tunables (private) ------------------------------------------------------

# Distinct descriptions bound per lookup statement; stays under SQLite's
# 999-variable limit on older builds.
_LOOKUP_CHUNK: int = 400

_logger = get_logger("statement_ingest.persistence")


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def find_existing_transactions(
    session: Session, fingerprints: Sequence[Fingerprint]
) -> dict[Fingerprint, int]:
    """Return ``{fingerprint: transaction_id}`` for triples already stored.

    One logical lookup for the whole batch: a query narrowed on candidate
    descriptions, issued once per ``_LOOKUP_CHUNK`` descriptions so large
    imports stay within the engine's bound-parameter limit. The exact ``(date, description, amount)``
    match is resolved here. When a triple is stored more than once the
    lowest id is reported.
    """

    if not fingerprints:
        return {}

    wanted = set(fingerprints)
    descriptions = sorted({fp[1] for fp in wanted})

    found: dict[Fingerprint, int] = {}
    for start in range(0, len(descriptions), _LOOKUP_CHUNK):
        chunk = descriptions[start : start + _LOOKUP_CHUNK]
        stmt = (
            select(Transaction.id, Transaction.date, Transaction.description, Transaction.amount)
            .where(Transaction.description.in_(chunk))
            .order_by(Transaction.id)
        )
        for tx_id, date, description, amount in session.execute(stmt):
            fp = (date, description, float(amount))
            if fp in wanted and fp not in found:
                found[fp] = int(tx_id)
    return found


def insert_transactions(
    session: Session,
    *,
    rows: Sequence[ParsedRow],
    categories: Sequence[CategorizationResult],
    source_id: int | None,
    file_id: int | None,
    delimiter: str,
) -> int:
    """Insert parsed rows as transactions in one batched statement.

    ``categories`` is aligned with ``rows``. ``original_description`` keeps
    the raw cells re-joined with the source delimiter. Returns the number of
    rows inserted.
    """

    if len(rows) != len(categories):
        raise ValueError(
            f"rows and categories must align (got {len(rows)} rows, {len(categories)} results)"
        )

    payloads: list[dict[str, object]] = []
    for row, cat in zip(rows, categories, strict=True):
        value = row.parsed_value
        if value is None:
            raise ValueError(f"row {row.row_index} has no parsed value: {row.error_message}")
        payloads.append(
            {
                "date": value.date,
                "description": value.description,
                "amount": value.amount,
                "source_id": source_id,
                "file_id": file_id,
                "original_description": delimiter.join(row.raw_cells),
                "category_id": cat.category_id,
                "supplier_id": cat.supplier_id,
            }
        )

    if not payloads:
        return 0
    session.execute(insert(Transaction), payloads)
    _logger.debug(
        "inserted %d transactions (source_id=%s, file_id=%s)", len(payloads), source_id, file_id
    )
    return len(payloads)


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------


def load_active_keywords(session: Session) -> list[Keyword]:
    """Active keywords ordered by ``priority DESC, id ASC``."""

    stmt = (
        select(KeywordRow)
        .where(KeywordRow.is_active.is_(True))
        .order_by(KeywordRow.priority.desc(), KeywordRow.id.asc())
    )
    return [
        Keyword(
            text=row.keyword,
            category_id=row.category_id,
            supplier_id=row.supplier_id,
            priority=row.priority,
            is_active=row.is_active,
        )
        for row in session.scalars(stmt)
    ]


# ---------------------------------------------------------------------------
# Source configurations
# ---------------------------------------------------------------------------


def _source_by_name(session: Session, name: str) -> ImportSource | None:
    return session.scalars(select(ImportSource).where(ImportSource.name == name)).first()


def get_source_id(session: Session, name: str) -> int | None:
    return session.scalars(select(ImportSource.id).where(ImportSource.name == name)).first()


def save_source_config(session: Session, config: SourceConfig) -> int:
    """Insert or update the ``import_sources`` row named ``config.name``; return its id."""

    if not config.name.strip():
        raise ValueError("source config must have a non-empty name to be saved")

    values = {
        "delimiter": config.delimiter,
        "encoding": config.encoding,
        "date_format": config.date_format,
        "skip_lines": config.skip_lines,
        "has_header": config.has_header,
        "column_mapping": config.column_mapping.model_dump(),
        "amount_mode": config.amount_mode,
        "sign_convention": config.sign_convention,
    }

    row = _source_by_name(session, config.name)
    if row is None:
        row = ImportSource(name=config.name, **values)
        session.add(row)
    else:
        for key, value in values.items():
            setattr(row, key, value)
        row.updated_at = datetime.now(timezone.utc)
    session.flush()
    return row.id


def load_source_config(session: Session, name: str) -> SourceConfig | None:
    row = _source_by_name(session, name)
    if row is None:
        return None
    mapping: Mapping[str, object] = row.column_mapping or {}
    return SourceConfig(
        name=row.name,
        delimiter=row.delimiter,
        encoding=row.encoding,
        date_format=row.date_format,
        skip_lines=row.skip_lines,
        has_header=row.has_header,
        column_mapping=ColumnMapping.model_validate(mapping),
        amount_mode=row.amount_mode,
        sign_convention=row.sign_convention,
    )


# ---------------------------------------------------------------------------
# Imported files
# ---------------------------------------------------------------------------


def find_imported_file(
    session: Session, *, file_hash: str, source_id: int | None = None
) -> int | None:
    """Id of a previous import of a file with ``file_hash`` (optionally for one source)."""

    stmt = select(ImportedFile.id).where(ImportedFile.file_hash == file_hash)
    if source_id is not None:
        stmt = stmt.where(ImportedFile.source_id == source_id)
    return session.scalars(stmt.order_by(ImportedFile.id)).first()


def record_imported_file(
    session: Session,
    *,
    source_id: int,
    filename: str,
    file_hash: str,
    row_count: int,
    status: str = "completed",
    notes: str | None = None,
) -> int:
    """Record an import of ``filename``; re-imports of the same bytes update the row."""

    row = session.scalars(
        select(ImportedFile).where(
            ImportedFile.source_id == source_id, ImportedFile.file_hash == file_hash
        )
    ).first()
    if row is None:
        row = ImportedFile(
            source_id=source_id,
            filename=filename,
            file_hash=file_hash,
            row_count=row_count,
            status=status,
            notes=notes,
        )
        session.add(row)
    else:
        row.filename = filename
        row.row_count = row_count
        row.status = status
        row.notes = notes
        row.import_date = datetime.now(timezone.utc)
    session.flush()
    return row.id


__all__ = [
    "find_existing_transactions",
    "insert_transactions",
    "load_active_keywords",
    "get_source_id",
    "save_source_config",
    "load_source_config",
    "find_imported_file",
    "record_imported_file",
]
