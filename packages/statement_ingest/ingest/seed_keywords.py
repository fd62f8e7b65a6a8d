from __future__ import annotations

# Seeder for categories, suppliers and categorization keywords.
#
# Usage (example):
#   python -m statement_ingest.ingest.seed_keywords \
#     --database-url sqlite:///ledger.db \
#     --file packages/statement_ingest/ingest/seeds/keywords.v1.json
#
# This script:
#   1) Creates missing parent categories, then their children, preserving
#      input order via sort_order.
#   2) Creates missing suppliers (attached to the child category).
#   3) Creates missing keywords; an existing (keyword, category) pair gets its
#      priority, supplier and active flag refreshed.
# Running it twice is a no-op; nothing is deleted.
import argparse
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ledger_db.client import session_scope
from ledger_db.models.ledger import Category, Keyword, Supplier
from sqlalchemy import select
from sqlalchemy.orm import Session

DEFAULT_SEED_FILE = Path(__file__).resolve().parent / "seeds" / "keywords.v1.json"


@dataclass(slots=True)
class SeedCounts:
    categories: int = 0
    suppliers: int = 0
    keywords: int = 0


def load_seed(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Seed JSON must be a list of parent categories")
    return data


def _get_or_create_category(
    session: Session, *, name: str, parent_id: int | None, sort_order: int, counts: SeedCounts
) -> Category:
    stmt = select(Category).where(Category.name == name)
    stmt = stmt.where(
        Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
    )
    row = session.scalars(stmt).first()
    if row is None:
        row = Category(name=name, parent_id=parent_id, is_active=True, sort_order=sort_order)
        session.add(row)
        session.flush()
        counts.categories += 1
    return row


def _get_or_create_supplier(
    session: Session, *, name: str, category_id: int, counts: SeedCounts
) -> Supplier:
    row = session.scalars(select(Supplier).where(Supplier.name == name)).first()
    if row is None:
        row = Supplier(name=name, category_id=category_id, is_active=True)
        session.add(row)
        session.flush()
        counts.suppliers += 1
    return row


def _upsert_keyword(
    session: Session,
    *,
    entry: dict[str, Any],
    category_id: int,
    supplier_id: int | None,
    counts: SeedCounts,
) -> None:
    text = str(entry.get("keyword") or "").strip()
    if not text:
        raise ValueError(f"keyword entry without text: {entry!r}")
    priority = int(entry.get("priority") or 0)
    is_active = bool(entry.get("is_active", True))

    row = session.scalars(
        select(Keyword).where(Keyword.keyword == text, Keyword.category_id == category_id)
    ).first()
    if row is None:
        session.add(
            Keyword(
                keyword=text,
                category_id=category_id,
                supplier_id=supplier_id,
                priority=priority,
                is_active=is_active,
            )
        )
        counts.keywords += 1
    else:
        row.priority = priority
        row.supplier_id = supplier_id
        row.is_active = is_active


def seed_keywords(session: Session, data: list[dict[str, Any]]) -> SeedCounts:
    """Insert the two-level category tree with its suppliers and keywords."""

    counts = SeedCounts()
    for parent_index, parent in enumerate(data):
        parent_row = _get_or_create_category(
            session,
            name=str(parent["name"]),
            parent_id=None,
            sort_order=parent_index * 100,
            counts=counts,
        )
        for child_index, child in enumerate(parent.get("children", []) or []):
            child_row = _get_or_create_category(
                session,
                name=str(child["name"]),
                parent_id=parent_row.id,
                sort_order=parent_index * 100 + child_index + 1,
                counts=counts,
            )
            for entry in child.get("keywords", []) or []:
                supplier_id: int | None = None
                if entry.get("supplier"):
                    supplier_id = _get_or_create_supplier(
                        session,
                        name=str(entry["supplier"]),
                        category_id=child_row.id,
                        counts=counts,
                    ).id
                _upsert_keyword(
                    session,
                    entry=entry,
                    category_id=child_row.id,
                    supplier_id=supplier_id,
                    counts=counts,
                )
    session.flush()
    return counts


def reseed_keywords(*, database_url: str | None, file: Path = DEFAULT_SEED_FILE) -> SeedCounts:
    data = load_seed(file)
    with session_scope(database_url=database_url) as session:
        return seed_keywords(session, data)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        description="Seed categories, suppliers and categorization keywords",
    )
    ap.add_argument(
        "--database-url",
        required=False,
        default=None,
        help=("SQLAlchemy database URL; falls back to $DATABASE_URL when not set"),
    )
    ap.add_argument("--file", type=Path, required=False, default=DEFAULT_SEED_FILE)
    args = ap.parse_args(argv)

    db_url: str | None = args.database_url or None
    counts = reseed_keywords(database_url=db_url, file=args.file)
    print(
        f"Seeded {counts.categories} categories, {counts.suppliers} suppliers, "
        f"{counts.keywords} keywords."
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - manual utility
    raise SystemExit(main())
