from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: categories / suppliers / keywords
# ---------------------------


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Optional parent for two-level taxonomies; depth is enforced by the seeder.
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Supplier(Base):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Keyword(Base):
    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword: Mapped[str] = mapped_column(String, nullable=False)
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id"), nullable=False
    )
    supplier_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("suppliers.id"), nullable=True
    )
    # Higher priority wins; ties keep insertion (id) order.
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (Index("ix_keywords_active_priority", "is_active", "priority"),)


# ---------------------------
# Import bookkeeping: sources / files
# ---------------------------


class ImportSource(Base):
    __tablename__ = "import_sources"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    delimiter: Mapped[str] = mapped_column(String(1), nullable=False, default=";")
    encoding: Mapped[str] = mapped_column(String, nullable=False, default="utf-8")
    date_format: Mapped[str] = mapped_column(String, nullable=False, default="DD/MM/YYYY")
    skip_lines: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    has_header: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    column_mapping: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    amount_mode: Mapped[str] = mapped_column(String, nullable=False, default="single")
    sign_convention: Mapped[str] = mapped_column(
        String, nullable=False, default="negative_expense"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )

    __table_args__ = (
        CheckConstraint("amount_mode in ('single','debit_credit')", name="ck_src_amount_mode"),
        CheckConstraint(
            "sign_convention in ('negative_expense','positive_expense')",
            name="ck_src_sign_convention",
        ),
    )


class ImportedFile(Base):
    __tablename__ = "imported_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("import_sources.id"), nullable=False
    )
    filename: Mapped[str] = mapped_column(Text, nullable=False)
    file_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    import_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )
    row_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("source_id", "file_hash", name="uq_imported_files_source_hash"),
        CheckConstraint("status in ('completed','error')", name="ck_imported_files_status"),
    )


# ---------------------------
# Core: transactions
# ---------------------------


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Canonical YYYY-MM-DD string; duplicate matching compares it verbatim.
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    source_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("import_sources.id"), nullable=True
    )
    file_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("imported_files.id"), nullable=True
    )
    original_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id"), nullable=True
    )
    supplier_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("suppliers.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )

    __table_args__ = (Index("ix_transactions_fingerprint", "description", "date", "amount"),)


__all__ = [
    "Base",
    "Category",
    "Supplier",
    "Keyword",
    "ImportSource",
    "ImportedFile",
    "Transaction",
]
