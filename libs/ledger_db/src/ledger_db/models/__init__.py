"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger models used by ``statement_ingest``.
"""

from .ledger import Base, Category, ImportedFile, ImportSource, Keyword, Supplier, Transaction

__all__ = [
    "Base",
    "Category",
    "Supplier",
    "Keyword",
    "ImportSource",
    "ImportedFile",
    "Transaction",
]
