"""Public API interfaces for the ``statement_ingest`` package.

This module primarily serves as a stable import surface: detection, parsing,
duplicate detection and categorization live in their own modules and are
re-exported here. The two helpers below cover the common "point at a file"
cases without going through :class:`ImportSession`.
"""

from __future__ import annotations

from collections.abc import Sequence
from os import PathLike

from .categorize import categorize_batch, categorize_description  # noqa: F401  (re-export)
from .detect import detect_config  # noqa: F401  (re-export)
from .duplicates import check_duplicates, compute_file_hash  # noqa: F401  (re-export)
from .models import ParsedRow, SourceConfig
from .parser import parse_tables, parse_texts  # noqa: F401  (re-export)
from .workflows.import_flow import (  # noqa: F401  (re-export)
    ImportReport,
    ImportSession,
    StatementFile,
    import_files,
)


def suggest_config(
    csv_path: str | PathLike[str], *, encoding: str = "utf-8", name: str = ""
) -> SourceConfig:
    """Detect a configuration for one file.

    Raises :class:`~statement_ingest.errors.DetectionError` when the file
    cannot be interpreted.
    """

    text = StatementFile.from_path(csv_path).text(encoding)
    return detect_config(text).with_updates(name=name, encoding=encoding)


def parse_files(
    csv_paths: Sequence[str | PathLike[str]], config: SourceConfig
) -> list[ParsedRow]:
    """Parse files with ``config``; row indices run densely across all files."""

    texts = [StatementFile.from_path(p).text(config.encoding) for p in csv_paths]
    return list(parse_texts(texts, config))


__all__ = [
    "detect_config",
    "suggest_config",
    "parse_tables",
    "parse_texts",
    "parse_files",
    "check_duplicates",
    "compute_file_hash",
    "categorize_batch",
    "categorize_description",
    "ImportSession",
    "ImportReport",
    "StatementFile",
    "import_files",
]
