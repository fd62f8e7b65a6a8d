"""Public interface for the ``statement_ingest`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    categorize_batch,
    categorize_description,
    check_duplicates,
    compute_file_hash,
    detect_config,
    import_files,
    parse_files,
    parse_tables,
    parse_texts,
    suggest_config,
)
from .errors import INVALID_AMOUNT, INVALID_DATE, DetectionError
from .models import (
    CategorizationResult,
    ColumnMapping,
    DuplicateMatch,
    Keyword,
    ParsedRow,
    ParsedValue,
    SourceConfig,
)
from .workflows.import_flow import ImportReport, ImportSession, ImportStep, StatementFile

__all__ = [
    # API
    "detect_config",
    "suggest_config",
    "parse_tables",
    "parse_texts",
    "parse_files",
    "check_duplicates",
    "compute_file_hash",
    "categorize_batch",
    "categorize_description",
    "import_files",
    # Workflow
    "ImportSession",
    "ImportStep",
    "ImportReport",
    "StatementFile",
    # Models / types
    "SourceConfig",
    "ColumnMapping",
    "ParsedRow",
    "ParsedValue",
    "DuplicateMatch",
    "Keyword",
    "CategorizationResult",
    # Errors
    "DetectionError",
    "INVALID_DATE",
    "INVALID_AMOUNT",
]
