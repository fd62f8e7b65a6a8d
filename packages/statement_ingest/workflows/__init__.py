"""Workflow orchestrators composing detection, parsing, duplicates and persistence."""

from .import_flow import ImportReport, ImportSession, ImportStep, StatementFile, import_files

__all__ = ["ImportStep", "StatementFile", "ImportReport", "ImportSession", "import_files"]
