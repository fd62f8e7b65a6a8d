"""Headless import wizard: configure → preview → duplicate check → confirm → import.

:class:`ImportSession` walks the same states an interactive wizard would, so
the CLI and tests drive imports through one code path. Every derived view
(parsed rows, duplicate report) is recomputed from scratch when an earlier
step changes; nothing is patched incrementally.

:func:`import_files` runs the whole sequence in one call.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from os import PathLike
from pathlib import Path

from sqlalchemy.orm import Session

from ..categorize import categorize_batch
from ..detect import detect_config
from ..duplicates import DuplicateReport, check_duplicates, compute_file_hash
from ..logging_setup import get_logger
from ..models import ParsedRow, SourceConfig
from ..parser import load_table, parse_tables
from ..persistence import (
    find_existing_transactions,
    find_imported_file,
    get_source_id,
    insert_transactions,
    load_active_keywords,
    load_source_config,
    record_imported_file,
    save_source_config,
)

_logger = get_logger("statement_ingest.workflows.import_flow")


class ImportStep(StrEnum):
    SOURCE_LIST = "source_list"
    SOURCE_CONFIG = "source_config"
    PREVIEW = "preview"
    DUPLICATE_CHECK = "duplicate_check"
    CONFIRM = "confirm"
    IMPORTING = "importing"
    REPORT = "report"


@dataclass(frozen=True, slots=True)
class StatementFile:
    """One selected statement file, held as raw bytes until a config decodes it."""

    filename: str
    data: bytes

    @classmethod
    def from_path(cls, path: str | PathLike[str]) -> StatementFile:
        p = Path(path)
        return cls(filename=p.name, data=p.read_bytes())

    @property
    def file_hash(self) -> str:
        return compute_file_hash(self.data)

    def text(self, encoding: str = "utf-8") -> str:
        # ``utf-8-sig`` drops a leading BOM; undecodable bytes become U+FFFD.
        is_utf8 = encoding.replace("_", "-").lower() in ("utf-8", "utf8")
        codec = "utf-8-sig" if is_utf8 else encoding
        return self.data.decode(codec, errors="replace")


@dataclass(slots=True)
class ImportReport:
    total_rows: int = 0
    imported_count: int = 0
    skipped_duplicates: int = 0
    error_count: int = 0
    categorized_count: int = 0
    uncategorized_count: int = 0
    errors: list[tuple[int, str]] = field(default_factory=list)
    source_id: int | None = None
    file_ids: list[int] = field(default_factory=list)


class ImportSession:
    """State machine for one import of one or more files from a single source.

    Transitions must be called in order; calling one from the wrong step
    raises :class:`RuntimeError`. ``configure`` and ``auto_detect`` may be
    repeated while still configuring; ``preview`` may be repeated after a
    reconfiguration.
    """

    def __init__(self, files: Sequence[StatementFile]) -> None:
        if not files:
            raise ValueError("at least one statement file is required")
        self.files: tuple[StatementFile, ...] = tuple(files)
        self.step: ImportStep = ImportStep.SOURCE_LIST
        self.config: SourceConfig | None = None
        self.rows: list[ParsedRow] = []
        self.duplicates: DuplicateReport | None = None
        self.excluded: set[int] = set()
        self.report: ImportReport | None = None
        self._row_file: list[int] = []

    # ---- helpers ---------------------------------------------------------

    def _require(self, *steps: ImportStep) -> None:
        if self.step not in steps:
            allowed = ", ".join(s.value for s in steps)
            raise RuntimeError(
                f"cannot run this step from {self.step.value!r} (expected {allowed})"
            )

    def _current_config(self) -> SourceConfig:
        if self.config is None:
            raise RuntimeError("no source configuration set")
        return self.config

    def _current_duplicates(self) -> DuplicateReport:
        if self.duplicates is None:
            raise RuntimeError("duplicate check has not run")
        return self.duplicates

    def _reset_derived(self) -> None:
        self.rows = []
        self._row_file = []
        self.duplicates = None
        self.excluded = set()
        self.report = None

    @property
    def error_rows(self) -> list[ParsedRow]:
        return [r for r in self.rows if r.error_message is not None]

    # ---- transitions -----------------------------------------------------

    def configure(self, config: SourceConfig) -> SourceConfig:
        self._require(ImportStep.SOURCE_LIST, ImportStep.SOURCE_CONFIG, ImportStep.PREVIEW)
        self.config = config
        self._reset_derived()
        self.step = ImportStep.SOURCE_CONFIG
        return config

    def auto_detect(self) -> SourceConfig:
        """Replace every inferred field with what the first file suggests.

        ``name`` and ``encoding`` of the current config (if any) are kept.
        Raises :class:`~statement_ingest.errors.DetectionError` when the first
        file cannot be interpreted; the current config is left untouched.
        """

        self._require(ImportStep.SOURCE_LIST, ImportStep.SOURCE_CONFIG, ImportStep.PREVIEW)
        encoding = self.config.encoding if self.config is not None else "utf-8"
        suggested = detect_config(self.files[0].text(encoding), base=self.config)
        return self.configure(suggested)

    def preview(self) -> list[ParsedRow]:
        self._require(ImportStep.SOURCE_CONFIG, ImportStep.PREVIEW)
        config = self._current_config()

        self._reset_derived()
        rows: list[ParsedRow] = []
        row_file: list[int] = []
        for file_pos, f in enumerate(self.files):
            table = load_table(f.text(config.encoding), config)
            offset = len(rows)
            for row in parse_tables([table], config):
                rows.append(replace(row, row_index=row.row_index + offset))
                row_file.append(file_pos)
        self.rows = rows
        self._row_file = row_file
        self.step = ImportStep.PREVIEW
        _logger.info(
            "previewed %d row(s) from %d file(s): %d error(s)",
            len(rows),
            len(self.files),
            len(self.error_rows),
            extra={"source": config.name or None, "rows": len(rows)},
        )
        return rows

    def check_duplicates(self, session: Session) -> DuplicateReport:
        self._require(ImportStep.PREVIEW)
        config = self._current_config()

        source_id = get_source_id(session, config.name) if config.name else None
        report = check_duplicates(
            self.rows,
            lambda fps: find_existing_transactions(session, fps),
            file_hash=self.files[0].file_hash,
            file_lookup=lambda h: find_imported_file(session, file_hash=h, source_id=source_id),
        )
        self.duplicates = report
        self.excluded = set()
        self.step = ImportStep.DUPLICATE_CHECK
        _logger.info(
            "duplicate check: %d candidate(s), %d duplicate(s), file already imported=%s",
            len(report.candidates),
            len(report.duplicate_rows),
            report.file_already_imported,
            extra={"source": config.name or None},
        )
        return report

    def confirm(self, exclude: Iterable[int] | None = None) -> list[ParsedRow]:
        """Fix the set of rows to import.

        ``exclude`` holds :attr:`ParsedRow.row_index` values; the default
        excludes every flagged duplicate. Returns the rows that will be
        imported, in order.
        """

        self._require(ImportStep.DUPLICATE_CHECK, ImportStep.CONFIRM)
        duplicates = self._current_duplicates()
        self.excluded = duplicates.duplicate_row_indices if exclude is None else set(exclude)
        self.step = ImportStep.CONFIRM
        return self.selected_rows

    @property
    def selected_rows(self) -> list[ParsedRow]:
        if self.duplicates is None:
            return []
        return [r for r in self.duplicates.candidates if r.row_index not in self.excluded]

    def execute(self, session: Session) -> ImportReport:
        """Persist the confirmed rows and produce the report.

        Saves the source config, records each file, categorizes the rows
        with the active keywords and inserts them in one batch per file. Store
        errors propagate; the caller's session scope rolls everything back and
        the session returns to the confirm step.
        """

        self._require(ImportStep.CONFIRM)
        config = self._current_config()
        duplicates = self._current_duplicates()
        self.step = ImportStep.IMPORTING

        try:
            report = self._persist(session, config, duplicates)
        except Exception:
            self.step = ImportStep.CONFIRM
            raise

        self.report = report
        self.step = ImportStep.REPORT
        _logger.info(
            "imported %d row(s) (%d duplicate(s) skipped, %d error(s), %d categorized)",
            report.imported_count,
            report.skipped_duplicates,
            report.error_count,
            report.categorized_count,
            extra={"source": config.name, "rows": report.imported_count},
        )
        return report

    def _persist(
        self, session: Session, config: SourceConfig, duplicates: DuplicateReport
    ) -> ImportReport:
        source_id = save_source_config(session, config)
        selected = self.selected_rows
        results = categorize_batch(
            [r.parsed_value.description for r in selected if r.parsed_value is not None],
            load_active_keywords(session),
        )

        report = ImportReport(
            total_rows=len(self.rows),
            skipped_duplicates=len(duplicates.duplicate_row_indices & self.excluded),
            error_count=len(self.error_rows),
            errors=[(r.row_index, r.error_message) for r in self.error_rows if r.error_message],
            source_id=source_id,
        )

        by_file: dict[int, list[int]] = {pos: [] for pos in range(len(self.files))}
        for i, row in enumerate(selected):
            by_file[self._row_file[row.row_index]].append(i)

        for file_pos, f in enumerate(self.files):
            picked = by_file[file_pos]
            file_id = record_imported_file(
                session,
                source_id=source_id,
                filename=f.filename,
                file_hash=f.file_hash,
                row_count=len(picked),
            )
            report.file_ids.append(file_id)
            report.imported_count += insert_transactions(
                session,
                rows=[selected[i] for i in picked],
                categories=[results[i] for i in picked],
                source_id=source_id,
                file_id=file_id,
                delimiter=config.delimiter,
            )

        report.categorized_count = sum(1 for r in results if r.category_id is not None)
        report.uncategorized_count = len(results) - report.categorized_count
        return report


def import_files(
    session: Session,
    paths: Sequence[str | PathLike[str]],
    *,
    source_name: str,
    config: SourceConfig | None = None,
    auto_detect: bool = False,
    include_duplicates: bool = False,
) -> ImportReport:
    """End-to-end: files → config → parse → duplicate check → import.

    The config is, in order of preference: ``config`` when given, freshly
    detected when ``auto_detect`` is set, the config saved for
    ``source_name``, and finally detection from the first file. It is always
    saved under ``source_name``.
    """

    ses = ImportSession([StatementFile.from_path(p) for p in paths])

    chosen = config
    if chosen is None and not auto_detect:
        chosen = load_source_config(session, source_name)
    if chosen is not None:
        ses.configure(chosen.with_updates(name=source_name))
    else:
        detected = ses.auto_detect()
        ses.configure(detected.with_updates(name=source_name))

    ses.preview()
    report = ses.check_duplicates(session)
    if report.file_already_imported:
        _logger.info(
            "file was already imported; importing rows not flagged as duplicates",
            extra={"source": source_name, "file": ses.files[0].filename},
        )
    ses.confirm(exclude=() if include_duplicates else None)
    return ses.execute(session)


__all__ = ["ImportStep", "StatementFile", "ImportReport", "ImportSession", "import_files"]
