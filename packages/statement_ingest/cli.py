"""CLI for the ``statement_ingest`` package.

This module exposes callable command handlers (``cmd_detect``,
``cmd_preview``, ``cmd_import`` ...) returning a process exit code, and a
Typer-based console interface wrapping them. ``DATABASE_URL`` and
``STATEMENT_INGEST_LOG_LEVEL`` may come from a local ``.env`` loaded with
``python-dotenv`` in the root callback. Business logic lives in
``statement_ingest.api`` and the modules it re-exports.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from typer.models import OptionInfo

from .logging_setup import configure_logging
from .models import ParsedRow, SourceConfig


def _err(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _read_config(path: Path) -> SourceConfig:
    return SourceConfig.model_validate_json(path.read_text(encoding="utf-8"))


def _format_row(row: ParsedRow) -> str:
    if row.parsed_value is None:
        return f"{row.row_index}\tERROR\t{row.error_message}"
    v = row.parsed_value
    return f"{row.row_index}\t{v.date}\t{v.description}\t{v.amount:.2f}"


# ---- Command handlers ---------------------------------------------------------


def cmd_detect(csv_path: str, *, encoding: str = "utf-8") -> int:
    """Print the configuration suggested for ``csv_path`` as JSON.

    Returns ``1`` with an ``Error:`` line on stderr when the file cannot be
    read or no usable layout is found.
    """

    from .detect import detect_config
    from .errors import DetectionError
    from .workflows.import_flow import StatementFile

    try:
        text = StatementFile.from_path(csv_path).text(encoding)
    except OSError as e:
        return _err(f"cannot read {csv_path}: {e}")
    except LookupError as e:
        return _err(f"unknown encoding {encoding!r}: {e}")

    try:
        config = detect_config(text).with_updates(encoding=encoding)
    except DetectionError as e:
        return _err(f"auto-detection failed ({e.reason}); configure the columns manually")

    print(config.model_dump_json(indent=2))
    return 0


def cmd_preview(
    csv_paths: Sequence[str],
    *,
    config_path: str | None = None,
    auto_detect: bool = False,
) -> int:
    """Print one tab-separated line per parsed row of every file.

    Lines are ``<row_index>\\t<date>\\t<description>\\t<amount>`` for parsed
    rows and ``<row_index>\\tERROR\\t<tag>`` for rows that failed.
    """

    from .errors import DetectionError
    from .workflows.import_flow import ImportSession, StatementFile

    if (config_path is None) == (not auto_detect):
        return _err("pass exactly one of --config or --auto-detect")

    try:
        files = [StatementFile.from_path(p) for p in csv_paths]
        flow = ImportSession(files)
        if config_path is not None:
            flow.configure(_read_config(Path(config_path)))
        else:
            flow.auto_detect()
        rows = flow.preview()
    except OSError as e:
        return _err(f"cannot read input: {e}")
    except ValidationError as e:
        return _err(f"invalid config {config_path}: {e}")
    except DetectionError as e:
        return _err(f"auto-detection failed ({e.reason})")
    except (LookupError, ValueError) as e:
        return _err(str(e))

    for row in rows:
        print(_format_row(row))
    return 0


def cmd_import(
    csv_paths: Sequence[str],
    *,
    source: str,
    config_path: str | None = None,
    auto_detect: bool = False,
    include_duplicates: bool = False,
    database_url: str | None = None,
) -> int:
    """Import statement files for ``source`` and print the import report."""

    from ledger_db.client import session_scope

    from .errors import DetectionError
    from .workflows.import_flow import import_files

    if config_path is not None and auto_detect:
        return _err("--config and --auto-detect are mutually exclusive")

    try:
        config = _read_config(Path(config_path)) if config_path is not None else None
        with session_scope(database_url=database_url) as session:
            report = import_files(
                session,
                csv_paths,
                source_name=source,
                config=config,
                auto_detect=auto_detect,
                include_duplicates=include_duplicates,
            )
    except OSError as e:
        return _err(f"cannot read input: {e}")
    except ValidationError as e:
        return _err(f"invalid config {config_path}: {e}")
    except DetectionError as e:
        return _err(f"auto-detection failed ({e.reason}); pass --config")
    except SQLAlchemyError as e:
        return _err(f"database error: {e}")
    except (LookupError, RuntimeError, ValueError) as e:
        return _err(str(e))

    print(f"Rows read:          {report.total_rows}")
    print(f"Imported:           {report.imported_count}")
    print(f"Skipped duplicates: {report.skipped_duplicates}")
    print(f"Errors:             {report.error_count}")
    print(f"Categorized:        {report.categorized_count}")
    print(f"Uncategorized:      {report.uncategorized_count}")
    for row_index, message in report.errors:
        print(f"  row {row_index}: {message}")
    return 0


def cmd_init_db(*, database_url: str | None = None) -> int:
    from ledger_db.client import create_schema

    try:
        create_schema(database_url=database_url)
    except SQLAlchemyError as e:
        return _err(f"database error: {e}")
    except RuntimeError as e:
        return _err(str(e))
    print("Schema ready.")
    return 0


def cmd_seed_keywords(*, file: str | None = None, database_url: str | None = None) -> int:
    from .ingest.seed_keywords import DEFAULT_SEED_FILE, reseed_keywords

    path = Path(file) if file else DEFAULT_SEED_FILE
    try:
        counts = reseed_keywords(database_url=database_url, file=path)
    except OSError as e:
        return _err(f"cannot read seed file {path}: {e}")
    except SQLAlchemyError as e:
        return _err(f"database error: {e}")
    except (RuntimeError, ValueError, KeyError) as e:
        return _err(f"seeding failed: {e}")
    print(
        f"Seeded {counts.categories} categories, {counts.suppliers} suppliers, "
        f"{counts.keywords} keywords."
    )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank/card statement CSV exports into the ledger database. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a statement CSV export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
CSV_PATHS_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Statement CSV export(s); repeat for several files from one source",
    dir_okay=False,
    file_okay=True,
    exists=False,
)


@app.command("detect")
def detect_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    *,
    encoding: str = typer.Option("utf-8", help="Text encoding of the file."),
) -> None:
    """Suggest a source configuration for a statement file."""

    raise typer.Exit(cmd_detect(str(csv_path), encoding=encoding))


@app.command("preview")
def preview_cmd(
    csv_paths: Annotated[list[Path], CSV_PATHS_OPTION],
    *,
    config: Path | None = typer.Option(
        None, "--config", help="Path to a SourceConfig JSON file (as printed by `detect`)."
    ),
    auto_detect: bool = typer.Option(False, help="Detect the configuration from the first file."),
) -> None:
    """Parse files and print one line per row without touching the database."""

    raise typer.Exit(
        cmd_preview(
            [str(p) for p in csv_paths],
            config_path=str(config) if config is not None else None,
            auto_detect=auto_detect,
        )
    )


@app.command("import")
def import_cmd(
    csv_paths: Annotated[list[Path], CSV_PATHS_OPTION],
    *,
    source: str = typer.Option(..., help="Import source name (saved with its config)."),
    config: Path | None = typer.Option(
        None, "--config", help="Path to a SourceConfig JSON file (as printed by `detect`)."
    ),
    auto_detect: bool = typer.Option(
        False, help="Detect the configuration even when one is saved for the source."
    ),
    include_duplicates: bool = typer.Option(
        False, help="Import rows flagged as duplicates instead of skipping them."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Import statement files, skipping duplicates, and print a report."""

    raise typer.Exit(
        cmd_import(
            [str(p) for p in csv_paths],
            source=source,
            config_path=str(config) if config is not None else None,
            auto_detect=auto_detect,
            include_duplicates=include_duplicates,
            database_url=database_url,
        )
    )


@app.command("init-db")
def init_db_cmd(
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Create the ledger tables that do not exist yet."""

    raise typer.Exit(cmd_init_db(database_url=database_url))


@app.command("seed-keywords")
def seed_keywords_cmd(
    *,
    file: Path | None = typer.Option(None, help="Seed JSON file (defaults to the bundled seed)."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Seed categories, suppliers and keywords (idempotent)."""

    raise typer.Exit(
        cmd_seed_keywords(file=str(file) if file is not None else None, database_url=database_url)
    )


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level for stderr output (default: STATEMENT_INGEST_LOG_LEVEL or WARNING).",
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables), so ``STATEMENT_INGEST_LOG_LEVEL`` may
    come from there, then configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--log-level") from e


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m statement_ingest.cli`
    app()
