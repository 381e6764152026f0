"""CLI for the ``household_import`` package.

This module exposes callable command handlers (``cmd_validate``,
``cmd_import`` and friends) and a Typer-based console interface. Environment
variables (notably ``DATABASE_URL``) are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic. Handlers print
``Error: ...`` to stderr and return a non-zero exit code instead of raising.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated
from uuid import UUID

import typer
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from typer.models import OptionInfo

from .backend import SqlAlchemyBackend
from .errors import HouseholdImportError, ParseError
from .export import write_failed_rows
from .logging_setup import configure_logging
from .models import ImportSummary
from .term_ui import confirm_import, format_result, format_row_messages, format_summary
from .workflows.import_flow import import_from_csv, stage_from_csv

# ---- Command handlers ---------------------------------------------------------


def _read_error(path: Path, exc: Exception) -> int:
    if isinstance(exc, FileNotFoundError):
        print(f"Error: File not found: {path}", file=sys.stderr)
    elif isinstance(exc, PermissionError):
        print(f"Error: Permission denied: {path}", file=sys.stderr)
    elif isinstance(exc, ParseError):
        print(f"Error: Failed to parse CSV: {exc}", file=sys.stderr)
    else:
        print(f"Error: Unexpected failure reading '{path}': {exc}", file=sys.stderr)
    return 1


def cmd_init_db(*, database_url: str | None = None) -> int:
    """Create the household tables for ``database_url`` (or ``DATABASE_URL``)."""

    from db.client import create_all  # local import keeps --help fast

    try:
        create_all(database_url=database_url)
    except (RuntimeError, SQLAlchemyError) as e:
        print(f"Error: failed to initialize database: {e}", file=sys.stderr)
        return 1
    print("Database initialized.")
    return 0


def cmd_validate(
    csv_path: Path,
    *,
    household_id: UUID,
    user_id: UUID | None = None,
    splits_path: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Validate a transactions CSV and print the summary plus per-row messages.

    Returns ``1`` when any row is invalid or the files cannot be read.
    """

    backend = SqlAlchemyBackend(database_url)
    try:
        categories = backend.fetch_categories(household_id)
        members = backend.fetch_members(household_id)
    except (RuntimeError, SQLAlchemyError) as e:
        print(f"Error: failed to load household data: {e}", file=sys.stderr)
        return 1

    try:
        staged = stage_from_csv(
            csv_path,
            existing_categories=categories,
            existing_members=members,
            splits_path=splits_path,
            current_user_id=user_id,
        )
    except (OSError, ParseError) as e:
        return _read_error(csv_path, e)

    print(format_summary(staged.summary))
    messages = format_row_messages(staged.rows, staged.split_rows)
    if messages:
        print(messages)
    return 0 if staged.summary.can_import_all else 1


def cmd_import(
    csv_path: Path,
    *,
    household_id: UUID,
    user_id: UUID | None = None,
    splits_path: Path | None = None,
    database_url: str | None = None,
    yes: bool = False,
    failed_out: Path | None = None,
    max_workers: int | None = None,
) -> int:
    """Validate, confirm and commit a transactions CSV.

    Returns ``0`` when every importable row was committed (or the user
    declined), ``1`` otherwise.
    """

    def _confirm(summary: ImportSummary) -> bool:
        print(format_summary(summary))
        if yes:
            return True
        return confirm_import(summary)

    try:
        outcome = import_from_csv(
            csv_path,
            household_id=household_id,
            current_user_id=user_id,
            splits_path=splits_path,
            database_url=database_url,
            confirm=_confirm,
            failed_out=failed_out,
            on_progress=print,
            max_workers=max_workers,
        )
    except (OSError, ParseError) as e:
        return _read_error(csv_path, e)
    except (RuntimeError, SQLAlchemyError, HouseholdImportError) as e:
        print(f"Error: import failed: {e}", file=sys.stderr)
        return 1

    invalid = [r for r in outcome.staged.rows if r.has_errors]
    if invalid:
        print(format_row_messages(invalid), file=sys.stderr)

    if outcome.result is None:
        return 0 if outcome.staged.summary.can_import_valid else 1
    print(format_result(outcome.result))
    return 0 if outcome.result.is_fully_successful else 1


def cmd_export_failed(
    csv_path: Path,
    *,
    out: Path,
    household_id: UUID,
    user_id: UUID | None = None,
    splits_path: Path | None = None,
    database_url: str | None = None,
) -> int:
    """Write the rows that would not import cleanly to ``out`` without committing."""

    backend = SqlAlchemyBackend(database_url)
    try:
        categories = backend.fetch_categories(household_id)
        members = backend.fetch_members(household_id)
    except (RuntimeError, SQLAlchemyError) as e:
        print(f"Error: failed to load household data: {e}", file=sys.stderr)
        return 1

    try:
        staged = stage_from_csv(
            csv_path,
            existing_categories=categories,
            existing_members=members,
            splits_path=splits_path,
            current_user_id=user_id,
        )
    except (OSError, ParseError) as e:
        return _read_error(csv_path, e)

    try:
        count = write_failed_rows(out, staged.rows, staged.header)
    except OSError as e:
        print(f"Error: failed to write '{out}': {e}", file=sys.stderr)
        return 1
    print(f"Wrote {count} row(s) to {out}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Bulk-import household transactions from CSV. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
CSV_PATH_ARGUMENT = typer.Argument(
    ...,
    help="Path to the transactions CSV file",
    dir_okay=False,
    file_okay=True,
    exists=False,  # allow non-existent here; the handler will report nice errors
)
HOUSEHOLD_OPTION: OptionInfo = typer.Option(..., "--household-id", help="Target household id.")
USER_OPTION: OptionInfo = typer.Option(
    "--user-id", help="Acting user id; their member is the default payer."
)
SPLITS_OPTION: OptionInfo = typer.Option(
    "--splits", help="Optional per-member splits CSV.", dir_okay=False
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("init-db")
def init_db_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Create the household tables."""

    _exit(cmd_init_db(database_url=database_url))


@app.command("validate")
def validate_cmd(
    csv_path: Annotated[Path, CSV_PATH_ARGUMENT],
    household_id: Annotated[UUID, HOUSEHOLD_OPTION],
    user_id: Annotated[UUID | None, USER_OPTION] = None,
    splits_path: Annotated[Path | None, SPLITS_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Validate a CSV and report per-row errors and warnings."""

    _exit(
        cmd_validate(
            csv_path,
            household_id=household_id,
            user_id=user_id,
            splits_path=splits_path,
            database_url=database_url,
        )
    )


@app.command("import")
def import_cmd(
    csv_path: Annotated[Path, CSV_PATH_ARGUMENT],
    household_id: Annotated[UUID, HOUSEHOLD_OPTION],
    user_id: Annotated[UUID | None, USER_OPTION] = None,
    splits_path: Annotated[Path | None, SPLITS_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    yes: bool = typer.Option(False, "--yes", "-y", help="Commit without asking."),
    failed_out: Path | None = typer.Option(
        None, "--failed-out", help="Write rows that did not fully succeed to this CSV."
    ),
    max_workers: int | None = typer.Option(
        None,
        "--max-workers",
        help="Workers for the first commit pass (env HOUSEHOLD_IMPORT_MAX_WORKERS).",
    ),
) -> None:
    """Validate, confirm and commit a CSV."""

    _exit(
        cmd_import(
            csv_path,
            household_id=household_id,
            user_id=user_id,
            splits_path=splits_path,
            database_url=database_url,
            yes=yes,
            failed_out=failed_out,
            max_workers=max_workers,
        )
    )


@app.command("export-failed")
def export_failed_cmd(
    csv_path: Annotated[Path, CSV_PATH_ARGUMENT],
    household_id: Annotated[UUID, HOUSEHOLD_OPTION],
    out: Path = typer.Option(..., "--out", help="Destination CSV for failed rows."),
    user_id: Annotated[UUID | None, USER_OPTION] = None,
    splits_path: Annotated[Path | None, SPLITS_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Write rows needing attention to a CSV without importing anything."""

    _exit(
        cmd_export_failed(
            csv_path,
            out=out,
            household_id=household_id,
            user_id=user_id,
            splits_path=splits_path,
            database_url=database_url,
        )
    )


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m household_import.cli`
    app()
