"""End-to-end import workflow: CSV files → staged rows → confirmation → commit.

``import_from_csv`` is what the CLI's ``import`` command runs. It loads the
household snapshots from the backend, stages the files, asks ``confirm``
(when given) and commits through an :class:`ImportOrchestrator`.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from uuid import UUID

from ..backend import HouseholdBackend, SqlAlchemyBackend
from ..categories import ColorSource
from ..export import write_failed_rows
from ..logging_setup import get_logger
from ..models import Category, ImportResult, ImportSummary, Member
from ..orchestrator import Clock, ImportOrchestrator
from ..staging import StagedImport, parse_and_validate

logger = get_logger("household_import.workflows.import_flow")


@dataclass(frozen=True, slots=True)
class ImportOutcome:
    """What one run of the workflow produced.

    ``result`` is ``None`` when nothing was committed (no importable rows, or
    the user declined). ``failed_rows_written`` is ``None`` when no
    failed-rows file was requested.
    """

    staged: StagedImport
    result: ImportResult | None
    failed_rows_written: int | None = None

    @property
    def committed(self) -> bool:
        return self.result is not None


def current_member_for(members: list[Member], user_id: UUID | None) -> UUID | None:
    """Return the active member linked to ``user_id``, if any."""

    if user_id is None:
        return None
    for m in members:
        if m.user_id == user_id and m.is_active:
            return m.id
    return None


def stage_from_csv(
    csv_path: str | PathLike[str],
    *,
    existing_categories: list[Category],
    existing_members: list[Member],
    splits_path: str | PathLike[str] | None = None,
    current_user_id: UUID | None = None,
) -> StagedImport:
    """Read the files and validate them against the given snapshots."""

    primary = Path(csv_path).read_bytes()
    splits = Path(splits_path).read_bytes() if splits_path is not None else None
    return parse_and_validate(
        primary,
        splits,
        existing_categories=existing_categories,
        existing_members=existing_members,
        current_user_id=current_user_id,
    )


def import_from_csv(
    csv_path: str | PathLike[str],
    *,
    household_id: UUID,
    current_user_id: UUID | None = None,
    splits_path: str | PathLike[str] | None = None,
    backend: HouseholdBackend | None = None,
    database_url: str | None = None,
    confirm: Callable[[ImportSummary], bool] | None = None,
    failed_out: str | PathLike[str] | None = None,
    on_progress: Callable[[str], None] | None = None,
    color_source: ColorSource | None = None,
    clock: Clock | None = None,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
) -> ImportOutcome:
    """End-to-end: CSV → validated rows → (confirm) → commit → failed-rows CSV.

    Parameters
    ----------
    csv_path / splits_path:
        The transactions file and the optional per-member splits file.
    household_id / current_user_id:
        Target household and the acting user. The user's member record is the
        default payer for rows without a matched "Paid By".
    backend:
        Backend to use; defaults to :class:`SqlAlchemyBackend` on
        ``database_url`` (or ``DATABASE_URL``).
    confirm:
        Called with the summary before committing; returning ``False`` stops
        the run. ``None`` commits without asking.
    failed_out:
        When set, rows that did not fully succeed are written there as CSV
        (validation failures, and commit failures when a commit happened).
    on_progress:
        Optional callable receiving short status lines (e.g., ``print``).
    """

    backend = backend or SqlAlchemyBackend(database_url)
    members = backend.fetch_members(household_id)
    categories = backend.fetch_categories(household_id)

    staged = stage_from_csv(
        csv_path,
        existing_categories=categories,
        existing_members=members,
        splits_path=splits_path,
        current_user_id=current_user_id,
    )
    summary = staged.summary
    if on_progress:
        on_progress(
            f"Validated {summary.total_rows} row(s): {summary.importable_rows} importable, "
            f"{summary.invalid_rows} invalid."
        )

    result: ImportResult | None = None
    if not summary.can_import_valid:
        if on_progress:
            on_progress("No valid transactions to import.")
    elif confirm is not None and not confirm(summary):
        if on_progress:
            on_progress("Import cancelled.")
    else:
        orchestrator = ImportOrchestrator(
            backend, color_source=color_source, clock=clock, max_workers=max_workers
        )
        result = orchestrator.commit(
            staged.rows,
            household_id=household_id,
            summary=summary,
            existing_categories=categories,
            existing_members=members,
            current_member_id=current_member_for(members, current_user_id),
            current_user_id=current_user_id,
            split_rows=staged.split_rows,
            cancel_event=cancel_event,
        )
        if on_progress:
            on_progress(
                f"Imported {result.success_count} transaction(s); {result.failed_count} failed."
            )

    written: int | None = None
    if failed_out is not None:
        written = write_failed_rows(failed_out, staged.rows, staged.header, result=result)
        if on_progress:
            on_progress(f"Wrote {written} row(s) needing attention to {failed_out}.")

    return ImportOutcome(staged=staged, result=result, failed_rows_written=written)


__all__ = ["ImportOutcome", "current_member_for", "import_from_csv", "stage_from_csv"]
