"""Import orchestrator: commits validated rows to a :class:`HouseholdBackend`.

Commit algorithm
----------------
1. ``creating_categories``: create every name in
   ``summary.new_categories_to_create`` one at a time, extending a working
   ``{lowercased name: id}`` map seeded from the existing categories. A
   failed create is reported and the rows that needed it go uncategorized.
2. Partition the importable rows into reimbursements that reference another
   row and everything else, keeping input order within each group.
3. ``importing_primary``: create the non-reimbursement rows. These rows are
   independent, so they may run on a bounded thread pool; results are applied
   in input order and the pass finishes completely before step 4.
4. ``importing_reimbursements``: create the referencing rows strictly in
   input order. Each looks up the created id of the row it reimburses and
   records its own id, so chains of reimbursements resolve. A missing target
   is reported and the row is still created, unlinked.
5. ``done``: return an :class:`ImportResult`.

Every create call is caught per row; nothing raised by the backend stops the
remaining rows. Effects already committed are never rolled back.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from types import MappingProxyType
from uuid import UUID

from .backend import HouseholdBackend
from .categories import DEFAULT_ICON, ColorSource, name_key, random_color_source
from .errors import ImportInProgressError, ReferenceUnresolvedError
from .logging_setup import get_logger
from .matching import category_index
from .models import (
    Category,
    ImportResult,
    ImportRow,
    ImportSplitRow,
    ImportSummary,
    Member,
    PaidByType,
    SplitType,
    TransactionType,
)
from .pmap import p_map, resolve_max_workers
from .splits import build_member_splits, group_by_transaction_row

logger = get_logger("household_import.orchestrator")

NO_VALID_ROWS = "No valid transactions to import"
CANCELLED = "skipped, import cancelled"

type Clock = Callable[[], date]


class ImportState(StrEnum):
    IDLE = "idle"
    CREATING_CATEGORIES = "creating_categories"
    IMPORTING_PRIMARY = "importing_primary"
    IMPORTING_REIMBURSEMENTS = "importing_reimbursements"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class _CommitContext:
    """Read-only inputs shared by every row of one commit."""

    household_id: UUID
    today: date
    category_map: Mapping[str, UUID]
    members: Mapping[UUID, Member]
    splits: Mapping[int, list[ImportSplitRow]]
    current_member_id: UUID | None
    current_user_id: UUID | None
    cancel_event: threading.Event | None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass(frozen=True, slots=True)
class _RowOutcome:
    row: ImportRow
    transaction_id: UUID | None = None
    error: str | None = None
    skipped: bool = False


class _Ledger:
    """Mutable tallies for one commit; only touched from the committing thread."""

    def __init__(self) -> None:
        self.success = 0
        self.failed = 0
        self.errors: list[str] = []
        self.failed_rows: list[int] = []
        self.created: dict[int, UUID] = {}
        self.row_errors: dict[int, str] = {}
        self.cancelled = False

    def record(self, outcome: _RowOutcome, csv_row_to_transaction_id: dict[int, UUID]) -> None:
        row = outcome.row
        if outcome.transaction_id is not None:
            self.success += 1
            self.created[row.row_number] = outcome.transaction_id
            if row.parsed_csv_row is not None:
                csv_row_to_transaction_id[row.parsed_csv_row] = outcome.transaction_id
            return
        self.failed += 1
        self.failed_rows.append(row.row_number)
        self.row_errors[row.row_number] = outcome.error or ""
        self.errors.append(f"Row {row.row_number}: {outcome.error}")
        if outcome.skipped:
            self.cancelled = True


class ImportOrchestrator:
    """Commits validated rows through ``backend``.

    Parameters
    ----------
    backend:
        The create/read collaborator.
    color_source:
        Callable returning a color for each created category. Defaults to a
        random pick from the category palette.
    clock:
        Returns the date used for rows without one. Defaults to ``date.today``.
    max_workers:
        Worker count for the first pass; ``None`` reads
        ``HOUSEHOLD_IMPORT_MAX_WORKERS`` (default 1).
    """

    def __init__(
        self,
        backend: HouseholdBackend,
        *,
        color_source: ColorSource | None = None,
        clock: Clock | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.backend = backend
        self._color = color_source or random_color_source()
        self._clock = clock or date.today
        self.max_workers = resolve_max_workers(max_workers)
        self._lock = threading.Lock()
        self._state = ImportState.IDLE

    @property
    def state(self) -> ImportState:
        return self._state

    @property
    def is_importing(self) -> bool:
        return self._lock.locked()

    def _set_state(self, state: ImportState) -> None:
        self._state = state
        logger.info("import state -> %s", state)

    def commit(
        self,
        rows: Iterable[ImportRow],
        *,
        household_id: UUID,
        summary: ImportSummary,
        existing_categories: Sequence[Category],
        existing_members: Sequence[Member],
        current_member_id: UUID | None,
        current_user_id: UUID | None,
        split_rows: Sequence[ImportSplitRow] = (),
        on_categories_created: Callable[[list[Category]], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ImportResult:
        """Commit every importable row in ``rows`` and return the ledger.

        Raises :class:`ImportInProgressError` when called while another
        commit on this orchestrator is still running.
        """

        if not self._lock.acquire(blocking=False):
            raise ImportInProgressError("An import is already in progress")
        try:
            self._state = ImportState.IDLE
            return self._commit(
                [r for r in rows if r.is_valid],
                household_id=household_id,
                summary=summary,
                existing_categories=existing_categories,
                existing_members=existing_members,
                current_member_id=current_member_id,
                current_user_id=current_user_id,
                split_rows=split_rows,
                on_categories_created=on_categories_created,
                cancel_event=cancel_event,
            )
        finally:
            self._lock.release()

    def _commit(
        self,
        rows: list[ImportRow],
        *,
        household_id: UUID,
        summary: ImportSummary,
        existing_categories: Sequence[Category],
        existing_members: Sequence[Member],
        current_member_id: UUID | None,
        current_user_id: UUID | None,
        split_rows: Sequence[ImportSplitRow],
        on_categories_created: Callable[[list[Category]], None] | None,
        cancel_event: threading.Event | None,
    ) -> ImportResult:
        if not rows:
            self._set_state(ImportState.DONE)
            return ImportResult(errors=(NO_VALID_ROWS,))

        ledger = _Ledger()

        self._set_state(ImportState.CREATING_CATEGORIES)
        category_map, created_names = self._create_categories(
            household_id,
            summary.new_categories_to_create,
            existing_categories,
            ledger,
            cancel_event,
        )
        if created_names:
            self._refresh_categories(household_id, on_categories_created)

        ctx = _CommitContext(
            household_id=household_id,
            today=self._clock(),
            category_map=MappingProxyType(category_map),
            members=MappingProxyType({m.id: m for m in existing_members}),
            splits=MappingProxyType(group_by_transaction_row(split_rows)),
            current_member_id=current_member_id,
            current_user_id=current_user_id,
            cancel_event=cancel_event,
        )

        reimbursements = [r for r in rows if r.is_reimbursement_with_reference]
        primary = [r for r in rows if not r.is_reimbursement_with_reference]
        csv_row_to_transaction_id: dict[int, UUID] = {}

        self._set_state(ImportState.IMPORTING_PRIMARY)
        outcomes = p_map(
            primary,
            lambda row: self._create(row, ctx, reimburses_transaction_id=None),
            concurrency=self.max_workers,
        )
        for outcome in outcomes:
            ledger.record(outcome, csv_row_to_transaction_id)

        self._set_state(ImportState.IMPORTING_REIMBURSEMENTS)
        self._import_reimbursements(reimbursements, ctx, ledger, csv_row_to_transaction_id)

        self._set_state(ImportState.DONE)
        logger.info(
            "import finished: %d succeeded, %d failed, %d categories created",
            ledger.success,
            ledger.failed,
            len(created_names),
        )
        return ImportResult(
            success_count=ledger.success,
            failed_count=ledger.failed,
            created_categories=tuple(created_names),
            errors=tuple(ledger.errors),
            failed_row_numbers=tuple(ledger.failed_rows),
            created_transactions=ledger.created,
            row_errors=ledger.row_errors,
            cancelled=ledger.cancelled,
        )

    # -- step 1 ---------------------------------------------------------------

    def _create_categories(
        self,
        household_id: UUID,
        names: Sequence[str],
        existing: Sequence[Category],
        ledger: _Ledger,
        cancel_event: threading.Event | None,
    ) -> tuple[dict[str, UUID], list[str]]:
        category_map = dict(category_index(existing))
        created: list[str] = []
        for name in names:
            if cancel_event is not None and cancel_event.is_set():
                ledger.cancelled = True
                break
            try:
                category = self.backend.create_category(
                    household_id,
                    name=name,
                    icon=DEFAULT_ICON,
                    color=self._color(),
                    image_url=None,
                    sort_order=len(existing) + len(created),
                )
            except Exception as exc:  # noqa: BLE001 - any backend failure is non-fatal
                logger.warning("failed to create category %r: %s", name, exc)
                ledger.errors.append(f"Failed to create category '{name}': {exc}")
                continue
            category_map[name_key(name)] = category.id
            created.append(name)
        return category_map, created

    def _refresh_categories(
        self,
        household_id: UUID,
        on_categories_created: Callable[[list[Category]], None] | None,
    ) -> None:
        try:
            categories = self.backend.fetch_categories(household_id)
            if on_categories_created is not None:
                on_categories_created(categories)
        except Exception:  # noqa: BLE001 - refresh is best effort
            logger.warning("category refresh after import failed", exc_info=True)

    # -- step 4 ---------------------------------------------------------------

    def _import_reimbursements(
        self,
        rows: Sequence[ImportRow],
        ctx: _CommitContext,
        ledger: _Ledger,
        csv_row_to_transaction_id: dict[int, UUID],
    ) -> None:
        for row in rows:
            if ctx.cancelled:
                ledger.record(_RowOutcome(row, error=CANCELLED, skipped=True), {})
                continue
            try:
                target = _resolve_reference(row, csv_row_to_transaction_id)
            except ReferenceUnresolvedError as exc:
                logger.warning("row %d: %s", row.row_number, exc)
                ledger.errors.append(f"Row {row.row_number}: {exc}")
                target = None
            outcome = self._create(row, ctx, reimburses_transaction_id=target)
            ledger.record(outcome, csv_row_to_transaction_id)

    # -- per row --------------------------------------------------------------

    def _create(
        self,
        row: ImportRow,
        ctx: _CommitContext,
        *,
        reimburses_transaction_id: UUID | None,
    ) -> _RowOutcome:
        if ctx.cancelled:
            return _RowOutcome(row, error=CANCELLED, skipped=True)

        category_id = row.matched_category_id
        if category_id is None and row.category:
            category_id = ctx.category_map.get(name_key(row.category))

        amount = row.parsed_amount
        assert amount is not None  # importable rows always carry an amount

        try:
            splits = build_member_splits(
                ctx.splits.get(row.split_group_key, []), ctx.members, amount
            )
            transaction_id = self.backend.create_transaction_with_splits(
                ctx.household_id,
                date=row.parsed_date or ctx.today,
                description=row.description,
                amount=amount,
                transaction_type=row.parsed_type or TransactionType.EXPENSE,
                paid_by_member_id=row.matched_paid_by_member_id or ctx.current_member_id,
                paid_to_member_id=row.matched_paid_to_member_id,
                category_id=category_id,
                split_type=row.parsed_split_type or SplitType.EQUAL,
                paid_by_type=PaidByType.SINGLE,
                split_member_id=row.matched_split_member_id,
                reimburses_transaction_id=reimburses_transaction_id,
                excluded_from_budget=row.parsed_excluded_from_budget,
                notes=row.notes or None,
                created_by_user_id=ctx.current_user_id,
                splits=splits,
            )
        except Exception as exc:  # noqa: BLE001 - failures are reported per row
            message = str(exc) or type(exc).__name__
            logger.warning("row %d failed: %s", row.row_number, message)
            return _RowOutcome(row, error=message)

        logger.debug("row %d -> transaction %s", row.row_number, transaction_id)
        return _RowOutcome(row, transaction_id=transaction_id)


def _resolve_reference(row: ImportRow, csv_row_to_transaction_id: Mapping[int, UUID]) -> UUID:
    target_row = row.parsed_reimburses_row
    assert target_row is not None
    try:
        return csv_row_to_transaction_id[target_row]
    except KeyError:
        raise ReferenceUnresolvedError(row.row_number, target_row) from None


__all__ = ["CANCELLED", "NO_VALID_ROWS", "Clock", "ImportOrchestrator", "ImportState"]
