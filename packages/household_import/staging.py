"""Parse-and-validate glue for one import session.

``parse_and_validate`` runs the tokenizer over the transactions file (and the
optional splits file), validates every row against the supplied snapshots and
returns a :class:`StagedImport`. Nothing is incremental: staging again with a
corrected file builds a new ``StagedImport`` from scratch.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from functools import cached_property
from uuid import UUID

from .ingest import PRIMARY_SCHEMA, SPLITS_SCHEMA, parse_csv
from .models import (
    Category,
    ImportRow,
    ImportSplitRow,
    ImportSummary,
    Member,
    ValidationStatus,
)
from .splits import group_by_transaction_row, validate_split_rows
from .validation import validate_rows


@dataclass(frozen=True)
class StagedImport:
    header: tuple[str, ...]
    rows: tuple[ImportRow, ...]
    split_rows: tuple[ImportSplitRow, ...]
    summary: ImportSummary

    @cached_property
    def valid_rows_to_import(self) -> tuple[ImportRow, ...]:
        return tuple(r for r in self.rows if r.is_valid)

    @cached_property
    def splits_by_transaction_row(self) -> dict[int, list[ImportSplitRow]]:
        return group_by_transaction_row(self.split_rows)

    def filter(self, status: ValidationStatus | None = None) -> tuple[ImportRow, ...]:
        """Rows with ``status``; all rows when ``status`` is ``None``."""

        if status is None:
            return self.rows
        return tuple(r for r in self.rows if r.validation_status is status)


def parse_and_validate(
    primary: bytes | str,
    splits: bytes | str | None = None,
    *,
    existing_categories: Sequence[Category],
    existing_members: Sequence[Member],
    current_user_id: UUID | None = None,
) -> StagedImport:
    """Tokenize and validate file contents.

    Raises :class:`~household_import.errors.ParseError` when either file
    cannot be tokenized; validation problems are recorded on the rows.
    """

    parsed = parse_csv(primary, PRIMARY_SCHEMA)
    split_rows: list[ImportSplitRow] = []
    if splits is not None:
        parsed_splits = parse_csv(splits, SPLITS_SCHEMA)
        split_rows = validate_split_rows(parsed_splits.rows, existing_members)

    rows, summary = validate_rows(
        parsed.rows,
        existing_categories,
        existing_members,
        current_user_id,
        split_rows=split_rows,
    )
    return StagedImport(
        header=parsed.header,
        rows=tuple(rows),
        split_rows=tuple(split_rows),
        summary=summary,
    )


__all__ = ["StagedImport", "parse_and_validate"]
