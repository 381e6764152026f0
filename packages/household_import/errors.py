"""Exception taxonomy for the import pipeline.

Only :class:`ParseError` aborts a run. Per-row validation problems are never
raised; they are recorded as messages on :class:`~household_import.models.ImportRow`.
Everything raised during a commit is caught per row by the orchestrator.
"""

from __future__ import annotations

import csv


class HouseholdImportError(Exception):
    """Base class for errors raised by ``household_import``."""


class ParseError(HouseholdImportError, csv.Error):
    """The input file could not be decoded, has no header, or lacks required columns.

    Subclasses ``csv.Error`` so callers that already treat ``csv.Error`` as a
    parse failure keep working.
    """


class CommitError(HouseholdImportError):
    """The backend rejected a create call.

    The message is surfaced verbatim in the owning row's ``ImportResult`` entry.
    """


class ReferenceUnresolvedError(HouseholdImportError):
    """A reimbursement points at a row id that has no created transaction."""

    def __init__(self, row_number: int, reimburses_row: int) -> None:
        self.row_number = row_number
        self.reimburses_row = reimburses_row
        super().__init__(
            f"Referenced expense row {reimburses_row} was not imported or not found"
        )


class ImportInProgressError(HouseholdImportError):
    """A commit was requested while another commit is still running."""


__all__ = [
    "HouseholdImportError",
    "ParseError",
    "CommitError",
    "ReferenceUnresolvedError",
    "ImportInProgressError",
]
