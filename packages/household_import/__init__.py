"""Public interface for the ``household_import`` package.

This module exposes the import pipeline's entry points and public models as
the stable import surface. There is no runtime logic here, only symbol
re-exports.
"""

from .backend import HouseholdBackend, SqlAlchemyBackend
from .errors import (
    CommitError,
    HouseholdImportError,
    ImportInProgressError,
    ParseError,
    ReferenceUnresolvedError,
)
from .export import to_csv, write_failed_rows
from .ingest import PRIMARY_SCHEMA, SPLITS_SCHEMA, parse_csv, read_csv_file
from .models import (
    Category,
    ImportResult,
    ImportRow,
    ImportSplitRow,
    ImportSummary,
    Member,
    MemberSplit,
    MemberStatus,
    PaidByType,
    RawImportRow,
    SplitType,
    TransactionType,
    ValidationStatus,
)
from .orchestrator import ImportOrchestrator, ImportState
from .splits import build_member_splits, group_by_transaction_row, validate_split_rows
from .staging import StagedImport, parse_and_validate
from .summary import summarize
from .validation import validate_rows

__all__ = [
    # Pipeline
    "parse_csv",
    "read_csv_file",
    "validate_rows",
    "validate_split_rows",
    "group_by_transaction_row",
    "build_member_splits",
    "summarize",
    "parse_and_validate",
    "ImportOrchestrator",
    "ImportState",
    "to_csv",
    "write_failed_rows",
    # Backend
    "HouseholdBackend",
    "SqlAlchemyBackend",
    # Schemas
    "PRIMARY_SCHEMA",
    "SPLITS_SCHEMA",
    # Models / types
    "RawImportRow",
    "ImportRow",
    "ImportSplitRow",
    "ImportSummary",
    "ImportResult",
    "StagedImport",
    "Category",
    "Member",
    "MemberSplit",
    "MemberStatus",
    "TransactionType",
    "SplitType",
    "PaidByType",
    "ValidationStatus",
    # Errors
    "HouseholdImportError",
    "ParseError",
    "CommitError",
    "ReferenceUnresolvedError",
    "ImportInProgressError",
]
