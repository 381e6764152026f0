"""Data models and type aliases for ``household_import``.

Two families live here:

- In-memory import records (frozen dataclasses): ``RawImportRow``,
  ``ParsedCsv``, ``ImportRow``, ``ImportSplitRow`` and ``ImportSummary``. They
  exist only for the duration of one import session and are rebuilt from
  scratch on every parse-and-validate run.
- Backend-facing DTOs (pydantic): ``Category``, ``Member``, ``MemberSplit``
  and the terminal ``ImportResult`` of a commit.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------


class TransactionType(StrEnum):
    EXPENSE = "expense"
    INCOME = "income"
    REIMBURSEMENT = "reimbursement"
    SETTLEMENT = "settlement"


class SplitType(StrEnum):
    EQUAL = "equal"
    CUSTOM = "custom"
    PAYER_ONLY = "payer_only"


class PaidByType(StrEnum):
    SINGLE = "single"
    SHARED = "shared"


class ValidationStatus(StrEnum):
    VALID = "valid"
    VALID_WITH_WARNINGS = "valid_with_warnings"
    INVALID = "invalid"


class MemberStatus(StrEnum):
    APPROVED = "approved"
    PENDING = "pending"
    INACTIVE = "inactive"


# ---------------------------------------------------------------------------
# Parsed CSV records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawImportRow:
    """One CSV record as trimmed text plus its physical source line.

    ``cells`` holds every cell in header order (used for re-export);
    ``values`` maps canonical column keys of the active schema to their cell
    text, with ``""`` for columns the file does not carry.
    """

    row_number: int
    cells: tuple[str, ...]
    values: Mapping[str, str]

    def get(self, column: str) -> str:
        return self.values.get(column, "")


@dataclass(frozen=True, slots=True)
class ParsedCsv:
    header: tuple[str, ...]
    columns: Mapping[str, int]
    rows: tuple[RawImportRow, ...]

    def has_column(self, column: str) -> bool:
        return column in self.columns


@dataclass(frozen=True, slots=True)
class ImportRow:
    """Validated, normalized projection of a :class:`RawImportRow`.

    ``matched_*`` ids are ``None`` when no confident match exists; the commit
    step either creates the missing record (categories) or falls back to a
    default (the current member as payer).
    """

    row_number: int
    raw: RawImportRow

    # Raw text as supplied
    csv_row: str = ""
    date: str = ""
    description: str = ""
    amount: str = ""
    type: str = ""
    category: str = ""
    paid_by: str = ""
    paid_to: str = ""
    split_type: str = ""
    split_member: str = ""
    reimburses_row: str = ""
    excluded_from_budget: str = ""
    notes: str = ""

    # Parsed / derived
    parsed_csv_row: int | None = None
    parsed_date: date | None = None
    parsed_amount: Decimal | None = None
    parsed_type: TransactionType | None = None
    parsed_split_type: SplitType | None = None
    parsed_excluded_from_budget: bool = False
    parsed_reimburses_row: int | None = None

    # Match results
    matched_category_id: UUID | None = None
    matched_paid_by_member_id: UUID | None = None
    matched_paid_to_member_id: UUID | None = None
    matched_split_member_id: UUID | None = None

    validation_status: ValidationStatus = ValidationStatus.VALID
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.validation_status is not ValidationStatus.INVALID

    @property
    def has_errors(self) -> bool:
        return self.validation_status is ValidationStatus.INVALID

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def is_reimbursement_with_reference(self) -> bool:
        return (
            self.parsed_type is TransactionType.REIMBURSEMENT
            and self.parsed_reimburses_row is not None
        )

    @property
    def split_group_key(self) -> int:
        """Key into the splits file: the explicit row id, else the physical line."""
        return self.parsed_csv_row if self.parsed_csv_row is not None else self.row_number


@dataclass(frozen=True, slots=True)
class ImportSplitRow:
    """One line of the optional splits file.

    Orphaned (excluded from grouping) when ``parsed_transaction_row`` is None.
    Values that cannot be used (unparseable or out of range) are left as
    ``None`` with a message in ``warnings``.
    """

    row_number: int
    transaction_row: str = ""
    member_name: str = ""
    owed_amount: str = ""
    owed_percentage: str = ""
    paid_amount: str = ""
    paid_percentage: str = ""

    parsed_transaction_row: int | None = None
    matched_member_id: UUID | None = None
    parsed_owed_amount: Decimal | None = None
    parsed_owed_percentage: Decimal | None = None
    parsed_paid_amount: Decimal | None = None
    parsed_paid_percentage: Decimal | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ImportSummary:
    """Dataset-level statistics shown before the user confirms a commit."""

    total_rows: int = 0
    valid_rows: int = 0
    warning_rows: int = 0
    invalid_rows: int = 0
    total_split_rows: int = 0
    transactions_with_splits: int = 0
    reimbursements_with_references: int = 0
    new_categories_to_create: tuple[str, ...] = ()
    existing_categories_used: tuple[str, ...] = ()
    members_used: tuple[str, ...] = ()
    total_amount: Decimal = Decimal("0")
    amount_by_type: Mapping[str, Decimal] = field(default_factory=dict)

    @property
    def importable_rows(self) -> int:
        return self.valid_rows + self.warning_rows

    @property
    def can_import_all(self) -> bool:
        return self.invalid_rows == 0

    @property
    def can_import_valid(self) -> bool:
        return self.importable_rows > 0

    @property
    def has_split_data(self) -> bool:
        return self.total_split_rows > 0


# ---------------------------------------------------------------------------
# Backend DTOs
# ---------------------------------------------------------------------------


class Category(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    household_id: UUID
    name: str
    icon: str | None = None
    color: str = "#4ECDC4"
    image_url: str | None = None
    sort_order: int = 0


class Member(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    household_id: UUID
    user_id: UUID | None = None
    display_name: str
    role: str = "member"
    status: MemberStatus = MemberStatus.APPROVED

    @property
    def is_active(self) -> bool:
        return self.status is MemberStatus.APPROVED


class MemberSplit(BaseModel):
    """Per-member allocation sent along with a created transaction."""

    model_config = ConfigDict(frozen=True)

    member_id: UUID
    display_name: str
    owed_amount: Decimal = Decimal("0")
    owed_percentage: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    paid_percentage: Decimal = Decimal("0")


class ImportResult(BaseModel):
    """Terminal record of one commit attempt.

    ``errors`` follows commit order: category failures, then Pass 1, then
    Pass 2. Unresolved reimbursement references appear in ``errors`` without
    counting the row as failed.

    ``row_errors`` maps each failed row number to its create-call message.
    """

    model_config = ConfigDict(frozen=True)

    success_count: int = 0
    failed_count: int = 0
    created_categories: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    failed_row_numbers: tuple[int, ...] = ()
    created_transactions: dict[int, UUID] = Field(default_factory=dict)
    row_errors: dict[int, str] = Field(default_factory=dict)
    cancelled: bool = False

    @field_validator("success_count", "failed_count")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("counts must be non-negative")
        return v

    @property
    def is_fully_successful(self) -> bool:
        return self.failed_count == 0 and not self.cancelled


__all__ = [
    "TransactionType",
    "SplitType",
    "PaidByType",
    "ValidationStatus",
    "MemberStatus",
    "RawImportRow",
    "ParsedCsv",
    "ImportRow",
    "ImportSplitRow",
    "ImportSummary",
    "Category",
    "Member",
    "MemberSplit",
    "ImportResult",
]
