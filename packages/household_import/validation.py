"""Row validation: raw CSV records → normalized :class:`ImportRow` values.

Validation is a pure function of the raw rows and the category/member
snapshots passed in. It reads no clock and uses no randomness, so running it
twice over the same inputs yields equal rows.

Per-row checks, in order:

1. description present;
2. date (optional; unparseable → error);
3. amount (exact decimal, strictly positive);
4. transaction type (closed vocabulary; missing/unknown → defaulted with a
   warning);
5. category match (no match → warning, created at commit);
6. paid-by / paid-to / split-member matches (no or ambiguous match →
   warning, id left empty);
7. split type (unknown → error);
8. explicit row id and reimbursement reference (existence is NOT checked
   here: the target may appear later or fail to commit);
9. excluded-from-budget flag.

Status: any error → ``invalid``; otherwise any warning →
``valid_with_warnings``; otherwise ``valid``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from uuid import UUID

from .categories import name_key
from .ingest import columns as col
from .matching import MemberIndex, category_index
from .models import (
    Category,
    ImportRow,
    ImportSplitRow,
    ImportSummary,
    Member,
    RawImportRow,
    SplitType,
    TransactionType,
    ValidationStatus,
)
from .parsing import MAX_AMOUNT, to_date, to_decimal, to_int
from .summary import summarize

_TYPE_ALIASES: Mapping[str, TransactionType] = {
    "expense": TransactionType.EXPENSE,
    "exp": TransactionType.EXPENSE,
    "income": TransactionType.INCOME,
    "inc": TransactionType.INCOME,
    "settlement": TransactionType.SETTLEMENT,
    "settle": TransactionType.SETTLEMENT,
    "reimbursement": TransactionType.REIMBURSEMENT,
    "reimburse": TransactionType.REIMBURSEMENT,
    "reimb": TransactionType.REIMBURSEMENT,
}

_SPLIT_ALIASES: Mapping[str, SplitType] = {
    "equal": SplitType.EQUAL,
    "split": SplitType.EQUAL,
    "split equally": SplitType.EQUAL,
    "payer_only": SplitType.PAYER_ONLY,
    "payer only": SplitType.PAYER_ONLY,
    "payeronly": SplitType.PAYER_ONLY,
    "member_only": SplitType.PAYER_ONLY,
    "member only": SplitType.PAYER_ONLY,
    "memberonly": SplitType.PAYER_ONLY,
    "custom": SplitType.CUSTOM,
}

_TRUE_VALUES = frozenset({"yes", "y", "true", "1"})
_FALSE_VALUES = frozenset({"no", "n", "false", "0", ""})


class _RowChecker:
    """Accumulates the parsed fields and messages for a single row."""

    def __init__(
        self,
        raw: RawImportRow,
        categories: Mapping[str, UUID],
        members: MemberIndex,
    ) -> None:
        self.raw = raw
        self.categories = categories
        self.members = members
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.fields: dict[str, object] = {}

    def run(self) -> ImportRow:
        raw = self.raw
        self._description(raw.get(col.DESCRIPTION))
        self._date(raw.get(col.DATE))
        self._amount(raw.get(col.AMOUNT))
        self._type(raw.get(col.TYPE), raw.get(col.REIMBURSES_ROW))
        self._category(raw.get(col.CATEGORY))
        self._members()
        self._split_type(raw.get(col.SPLIT_TYPE))
        self._row_ids(raw.get(col.ROW), raw.get(col.REIMBURSES_ROW))
        self._excluded(raw.get(col.EXCLUDED_FROM_BUDGET))

        if self.errors:
            status = ValidationStatus.INVALID
        elif self.warnings:
            status = ValidationStatus.VALID_WITH_WARNINGS
        else:
            status = ValidationStatus.VALID

        return ImportRow(
            row_number=raw.row_number,
            raw=raw,
            csv_row=raw.get(col.ROW),
            date=raw.get(col.DATE),
            description=raw.get(col.DESCRIPTION),
            amount=raw.get(col.AMOUNT),
            type=raw.get(col.TYPE),
            category=raw.get(col.CATEGORY),
            paid_by=raw.get(col.PAID_BY),
            paid_to=raw.get(col.PAID_TO),
            split_type=raw.get(col.SPLIT_TYPE),
            split_member=raw.get(col.SPLIT_MEMBER),
            reimburses_row=raw.get(col.REIMBURSES_ROW),
            excluded_from_budget=raw.get(col.EXCLUDED_FROM_BUDGET),
            notes=raw.get(col.NOTES),
            validation_status=status,
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            **self.fields,  # type: ignore[arg-type]
        )

    # -- individual checks -------------------------------------------------

    def _description(self, value: str) -> None:
        if not value:
            self.errors.append("Missing required field: Description")

    def _date(self, value: str) -> None:
        if not value:
            self.warnings.append("No date specified - today's date will be used")
            return
        parsed = to_date(value)
        if parsed is None:
            self.errors.append(f'Invalid date format: "{value}". Use YYYY-MM-DD format.')
            return
        self.fields["parsed_date"] = parsed

    def _amount(self, value: str) -> None:
        if not value:
            self.errors.append("Missing required field: Amount")
            return
        parsed = to_decimal(value)
        if parsed is None:
            self.errors.append(f'Invalid amount: "{value}". Use a number like 123.45')
            return
        if parsed <= 0:
            self.errors.append(f'Invalid amount: "{value}". Amount must be greater than zero')
            return
        if parsed > MAX_AMOUNT:
            self.errors.append(f'Invalid amount: "{value}". Amount must be at most {MAX_AMOUNT}')
            return
        self.fields["parsed_amount"] = parsed

    def _type(self, value: str, reimburses: str) -> None:
        parsed = _TYPE_ALIASES.get(value.strip().lower()) if value else None
        if parsed is not None:
            self.fields["parsed_type"] = parsed
            return
        fallback = TransactionType.REIMBURSEMENT if reimburses else TransactionType.EXPENSE
        if value:
            self.warnings.append(
                f'Unknown transaction type "{value}" - will be imported as {fallback}'
            )
        else:
            self.warnings.append(f"No type specified - will be imported as {fallback}")
        self.fields["parsed_type"] = fallback

    def _category(self, value: str) -> None:
        if not value:
            self.warnings.append("No category specified - transaction will be uncategorized")
            return
        matched = self.categories.get(name_key(value))
        if matched is None:
            self.warnings.append(f'Category "{value}" will be created')
            return
        self.fields["matched_category_id"] = matched

    def _members(self) -> None:
        paid_by = self.raw.get(col.PAID_BY)
        if not paid_by:
            self.warnings.append("No 'Paid By' specified - will be assigned to you")
        else:
            self.fields["matched_paid_by_member_id"] = self._member(
                paid_by, "Paid By", "will be assigned to you"
            )
        for key, field_name, label in (
            (col.PAID_TO, "matched_paid_to_member_id", "Paid To"),
            (col.SPLIT_MEMBER, "matched_split_member_id", "Split Member"),
        ):
            value = self.raw.get(key)
            if value:
                self.fields[field_name] = self._member(value, label, "will be left unassigned")

    def _member(self, name: str, label: str, fallback: str) -> UUID | None:
        match = self.members.match(name)
        if match.found:
            return match.member_id
        if match.ambiguous:
            self.warnings.append(
                f'{label} "{name}" matches more than one member - {fallback}'
            )
        else:
            self.warnings.append(f'Unknown member "{name}" for {label} - {fallback}')
        return None

    def _split_type(self, value: str) -> None:
        if not value:
            self.fields["parsed_split_type"] = SplitType.EQUAL
            self.warnings.append("No split type specified - will use 'Split Equally'")
            return
        parsed = _SPLIT_ALIASES.get(" ".join(value.lower().split()))
        if parsed is None:
            self.errors.append(
                f'Invalid split type: "{value}". Use equal, payer_only, or custom.'
            )
            return
        self.fields["parsed_split_type"] = parsed

    def _row_ids(self, csv_row: str, reimburses: str) -> None:
        if csv_row:
            parsed_row = to_int(csv_row)
            if parsed_row is None:
                self.warnings.append(f'Row id "{csv_row}" is not a whole number and will be ignored')
            else:
                self.fields["parsed_csv_row"] = parsed_row

        if not reimburses:
            return
        parsed_type = self.fields.get("parsed_type")
        if parsed_type is not TransactionType.REIMBURSEMENT:
            self.warnings.append(f"Reimburses Row ignored for {parsed_type} transactions")
            return
        target = to_int(reimburses)
        if target is None:
            self.warnings.append(
                f'Reimburses Row "{reimburses}" is not a whole number - '
                "reimbursement will not be linked"
            )
            return
        self.fields["parsed_reimburses_row"] = target

    def _excluded(self, value: str) -> None:
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            self.fields["parsed_excluded_from_budget"] = True
        elif lowered not in _FALSE_VALUES:
            self.warnings.append(
                f'Unrecognized Excluded From Budget value "{value}" - treated as No'
            )


def validate_row(
    raw: RawImportRow,
    categories: Mapping[str, UUID],
    members: MemberIndex,
) -> ImportRow:
    """Validate one raw row against prebuilt name indexes."""

    return _RowChecker(raw, categories, members).run()


def validate_rows(
    raw_rows: Iterable[RawImportRow],
    existing_categories: Iterable[Category],
    existing_members: Iterable[Member],
    current_user_id: UUID | None = None,
    *,
    split_rows: Sequence[ImportSplitRow] = (),
) -> tuple[list[ImportRow], ImportSummary]:
    """Validate every raw row and aggregate the dataset summary.

    ``current_user_id`` is accepted for parity with the commit step, where
    defaults are resolved; validation never depends on it.
    """

    del current_user_id
    categories = category_index(existing_categories)
    members = MemberIndex(existing_members)
    rows = [validate_row(raw, categories, members) for raw in raw_rows]
    return rows, summarize(rows, split_rows=split_rows)


__all__ = ["validate_row", "validate_rows"]
