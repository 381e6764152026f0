"""Dataset-level statistics over validated rows.

Each row is counted in exactly one of valid / valid-with-warnings / invalid.
Category, member and amount statistics only look at importable rows
(valid or valid-with-warnings); the category text of invalid rows never
causes a category to be created.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from .categories import name_key, normalize_name
from .models import ImportRow, ImportSplitRow, ImportSummary, ValidationStatus
from .splits import group_by_transaction_row


def _first_seen(names: list[str], seen: set[str], value: str) -> None:
    key = name_key(value)
    if key and key not in seen:
        seen.add(key)
        names.append(normalize_name(value))


def summarize(
    rows: Sequence[ImportRow],
    *,
    split_rows: Sequence[ImportSplitRow] = (),
) -> ImportSummary:
    counts = dict.fromkeys(ValidationStatus, 0)
    new_categories: list[str] = []
    new_seen: set[str] = set()
    used_categories: list[str] = []
    used_seen: set[str] = set()
    members: list[str] = []
    members_seen: set[str] = set()
    total = Decimal("0")
    by_type: dict[str, Decimal] = {}
    with_refs = 0

    groups = group_by_transaction_row(split_rows)
    with_splits = 0

    for row in rows:
        counts[row.validation_status] += 1
        if not row.is_valid:
            continue

        if row.category:
            if row.matched_category_id is None:
                _first_seen(new_categories, new_seen, row.category)
            else:
                _first_seen(used_categories, used_seen, row.category)

        for name, matched in (
            (row.paid_by, row.matched_paid_by_member_id),
            (row.paid_to, row.matched_paid_to_member_id),
            (row.split_member, row.matched_split_member_id),
        ):
            if name and matched is not None:
                _first_seen(members, members_seen, name)

        if row.parsed_amount is not None:
            total += row.parsed_amount
            if row.parsed_type is not None:
                key = str(row.parsed_type)
                by_type[key] = by_type.get(key, Decimal("0")) + row.parsed_amount

        if row.is_reimbursement_with_reference:
            with_refs += 1
        if row.split_group_key in groups:
            with_splits += 1

    return ImportSummary(
        total_rows=len(rows),
        valid_rows=counts[ValidationStatus.VALID],
        warning_rows=counts[ValidationStatus.VALID_WITH_WARNINGS],
        invalid_rows=counts[ValidationStatus.INVALID],
        total_split_rows=len(split_rows),
        transactions_with_splits=with_splits,
        reimbursements_with_references=with_refs,
        new_categories_to_create=tuple(new_categories),
        existing_categories_used=tuple(used_categories),
        members_used=tuple(members),
        total_amount=total,
        amount_by_type=by_type,
    )


__all__ = ["summarize"]
