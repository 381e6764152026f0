"""Split resolver for the optional per-member splits file.

Exports
-------
- ``validate_split_rows(...)``: parse raw splits-file records and match
  member names against approved household members.
- ``group_by_transaction_row(...)``: bucket split rows by the transaction row
  they reference; orphaned rows are dropped.
- ``build_member_splits(...)``: convert one bucket into ``MemberSplit``
  allocations for a create call, or ``None`` to let the backend apply its
  default split.

Split totals are not reconciled against the transaction amount.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from decimal import Decimal
from uuid import UUID

from .ingest import columns as col
from .matching import MemberIndex
from .models import ImportSplitRow, Member, MemberSplit, RawImportRow
from .parsing import MAX_AMOUNT, MAX_PERCENTAGE, quantize_2, to_decimal, to_int, to_percentage

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

_VALUE_COLUMNS = (
    ("parsed_owed_amount", col.OWED_AMOUNT, "Owed Amount", to_decimal, MAX_AMOUNT),
    ("parsed_owed_percentage", col.OWED_PERCENTAGE, "Owed %", to_percentage, MAX_PERCENTAGE),
    ("parsed_paid_amount", col.PAID_AMOUNT, "Paid Amount", to_decimal, MAX_AMOUNT),
    ("parsed_paid_percentage", col.PAID_PERCENTAGE, "Paid %", to_percentage, MAX_PERCENTAGE),
)


def _bounded(
    raw: str,
    label: str,
    parse: Callable[[str | None], Decimal | None],
    upper: Decimal,
    warnings: list[str],
) -> Decimal | None:
    if not raw:
        return None
    value = parse(raw)
    if value is None:
        warnings.append(f'{label} "{raw}" is not a number and will be ignored')
        return None
    if value < 0 or value > upper:
        warnings.append(f'{label} "{raw}" must be between 0 and {upper} and will be ignored')
        return None
    return value


def validate_split_rows(
    raw_split_rows: Iterable[RawImportRow],
    existing_members: Iterable[Member],
) -> list[ImportSplitRow]:
    members = MemberIndex(existing_members)
    out: list[ImportSplitRow] = []
    for raw in raw_split_rows:
        warnings: list[str] = []
        member_name = raw.get(col.MEMBER_NAME)
        match = members.match(member_name) if member_name else None
        values = {
            field: _bounded(raw.get(key), label, parse, upper, warnings)
            for field, key, label, parse, upper in _VALUE_COLUMNS
        }
        out.append(
            ImportSplitRow(
                row_number=raw.row_number,
                transaction_row=raw.get(col.TRANSACTION_ROW),
                member_name=member_name,
                owed_amount=raw.get(col.OWED_AMOUNT),
                owed_percentage=raw.get(col.OWED_PERCENTAGE),
                paid_amount=raw.get(col.PAID_AMOUNT),
                paid_percentage=raw.get(col.PAID_PERCENTAGE),
                parsed_transaction_row=to_int(raw.get(col.TRANSACTION_ROW)),
                matched_member_id=match.member_id if match else None,
                warnings=tuple(warnings),
                **values,
            )
        )
    return out


def group_by_transaction_row(
    rows: Iterable[ImportSplitRow],
) -> dict[int, list[ImportSplitRow]]:
    groups: dict[int, list[ImportSplitRow]] = {}
    for row in rows:
        if row.parsed_transaction_row is None:
            continue
        groups.setdefault(row.parsed_transaction_row, []).append(row)
    return groups


def _amount_and_pct(
    amount: Decimal | None, pct: Decimal | None, total: Decimal
) -> tuple[Decimal, Decimal]:
    """Fill whichever of (amount, percentage) is missing from the other."""

    if amount is None and pct is not None:
        amount = quantize_2(total * pct / _HUNDRED)
    elif pct is None and amount is not None and total > 0:
        pct = quantize_2(amount / total * _HUNDRED)
    return (amount if amount is not None else _ZERO, pct if pct is not None else _ZERO)


def build_member_splits(
    rows: Sequence[ImportSplitRow],
    member_id_map: Mapping[UUID, Member],
    total_amount: Decimal,
) -> list[MemberSplit] | None:
    """Return per-member allocations, or ``None`` when nothing resolves.

    Rows whose member is unmatched or not in ``member_id_map`` are skipped.
    """

    if not rows:
        return None
    splits: list[MemberSplit] = []
    for row in rows:
        if row.matched_member_id is None:
            continue
        member = member_id_map.get(row.matched_member_id)
        if member is None:
            continue
        owed, owed_pct = _amount_and_pct(
            row.parsed_owed_amount, row.parsed_owed_percentage, total_amount
        )
        paid, paid_pct = _amount_and_pct(
            row.parsed_paid_amount, row.parsed_paid_percentage, total_amount
        )
        splits.append(
            MemberSplit(
                member_id=member.id,
                display_name=member.display_name,
                owed_amount=owed,
                owed_percentage=owed_pct,
                paid_amount=paid,
                paid_percentage=paid_pct,
            )
        )
    return splits or None


__all__ = ["build_member_splits", "group_by_transaction_row", "validate_split_rows"]
