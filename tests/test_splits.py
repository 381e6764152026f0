from __future__ import annotations

from decimal import Decimal

from household_import.ingest import SPLITS_SCHEMA, parse_csv
from household_import.splits import (
    build_member_splits,
    group_by_transaction_row,
    validate_split_rows,
)

SPLITS = (
    "Transaction Row,Member Name,Owed Amount,Owed %,Paid Amount,Paid %\n"
    "3,Alice,60.00,,90,\n"
    "3,bob,,40%,,10\n"
    "4,Cara,5,,,\n"
    "x,Alice,1,,,\n"
    "9,Zed,1,,,\n"
)


def _split_rows(members, text: str = SPLITS):
    return validate_split_rows(parse_csv(text, SPLITS_SCHEMA).rows, members)


def test_members_are_matched_case_insensitively_and_pending_ignored(members):
    rows = _split_rows(members)
    alice, bob, cara, orphan, zed = rows

    assert alice.matched_member_id == members[0].id
    assert bob.matched_member_id == members[1].id
    assert cara.matched_member_id is None
    assert zed.matched_member_id is None
    assert orphan.parsed_transaction_row is None
    assert bob.parsed_owed_percentage == Decimal("40")
    assert [r.row_number for r in rows] == [2, 3, 4, 5, 6]


def test_grouping_drops_orphans_and_keeps_file_order(members):
    groups = group_by_transaction_row(_split_rows(members))
    assert sorted(groups) == [3, 4, 9]
    assert [r.member_name for r in groups[3]] == ["Alice", "bob"]


def test_build_member_splits_fills_missing_amount_or_percentage(members):
    groups = group_by_transaction_row(_split_rows(members))
    by_id = {m.id: m for m in members}

    splits = build_member_splits(groups[3], by_id, Decimal("150.00"))

    assert splits is not None
    alice, bob = splits
    assert alice.member_id == members[0].id
    assert alice.owed_amount == Decimal("60.00")
    assert alice.owed_percentage == Decimal("40.00")
    assert alice.paid_amount == Decimal("90")
    assert alice.paid_percentage == Decimal("60.00")

    assert bob.display_name == "Bob"
    assert bob.owed_amount == Decimal("60.00")
    assert bob.owed_percentage == Decimal("40")
    assert bob.paid_amount == Decimal("15.00")
    assert bob.paid_percentage == Decimal("10")


def test_build_member_splits_returns_none_when_nothing_resolves(members):
    groups = group_by_transaction_row(_split_rows(members))
    by_id = {m.id: m for m in members}

    assert build_member_splits(groups[4], by_id, Decimal("5")) is None
    assert build_member_splits(groups[9], by_id, Decimal("1")) is None
    assert build_member_splits([], by_id, Decimal("1")) is None


def test_missing_values_default_to_zero(members):
    rows = _split_rows(members, "Transaction Row,Member Name\n1,Alice\n")
    splits = build_member_splits(rows, {m.id: m for m in members}, Decimal("0"))
    assert splits is not None
    (only,) = splits
    assert only.owed_amount == Decimal("0")
    assert only.owed_percentage == Decimal("0")
    assert only.paid_amount == Decimal("0")


def test_unusable_values_are_dropped_with_a_warning(members):
    rows = _split_rows(
        members,
        "Transaction Row,Member Name,Owed Amount,Owed %,Paid Amount,Paid %\n"
        "1,Alice,1e27,1e30,-5,NaN\n"
        "1,Bob,9999999999.99,100%,abc,0\n",
    )
    alice, bob = rows

    assert alice.parsed_owed_amount is None
    assert alice.parsed_owed_percentage is None
    assert alice.parsed_paid_amount is None
    assert alice.parsed_paid_percentage is None
    assert len(alice.warnings) == 4
    assert 'Owed % "1e30" must be between 0 and 100 and will be ignored' in alice.warnings

    assert bob.parsed_owed_amount == Decimal("9999999999.99")
    assert bob.parsed_owed_percentage == Decimal("100")
    assert bob.parsed_paid_percentage == Decimal("0")
    assert bob.warnings == ('Paid Amount "abc" is not a number and will be ignored',)

    splits = build_member_splits(rows, {m.id: m for m in members}, Decimal("10"))
    assert splits is not None
    assert splits[0].owed_amount == Decimal("0")
