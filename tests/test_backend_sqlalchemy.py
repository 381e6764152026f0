from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest

from household_import.backend import HouseholdBackend, SqlAlchemyBackend, default_splits
from household_import.errors import CommitError
from household_import.models import (
    Member,
    MemberSplit,
    MemberStatus,
    PaidByType,
    SplitType,
    TransactionType,
)
from tests.helpers.db import seed_household, transactions_by_description


def _create(backend: SqlAlchemyBackend, household_id, **overrides):
    kwargs = dict(
        date=date(2024, 1, 1),
        description="Dinner",
        amount=Decimal("100.00"),
        transaction_type=TransactionType.EXPENSE,
        paid_by_member_id=None,
        paid_to_member_id=None,
        category_id=None,
        split_type=SplitType.EQUAL,
        paid_by_type=PaidByType.SINGLE,
        split_member_id=None,
        reimburses_transaction_id=None,
        excluded_from_budget=False,
        notes=None,
        created_by_user_id=None,
        splits=None,
    )
    kwargs.update(overrides)
    return backend.create_transaction_with_splits(household_id, **kwargs)


def test_backend_satisfies_protocol(sqlite_url):
    assert isinstance(SqlAlchemyBackend(sqlite_url), HouseholdBackend)


def test_fetch_snapshots(sqlite_url, seeded):
    backend = SqlAlchemyBackend(sqlite_url)

    members = backend.fetch_members(seeded.household_id)
    assert {m.display_name for m in members} == {"Alice", "Bob", "Cara"}
    cara = next(m for m in members if m.display_name == "Cara")
    assert cara.status is MemberStatus.PENDING and not cara.is_active

    (groceries,) = backend.fetch_categories(seeded.household_id)
    assert groceries.name == "Groceries"
    assert groceries.id == seeded.categories["Groceries"]

    assert backend.fetch_members(uuid.uuid4()) == []


def test_create_category_rejects_case_insensitive_duplicate(sqlite_url, seeded):
    backend = SqlAlchemyBackend(sqlite_url)

    created = backend.create_category(
        seeded.household_id, name="  Pets ", icon="folder", color="#FF6B6B",
        image_url=None, sort_order=1,
    )
    assert created.name == "Pets"
    assert created.icon == "folder"

    with pytest.raises(CommitError, match="Category 'groceries' already exists"):
        backend.create_category(
            seeded.household_id, name="groceries", icon="folder", color="#FF6B6B",
            image_url=None, sort_order=2,
        )
    assert [c.name for c in backend.fetch_categories(seeded.household_id)] == [
        "Groceries",
        "Pets",
    ]


def test_create_category_unknown_household(sqlite_url):
    backend = SqlAlchemyBackend(sqlite_url)
    with pytest.raises(CommitError, match="not found"):
        backend.create_category(
            uuid.uuid4(), name="Pets", icon=None, color="#FF6B6B", image_url=None, sort_order=0
        )


def test_equal_split_across_approved_members(sqlite_url):
    seeded = seed_household(
        database_url=sqlite_url,
        members=(
            ("Alice", "approved"),
            ("Bob", "approved"),
            ("Cara", "approved"),
            ("Dan", "pending"),
        ),
    )
    backend = SqlAlchemyBackend(sqlite_url)
    alice = seeded.members["Alice"]

    _create(backend, seeded.household_id, paid_by_member_id=alice)

    tx = transactions_by_description(database_url=sqlite_url, household_id=seeded.household_id)[
        "Dinner"
    ]
    owed = sorted(s.owed_amount for s in tx.splits)
    assert owed == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
    assert sum(owed) == Decimal("100.00")
    assert seeded.members["Dan"] not in {s.member_id for s in tx.splits}
    payer = next(s for s in tx.splits if s.member_id == alice)
    assert payer.paid_amount == Decimal("100.00")
    assert payer.paid_percentage == Decimal("100.00")


def test_sub_cent_amount_splits_match_stored_amount(sqlite_url):
    seeded = seed_household(
        database_url=sqlite_url,
        members=(("Alice", "approved"), ("Bob", "approved"), ("Cara", "approved")),
    )
    backend = SqlAlchemyBackend(sqlite_url)
    alice = seeded.members["Alice"]

    _create(backend, seeded.household_id, amount=Decimal("10.005"), paid_by_member_id=alice)

    tx = transactions_by_description(database_url=sqlite_url, household_id=seeded.household_id)[
        "Dinner"
    ]
    assert tx.amount == Decimal("10.01")
    owed = sorted(s.owed_amount for s in tx.splits)
    assert owed == [Decimal("3.33"), Decimal("3.34"), Decimal("3.34")]
    assert sum(owed) == tx.amount
    payer = next(s for s in tx.splits if s.member_id == alice)
    assert payer.paid_amount == Decimal("10.01")


def test_payer_only_split_charges_split_member(sqlite_url, seeded):
    backend = SqlAlchemyBackend(sqlite_url)
    alice, bob = seeded.members["Alice"], seeded.members["Bob"]

    _create(
        backend,
        seeded.household_id,
        description="Gift",
        split_type=SplitType.PAYER_ONLY,
        paid_by_member_id=alice,
        split_member_id=bob,
    )

    tx = transactions_by_description(database_url=sqlite_url, household_id=seeded.household_id)[
        "Gift"
    ]
    by_member = {s.member_id: s for s in tx.splits}
    assert by_member[bob].owed_amount == Decimal("100.00")
    assert by_member[alice].owed_amount == Decimal("0.00")
    assert by_member[alice].paid_amount == Decimal("100.00")
    assert tx.split_type == "payer_only"


def test_explicit_splits_are_stored_in_order(sqlite_url, seeded):
    backend = SqlAlchemyBackend(sqlite_url)
    alice, bob = seeded.members["Alice"], seeded.members["Bob"]
    splits = [
        MemberSplit(member_id=bob, display_name="Bob", owed_amount=Decimal("70"),
                    owed_percentage=Decimal("70")),
        MemberSplit(member_id=alice, display_name="Alice", owed_amount=Decimal("30"),
                    owed_percentage=Decimal("30"), paid_amount=Decimal("100"),
                    paid_percentage=Decimal("100")),
    ]

    _create(backend, seeded.household_id, split_type=SplitType.CUSTOM, splits=splits)

    tx = transactions_by_description(database_url=sqlite_url, household_id=seeded.household_id)[
        "Dinner"
    ]
    assert [s.member_id for s in tx.splits] == [bob, alice]
    assert [s.owed_amount for s in tx.splits] == [Decimal("70.00"), Decimal("30.00")]


def test_reimbursement_link_is_persisted(sqlite_url, seeded):
    backend = SqlAlchemyBackend(sqlite_url)
    expense_id = _create(backend, seeded.household_id, description="Groceries run")
    refund_id = _create(
        backend,
        seeded.household_id,
        description="Refund",
        amount=Decimal("20"),
        transaction_type=TransactionType.REIMBURSEMENT,
        reimburses_transaction_id=expense_id,
        category_id=seeded.categories["Groceries"],
        excluded_from_budget=True,
        notes="store credit",
    )

    txs = transactions_by_description(database_url=sqlite_url, household_id=seeded.household_id)
    refund = txs["Refund"]
    assert refund.id == refund_id
    assert refund.reimburses_transaction_id == expense_id
    assert refund.transaction_type == "reimbursement"
    assert refund.category_id == seeded.categories["Groceries"]
    assert refund.excluded_from_budget is True
    assert refund.notes == "store credit"
    assert refund.amount == Decimal("20.00")


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"amount": Decimal("0")}, "Amount must be greater than zero"),
        ({"description": "  "}, "Description cannot be empty"),
        ({"paid_by_member_id": uuid.UUID(int=7)}, "Unknown paid by member"),
        ({"category_id": uuid.UUID(int=8)}, "Unknown category"),
        ({"reimburses_transaction_id": uuid.UUID(int=9)}, "not found"),
    ],
)
def test_create_transaction_rejections(sqlite_url, seeded, overrides, message):
    backend = SqlAlchemyBackend(sqlite_url)
    with pytest.raises(CommitError, match=message):
        _create(backend, seeded.household_id, **overrides)
    assert transactions_by_description(
        database_url=sqlite_url, household_id=seeded.household_id
    ) == {}


def test_create_transaction_unknown_household(sqlite_url):
    backend = SqlAlchemyBackend(sqlite_url)
    with pytest.raises(CommitError, match="Household .* not found"):
        _create(backend, uuid.uuid4())


def test_default_splits_without_members_charges_payer(household_id):
    payer = uuid.uuid4()
    (only,) = default_splits(
        amount=Decimal("12.00"),
        split_type=SplitType.EQUAL,
        members=[],
        paid_by_member_id=payer,
        split_member_id=None,
    )
    assert only.member_id == payer
    assert only.owed_amount == Decimal("12.00")
    assert only.paid_percentage == Decimal("100")


def test_default_splits_adds_inactive_payer_with_zero_share(household_id):
    active = [
        Member(id=uuid.uuid4(), household_id=household_id, display_name="Alice"),
        Member(id=uuid.uuid4(), household_id=household_id, display_name="Bob"),
    ]
    outsider = uuid.uuid4()
    splits = default_splits(
        amount=Decimal("0.05"),
        split_type=SplitType.EQUAL,
        members=active,
        paid_by_member_id=outsider,
        split_member_id=None,
    )
    assert [s.owed_amount for s in splits] == [Decimal("0.03"), Decimal("0.02"), Decimal("0")]
    assert splits[-1].member_id == outsider
    assert splits[-1].paid_amount == Decimal("0.05")
