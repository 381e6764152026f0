from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

from household_import.ingest import parse_csv
from household_import.workflows.import_flow import import_from_csv
from tests.helpers.db import seed_household, transactions_by_description

DATA = Path(__file__).resolve().parents[1] / "data"


def test_e2e_import_from_csv_persists_expected(tmp_path: Path, sqlite_url: str):
    # -------------------------
    # DB bootstrap + household
    # -------------------------
    seeded = seed_household(
        database_url=sqlite_url,
        members=(("Alice", "approved"), ("Bob", "approved"), ("Cara", "pending")),
        categories=("Groceries",),
    )
    alice, bob = seeded.members["Alice"], seeded.members["Bob"]
    failed_out = tmp_path / "needs-attention.csv"
    progress: list[str] = []
    confirmed: list = []

    def _confirm(summary) -> bool:
        confirmed.append(summary)
        return True

    # -------------------------
    # Run the workflow
    # -------------------------
    outcome = import_from_csv(
        DATA / "household_transactions.csv",
        household_id=seeded.household_id,
        current_user_id=seeded.user_ids["Alice"],
        splits_path=DATA / "household_splits.csv",
        database_url=sqlite_url,
        confirm=_confirm,
        failed_out=failed_out,
        on_progress=progress.append,
        color_source=lambda: "#96CEB4",
        clock=lambda: date(2024, 5, 31),
    )

    # -------------------------
    # Staging
    # -------------------------
    (summary,) = confirmed
    assert summary.total_rows == 7
    assert summary.invalid_rows == 1
    assert summary.importable_rows == 6
    assert summary.new_categories_to_create == ("Restaurants", "Entertainment")
    assert summary.existing_categories_used == ("Groceries",)
    assert summary.reimbursements_with_references == 2
    assert summary.total_split_rows == 2
    assert summary.transactions_with_splits == 1
    assert summary.total_amount == Decimal("409.20")

    # -------------------------
    # Commit result
    # -------------------------
    result = outcome.result
    assert outcome.committed and result is not None
    assert result.success_count == 6
    assert result.failed_count == 0
    assert result.created_categories == ("Restaurants", "Entertainment")
    assert result.errors == (
        "Row 8: Referenced expense row 42 was not imported or not found",
    )
    assert progress[-1] == f"Wrote 1 row(s) needing attention to {failed_out}."

    # -------------------------
    # Persisted transactions
    # -------------------------
    txs = transactions_by_description(database_url=sqlite_url, household_id=seeded.household_id)
    assert set(txs) == {
        "Weekly groceries",
        "Dinner at Luigi's, downtown",
        "Concert tickets",
        "Gym membership",
        "Bob pays back dinner share",
        "Deposit refund",
    }

    dinner = txs["Dinner at Luigi's, downtown"]
    assert dinner.amount == Decimal("120.00")
    assert dinner.paid_by_member_id == bob
    assert dinner.notes == "anniversary"
    assert sorted(s.owed_amount for s in dinner.splits) == [Decimal("60.00"), Decimal("60.00")]

    payback = txs["Bob pays back dinner share"]
    assert payback.transaction_type == "reimbursement"
    assert payback.reimburses_transaction_id == dinner.id
    assert payback.category_id == dinner.category_id is not None

    concert = txs["Concert tickets"]
    assert concert.split_type == "custom"
    assert [(s.member_id, s.owed_amount, s.paid_amount) for s in concert.splits] == [
        (alice, Decimal("63.00"), Decimal("90.00")),
        (bob, Decimal("27.00"), Decimal("0.00")),
    ]

    gym = txs["Gym membership"]
    assert gym.date == date(2024, 5, 31)
    assert gym.category_id is None
    assert gym.excluded_from_budget is True
    assert [(s.member_id, s.owed_amount) for s in gym.splits] == [(bob, Decimal("40.00"))]

    refund = txs["Deposit refund"]
    assert refund.reimburses_transaction_id is None
    assert refund.created_by_user_id == seeded.user_ids["Alice"]
    assert refund.category_id == seeded.categories["Groceries"]

    # -------------------------
    # Failed-rows export
    # -------------------------
    exported = parse_csv(failed_out.read_bytes())
    assert exported.header[-1] == "Errors"
    # Committed rows stay out of the export even when they carried warnings
    assert [r.get("description") for r in exported.rows] == ["Train to the coast"]
    train = exported.rows[0]
    assert train.get("amount") == "abc"
    assert 'Invalid amount: "abc"' in train.cells[-1]
