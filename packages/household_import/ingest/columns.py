"""Column schemas for the primary transactions CSV and the optional splits CSV.

Header cells are matched case-insensitively against each column's alias list
after trimming and collapsing internal whitespace. Unknown headers are
ignored; for each column the first matching header wins.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CsvColumn:
    key: str
    label: str
    aliases: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class CsvSchema:
    name: str
    columns: tuple[CsvColumn, ...]
    required: frozenset[str]

    def label(self, key: str) -> str:
        for col in self.columns:
            if col.key == key:
                return col.label
        return key


def normalize_header(cell: str) -> str:
    return " ".join(cell.strip().lower().split())


# Canonical keys, shared with the validator
ROW = "row"
DATE = "date"
DESCRIPTION = "description"
AMOUNT = "amount"
TYPE = "type"
CATEGORY = "category"
PAID_BY = "paid_by"
PAID_TO = "paid_to"
SPLIT_TYPE = "split_type"
SPLIT_MEMBER = "split_member"
REIMBURSES_ROW = "reimburses_row"
EXCLUDED_FROM_BUDGET = "excluded_from_budget"
NOTES = "notes"

TRANSACTION_ROW = "transaction_row"
MEMBER_NAME = "member_name"
OWED_AMOUNT = "owed_amount"
OWED_PERCENTAGE = "owed_percentage"
PAID_AMOUNT = "paid_amount"
PAID_PERCENTAGE = "paid_percentage"


PRIMARY_SCHEMA = CsvSchema(
    name="transactions",
    columns=(
        CsvColumn(ROW, "Row", ("row", "row number", "row #", "row_number", "row id", "row_id")),
        CsvColumn(DATE, "Date", ("date", "transaction date", "trans date")),
        CsvColumn(DESCRIPTION, "Description", ("description", "desc", "memo", "name")),
        CsvColumn(AMOUNT, "Amount", ("amount", "value", "sum", "total")),
        CsvColumn(TYPE, "Type", ("type", "transaction type", "trans type")),
        CsvColumn(CATEGORY, "Category", ("category", "cat", "category name")),
        CsvColumn(PAID_BY, "Paid By", ("paid by", "paidby", "paid_by", "member", "who paid")),
        CsvColumn(PAID_TO, "Paid To", ("paid to", "paidto", "paid_to", "recipient")),
        CsvColumn(SPLIT_TYPE, "Split Type", ("split type", "split_type", "splittype", "split")),
        CsvColumn(SPLIT_MEMBER, "Split Member", ("split member", "split_member", "splitmember")),
        CsvColumn(
            REIMBURSES_ROW,
            "Reimburses Row",
            (
                "reimburses row",
                "reimburses_row",
                "reimbursesrow",
                "reimburses",
                "reimburses row id",
            ),
        ),
        CsvColumn(
            EXCLUDED_FROM_BUDGET,
            "Excluded From Budget",
            ("excluded from budget", "excluded_from_budget", "excludedfrombudget", "excluded"),
        ),
        CsvColumn(NOTES, "Notes", ("notes", "note", "comments", "comment")),
    ),
    required=frozenset({DESCRIPTION, AMOUNT}),
)


SPLITS_SCHEMA = CsvSchema(
    name="splits",
    columns=(
        CsvColumn(
            TRANSACTION_ROW,
            "Transaction Row",
            ("transaction row", "transaction_row", "transactionrow", "row"),
        ),
        CsvColumn(
            MEMBER_NAME, "Member Name", ("member name", "member_name", "membername", "member")
        ),
        CsvColumn(OWED_AMOUNT, "Owed Amount", ("owed amount", "owed_amount", "owedamount", "owed")),
        CsvColumn(
            OWED_PERCENTAGE,
            "Owed %",
            ("owed %", "owed_percentage", "owedpercentage", "owed percent"),
        ),
        CsvColumn(PAID_AMOUNT, "Paid Amount", ("paid amount", "paid_amount", "paidamount", "paid")),
        CsvColumn(
            PAID_PERCENTAGE,
            "Paid %",
            ("paid %", "paid_percentage", "paidpercentage", "paid percent"),
        ),
    ),
    required=frozenset({TRANSACTION_ROW, MEMBER_NAME}),
)


def map_columns(header: Sequence[str], schema: CsvSchema) -> dict[str, int]:
    """Return ``{column key: header index}`` for every schema column present."""

    normalized = [normalize_header(h) for h in header]
    mapping: dict[str, int] = {}
    for col in schema.columns:
        for idx, cell in enumerate(normalized):
            if cell in col.aliases:
                mapping[col.key] = idx
                break
    return mapping


def missing_required(mapping: Mapping[str, int], schema: CsvSchema) -> list[str]:
    return sorted(schema.label(k) for k in schema.required if k not in mapping)


__all__ = [
    "CsvColumn",
    "CsvSchema",
    "PRIMARY_SCHEMA",
    "SPLITS_SCHEMA",
    "map_columns",
    "missing_required",
    "normalize_header",
]
