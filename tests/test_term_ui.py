import contextlib
from decimal import Decimal

from prompt_toolkit import PromptSession
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.output import DummyOutput

from household_import.ingest import SPLITS_SCHEMA, parse_csv
from household_import.splits import validate_split_rows
from household_import.models import ImportResult, ImportSummary
from household_import.term_ui import (
    confirm_import,
    format_result,
    format_row_messages,
    format_summary,
)
from household_import.validation import validate_rows

SUMMARY = ImportSummary(
    total_rows=4,
    valid_rows=2,
    warning_rows=1,
    invalid_rows=1,
    total_split_rows=2,
    transactions_with_splits=1,
    reimbursements_with_references=1,
    new_categories_to_create=("Pets",),
    existing_categories_used=("Groceries",),
    members_used=("Alice", "Bob"),
    total_amount=Decimal("150.5"),
    amount_by_type={"expense": Decimal("130.5"), "reimbursement": Decimal("20")},
)


@contextlib.contextmanager
def pipe_session():
    with create_pipe_input() as pipe:
        sess = PromptSession(input=pipe, output=DummyOutput())
        yield pipe, sess


def test_confirm_accepts_yes():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0byes\r")  # Ctrl-A, Ctrl-K to clear the default
        assert confirm_import(SUMMARY, session=sess) is True


def test_confirm_default_is_no():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\r")
        assert confirm_import(SUMMARY, session=sess) is False


def test_confirm_reprompts_until_answer_is_valid():
    with pipe_session() as (pipe, sess):
        pipe.send_text("\x01\x0bmaybe\r")
        pipe.send_text("\x01\x0bY\r")
        assert confirm_import(SUMMARY, session=sess) is True


def test_confirm_skips_prompt_when_nothing_importable():
    nothing = ImportSummary(total_rows=2, invalid_rows=2)
    # No input is queued: reaching the prompt would block or fail
    assert confirm_import(nothing, session=None) is False


def test_format_summary():
    text = format_summary(SUMMARY)
    assert text.splitlines() == [
        "Rows: 4 total, 2 valid, 1 with warnings, 1 invalid",
        "Total amount: 150.50",
        "  expense: 130.50",
        "  reimbursement: 20.00",
        "Linked reimbursements: 1",
        "Split rows: 2 (1 transaction(s) with custom splits)",
        "New categories: Pets",
        "Existing categories: Groceries",
        "Members: Alice, Bob",
    ]


def test_format_row_messages():
    parsed = parse_csv("Description,Amount,Type,Split Type,Paid By\n,5,expense,equal,\n")
    rows, _ = validate_rows(parsed.rows, [], [])
    assert format_row_messages(rows).splitlines() == [
        "Row 2: error: Missing required field: Description",
        "Row 2: warning: No date specified - today's date will be used",
        "Row 2: warning: No category specified - transaction will be uncategorized",
        "Row 2: warning: No 'Paid By' specified - will be assigned to you",
    ]


def test_format_row_messages_includes_split_warnings(members):
    parsed = parse_csv("Transaction Row,Member Name,Owed %\n1,Alice,1e30\n", SPLITS_SCHEMA)
    split_rows = validate_split_rows(parsed.rows, members)
    assert format_row_messages([], split_rows) == (
        'Splits row 2: warning: Owed % "1e30" must be between 0 and 100 and will be ignored'
    )


def test_format_result():
    result = ImportResult(
        success_count=3,
        failed_count=1,
        created_categories=("Pets",),
        errors=("Row 4: server rejected 'Lunch'",),
        failed_row_numbers=(4,),
        cancelled=True,
    )
    assert format_result(result).splitlines() == [
        "Imported 3 transaction(s), 1 failed",
        "Created categories: Pets",
        "Import was cancelled before all rows were committed",
        "Row 4: server rejected 'Lunch'",
    ]
