"""Tiny terminal UI helpers (prompt_toolkit-based).

Plain-text rendering of the pre-commit summary and the commit result, plus
the yes/no confirmation shown before an import is committed. Kept apart from
the import engine so the prompts are easy to test with a pipe input.
"""

from __future__ import annotations

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.validation import ValidationError, Validator

from .models import ImportResult, ImportRow, ImportSplitRow, ImportSummary

_YES = frozenset({"y", "yes"})
_NO = frozenset({"n", "no"})


# ----------------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------------


def format_summary(summary: ImportSummary) -> str:
    lines = [
        f"Rows: {summary.total_rows} total, {summary.valid_rows} valid, "
        f"{summary.warning_rows} with warnings, {summary.invalid_rows} invalid",
        f"Total amount: {summary.total_amount:.2f}",
    ]
    for kind, amount in sorted(summary.amount_by_type.items()):
        lines.append(f"  {kind}: {amount:.2f}")
    if summary.reimbursements_with_references:
        lines.append(f"Linked reimbursements: {summary.reimbursements_with_references}")
    if summary.has_split_data:
        lines.append(
            f"Split rows: {summary.total_split_rows} "
            f"({summary.transactions_with_splits} transaction(s) with custom splits)"
        )
    if summary.new_categories_to_create:
        lines.append("New categories: " + ", ".join(summary.new_categories_to_create))
    if summary.existing_categories_used:
        lines.append("Existing categories: " + ", ".join(summary.existing_categories_used))
    if summary.members_used:
        lines.append("Members: " + ", ".join(summary.members_used))
    return "\n".join(lines)


def format_row_messages(
    rows: list[ImportRow] | tuple[ImportRow, ...],
    split_rows: list[ImportSplitRow] | tuple[ImportSplitRow, ...] = (),
) -> str:
    """One line per error/warning, keyed by source line number."""

    lines: list[str] = []
    for row in rows:
        lines.extend(f"Row {row.row_number}: error: {m}" for m in row.errors)
        lines.extend(f"Row {row.row_number}: warning: {m}" for m in row.warnings)
    for split in split_rows:
        lines.extend(f"Splits row {split.row_number}: warning: {m}" for m in split.warnings)
    return "\n".join(lines)


def format_result(result: ImportResult) -> str:
    lines = [f"Imported {result.success_count} transaction(s), {result.failed_count} failed"]
    if result.created_categories:
        lines.append("Created categories: " + ", ".join(result.created_categories))
    if result.cancelled:
        lines.append("Import was cancelled before all rows were committed")
    lines.extend(result.errors)
    return "\n".join(lines)


# ----------------------------------------------------------------------------
# Confirmation prompt
# ----------------------------------------------------------------------------


class _YesNoValidator(Validator):
    def validate(self, document) -> None:
        if document.text.strip().lower() not in _YES | _NO:
            raise ValidationError(message="Please answer yes or no.")


def confirm_import(
    summary: ImportSummary,
    *,
    session: PromptSession | None = None,
    message: str | None = None,
) -> bool:
    """Ask whether to commit the importable rows of ``summary``.

    Returns ``True`` for yes. Esc, Ctrl-C or "no" decline. Nothing is asked
    (and ``False`` returned) when no row can be imported.
    """

    if not summary.can_import_valid:
        return False

    if message is None:
        message = f"Import {summary.importable_rows} transaction(s)"
        if summary.invalid_rows:
            message += f" ({summary.invalid_rows} invalid row(s) will be skipped)"
        message += "? [y/N]: "

    kb = KeyBindings()

    @kb.add("escape")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result="n")

    @kb.add("c-c")
    def _(event) -> None:  # pragma: no cover - exercised indirectly
        event.app.exit(result="n")

    if session is None:
        sess: PromptSession = PromptSession(key_bindings=kb)
    else:
        sess = PromptSession(
            input=getattr(session, "input", None),
            output=getattr(session, "output", None),
            key_bindings=kb,
        )

    answer = sess.prompt(
        message,
        default="n",
        completer=WordCompleter(["yes", "no"], ignore_case=True),
        validator=_YesNoValidator(),
        validate_while_typing=False,
    )
    return (answer or "").strip().lower() in _YES


__all__ = ["confirm_import", "format_result", "format_row_messages", "format_summary"]
