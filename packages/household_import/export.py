"""Failed-row exporter.

Writes every row that did not fully succeed back out as CSV, with the
original columns followed by an ``Errors`` column, so the user can fix the
file and upload it again. Rows are exported when validation did not mark
them ``valid`` or, when a commit result is supplied, when their create call
failed or was skipped. Committed rows are left out.

Quoting uses the stdlib :mod:`csv` writer (minimal quoting, doubled quotes),
which is the same dialect the tokenizer reads, so re-parsing the export yields
the original cell text.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from os import PathLike
from pathlib import Path

from .ingest.columns import PRIMARY_SCHEMA, normalize_header
from .logging_setup import get_logger
from .models import ImportResult, ImportRow, ValidationStatus

logger = get_logger("household_import.export")

ERRORS_HEADER = "Errors"
MESSAGE_SEPARATOR = "; "


def rows_to_export(
    rows: Sequence[ImportRow],
    *,
    result: ImportResult | None = None,
) -> list[tuple[ImportRow, list[str]]]:
    """Return ``(row, messages)`` for each exported row, in input order.

    With ``result``, rows that were committed are never exported, even when
    validation attached warnings to them.
    """

    failed = set(result.failed_row_numbers) if result is not None else set()
    created = result.created_transactions if result is not None else {}
    out: list[tuple[ImportRow, list[str]]] = []
    for row in rows:
        failed_commit = row.row_number in failed
        if not failed_commit and (
            row.row_number in created or row.validation_status is ValidationStatus.VALID
        ):
            continue
        messages = [*row.errors, *row.warnings]
        if failed_commit and result is not None and result.row_errors.get(row.row_number):
            messages.append(result.row_errors[row.row_number])
        out.append((row, messages))
    return out


def _canonical(rows: Sequence[ImportRow]) -> tuple[list[str], list[list[str]]]:
    header = [c.label for c in PRIMARY_SCHEMA.columns]
    cells = [[row.raw.get(c.key) for c in PRIMARY_SCHEMA.columns] for row in rows]
    return header, cells


def to_csv(
    rows: Sequence[ImportRow],
    header: Sequence[str] | None = None,
    *,
    result: ImportResult | None = None,
) -> str:
    """Serialize failed rows as CSV text.

    With ``header`` (the uploaded file's header), each row's original cells are
    written in their original order. Without it, the canonical transaction
    columns are used. A pre-existing ``Errors`` column is replaced rather than
    duplicated.
    """

    selected = rows_to_export(rows, result=result)
    if header is None:
        out_header, bodies = _canonical([r for r, _ in selected])
    else:
        width = len(header)
        out_header = list(header)
        bodies = [
            list(row.raw.cells[:width]) + [""] * (width - len(row.raw.cells))
            for row, _ in selected
        ]

    drop = [i for i, h in enumerate(out_header) if normalize_header(h) == "errors"]
    if drop:
        out_header = [h for i, h in enumerate(out_header) if i not in drop]
        bodies = [[c for i, c in enumerate(b) if i not in drop] for b in bodies]

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([*out_header, ERRORS_HEADER])
    for body, (_, messages) in zip(bodies, selected, strict=True):
        writer.writerow([*body, MESSAGE_SEPARATOR.join(messages)])
    return buf.getvalue()


def write_failed_rows(
    path: str | PathLike[str],
    rows: Sequence[ImportRow],
    header: Sequence[str] | None,
    *,
    result: ImportResult | None = None,
) -> int:
    """Write the failed-rows CSV to ``path`` and return how many rows it holds."""

    count = len(rows_to_export(rows, result=result))
    Path(path).write_text(to_csv(rows, header, result=result), encoding="utf-8", newline="")
    logger.info("wrote %d failed row(s) to %s", count, path)
    return count


__all__ = ["ERRORS_HEADER", "rows_to_export", "to_csv", "write_failed_rows"]
