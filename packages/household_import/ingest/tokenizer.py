"""CSV tokenizer for the transactions and splits files.

Parsing follows RFC 4180 via the stdlib :mod:`csv` module: comma delimiters,
optional double-quote quoting with embedded commas/newlines, and doubled
quotes as an escaped quote.

Contract
--------
- The first non-blank record is the header and never becomes a data row.
- Fully blank records are skipped.
- ``row_number`` is the 1-based physical line on which a record starts,
  counted across skipped blank lines and newlines embedded in quoted cells.
- Undecodable bytes, a missing header, or missing required columns raise
  :class:`~household_import.errors.ParseError`. Zero data rows is not an
  error at this layer.
"""

from __future__ import annotations

import csv
import io
from os import PathLike
from pathlib import Path

from ..errors import ParseError
from ..logging_setup import get_logger
from ..models import ParsedCsv, RawImportRow
from .columns import PRIMARY_SCHEMA, CsvSchema, map_columns, missing_required

logger = get_logger("household_import.ingest.tokenizer")


def _decode(data: bytes | str) -> str:
    if isinstance(data, str):
        return data.removeprefix("\ufeff")
    try:
        # utf-8-sig drops a leading BOM written by spreadsheet exports
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(
            "File encoding error. Please make sure the file is UTF-8 encoded text"
        ) from exc


def parse_csv(data: bytes | str, schema: CsvSchema = PRIMARY_SCHEMA) -> ParsedCsv:
    """Tokenize ``data`` into a header and ordered :class:`RawImportRow` records."""

    text = _decode(data)
    reader = csv.reader(io.StringIO(text, newline=""))

    header: tuple[str, ...] | None = None
    columns: dict[str, int] = {}
    rows: list[RawImportRow] = []
    prev_line = 0

    try:
        for record in reader:
            start_line = prev_line + 1
            prev_line = reader.line_num
            cells = tuple(c.strip() for c in record)
            if not any(cells):
                continue

            if header is None:
                header = cells
                columns = map_columns(header, schema)
                missing = missing_required(columns, schema)
                if missing:
                    raise ParseError(
                        f"CSV header mismatch for {schema.name} file. Missing columns: "
                        + ", ".join(missing)
                    )
                continue

            if len(cells) < len(header):
                cells = cells + ("",) * (len(header) - len(cells))
            values = {key: cells[idx] for key, idx in columns.items()}
            rows.append(RawImportRow(row_number=start_line, cells=cells, values=values))
    except csv.Error as exc:
        raise ParseError(
            f"Failed to parse {schema.name} CSV near line {prev_line + 1}: {exc}"
        ) from exc

    if header is None:
        raise ParseError(f"CSV appears to have no header row ({schema.name} file)")

    logger.debug("parsed %d %s row(s)", len(rows), schema.name)
    return ParsedCsv(header=header, columns=columns, rows=tuple(rows))


def read_csv_file(path: str | PathLike[str], schema: CsvSchema = PRIMARY_SCHEMA) -> ParsedCsv:
    """Read ``path`` as bytes and tokenize it with ``schema``.

    ``OSError`` (missing file, permissions) propagates unchanged; decoding and
    structural problems raise ``ParseError``.
    """

    return parse_csv(Path(path).read_bytes(), schema)


__all__ = ["parse_csv", "read_csv_file"]
