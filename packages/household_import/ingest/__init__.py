"""CSV ingest: column schemas and the tokenizer."""

from .columns import PRIMARY_SCHEMA, SPLITS_SCHEMA, CsvColumn, CsvSchema
from .tokenizer import parse_csv, read_csv_file

__all__ = [
    "CsvColumn",
    "CsvSchema",
    "PRIMARY_SCHEMA",
    "SPLITS_SCHEMA",
    "parse_csv",
    "read_csv_file",
]
