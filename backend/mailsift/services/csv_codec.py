# backend/mailsift/services/csv_codec.py
"""
CSV decode/encode for uploaded contact lists.

Decoding goes through the stdlib ``csv`` reader (RFC 4180 quoting: quoted
fields may hold commas and newlines, ``""`` is a literal quote). Encoding
quotes a field only when it contains a comma, quote or line break, so the
exported file stays as close to the user's original as possible.
"""
import csv
import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import MalformedInput

logger = logging.getLogger("mailsift.csv")

MIN_LINES_MESSAGE = "CSV must contain at least a header row and one data row"

_NEEDS_QUOTING = (",", '"', "\n", "\r")


@dataclass
class ParsedCsv:
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)


def _is_empty_line(row: Sequence[str]) -> bool:
    return not row or (len(row) == 1 and not row[0].strip())


def _is_blank_row(row: Sequence[str]) -> bool:
    return not any(row)


def _build(lines: List[List[str]]) -> ParsedCsv:
    lines = [line for line in lines if not _is_empty_line(line)]
    if len(lines) < 2:
        raise MalformedInput(MIN_LINES_MESSAGE)

    headers = [h.strip() for h in lines[0]]
    width = len(headers)

    rows = []
    for row_number, raw in enumerate(lines[1:], start=1):
        if _is_blank_row(raw):
            continue
        if len(raw) > width:
            logger.debug(
                "Data row %d has %d cells, header has %d; dropping the extra cells",
                row_number, len(raw), width,
            )
        # pad short rows, drop cells past the header width
        row = list(raw[:width])
        row.extend([""] * (width - len(row)))
        rows.append(row)

    return ParsedCsv(headers=headers, rows=rows)


# ---------------------------------------------------
# Decoders
# ---------------------------------------------------
def decode_csv(content: bytes) -> ParsedCsv:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise MalformedInput(f"CSV is not valid UTF-8 text: {e}") from e

    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        lines = list(reader)
    except csv.Error as e:
        raise MalformedInput(f"Could not parse CSV: {e}") from e

    return _build(lines)


def read_xlsx(content: bytes) -> ParsedCsv:
    """Read the active worksheet of an .xlsx workbook as if it were a CSV."""
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise MalformedInput(f"Could not read spreadsheet: {e}") from e

    try:
        sheet = workbook.active
        lines = [
            ["" if cell is None else str(cell) for cell in row]
            for row in sheet.iter_rows(values_only=True)
        ]
    finally:
        workbook.close()

    return _build(lines)


def decode_upload(filename: str, content: bytes) -> ParsedCsv:
    if filename.lower().endswith(".xlsx"):
        return read_xlsx(content)
    return decode_csv(content)


# ---------------------------------------------------
# Encoder
# ---------------------------------------------------
def encode_field(value: Optional[object]) -> str:
    if value is None:
        return ""
    text = str(value)
    if any(ch in text for ch in _NEEDS_QUOTING):
        return '"' + text.replace('"', '""') + '"'
    return text


def encode_csv(headers: Sequence[str], rows: Iterable[Sequence[Optional[object]]]) -> str:
    lines = [",".join(encode_field(h) for h in headers)]
    for row in rows:
        lines.append(",".join(encode_field(v) for v in row))
    return "\n".join(lines)
