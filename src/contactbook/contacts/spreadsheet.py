"""
Spreadsheet encoding and decoding for contact import/export.

XLSX is the interchange format; CSV uploads are accepted as well.
"""

import csv
import io
from itertools import zip_longest
from typing import Any, Iterable, Mapping, Sequence
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from contactbook.shared.exceptions import ValidationError
from contactbook.shared.logging import get_logger

logger = get_logger(__name__)


def _normalize_header(header: Any) -> str | None:
    if header is None:
        return None
    text = str(header).strip()
    return text or None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def read_csv_rows(content: bytes, encoding: str = "utf-8-sig") -> list[dict[str, Any]]:
    """Decode CSV content into row records keyed by header.

    Empty cells become ``None``; fully blank lines are dropped.

    Raises:
        ValidationError: If the content cannot be decoded.
    """
    try:
        text = content.decode(encoding)
    except UnicodeDecodeError as e:
        raise ValidationError(f"File encoding error: {e}") from e

    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames is None:
        return []

    headers = {name: _normalize_header(name) for name in reader.fieldnames}
    rows: list[dict[str, Any]] = []
    for raw in reader:
        row = {
            headers[key]: (None if _is_blank(value) else value)
            for key, value in raw.items()
            if key is not None and headers.get(key)
        }
        if any(value is not None for value in row.values()):
            rows.append(row)
    return rows


def read_xlsx_rows(content: bytes) -> list[dict[str, Any]]:
    """Decode the first worksheet of an XLSX workbook into row records.

    The first row holds the headers. Empty cells become ``None`` and fully
    blank rows are dropped.

    Raises:
        ValidationError: If the content is not a readable workbook.
    """
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
        raise ValidationError(f"Unreadable spreadsheet: {e}") from e

    try:
        if not workbook.worksheets:
            return []
        values = workbook.worksheets[0].iter_rows(values_only=True)
        header_row = next(values, None)
        if header_row is None:
            return []
        headers = [_normalize_header(h) for h in header_row]

        rows: list[dict[str, Any]] = []
        for cells in values:
            row = {
                header: (None if _is_blank(value) else value)
                for header, value in zip_longest(headers, cells)
                if header is not None
            }
            if any(value is not None for value in row.values()):
                rows.append(row)
        return rows
    finally:
        workbook.close()


def read_rows(content: bytes, filename: str | None = None) -> list[dict[str, Any]]:
    """Decode an uploaded spreadsheet, choosing the codec by file extension."""
    if filename and filename.lower().endswith(".csv"):
        rows = read_csv_rows(content)
    else:
        rows = read_xlsx_rows(content)

    logger.debug(
        "Spreadsheet decoded",
        extra={"upload_filename": filename, "row_count": len(rows)},
    )
    return rows


def write_workbook(
    rows: Iterable[Mapping[str, Any]],
    columns: Sequence[str],
    sheet_name: str = "Contacts",
) -> bytes:
    """Encode row records as an XLSX workbook with one header row.

    Args:
        rows: Records to write, one worksheet row each.
        columns: Column order; also written as the header row.
        sheet_name: Worksheet title.

    Returns:
        XLSX file content.
    """
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_name
    sheet.append(list(columns))
    for row in rows:
        sheet.append([row.get(column) for column in columns])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
