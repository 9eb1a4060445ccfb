import csv
import io
import logging
import math
import numbers
import re
from datetime import date, datetime, time
from typing import Any, List

import numpy as np
import pandas as pd

from app.api.schemas.imports import CellValue, RawRow
from app.domain.imports.exceptions import ParseError, UnsupportedFormatError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    "csv": "csv",
    "xls": "excel",
    "xlsx": "excel",
}

_INTEGER_PATTERN = re.compile(r"^[-+]?\d+$")
_DECIMAL_PATTERN = re.compile(r"^[-+]?\d*\.\d+([eE][-+]?\d+)?$|^[-+]?\d+[eE][-+]?\d+$")


def detect_file_type(file_name: str) -> str:
    """
    Map a file name to the parser that handles it.

    Returns:
        'csv' or 'excel'

    Raises:
        UnsupportedFormatError: for any extension other than csv, xls, or xlsx
    """
    extension = file_name.lower().rsplit(".", 1)[-1] if "." in file_name else ""
    file_type = SUPPORTED_EXTENSIONS.get(extension)
    if file_type is None:
        raise UnsupportedFormatError(file_name)
    return file_type


def cast_csv_value(raw: str) -> CellValue:
    """
    Trim a CSV cell and turn numeric strings into numbers.

    Dates are deliberately left as strings; record validation decides how
    to interpret them.
    """
    value = raw.strip()
    if _INTEGER_PATTERN.match(value):
        return int(value)
    if _DECIMAL_PATTERN.match(value):
        return float(value)
    return value


def parse_csv(file_content: bytes) -> List[RawRow]:
    """
    Parse CSV bytes into one dict per data row.

    The header row supplies the keys; blank lines are skipped and every
    cell is trimmed and numerically cast via `cast_csv_value`.

    Raises:
        ParseError: undecodable content, broken quoting, or a row whose
            field count differs from the header. Extra trailing fields are
            accepted only while empty ("Title," under a one-column header).
    """
    try:
        text_content = file_content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(f"CSV parsing error: {exc}") from exc

    reader = csv.reader(io.StringIO(text_content), strict=True)
    headers: List[str] = []
    records: List[RawRow] = []

    try:
        for row in reader:
            if not row:
                continue
            if not headers:
                headers = [field.strip() for field in row]
                continue
            if len(row) < len(headers) or any(field.strip() for field in row[len(headers):]):
                raise ParseError(
                    f"CSV parsing error: Expected {len(headers)} fields on line "
                    f"{reader.line_num}, saw {len(row)}"
                )
            records.append({
                header: cast_csv_value(value) for header, value in zip(headers, row)
            })
    except csv.Error as exc:
        raise ParseError(f"CSV parsing error: {exc}") from exc

    if not headers:
        logger.info("CSV file is empty; no rows parsed")
        return []

    logger.info(f"Parsed CSV with {len(records)} rows, columns: {headers}")
    return records


def parse_excel(file_content: bytes) -> List[RawRow]:
    """
    Parse the first worksheet of an XLS/XLSX workbook into one dict per data row.

    Header cells are lower-cased and trimmed to become keys; columns with a
    blank header are dropped and missing cells become empty strings.

    Raises:
        ParseError: unreadable workbook, no sheets, or fewer than a header
            row plus one data row
    """
    try:
        with pd.ExcelFile(io.BytesIO(file_content)) as workbook:
            if not workbook.sheet_names:
                raise ParseError("Excel parsing error: No sheets found in Excel file")
            df = workbook.parse(workbook.sheet_names[0], header=None, dtype=object)
    except ParseError:
        raise
    except Exception as exc:
        raise ParseError(f"Excel parsing error: {exc}") from exc

    df = df.dropna(how="all")
    if len(df) < 2:
        raise ParseError(
            "Excel parsing error: Excel file must have at least a header row and one data row"
        )

    rows = df.values.tolist()
    header_row = rows[0]
    columns = [
        (index, str(header).lower().strip())
        for index, header in enumerate(header_row)
        if not _is_missing(header) and str(header).strip()
    ]

    records: List[RawRow] = []
    for row in rows[1:]:
        records.append({key: _excel_cell(row[index]) for index, key in columns})

    logger.info(f"Parsed Excel sheet with {len(records)} rows, columns: {[key for _, key in columns]}")
    return records


def parse_file(file_content: bytes, file_name: str) -> List[RawRow]:
    """Dispatch to the CSV or Excel parser based on the file extension."""
    file_type = detect_file_type(file_name)
    if file_type == "csv":
        return parse_csv(file_content)
    return parse_excel(file_content)


def collect_headers(records: List[RawRow]) -> List[str]:
    """Column names across all parsed rows, in first-seen order."""
    headers: List[str] = []
    seen = set()
    for record in records:
        for key in record:
            if key not in seen:
                seen.add(key)
                headers.append(key)
    return headers


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value is pd.NaT


def _excel_cell(value: Any) -> CellValue:
    """Resolve an openpyxl/xlrd cell into a primitive cell value."""
    if _is_missing(value):
        return ""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        value = float(value)
        return int(value) if value.is_integer() else value
    return str(value).strip()
