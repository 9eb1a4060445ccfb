"""
Builders for the CSV and Excel payloads used across the import tests.
"""

import io
from typing import Iterable, List, Sequence

import pandas as pd

ORG_ID = "11111111-1111-1111-1111-111111111111"
OTHER_ORG_ID = "22222222-2222-2222-2222-222222222222"
USER_ID = "33333333-3333-3333-3333-333333333333"


def csv_bytes(lines: Iterable[str]) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


def xlsx_bytes(headers: Sequence[str], rows: List[Sequence] = ()) -> bytes:
    """Single-sheet workbook; with no rows only the header row is written."""
    buffer = io.BytesIO()
    pd.DataFrame(list(rows), columns=list(headers)).to_excel(buffer, index=False)
    return buffer.getvalue()


def candidate_csv(valid: int, invalid: int) -> bytes:
    """Candidates CSV with `valid` good rows followed by `invalid` rows missing an email."""
    lines = ["first_name,last_name,email"]
    lines += [f"Valid{i},Person,valid{i}@example.com" for i in range(valid)]
    lines += [f"Invalid{i},Person," for i in range(invalid)]
    return csv_bytes(lines)
