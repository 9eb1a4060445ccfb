"""
Preset validators and cell coercion helpers for import rows.

Cells arrive as loosely typed spreadsheet values (text, numbers, booleans).
The helpers here resolve them into the concrete types the entity schemas
expect.
"""

import math
import re
from typing import List, Optional, Tuple

from app.api.schemas.imports import CellValue


PRESET_PATTERNS = {
    "email": r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$",
    "phone": r"^\+?[\d\s\-\.\(\)]{7,20}$",
    "url": r"^https?://[^\s/$.?#].[^\s]*$",
}

PRESET_DESCRIPTIONS = {
    "email": "email",
    "phone": "phone number",
    "url": "URL",
}

TRUTHY_TOKENS = frozenset({"true", "yes", "1", "remote"})


def validate_with_preset(
    value: CellValue,
    preset_name: str,
    allow_null: bool = True
) -> Tuple[bool, Optional[str]]:
    """
    Validate a value against a preset pattern.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if is_blank(value):
        if allow_null:
            return True, None
        return False, "Value is required"

    pattern = PRESET_PATTERNS.get(preset_name)
    if pattern is None:
        return False, f"Unknown preset validator: {preset_name}"

    str_val = str(value).strip()
    if not re.match(pattern, str_val):
        description = PRESET_DESCRIPTIONS.get(preset_name, preset_name)
        return False, f"Value '{str_val}' is not a valid {description}"
    return True, None


def is_blank(value: CellValue) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def to_text(value: CellValue) -> str:
    """Render a cell as trimmed text; integral floats lose their '.0'."""
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def optional_text(value: CellValue) -> Optional[str]:
    """Cell as text, or None when the cell is empty."""
    return to_text(value) or None


def to_list(value: CellValue) -> List[str]:
    """Split a comma-separated cell into trimmed, non-empty items."""
    if isinstance(value, (list, tuple)):
        return [to_text(item) for item in value if not is_blank(item)]
    if is_blank(value):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [to_text(value)]


def to_bool(value: CellValue) -> bool:
    """Interpret a cell as a flag; text is matched case-insensitively against TRUTHY_TOKENS."""
    if isinstance(value, bool):
        return value
    if is_blank(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_TOKENS
    return bool(value)
