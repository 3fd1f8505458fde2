from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any


def normalize_key(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    cleaned = str(value).replace("\ufeff", "").replace("\u00a0", " ").strip()
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.casefold()


def has_text(value: Any) -> bool:
    """Value presence for text-like fields: a string with non-whitespace content."""
    return isinstance(value, str) and value.strip() != ""


def is_checked(value: Any) -> bool:
    # "true", 1 and friends are not checked; only a real boolean counts.
    return value is True


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def first_value(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first non-empty value among camelCase/snake_case aliases."""
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return default


def record_id(record: Any) -> str:
    if not isinstance(record, Mapping):
        return ""
    value = record.get("id")
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()
