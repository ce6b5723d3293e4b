"""Environment value kinds, truthiness and text form."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any, Literal

ValueKind = Literal[
    "undefined",
    "null",
    "boolean",
    "number",
    "string",
    "list",
    "mapping",
    "other",
]


class _Undefined:
    """Sentinel for a path that does not resolve. Distinct from None and False."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def kind_of(value: Any) -> ValueKind:
    """Classify a value into one of the closed environment value kinds."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    # bool is a subclass of int, so it has to be checked first
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, Mapping):
        return "mapping"
    return "other"


def is_truthy(value: Any) -> bool:
    """Truthiness used by conditional blocks.

    Empty mappings are truthy, unlike empty strings and lists.
    """
    match kind_of(value):
        case "undefined" | "null":
            return False
        case "boolean":
            return bool(value)
        case "number":
            return value != 0 and not math.isnan(value)
        case "string" | "list":
            return len(value) > 0
        case "mapping" | "other":
            return True
    return True


def _number_text(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_text(value: Any) -> str:
    """Return the text a value renders as in place of a variable marker."""
    match kind_of(value):
        case "undefined" | "null":
            return ""
        case "boolean":
            return "true" if value else "false"
        case "number":
            return _number_text(value)
        case "string":
            return value
        case "list":
            return ",".join(to_text(item) for item in value)
        case "mapping":
            return json.dumps(value, default=str, ensure_ascii=False)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)
