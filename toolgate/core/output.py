"""
Normalization of operation results into the text handed back to the model.

Every result becomes either the VOID_RESULT sentinel or a JSON document, so
the conversation loop never has to know what the operation returned.
"""

import json
import math
from collections.abc import Iterable, Mapping
from dataclasses import fields, is_dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from .contracts import OUTPUT_JSON, OUTPUT_STRING
from .diagnostics import Diagnostics

VOID_RESULT = "Completed successfully with no output."

DEFAULT_JSON_DEPTH = 2

_SCALAR_TYPES = (str, bytes, bool, int, float, Decimal, Enum, datetime, date, time, UUID, PurePath)


def normalize_output(
    value: Any,
    diagnostics: Diagnostics | None = None,
    plain_text: bool = False,
    json_depth: int = DEFAULT_JSON_DEPTH,
) -> tuple[str, str]:
    """Return (output, output_type) for an operation's return value."""
    diagnostics = diagnostics or Diagnostics()

    if value is None:
        if diagnostics.errors:
            payload = {
                "success": False,
                "errors": diagnostics.errors,
                "warnings": diagnostics.warnings,
            }
            return _encode(payload), OUTPUT_JSON
        return VOID_RESULT, OUTPUT_STRING

    if is_json_string(value):
        return value, OUTPUT_JSON

    if isinstance(value, _SCALAR_TYPES):
        if plain_text:
            return _encode(to_text(value)), OUTPUT_JSON
        return _encode(to_jsonable(value, json_depth)), OUTPUT_JSON

    items = list(value) if _is_collection(value) else None
    if plain_text:
        text = "\n".join(to_text(item) for item in items) if items is not None else to_text(value)
        return _encode(text), OUTPUT_JSON
    if items is not None:
        payload = [_round_trip(to_jsonable(item, json_depth)) for item in items]
    else:
        payload = _round_trip(to_jsonable(value, json_depth))
    return _encode(payload), OUTPUT_JSON


def is_json_string(value: Any) -> bool:
    if not isinstance(value, str) or isinstance(value, Enum):
        return False
    try:
        json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return False
    return True


def to_jsonable(value: Any, depth: int = DEFAULT_JSON_DEPTH) -> Any:
    """
    Convert value into plain JSON types.

    depth is the number of container levels still expanded. Containers met
    once it reaches zero are rendered with to_text instead of being walked,
    which bounds the cost of serializing deep or cyclic object graphs.
    """
    # IntEnum and StrEnum members are ints and strs too; name wins.
    if isinstance(value, Enum):
        return value.name
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
        # JSON has no NaN or Infinity.
        return number if math.isfinite(number) else to_text(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (UUID, PurePath)):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if depth <= 0:
        return to_text(value)

    if isinstance(value, BaseModel):
        value = value.model_dump()
    elif is_dataclass(value) and not isinstance(value, type):
        value = {f.name: getattr(value, f.name) for f in fields(value)}

    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v, depth - 1) for k, v in value.items()}
    if _is_collection(value):
        return [to_jsonable(item, depth - 1) for item in value]
    attributes = _public_attributes(value)
    if attributes is not None:
        return {k: to_jsonable(v, depth - 1) for k, v in attributes.items()}
    return to_text(value)


def to_text(value: Any) -> str:
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _is_collection(value: Any) -> bool:
    return (
        isinstance(value, Iterable)
        and not isinstance(value, (str, bytes, bytearray, Mapping, BaseModel))
    )


def _public_attributes(value: Any) -> dict[str, Any] | None:
    try:
        attributes = vars(value)
    except TypeError:
        return None
    return {k: v for k, v in attributes.items() if not k.startswith("_")}


def _round_trip(payload: Any) -> Any:
    return json.loads(json.dumps(payload, default=str, allow_nan=False))


def _encode(payload: Any) -> str:
    return json.dumps(payload, allow_nan=False)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")
