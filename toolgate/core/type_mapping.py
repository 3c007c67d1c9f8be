"""
Mapping from Python parameter annotations to the small type vocabulary
accepted by function-calling transports.

The vocabulary is string | number | boolean | object. Arrays are reported as
object because tool parameters typed as array are rejected by some MCP and
LM-Studio transports.
"""

import enum
import inspect
import types
from decimal import Decimal
from fractions import Fraction
from pathlib import PurePath
from typing import Annotated, Any, Literal, Union, get_args, get_origin

# bool is handled separately (see convert_type_to_llm_type); it must be tested
# before int because bool is a subclass of int.
_TYPE_TABLE: dict[type, str] = {
    str: "string",
    int: "number",
    float: "number",
    Decimal: "number",
    Fraction: "number",
    dict: "object",
    list: "object",
    tuple: "object",
    set: "object",
    frozenset: "object",
}

_UNION_TYPES = (Union, types.UnionType)


def convert_type_to_llm_type(annotation: Any, boolean_type: str = "object") -> str:
    """
    Convert a Python annotation to an LLM parameter type.

    boolean_type is what a plain bool maps to. It defaults to "object" because
    several local transports refuse boolean tool parameters; pass "boolean"
    for transports that accept them.
    """
    annotation = _unwrap(annotation)

    if annotation is inspect.Parameter.empty or annotation is Any:
        return "object"

    origin = get_origin(annotation)
    if origin is Literal:
        values = get_args(annotation)
        if all(isinstance(v, bool) for v in values):
            return boolean_type
        if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
            return "number"
        if all(isinstance(v, str) for v in values):
            return "string"
        return "object"
    if origin in _UNION_TYPES:
        return "object"
    if origin is not None:
        # Parametrised generics such as list[int] or dict[str, Any].
        return "object"

    if not isinstance(annotation, type):
        return "object"
    if issubclass(annotation, enum.Enum):
        return "string"
    if annotation is bool:
        return boolean_type
    if issubclass(annotation, PurePath):
        return "string"
    for native, llm_type in _TYPE_TABLE.items():
        if issubclass(annotation, native):
            return llm_type
    return "object"


def enum_values(annotation: Any) -> tuple[str, ...] | None:
    """
    Return the symbolic values an enum-like annotation accepts, or None.

    Enum subclasses yield their member names; Literal annotations whose
    values are all strings yield those strings.
    """
    annotation = _unwrap(annotation)
    if isinstance(annotation, type) and issubclass(annotation, enum.Enum):
        return tuple(member.name for member in annotation)
    if get_origin(annotation) is Literal:
        values = get_args(annotation)
        if values and all(isinstance(v, str) for v in values):
            return tuple(values)
    return None


def enum_class(annotation: Any) -> type[enum.Enum] | None:
    annotation = _unwrap(annotation)
    if isinstance(annotation, type) and issubclass(annotation, enum.Enum):
        return annotation
    return None


def _unwrap(annotation: Any) -> Any:
    """Strip Annotated[...] and Optional[...] wrappers."""
    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            annotation = get_args(annotation)[0]
            continue
        if origin in _UNION_TYPES:
            members = [a for a in get_args(annotation) if a is not type(None)]
            if len(members) == 1:
                annotation = members[0]
                continue
        return annotation
