# Purpose: Operation lookup. Resolves a capability name to the Python callable
#          behind it and describes that callable's parameters so the catalog
#          builder can advertise them.
# Relationships: Used by core/catalog.py (resolve + describe) and
#               core/invoker.py (OperationMetadata.invoke).
#
# This is the only module that introspects callables. The invoker and catalog
# builder see OperationMetadata and nothing else, so a static manifest can
# replace the resolver without touching either of them.

import importlib
import inspect
import logging
import re
import typing
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable

from pydantic import ConfigDict, validate_call
from pydantic.fields import FieldInfo

from .capabilities import bare_name
from .type_mapping import enum_class, enum_values

logger = logging.getLogger("operations")

_SECTION_HEADER_RE = re.compile(r"^[A-Z][A-Za-z ]*:\s*$")
_ARGS_HEADER_RE = re.compile(r"^(Args|Arguments|Parameters):\s*$")
_ARG_LINE_RE = re.compile(r"^\s*\*{0,2}(\w+)\s*(?:\([^)]*\))?\s*:\s*(.*)$")

# Operations may annotate parameters with their own classes.
_VALIDATE_CONFIG = ConfigDict(arbitrary_types_allowed=True)


@dataclass(frozen=True)
class ParameterMetadata:
    name: str
    annotation: Any
    mandatory: bool
    description: str | None = None

    @property
    def enum_values(self) -> tuple[str, ...] | None:
        return enum_values(self.annotation)


@dataclass
class OperationMetadata:
    name: str
    qualified_name: str
    description: str | None
    parameters: list[ParameterMetadata]
    callback: Callable[..., Any] = field(repr=False)

    def parameter(self, name: str) -> ParameterMetadata | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def invoke(self, arguments: dict[str, Any]) -> Any:
        # [INVARIANT] Arguments are validated against the signature before the
        # callable runs. Call this, never callback directly.
        kwargs = {name: self._coerce(name, value) for name, value in arguments.items()}
        return self._validated(**kwargs)

    @cached_property
    def _validated(self) -> Callable[..., Any]:
        if inspect.isfunction(self.callback) or inspect.ismethod(self.callback):
            return validate_call(self.callback, config=_VALIDATE_CONFIG)
        return self.callback

    def _coerce(self, name: str, value: Any) -> Any:
        # The catalog advertises enum members by name; convert them back.
        param = self.parameter(name)
        enum_type = enum_class(param.annotation) if param else None
        if enum_type is not None and isinstance(value, str) and value in enum_type.__members__:
            return enum_type[value]
        return value


class OperationResolver:
    """
    Resolve operation names to OperationMetadata.

    Lookup order: an exactly registered name, the registered bare name, then
    an import path of the form "package.module:function".
    """

    def __init__(self, operations: dict[str, Callable[..., Any]] | None = None) -> None:
        self._operations: dict[str, Callable[..., Any]] = dict(operations or {})

    def register(self, func: Callable[..., Any], name: str | None = None) -> None:
        self._operations[name or func.__name__] = func

    def resolve(self, name: str) -> OperationMetadata | None:
        func = self._lookup(name)
        if func is None:
            return None
        try:
            return describe_operation(func, qualified_name=name)
        except (TypeError, ValueError) as exc:
            logger.warning("Cannot inspect operation %r: %s", name, exc)
            return None

    def _lookup(self, name: str) -> Callable[..., Any] | None:
        if name in self._operations:
            return self._operations[name]
        bare = bare_name(name)
        if bare in self._operations:
            return self._operations[bare]
        if ":" in name:
            return _import_callable(name)
        logger.debug("No operation registered as %r.", name)
        return None


def describe_operation(func: Callable[..., Any], qualified_name: str | None = None) -> OperationMetadata:
    """
    Build OperationMetadata for a callable.

    Raises TypeError or ValueError if the callable has no inspectable
    signature (some builtins).
    """
    signature = inspect.signature(func)
    hints = _type_hints(func)
    doc = inspect.getdoc(func) or ""
    arg_docs = _parse_arg_docs(doc)

    parameters = []
    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = hints.get(param.name, param.annotation)
        parameters.append(
            ParameterMetadata(
                name=param.name,
                annotation=annotation,
                mandatory=param.default is param.empty,
                description=_annotated_description(annotation) or arg_docs.get(param.name),
            )
        )

    name = bare_name(qualified_name) if qualified_name else getattr(func, "__name__", "operation")
    return OperationMetadata(
        name=name,
        qualified_name=qualified_name or name,
        description=_summary(doc),
        parameters=parameters,
        callback=func,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _import_callable(path: str) -> Callable[..., Any] | None:
    module_name, _, attr = path.rpartition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        logger.info("Cannot import %r for operation %r: %s", module_name, path, exc)
        return None
    func = getattr(module, attr, None)
    if not callable(func):
        logger.info("%r has no callable named %r.", module_name, attr)
        return None
    return func


def _type_hints(func: Callable[..., Any]) -> dict[str, Any]:
    # Unresolvable forward references fall back to the raw annotations
    # from the signature.
    try:
        return typing.get_type_hints(func, include_extras=True)
    except (NameError, TypeError) as exc:
        logger.debug("Falling back to raw annotations for %r: %s", func, exc)
        return {}


def _annotated_description(annotation: Any) -> str | None:
    if typing.get_origin(annotation) is not typing.Annotated:
        return None
    for meta in typing.get_args(annotation)[1:]:
        if isinstance(meta, str) and meta.strip():
            return meta.strip()
        if isinstance(meta, FieldInfo) and meta.description:
            return meta.description
    return None


def _summary(doc: str) -> str | None:
    """Docstring text before the first section header such as 'Args:'."""
    lines = []
    for line in doc.splitlines():
        if _SECTION_HEADER_RE.match(line):
            break
        lines.append(line)
    text = "\n".join(lines).strip()
    return text or None


def _parse_arg_docs(doc: str) -> dict[str, str]:
    """Parse a Google-style 'Args:' section into {name: description}."""
    docs: dict[str, str] = {}
    in_section = False
    entry_indent = None
    current = None
    for line in doc.splitlines():
        if not in_section:
            in_section = bool(_ARGS_HEADER_RE.match(line.strip())) and not line[:1].isspace()
            continue
        if not line.strip():
            if docs:
                break
            continue
        indent = len(line) - len(line.lstrip())
        if indent == 0:
            break
        if entry_indent is None:
            entry_indent = indent
        if indent == entry_indent:
            match = _ARG_LINE_RE.match(line)
            if not match:
                break
            current = match.group(1)
            docs[current] = match.group(2).strip()
        elif current is not None:
            docs[current] = f"{docs[current]} {line.strip()}".strip()
    return {name: text for name, text in docs.items() if text}
