# [SAFETY-CRITICAL] This module defines the allow-list that bounds what the
# model can reach. Nothing outside the registry is exposed to a tool call,
# and nothing inside it runs with parameters it does not permit.
#
# Purpose: CapabilityDescriptor, AllowedParameter, CapabilityRegistry and the
#          name-matching helpers shared by the catalog builder and invoker.
# Relationships: Built by session.py from config.yaml; read by core/catalog.py
#               and core/invoker.py.

import fnmatch
import logging
from typing import Any, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger("capabilities")

LLMType = Literal["string", "number", "boolean", "object"]

# Separators between a module qualifier and an operation's bare name, e.g.
# "toolgate.tools.system:get_os_info" or "System\\get_os_info".
QUALIFIER_SEPARATORS = (":", "\\")


def bare_name(name: str) -> str:
    """Strip any module or namespace qualifier from an operation name."""
    for separator in QUALIFIER_SEPARATORS:
        name = name.rsplit(separator, 1)[-1]
    return name


def names_match(left: str, right: str) -> bool:
    """
    Return True if two operation names refer to the same capability.

    Names match when equal, or when one is the other prefixed by a qualifier,
    so "Module\\cmd" matches "cmd" and "cmd" matches "Module\\cmd". Two names
    with different qualifiers do not match.
    """
    left, right = left.casefold(), right.casefold()
    if left == right:
        return True
    return any(
        left.endswith(separator + right) or right.endswith(separator + left)
        for separator in QUALIFIER_SEPARATORS
    )


def matches_pattern(name: str, pattern: str) -> bool:
    """Case-insensitive wildcard match (* and ?)."""
    return fnmatch.fnmatchcase(name.casefold(), pattern.casefold())


class AllowedParameter(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(description="Parameter name or wildcard pattern.")
    type: LLMType | None = Field(
        default=None,
        description="Type advertised to the model instead of the native one.",
    )

    @model_validator(mode="before")
    @classmethod
    def _parse_shorthand(cls, data: Any) -> Any:
        # "Path" or "Path=string"
        if isinstance(data, str):
            name, _, type_override = data.partition("=")
            return {"name": name.strip(), "type": type_override.strip() or None}
        return data


class CapabilityDescriptor(BaseModel):
    """One operation the model may request, together with its access policy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    description: str | None = None
    allowed_parameters: tuple[AllowedParameter, ...] = ()
    forced_parameters: dict[str, Any] = Field(default_factory=dict)
    requires_confirmation: bool = True
    hidden_during_confirmation: tuple[str, ...] = ()
    output_as_plain_text: bool = False
    json_depth: int = Field(default=2, ge=0)

    def allowed_parameter_for(self, name: str) -> AllowedParameter | None:
        """Return the first allow-entry whose pattern matches name."""
        for allowed in self.allowed_parameters:
            if matches_pattern(name, allowed.name):
                return allowed
        return None

    def is_forced(self, name: str) -> bool:
        folded = name.casefold()
        return any(forced.casefold() == folded for forced in self.forced_parameters)

    def permits(self, name: str) -> bool:
        """True if the model may pass an argument called name."""
        return self.allowed_parameter_for(name) is not None or self.is_forced(name)

    def is_hidden(self, name: str) -> bool:
        return any(matches_pattern(name, p) for p in self.hidden_during_confirmation)

    def merge_forced(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Return arguments with every forced parameter applied."""
        # [INVARIANT] Forced values always win. A model-supplied argument with
        # the same name (compared case-insensitively) is dropped first so the
        # operation never receives both spellings.
        merged = {
            key: value
            for key, value in arguments.items()
            if not self.is_forced(key)
        }
        merged.update(self.forced_parameters)
        return merged


class CapabilityRegistry:
    """Operator-controlled list of capabilities, in registration order."""

    def __init__(self, descriptors: list[CapabilityDescriptor] | None = None) -> None:
        self._descriptors: list[CapabilityDescriptor] = []
        for descriptor in descriptors or []:
            self.register(descriptor)

    @classmethod
    def from_config(cls, entries: list[dict] | None) -> "CapabilityRegistry":
        """Build a registry from the `capabilities` section of config.yaml."""
        registry = cls()
        for entry in entries or []:
            registry.register(CapabilityDescriptor.model_validate(entry))
        logger.debug("Loaded %d capabilities from config.", len(registry))
        return registry

    def register(self, descriptor: CapabilityDescriptor) -> None:
        for index, existing in enumerate(self._descriptors):
            if existing.name == descriptor.name:
                self._descriptors[index] = descriptor
                return
        self._descriptors.append(descriptor)

    def get(self, name: str) -> CapabilityDescriptor:
        for descriptor in self._descriptors:
            if descriptor.name == name:
                return descriptor
        raise KeyError(f"Unknown capability: {name!r}")

    def all(self) -> list[CapabilityDescriptor]:
        return list(self._descriptors)

    def matching(self, name: str) -> list[CapabilityDescriptor]:
        """Descriptors matching name under the namespace rule, longest name first."""
        found = [d for d in self._descriptors if names_match(d.name, name)]
        return sorted(found, key=lambda d: len(d.name), reverse=True)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[CapabilityDescriptor]:
        return iter(list(self._descriptors))
