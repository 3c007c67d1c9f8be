# Purpose: Function catalog builder. Projects capability descriptors onto the
#          function-calling schema the model is shown.
# Relationships: Reads core/capabilities.py descriptors, resolves them through
#               core/operations.py; the resulting entries are consumed by
#               core/invoker.py and sent to the LLM by core/llm_query.py.

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

from .capabilities import CapabilityDescriptor, LLMType
from .operations import OperationMetadata, OperationResolver, ParameterMetadata
from .type_mapping import convert_type_to_llm_type

logger = logging.getLogger("catalog")

DEFAULT_DESCRIPTION = "No description available."


class PropertySchema(BaseModel):
    type: LLMType
    description: str | None = None
    enum: list[str] | None = None


class FunctionParameters(BaseModel):
    type: Literal["object"] = "object"
    properties: dict[str, PropertySchema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class FunctionCatalogEntry(BaseModel):
    """
    One function as advertised to the model.

    qualified_name and callback travel with the entry but are excluded from
    every dump, so they never reach the model.
    """

    name: str
    description: str
    parameters: FunctionParameters = Field(default_factory=FunctionParameters)
    qualified_name: str = Field(exclude=True)
    # OperationMetadata; kept untyped so pydantic passes it through untouched.
    callback: Any = Field(exclude=True, repr=False)

    def to_tool_schema(self) -> dict:
        return {"type": "function", "function": self.model_dump(exclude_none=True)}


def build_catalog(
    descriptors: list[CapabilityDescriptor],
    resolver: OperationResolver,
    boolean_type: str = "object",
) -> list[FunctionCatalogEntry]:
    """
    Build the function catalog for a set of capabilities.

    Capabilities whose operation cannot be resolved are skipped; the model
    simply sees a smaller tool surface. Output order follows descriptor order.
    """
    entries = []
    for descriptor in descriptors:
        operation = resolver.resolve(descriptor.name)
        if operation is None:
            logger.info("Skipping capability %r: operation not found.", descriptor.name)
            continue
        entries.append(_build_entry(descriptor, operation, boolean_type))
    logger.debug("Built catalog with %d of %d capabilities.", len(entries), len(descriptors))
    return entries


def to_tool_schemas(catalog: list[FunctionCatalogEntry]) -> list[dict]:
    """Return the catalog in the form passed as `tools` to a chat completion."""
    return [entry.to_tool_schema() for entry in catalog]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_entry(
    descriptor: CapabilityDescriptor,
    operation: OperationMetadata,
    boolean_type: str,
) -> FunctionCatalogEntry:
    parameters = FunctionParameters()
    for param in operation.parameters:
        # Forced parameters are fixed by the operator; advertising them would
        # only invite arguments that are overwritten anyway.
        if descriptor.is_forced(param.name):
            continue
        allowed = descriptor.allowed_parameter_for(param.name)
        if allowed is None:
            continue
        parameters.properties[param.name] = _property_schema(param, allowed.type, boolean_type)
        if param.mandatory:
            parameters.required.append(param.name)

    return FunctionCatalogEntry(
        name=operation.name,
        description=descriptor.description or operation.description or DEFAULT_DESCRIPTION,
        parameters=parameters,
        qualified_name=descriptor.name,
        callback=operation,
    )


def _property_schema(
    param: ParameterMetadata,
    type_override: str | None,
    boolean_type: str,
) -> PropertySchema:
    description = param.description or None
    symbols = param.enum_values
    if symbols is not None:
        # [INVARIANT] Enum parameters are always advertised as strings with
        # their symbolic names, whatever type override is configured.
        return PropertySchema(type="string", description=description, enum=list(symbols))
    llm_type = type_override or convert_type_to_llm_type(param.annotation, boolean_type)
    return PropertySchema(type=llm_type, description=description)
