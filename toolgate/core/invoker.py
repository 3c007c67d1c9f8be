# [SAFETY-CRITICAL] This module is the sole dispatch point for model-issued
# tool calls. It enforces the allow-list, forced parameters and the
# confirmation gate before any operation runs, and is the last line of
# defence before a side effect reaches the system.
#
# Purpose: Resolve one ToolCall against the catalog and capability registry,
#          gate it, invoke it, and normalize the result into an
#          InvocationOutcome.
# Relationships: Uses core/catalog.py entries, core/capabilities.py registry,
#               core/approval_gate.py, core/diagnostics.py, core/output.py.
#               Called by session.py (ToolSession.invoke) and, through it, by
#               core/llm_query.py.
#
# Resolution is first-match-wins over catalog entries sharing the requested
# bare name. Only the matching steps (required, unknown, policy) fall through
# to the next candidate; once a candidate is chosen the call runs at most once
# and its failure is final. No error of any kind propagates to the caller.

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from .approval_gate import Approver, build_confirmation_prompt, request_approval
from .capabilities import CapabilityDescriptor, CapabilityRegistry, bare_name
from .catalog import FunctionCatalogEntry
from .contracts import InvocationOutcome, ToolCall, ToolCallDeclined, ToolCallError
from .diagnostics import Diagnostics, capture_diagnostics
from .output import DEFAULT_JSON_DEPTH, normalize_output

logger = logging.getLogger("invoker")


class CandidateRejected(Exception):
    """Raised when a catalog entry cannot serve a tool call; carries the reason."""


@dataclass
class _Resolution:
    entry: FunctionCatalogEntry
    descriptor: CapabilityDescriptor | None
    arguments: dict[str, Any]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def invoke_tool_call(
    tool_call: ToolCall,
    catalog: list[FunctionCatalogEntry],
    registry: CapabilityRegistry,
    approver: Approver | None = None,
    no_confirmation: tuple[str, ...] | list[str] = (),
    default_json_depth: int = DEFAULT_JSON_DEPTH,
) -> InvocationOutcome:
    """
    Resolve and execute a single tool call.

    Returns an InvocationOutcome with exposed=False and a reason when no
    catalog entry can serve the call, or exposed=True with either output or
    error populated when one was chosen. Never raises.
    """
    arguments = parse_arguments(tool_call.arguments_json)
    requested = bare_name(tool_call.function_name)

    candidates = [entry for entry in catalog if bare_name(entry.name) == requested]
    if not candidates:
        logger.info("Tool call %r matches no exposed function.", tool_call.function_name)
        return InvocationOutcome(
            function_name=tool_call.function_name,
            reason=f"no exposed function named {requested!r}",
            unfiltered_arguments=arguments,
        )

    reason = None
    for entry in candidates:
        try:
            resolution = _resolve_candidate(entry, arguments, registry)
        except CandidateRejected as exc:
            reason = str(exc)
            logger.info("Candidate %r rejected: %s", entry.qualified_name, reason)
            continue
        return _execute(
            resolution,
            unfiltered=arguments,
            approver=approver or request_approval,
            no_confirmation=no_confirmation,
            default_json_depth=default_json_depth,
        )

    return InvocationOutcome(
        function_name=tool_call.function_name,
        reason=reason,
        unfiltered_arguments=arguments,
    )


def parse_arguments(arguments_json: str | None) -> dict[str, Any]:
    """
    Parse the model's argument blob into a flat mapping.

    Malformed JSON, or JSON that is not an object, yields an empty mapping
    rather than failing the call; the required-argument check then decides.
    """
    if not arguments_json or not arguments_json.strip():
        return {}
    try:
        parsed = json.loads(arguments_json)
    except ValueError:
        logger.warning("Unparseable tool-call arguments, treating as empty: %.200s", arguments_json)
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Tool-call arguments are not a JSON object, treating as empty.")
        return {}
    return parsed


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _resolve_candidate(
    entry: FunctionCatalogEntry,
    arguments: dict[str, Any],
    registry: CapabilityRegistry,
) -> _Resolution:
    """Run the required, unknown and policy checks for one catalog entry."""
    # Presence, not truthiness: 0, false and "" all satisfy a required argument.
    for name in entry.parameters.required:
        if name not in arguments:
            raise CandidateRejected(f"missing required parameter: {name}")

    for name in arguments:
        if name not in entry.parameters.properties:
            raise CandidateRejected(f"argument not in advertised schema: {name}")

    filtered = dict(arguments)

    descriptors = registry.matching(entry.qualified_name)
    if not descriptors:
        # The registry narrows what the catalog offers; it is never required
        # to grant. Catalog-only functions run with the schema checks alone.
        return _Resolution(entry=entry, descriptor=None, arguments=filtered)

    reason = None
    for descriptor in descriptors:
        disallowed = [name for name in filtered if not descriptor.permits(name)]
        if disallowed:
            reason = f"argument not permitted by capability policy: {disallowed[0]}"
            continue
        return _Resolution(
            entry=entry,
            descriptor=descriptor,
            arguments=descriptor.merge_forced(filtered),
        )
    raise CandidateRejected(reason)


def _requires_confirmation(
    resolution: _Resolution,
    no_confirmation: tuple[str, ...] | list[str],
) -> bool:
    name = bare_name(resolution.entry.name).casefold()
    if any(name == bare_name(allowed).casefold() for allowed in no_confirmation):
        return False
    if resolution.descriptor is not None and not resolution.descriptor.requires_confirmation:
        return False
    return True


def _execute(
    resolution: _Resolution,
    unfiltered: dict[str, Any],
    approver: Approver,
    no_confirmation: tuple[str, ...] | list[str],
    default_json_depth: int,
) -> InvocationOutcome:
    entry = resolution.entry
    descriptor = resolution.descriptor
    outcome = InvocationOutcome(
        function_name=entry.name,
        exposed=True,
        unfiltered_arguments=unfiltered,
        filtered_arguments=resolution.arguments,
    )

    diagnostics = Diagnostics()
    try:
        if _requires_confirmation(resolution, no_confirmation):
            _confirm(resolution, approver)
        with capture_diagnostics(diagnostics):
            value = entry.callback.invoke(resolution.arguments)
            # Generators run when consumed; drain them while errors and
            # log records are still captured.
            if isinstance(value, Iterator):
                value = list(value)
        plain_text = descriptor.output_as_plain_text if descriptor else False
        json_depth = descriptor.json_depth if descriptor else default_json_depth
        output, output_type = normalize_output(
            value, diagnostics, plain_text=plain_text, json_depth=json_depth
        )
    except Exception as exc:
        logger.warning("Tool call %r failed: %s: %s", entry.name, type(exc).__name__, exc)
        outcome.error = ToolCallError(message=str(exc), exception_class=type(exc).__name__)
        outcome.warnings = diagnostics.warnings
        outcome.execution_errors = diagnostics.errors
        return outcome

    outcome.output, outcome.output_type = output, output_type
    outcome.warnings = diagnostics.warnings
    outcome.execution_errors = diagnostics.errors
    logger.debug("Tool call %r completed (%s).", entry.name, outcome.output_type)
    return outcome


def _confirm(resolution: _Resolution, approver: Approver) -> None:
    """Block on the approver; raise ToolCallDeclined if it declines."""
    hidden = resolution.descriptor.hidden_during_confirmation if resolution.descriptor else ()
    prompt = build_confirmation_prompt(resolution.entry.name, resolution.arguments, hidden)
    if not approver(prompt):
        logger.warning("Tool call %r declined by approver.", resolution.entry.name)
        raise ToolCallDeclined(
            f"The user declined to run {resolution.entry.name!r}. "
            "Do not retry this call; propose an alternative instead."
        )
