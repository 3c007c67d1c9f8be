# [SAFETY-CRITICAL] This module implements the human-in-the-loop confirmation
# gate. Any change here requires human review.
#
# Purpose: Render the would-be invocation for a human and block until they
#          approve or decline it.
# Relationships: Called by core/invoker.py before executing any capability
#               that requires confirmation. session.py may inject a different
#               approver with the same signature.

# The transport here is the terminal (stdout prompt + stdin response). Other
# transports replace request_approval without changing the interface: an
# approver takes the rendered prompt text and returns True (approved) or
# False (declined), and the invoker treats the result the same way regardless.

import json
import logging
import sys
from typing import Any, Callable

from .capabilities import matches_pattern

logger = logging.getLogger("approval_gate")

Approver = Callable[[str], bool]

HIDDEN_VALUE = "[HIDDEN]"

# Longer values are cut in the prompt so one argument cannot flood the screen.
_MAX_VALUE_CHARS = 200


def request_approval(prompt_text: str) -> bool:
    """
    Show the confirmation prompt on stdout and wait for a response on stdin.

    If stdin is not a terminal (e.g. in tests or piped runs), auto-declines
    and logs the decline. There is no timeout.

    Returns True if approved, False if declined.
    """
    # An unattended process cannot approve an action on behalf of the human.
    if not sys.stdin.isatty():
        logger.warning("Non-interactive stdin detected, auto-declining tool call.")
        return False

    print(prompt_text, flush=True)

    try:
        answer = input("Approve? [y/N]: ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        answer = ""

    return answer in ("y", "yes")


def build_confirmation_prompt(
    function_name: str,
    arguments: dict[str, Any],
    hidden_patterns: tuple[str, ...] | list[str] = (),
) -> str:
    """
    Render the framed confirmation block for one invocation.

    Arguments whose names match any of hidden_patterns are shown as
    HIDDEN_VALUE instead of their value.
    """
    return (
        f"\n{'=' * 60}\n"
        f"[CONFIRMATION REQUIRED]\n"
        f"Tool: {function_name}\n"
        f"Invocation: {render_invocation(function_name, arguments, hidden_patterns)}\n"
        f"{'=' * 60}"
    )


def render_invocation(
    function_name: str,
    arguments: dict[str, Any],
    hidden_patterns: tuple[str, ...] | list[str] = (),
) -> str:
    """Compact one-line rendering: name(arg=value, ...)."""
    rendered = []
    for name, value in arguments.items():
        if any(matches_pattern(name, pattern) for pattern in hidden_patterns):
            text = HIDDEN_VALUE
        else:
            text = _compact(value)
        rendered.append(f"{name}={text}")
    return f"{function_name}({', '.join(rendered)})"


def _compact(value: Any) -> str:
    text = json.dumps(value, separators=(",", ":"), default=str, ensure_ascii=False)
    if len(text) > _MAX_VALUE_CHARS:
        return text[:_MAX_VALUE_CHARS] + "…"
    return text
