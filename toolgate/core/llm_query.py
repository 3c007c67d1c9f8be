# Purpose: Sends a query to an OpenAI-compatible chat endpoint via LiteLLM with
#          the session's function catalog as tools, resolves every tool call
#          the model makes through the session, and loops until the model
#          answers in plain text.
# Relationships: Drives session.py (ToolSession.tool_schemas / invoke).
#
# invoke_llm_query() is an async coroutine. It must be awaited. Tool calls are
# resolved synchronously and strictly one after another, in the order the
# model listed them; the confirmation gate may block the loop while a human
# decides.

import json
import logging
import os

import litellm

from ..session import ToolSession
from .contracts import ToolCall

logger = logging.getLogger("llm_query")

litellm.suppress_debug_info = True
logging.getLogger("LiteLLM").setLevel(logging.WARNING)

# [INVARIANT] Iteration cap prevents runaway tool loops. A model that needs
# more than this many rounds for one query is almost certainly stuck.
DEFAULT_MAX_ITERATIONS = 10


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def invoke_llm_query(
    query: str,
    session: ToolSession,
    model: str,
    instructions: str | None = None,
    api_key: str | None = None,
    api_base: str | None = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> dict:
    """
    Run one query to completion. Must be awaited.

    Returns a summary dict:
        {
            "status": "done" | "failed",
            "response": str,          # final model text
            "tool_calls": list[dict], # camelCase InvocationOutcome dumps
            "messages": list[dict],   # full conversation
        }
    """
    messages: list[dict] = []
    if instructions:
        messages.append({"role": "system", "content": instructions})
    messages.append({"role": "user", "content": query})

    tools = session.tool_schemas()
    outcomes: list[dict] = []
    final_response = ""
    status = "failed"

    for iteration in range(max_iterations):
        _log_outgoing(messages[-1], iteration)
        request = {"model": model, "messages": messages, "api_key": api_key, "api_base": api_base}
        if tools:
            request["tools"] = tools
        raw = await litellm.acompletion(**request)
        message = raw.choices[0].message
        content: str = message.content or ""
        tool_calls = list(getattr(message, "tool_calls", None) or [])
        _log_incoming(content, tool_calls, iteration)

        if not tool_calls:
            messages.append({"role": "assistant", "content": content})
            final_response = content
            status = "done"
            break

        calls = [_to_tool_call(raw_call, index) for index, raw_call in enumerate(tool_calls)]
        messages.append(_assistant_message(content, calls))
        for call in calls:
            outcome = session.invoke(call)
            outcomes.append(outcome.model_dump(by_alias=True))
            messages.append(
                {
                    "role": "tool",
                    "tool_call_id": call.id,
                    "name": call.function_name,
                    "content": outcome.to_tool_content(),
                }
            )

    else:
        # Return cleanly even when the cap fires; the caller still gets the
        # tool-call record.
        final_response = "Iteration cap reached without a final answer."
        status = "failed"

    return {
        "status": status,
        "response": final_response,
        "tool_calls": outcomes,
        "messages": messages,
    }


def llm_settings(config: dict) -> dict:
    """
    Return the keyword arguments for invoke_llm_query from the `llm` config
    section. The API key is read from the environment variable named by
    llm.api_key_env so it never has to live in config.yaml.
    """
    llm_config = config.get("llm") or {}
    key_env = llm_config.get("api_key_env")
    return {
        "model": llm_config["model"],
        "api_base": llm_config.get("api_base"),
        "api_key": os.environ.get(key_env) if key_env else None,
        "max_iterations": llm_config.get("max_iterations", DEFAULT_MAX_ITERATIONS),
    }


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _to_tool_call(raw_call, index: int) -> ToolCall:
    """Convert a LiteLLM tool-call object into a ToolCall."""
    function = raw_call.function
    return ToolCall(
        id=getattr(raw_call, "id", None) or f"call_{index}",
        function_name=function.name or "",
        arguments_json=function.arguments,
    )


def _assistant_message(content: str, calls: list[ToolCall]) -> dict:
    return {
        "role": "assistant",
        "content": content,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.function_name, "arguments": call.arguments_json},
            }
            for call in calls
        ],
    }


# ---------------------------------------------------------------------------
# Debug helpers
# ---------------------------------------------------------------------------

_MAX_LOG_CHARS = 4_000


def _truncate_log(text: str) -> str:
    """Trim text to _MAX_LOG_CHARS and append a count of the dropped chars."""
    text = text.strip()
    if len(text) > _MAX_LOG_CHARS:
        dropped = len(text) - _MAX_LOG_CHARS
        return text[:_MAX_LOG_CHARS] + f"\n… [{dropped} chars truncated]"
    return text


def _log_outgoing(message: dict, iteration: int) -> None:
    """Log the newest message being sent to the LLM (→ direction)."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    role = message.get("role", "?")
    content = _truncate_log(message.get("content") or "")
    logger.debug("→ LLM  iter=%d  role=%s\n%s", iteration + 1, role, content)


def _log_incoming(text: str, tool_calls: list, iteration: int) -> None:
    """Log the response received from the LLM (← direction)."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    names = json.dumps([getattr(c.function, "name", "?") for c in tool_calls])
    logger.debug(
        "← LLM  iter=%d  role=assistant  tool_calls=%s\n%s",
        iteration + 1, names, _truncate_log(text),
    )
