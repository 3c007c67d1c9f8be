# Purpose: Command-line entry point. Loads config, sets up logging, builds a
#          ToolSession and runs one query through the LLM tool loop.
# Relationships: Wires core/config.py, session.py and core/llm_query.py. This
#               is the only place the configuration reaches all three.

import argparse
import asyncio
import json
import sys

from .core.config import config
from .core.llm_query import invoke_llm_query, llm_settings
from .session import session_from_config, setup_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="toolgate",
        description="Run a query against a local LLM with allow-listed tools",
    )
    parser.add_argument("prompt", nargs="?", default=None, help="Query to send to the model")
    parser.add_argument("--config", default=None, help="Path to a config.yaml to use instead")
    parser.add_argument("--instructions", default=None, help="System instructions for the model")
    parser.add_argument(
        "--list-tools",
        action="store_true",
        help="Print the function catalog the model would see and exit",
    )
    args = parser.parse_args(argv)

    if args.config:
        config.reload(args.config)
    settings = config.data()

    setup_logging(config.get("logging.level", "INFO"))
    session = session_from_config(settings)

    if args.list_tools:
        print(json.dumps(session.tool_schemas(), indent=2))
        return 0

    if not args.prompt:
        parser.error("a prompt is required unless --list-tools is given")

    result = asyncio.run(
        invoke_llm_query(
            args.prompt,
            session,
            instructions=args.instructions,
            **llm_settings(settings),
        )
    )
    print(result["response"])
    if result["status"] != "done":
        print(f"error: query {result['status']}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
