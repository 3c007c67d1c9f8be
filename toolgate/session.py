# Purpose: Session wiring. Owns everything one conversation needs to resolve
#          tool calls: capability registry, operation resolver, catalog,
#          approver and confirmation policy.
# Relationships: The only place the core modules are assembled; individual
#               modules know nothing about each other's construction.
#               core/llm_query.py drives a ToolSession.
#
# A session is passed explicitly to whoever needs it. There is no process-wide
# registry or catalog; two sessions never share mutable state.

import logging
import sys

from .core.approval_gate import Approver
from .core.capabilities import CapabilityRegistry
from .core.catalog import FunctionCatalogEntry, build_catalog, to_tool_schemas
from .core.config import Config
from .core.contracts import InvocationOutcome, ToolCall
from .core.invoker import invoke_tool_call
from .core.operations import OperationResolver
from .core.output import DEFAULT_JSON_DEPTH

logger = logging.getLogger("session")


def setup_logging(level: str) -> None:
    # stderr so stdout stays free for whatever the host prints.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.basicConfig(level=level.upper(), handlers=[handler])


class ToolSession:
    """
    Resolution context for one conversation.

    The catalog is built on first use and reused until rebuild_catalog() is
    called; the registry is treated as read-only while tool calls are being
    resolved.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        resolver: OperationResolver | None = None,
        approver: Approver | None = None,
        no_confirmation: tuple[str, ...] | list[str] = (),
        boolean_type: str = "object",
        default_json_depth: int = DEFAULT_JSON_DEPTH,
    ) -> None:
        self.registry = registry
        self.resolver = resolver or OperationResolver()
        self.approver = approver
        self.no_confirmation = tuple(no_confirmation)
        self.boolean_type = boolean_type
        self.default_json_depth = default_json_depth
        self._catalog: list[FunctionCatalogEntry] | None = None

    @property
    def catalog(self) -> list[FunctionCatalogEntry]:
        if self._catalog is None:
            self.rebuild_catalog()
        return self._catalog

    def rebuild_catalog(self) -> list[FunctionCatalogEntry]:
        self._catalog = build_catalog(self.registry.all(), self.resolver, self.boolean_type)
        logger.info(
            "Exposing %d functions: %s",
            len(self._catalog),
            ", ".join(entry.name for entry in self._catalog) or "(none)",
        )
        return self._catalog

    def tool_schemas(self) -> list[dict]:
        return to_tool_schemas(self.catalog)

    def invoke(self, tool_call: ToolCall) -> InvocationOutcome:
        return invoke_tool_call(
            tool_call,
            self.catalog,
            self.registry,
            approver=self.approver,
            no_confirmation=self.no_confirmation,
            default_json_depth=self.default_json_depth,
        )


def session_from_config(
    config: dict | None = None,
    resolver: OperationResolver | None = None,
    approver: Approver | None = None,
) -> ToolSession:
    """
    Build a ToolSession from a config dict (see config.yaml). Without one,
    the loaded Config singleton is used.

    Raises pydantic.ValidationError if a capability entry is malformed.
    """
    if config is None:
        config = Config().data()
    tools_config = config.get("tools") or {}
    return ToolSession(
        registry=CapabilityRegistry.from_config(config.get("capabilities")),
        resolver=resolver,
        approver=approver,
        no_confirmation=tools_config.get("no_confirmation") or (),
        boolean_type=tools_config.get("boolean_parameter_type", "object"),
        default_json_depth=tools_config.get("default_json_depth", DEFAULT_JSON_DEPTH),
    )
