from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from kintone_mcp import __version__
from kintone_mcp.backend.client import KintoneClient
from kintone_mcp.catalog.loader import CatalogValidationError, ToolCatalog
from kintone_mcp.config import GatewayConfig, build_policy
from kintone_mcp.observability import elapsed_ms, log_event
from kintone_mcp.tools import REGISTRY, ToolContext, ToolRegistry

from .errors import GatewayError, InvalidParamsError

__all__ = [
    "INSTRUCTIONS",
    "PROTOCOL_VERSION",
    "SERVER_NAME",
    "GatewayService",
    "Handler",
    "build_service",
]

LOGGER = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "Kintone Server"
INSTRUCTIONS = (
    "kintone is a database service to store and manage enterprise data. "
    "You can use this server to interact with kintone."
)

Handler = Callable[[Mapping[str, Any]], "dict[str, Any] | None"]


class GatewayService:
    """MCP method handlers backed by the tool catalog and executors."""

    def __init__(
        self,
        *,
        catalog: ToolCatalog,
        registry: ToolRegistry,
        context: ToolContext,
    ) -> None:
        published = set(catalog.names())
        implemented = set(registry.names())
        if published != implemented:
            problems = []
            if published - implemented:
                problems.append(f"no executor for {sorted(published - implemented)}")
            if implemented - published:
                problems.append(f"no catalog entry for {sorted(implemented - published)}")
            raise CatalogValidationError("Tool catalog mismatch: " + "; ".join(problems))
        self._catalog = catalog
        self._registry = registry
        self._context = context
        self._client_info: Mapping[str, Any] | None = None
        self.initialized = False

    @property
    def context(self) -> ToolContext:
        return self._context

    def handlers(self) -> dict[str, Handler]:
        """Return the method table consumed by the transport."""

        return {
            "initialize": self.initialize,
            "ping": self.ping,
            "tools/list": self.list_tools,
            "tools/call": self.call_tool,
            "notifications/initialized": self.on_initialized,
            "notifications/cancelled": self.on_cancelled,
        }

    def initialize(self, params: Mapping[str, Any]) -> dict[str, Any]:
        client_info = params.get("clientInfo")
        if isinstance(client_info, Mapping):
            self._client_info = dict(client_info)
        LOGGER.info(
            "Initialize requested by %s (protocol %s)",
            (self._client_info or {}).get("name", "unknown client"),
            params.get("protocolVersion", "unspecified"),
        )
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
            "instructions": INSTRUCTIONS,
        }

    def ping(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return {}

    def on_initialized(self, params: Mapping[str, Any]) -> None:
        self.initialized = True
        LOGGER.info("Client finished initialization")
        return None

    def on_cancelled(self, params: Mapping[str, Any]) -> None:
        # Requests are handled one at a time, so nothing is ever in flight here.
        LOGGER.debug("Ignoring cancellation of request %s", params.get("requestId"))
        return None

    def list_tools(self, params: Mapping[str, Any]) -> dict[str, Any]:
        return {"tools": self._catalog.list_tools()}

    def call_tool(self, params: Mapping[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Invalid params: 'name' must be a non-empty string")
        raw_arguments = params.get("arguments")
        if raw_arguments is None:
            arguments: dict[str, Any] = {}
        elif isinstance(raw_arguments, Mapping):
            arguments = dict(raw_arguments)
        else:
            raise InvalidParamsError("Invalid params: 'arguments' must be an object")

        start = time.perf_counter()
        try:
            self._catalog.validate_arguments(name, arguments)
            result = self._registry.get(name).run(self._context, arguments)
        except GatewayError as exc:
            log_event(
                event="tool.call",
                status="error",
                tool=name,
                code=exc.code,
                durationMs=elapsed_ms(start),
            )
            raise
        log_event(event="tool.call", status="ok", tool=name, durationMs=elapsed_ms(start))
        return result.to_dict()

    def close(self) -> None:
        self._context.client.close()


def build_service(
    config: GatewayConfig,
    *,
    catalog: ToolCatalog | None = None,
    registry: ToolRegistry | None = None,
    transport: httpx.BaseTransport | None = None,
) -> GatewayService:
    """Wire a :class:`GatewayService` from validated settings."""

    client = KintoneClient(config.url, transport=transport, **config.client_options())
    context = ToolContext(
        client=client,
        policy=build_policy(config),
        download_dir=config.download_dir,
    )
    return GatewayService(
        catalog=catalog if catalog is not None else ToolCatalog.load(),
        registry=registry if registry is not None else REGISTRY,
        context=context,
    )
