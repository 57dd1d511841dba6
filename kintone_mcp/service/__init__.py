"""Service layer for the gateway (lazy exports)."""
from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING

__all__ = [
    "GatewayError",
    "GatewayService",
    "build_service",
]

_EXPORT_MAP = {
    "GatewayError": "kintone_mcp.service.errors",
    "GatewayService": "kintone_mcp.service.gateway_service",
    "build_service": "kintone_mcp.service.gateway_service",
}

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .errors import GatewayError
    from .gateway_service import GatewayService, build_service


def __getattr__(name: str):  # pragma: no cover - thin loader
    if name not in _EXPORT_MAP:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORT_MAP[name])
    value = getattr(module, name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:  # pragma: no cover - thin loader
    return sorted(set(globals()) | set(__all__))
