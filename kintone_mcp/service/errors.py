from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

__all__ = [
    "BackendError",
    "CanonicalError",
    "GatewayError",
    "InternalError",
    "InvalidParamsError",
    "InvalidRequestError",
    "MethodNotFoundError",
    "ParseError",
    "describe_validation_errors",
]


@dataclass(frozen=True)
class _CanonicalSpec:
    code: str
    description: str
    jsonrpc_code: int
    message: str


class CanonicalError:
    """Canonical error codes and their JSON-RPC representation."""

    _SPECS: tuple[_CanonicalSpec, ...] = (
        _CanonicalSpec(
            "PARSE_ERROR",
            "Inbound frame is not valid JSON",
            -32700,
            "Parse error",
        ),
        _CanonicalSpec(
            "INVALID_REQUEST",
            "Inbound frame is not a valid JSON-RPC request",
            -32600,
            "Invalid request",
        ),
        _CanonicalSpec(
            "METHOD_NOT_FOUND",
            "No handler is registered for the requested method",
            -32601,
            "Method not found",
        ),
        _CanonicalSpec(
            "INVALID_PARAMS",
            "Tool arguments failed validation or access was denied",
            -32602,
            "Invalid params",
        ),
        _CanonicalSpec(
            "INTERNAL_ERROR",
            "Backend, network or local I/O failure",
            -32603,
            "Internal error",
        ),
    )

    _JSONRPC_MAP: dict[str, _CanonicalSpec] = {spec.code: spec for spec in _SPECS}

    @classmethod
    def codes(cls) -> Sequence[str]:
        return tuple(spec.code for spec in cls._SPECS)

    @classmethod
    def jsonrpc_code(cls, code: str) -> int:
        return cls._lookup(code).jsonrpc_code

    @classmethod
    def default_message(cls, code: str) -> str:
        return cls._lookup(code).message

    @classmethod
    def to_jsonrpc_error(
        cls,
        code: str,
        *,
        message: str | None = None,
        data: Any | None = None,
    ) -> dict[str, Any]:
        spec = cls._lookup(code)
        payload: dict[str, Any] = {
            "code": spec.jsonrpc_code,
            "message": message or spec.message,
        }
        if data is not None:
            payload["data"] = data
        return payload

    @classmethod
    def _lookup(cls, code: str) -> _CanonicalSpec:
        if code not in cls._JSONRPC_MAP:
            raise KeyError(f"{code} does not have a JSON-RPC mapping")
        return cls._JSONRPC_MAP[code]


class GatewayError(Exception):
    """Error surfaced to the client as a JSON-RPC error envelope."""

    canonical = "INTERNAL_ERROR"

    def __init__(self, message: str | None = None, *, data: Any | None = None) -> None:
        self.message = message or CanonicalError.default_message(self.canonical)
        self.data = data
        super().__init__(self.message)

    @property
    def code(self) -> int:
        return CanonicalError.jsonrpc_code(self.canonical)

    def to_jsonrpc(self) -> dict[str, Any]:
        return CanonicalError.to_jsonrpc_error(
            self.canonical, message=self.message, data=self.data
        )


class ParseError(GatewayError):
    canonical = "PARSE_ERROR"


class InvalidRequestError(GatewayError):
    canonical = "INVALID_REQUEST"


class MethodNotFoundError(GatewayError):
    canonical = "METHOD_NOT_FOUND"


class InvalidParamsError(GatewayError):
    """Client-fault error: malformed arguments or an access denial."""

    canonical = "INVALID_PARAMS"


class InternalError(GatewayError):
    """Server-fault error: transport, decode or local file failures."""

    canonical = "INTERNAL_ERROR"


class BackendError(InternalError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status_line: str, body: str) -> None:
        super().__init__(
            "kintone server returned an error",
            data={"statusCode": status_line, "message": body},
        )
        self.status_line = status_line
        self.body = body


def describe_validation_errors(errors: Sequence[Mapping[str, Any]]) -> str:
    """Render pydantic error dictionaries as one readable line per problem."""

    parts: list[str] = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "__root__")
        message = str(error.get("msg", "invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)
