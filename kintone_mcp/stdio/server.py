from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any, BinaryIO

from kintone_mcp.observability import elapsed_ms, log_event
from kintone_mcp.service.errors import CanonicalError, GatewayError
from kintone_mcp.service.gateway_service import GatewayService, Handler

__all__ = ["JsonRpcStdioServer"]

LOGGER = logging.getLogger(__name__)

_NO_ID = object()


class JsonRpcStdioServer:
    """Sequential JSON-RPC 2.0 server over newline-delimited STDIO frames."""

    def __init__(self, service: GatewayService) -> None:
        self._service = service
        self._handlers: dict[str, Handler] = service.handlers()

    def _error_response(
        self,
        *,
        code: str,
        request_id: Any | None,
        message: str | None = None,
        data: Any | None = None,
    ) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": CanonicalError.to_jsonrpc_error(code, message=message, data=data),
        }

    def handle_message(self, message: Mapping[str, Any] | Any) -> dict[str, Any] | None:
        """Dispatch one decoded frame and return the response, if any."""

        if not isinstance(message, Mapping):
            return self._error_response(
                code="INVALID_REQUEST",
                request_id=None,
                message="Invalid request: expected a JSON object",
            )

        raw_id = message.get("id", _NO_ID)
        is_call = raw_id is not _NO_ID
        request_id = raw_id if is_call else None
        if is_call and request_id is not None and (
            isinstance(request_id, bool) or not isinstance(request_id, (str, int, float))
        ):
            return self._error_response(
                code="INVALID_REQUEST",
                request_id=None,
                message="Invalid request: id must be a string or a number",
            )

        if "jsonrpc" in message and message.get("jsonrpc") != "2.0":
            return self._error_response(
                code="INVALID_REQUEST",
                request_id=request_id,
                message="Invalid request: jsonrpc must be \"2.0\"",
            )

        if "method" not in message and is_call and ("result" in message or "error" in message):
            LOGGER.info("Ignoring response message with id %s sent by the client", request_id)
            return None

        method = message.get("method")
        if not isinstance(method, str) or not method:
            return self._error_response(
                code="INVALID_REQUEST",
                request_id=request_id,
                message="Invalid request: method must be a non-empty string",
            )

        start = time.perf_counter()
        response = self._dispatch(method, message.get("params"), request_id, is_call)
        if not is_call:
            status = "notification"
        elif response is not None and "error" in response:
            status = "error"
        else:
            status = "ok"
        log_event(
            event="rpc.message",
            status=status,
            method=method,
            id=request_id,
            durationMs=elapsed_ms(start),
        )
        return response if is_call else None

    def _dispatch(
        self, method: str, raw_params: Any, request_id: Any | None, is_call: bool
    ) -> dict[str, Any] | None:
        if raw_params is None:
            params: Mapping[str, Any] = {}
        elif isinstance(raw_params, Mapping):
            params = raw_params
        else:
            return self._error_response(
                code="INVALID_PARAMS",
                request_id=request_id,
                message="Invalid params: expected object",
            )

        handler = self._handlers.get(method)
        if handler is None:
            if not is_call:
                LOGGER.debug("Ignoring unknown notification %s", method)
                return None
            return self._error_response(
                code="METHOD_NOT_FOUND",
                request_id=request_id,
                message=f"Method not found: {method}",
            )

        try:
            result = handler(params)
        except GatewayError as exc:
            if not is_call:
                LOGGER.warning("Notification %s failed: %s", method, exc.message)
            return {"jsonrpc": "2.0", "id": request_id, "error": exc.to_jsonrpc()}
        except Exception:
            LOGGER.exception("Unhandled error while processing %s", method)
            return self._error_response(code="INTERNAL_ERROR", request_id=request_id)

        if result is None:
            return None
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    def process_line(self, line: bytes | str) -> dict[str, Any] | None:
        """Decode one frame and dispatch it."""

        if isinstance(line, bytes):
            try:
                line = line.decode("utf-8")
            except UnicodeDecodeError as exc:
                return self._error_response(
                    code="PARSE_ERROR",
                    request_id=None,
                    message=f"Parse error: frame is not valid UTF-8 ({exc.reason})",
                )
        payload = line.strip()
        if not payload:
            return None
        try:
            message = json.loads(payload)
        except json.JSONDecodeError as exc:
            return self._error_response(
                code="PARSE_ERROR",
                request_id=None,
                message=f"Parse error: {exc.msg}",
            )
        return self.handle_message(message)

    def encode(self, response: Mapping[str, Any]) -> bytes:
        try:
            text = json.dumps(response, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError):
            LOGGER.exception("Response for id %s is not JSON serialisable", response.get("id"))
            text = json.dumps(
                self._error_response(code="INTERNAL_ERROR", request_id=response.get("id")),
                separators=(",", ":"),
            )
        return text.encode("utf-8") + b"\n"

    def serve(self, reader: BinaryIO, writer: BinaryIO) -> None:
        """Handle frames from ``reader`` until end-of-stream.

        ``OSError`` raised by either stream propagates to the caller.
        """

        while True:
            line = reader.readline()
            if not line:
                LOGGER.info("End of input reached; shutting down")
                break
            response = self.process_line(line)
            if response is None:
                continue
            writer.write(self.encode(response))
            writer.flush()
