"""HTTP client for the kintone REST API."""

from __future__ import annotations

import base64
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from kintone_mcp.backend.files import fallback_filename, filename_from_headers, unique_path
from kintone_mcp.observability import elapsed_ms, log_event
from kintone_mcp.service.errors import BackendError, InternalError

__all__ = ["DownloadedFile", "KintoneClient", "build_auth_headers", "encode_query"]

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/k/v1"
AUTH_HEADER = "X-Cybozu-Authorization"
TOKEN_HEADER = "X-Cybozu-API-Token"


@dataclass(frozen=True, slots=True)
class DownloadedFile:
    path: Path
    size: int
    content_type: str | None


def build_auth_headers(
    *,
    username: str | None = None,
    password: str | None = None,
    token: str | None = None,
) -> dict[str, str]:
    """Return the credential headers for whichever credentials are set."""

    headers: dict[str, str] = {}
    if username and password:
        credential = f"{username}:{password}".encode("utf-8")
        headers[AUTH_HEADER] = base64.b64encode(credential).decode("ascii")
    if token:
        headers[TOKEN_HEADER] = token
    return headers


def encode_query(params: Mapping[str, Any] | None) -> list[tuple[str, str]]:
    """Flatten parameters the way kintone expects them in a query string.

    Sequences become ``key[0]=..&key[1]=..``, booleans ``true``/``false``
    and ``None`` values are dropped.
    """

    encoded: list[tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                encoded.append((f"{key}[{index}]", _scalar(item)))
        else:
            encoded.append((key, _scalar(value)))
    return encoded


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class KintoneClient:
    """Issues authenticated requests against ``<base_url>/k/v1``."""

    def __init__(
        self,
        base_url: str,
        *,
        username: str | None = None,
        password: str | None = None,
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=build_auth_headers(username=username, password=password, token=token),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> KintoneClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # JSON endpoints ---------------------------------------------------

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return self._request_json("GET", path, params=params)

    def post(self, path: str, body: Mapping[str, Any]) -> Any:
        return self._request_json("POST", path, body=body)

    def put(self, path: str, body: Mapping[str, Any]) -> Any:
        return self._request_json("PUT", path, body=body)

    def delete(self, path: str, body: Mapping[str, Any]) -> Any:
        return self._request_json("DELETE", path, body=body)

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        url = API_PREFIX + path
        start = time.perf_counter()
        try:
            if body is None:
                response = self._client.request(method, url, params=encode_query(params))
            else:
                response = self._client.request(method, url, json=dict(body))
        except httpx.HTTPError as exc:
            self._log(method, path, start, status="error", error=str(exc))
            raise InternalError(
                f"Failed to send HTTP request to kintone server: {exc}"
            ) from exc
        self._log(method, path, start, status="ok", httpStatus=response.status_code)
        self._raise_for_status(response)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise InternalError(
                f"Failed to parse kintone server's response: {exc}",
                data={"statusCode": _status_line(response), "message": response.text},
            ) from exc

    # Files ------------------------------------------------------------

    def download(self, file_key: str, directory: Path) -> DownloadedFile:
        """Stream the file ``file_key`` into ``directory`` without overwriting."""

        path = "/file.json"
        start = time.perf_counter()
        try:
            with self._client.stream(
                "GET", API_PREFIX + path, params={"fileKey": file_key}
            ) as response:
                if not response.is_success:
                    response.read()
                    self._log("GET", path, start, status="ok", httpStatus=response.status_code)
                    self._raise_for_status(response)
                content_type = response.headers.get("content-type")
                filename = filename_from_headers(
                    response.headers.get("content-disposition")
                ) or fallback_filename(file_key, content_type)
                try:
                    target, size = self._save_stream(response, Path(directory), filename)
                except InternalError as exc:
                    self._log("GET", path, start, status="error", error=exc.message)
                    raise
                self._log("GET", path, start, status="ok", httpStatus=response.status_code)
        except httpx.HTTPError as exc:
            self._log("GET", path, start, status="error", error=str(exc))
            raise InternalError(
                f"Failed to download file from kintone server: {exc}"
            ) from exc
        return DownloadedFile(path=target, size=size, content_type=content_type)

    @staticmethod
    def _save_stream(
        response: httpx.Response, directory: Path, filename: str
    ) -> tuple[Path, int]:
        try:
            directory.mkdir(parents=True, exist_ok=True)
            while True:
                target = unique_path(directory, filename)
                try:
                    handle = target.open("xb")
                except FileExistsError:
                    continue
                break
        except OSError as exc:
            raise InternalError(
                f"Failed to create download file: {exc}",
                data={"path": str(directory / filename)},
            ) from exc

        size = 0
        try:
            with handle:
                for chunk in response.iter_bytes():
                    handle.write(chunk)
                    size += len(chunk)
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise InternalError(
                f"Failed to write downloaded file: {exc}", data={"path": str(target)}
            ) from exc
        except httpx.HTTPError:
            target.unlink(missing_ok=True)
            raise
        return target, size

    def upload(self, filename: str, data: bytes, content_type: str | None = None) -> str:
        """Upload ``data`` as a single multipart file part and return its key."""

        path = "/file.json"
        start = time.perf_counter()
        files = {"file": (filename, data, content_type or "application/octet-stream")}
        try:
            response = self._client.post(API_PREFIX + path, files=files)
        except httpx.HTTPError as exc:
            self._log("POST", path, start, status="error", error=str(exc))
            raise InternalError(
                f"Failed to send HTTP request to kintone server: {exc}"
            ) from exc
        self._log("POST", path, start, status="ok", httpStatus=response.status_code)
        self._raise_for_status(response)
        try:
            file_key = response.json()["fileKey"]
        except (ValueError, KeyError, TypeError) as exc:
            raise InternalError(
                f"Failed to parse kintone server's response: {exc}",
                data={"statusCode": _status_line(response), "message": response.text},
            ) from exc
        return str(file_key)

    # Helpers ----------------------------------------------------------

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        LOGGER.warning(
            "kintone returned %s for %s %s",
            response.status_code,
            response.request.method,
            response.request.url.path,
        )
        raise BackendError(_status_line(response), response.text)

    @staticmethod
    def _log(method: str, path: str, start: float, **fields: Any) -> None:
        log_event(
            event="backend.request",
            method=method,
            path=API_PREFIX + path,
            durationMs=elapsed_ms(start),
            **fields,
        )


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".strip()
