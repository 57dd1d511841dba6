"""Attachment executors."""
from __future__ import annotations

import base64
import json
from pathlib import Path

import httpx
import pytest

from kintone_mcp.service.errors import InternalError, InvalidParamsError
from kintone_mcp.tools import REGISTRY

from tests.helpers.fake_kintone import FakeKintone


def _serve_file(fake_kintone: FakeKintone, body: bytes, content_type: str, name: str) -> None:
    fake_kintone.route(
        "GET",
        "/file.json",
        responder=lambda request: httpx.Response(
            200,
            content=body,
            headers={
                "content-type": content_type,
                "content-disposition": f'attachment; filename="{name}"',
            },
        ),
    )


def test_download_inlines_small_text_file(make_context, fake_kintone: FakeKintone) -> None:
    _serve_file(fake_kintone, b"hello\n", "text/plain; charset=utf-8", "note.txt")
    context = make_context()

    result = REGISTRY.get("downloadAttachmentFile").run(context, {"fileKey": "FK"})

    summary, resource = result.content
    details = json.loads(summary.text)
    saved = Path(details["path"])
    assert saved == (context.download_dir / "note.txt").resolve()
    assert details == {
        "success": True,
        "path": str(saved),
        "size": 6,
        "contentType": "text/plain; charset=utf-8",
    }
    assert resource.resource.uri == saved.as_uri()
    assert resource.resource.mime_type == "text/plain"
    assert resource.resource.text == "hello\n"
    assert result.to_dict()["content"][1]["resource"]["mimeType"] == "text/plain"


def test_download_binary_is_base64_blob(make_context, fake_kintone: FakeKintone) -> None:
    _serve_file(fake_kintone, b"\x89PNG\r\n", "image/png", "logo.png")
    result = REGISTRY.get("downloadAttachmentFile").run(make_context(), {"fileKey": "FK"})
    resource = result.content[1].resource
    assert resource.text is None
    assert base64.b64decode(resource.blob) == b"\x89PNG\r\n"


def test_download_twice_keeps_both_files(make_context, fake_kintone: FakeKintone) -> None:
    _serve_file(fake_kintone, b"v", "text/plain", "same.txt")
    context = make_context()
    tool = REGISTRY.get("downloadAttachmentFile")
    tool.run(context, {"fileKey": "FK"})
    tool.run(context, {"fileKey": "FK"})
    assert sorted(p.name for p in context.download_dir.iterdir()) == ["same (1).txt", "same.txt"]


def test_large_download_is_not_inlined(
    make_context, fake_kintone: FakeKintone, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("kintone_mcp.tools.files.INLINE_RESOURCE_MAX_BYTES", 3)
    _serve_file(fake_kintone, b"too large", "text/plain", "big.txt")
    result = REGISTRY.get("downloadAttachmentFile").run(make_context(), {"fileKey": "FK"})
    assert len(result.content) == 1


def test_upload_from_path(make_context, fake_kintone: FakeKintone, tmp_path: Path) -> None:
    source = tmp_path / "report.csv"
    source.write_text("a,b\n")
    fake_kintone.route("POST", "/file.json", {"fileKey": "NEWKEY"})

    result = REGISTRY.get("uploadAttachmentFile").run(make_context(), {"path": str(source)})

    assert json.loads(result.content[0].text) == {"success": True, "fileKey": "NEWKEY"}
    body = fake_kintone.requests[0].content
    assert b'filename="report.csv"' in body
    assert b"Content-Type: text/csv" in body


def test_upload_inline_base64(make_context, fake_kintone: FakeKintone) -> None:
    fake_kintone.route("POST", "/file.json", {"fileKey": "K"})
    REGISTRY.get("uploadAttachmentFile").run(
        make_context(),
        {
            "content": base64.b64encode(b"\x00\x01").decode("ascii"),
            "base64": True,
            "name": "raw.bin",
            "contentType": "application/x-custom",
        },
    )
    body = fake_kintone.requests[0].content
    assert b"Content-Type: application/x-custom" in body
    assert b"\x00\x01" in body


def test_upload_missing_path_is_internal_error(make_context, fake_kintone, tmp_path) -> None:
    missing = tmp_path / "nope.txt"
    with pytest.raises(InternalError) as excinfo:
        REGISTRY.get("uploadAttachmentFile").run(make_context(), {"path": str(missing)})
    assert excinfo.value.data == {"path": str(missing)}
    assert fake_kintone.requests == []


def test_upload_rejects_both_sources(make_context, fake_kintone) -> None:
    with pytest.raises(InvalidParamsError, match="mutually exclusive"):
        REGISTRY.get("uploadAttachmentFile").run(
            make_context(), {"path": "/tmp/x", "content": "y", "name": "x"}
        )
