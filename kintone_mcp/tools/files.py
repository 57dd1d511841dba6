"""Executors for attachment files."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Any

from kintone_mcp.models.arguments import (
    DownloadAttachmentFileArguments,
    UploadAttachmentFileArguments,
)
from kintone_mcp.models.content import ResourceContent, TextContent, ToolCallResult
from kintone_mcp.service.errors import InternalError
from kintone_mcp.tools.base import ToolContext, tool

INLINE_RESOURCE_MAX_BYTES = 1_048_576


@tool("downloadAttachmentFile", DownloadAttachmentFileArguments)
def download_attachment_file(
    context: ToolContext, args: DownloadAttachmentFileArguments
) -> ToolCallResult:
    downloaded = context.client.download(args.file_key, context.download_dir)
    path = downloaded.path.resolve()
    summary = TextContent.from_json(
        {
            "success": True,
            "path": str(path),
            "size": downloaded.size,
            "contentType": downloaded.content_type,
        }
    )
    if downloaded.size > INLINE_RESOURCE_MAX_BYTES:
        return ToolCallResult(content=[summary])

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise InternalError(
            f"Failed to read downloaded file: {exc}", data={"path": str(path)}
        ) from exc
    mime_type = None
    if downloaded.content_type:
        mime_type = downloaded.content_type.split(";", 1)[0].strip() or None
    resource = ResourceContent.from_bytes(uri=path.as_uri(), mime_type=mime_type, data=data)
    return ToolCallResult(content=[summary, resource])


@tool("uploadAttachmentFile", UploadAttachmentFileArguments)
def upload_attachment_file(
    context: ToolContext, args: UploadAttachmentFileArguments
) -> dict[str, Any]:
    if args.path is not None:
        source = Path(args.path).expanduser()
        if not source.is_file():
            raise InternalError(f"File not found: {args.path}", data={"path": str(source)})
        try:
            data = source.read_bytes()
        except OSError as exc:
            raise InternalError(
                f"Failed to read file: {exc}", data={"path": str(source)}
            ) from exc
        filename = args.name or source.name
    else:
        data = args.decoded_content()
        filename = args.name or "upload"

    content_type = args.content_type or mimetypes.guess_type(filename)[0]
    file_key = context.client.upload(filename, data, content_type)
    return {"success": True, "fileKey": file_key}
