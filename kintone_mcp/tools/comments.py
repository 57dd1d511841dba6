"""Executors for record comments."""

from __future__ import annotations

from typing import Any

from kintone_mcp.access.policy import Capability, require_access
from kintone_mcp.models.arguments import (
    CreateRecordCommentArguments,
    ReadRecordCommentsArguments,
)
from kintone_mcp.tools.base import ToolContext, tool


@tool("readRecordComments", ReadRecordCommentsArguments)
def read_record_comments(
    context: ToolContext, args: ReadRecordCommentsArguments
) -> dict[str, Any]:
    require_access(context.policy, args.app_id, Capability.READ)

    response = context.client.get(
        "/record/comments.json",
        {
            "app": args.app_id,
            "record": args.record_id,
            "order": args.order,
            "offset": args.offset,
            "limit": args.limit,
        },
    )
    return {
        "comments": response.get("comments") or [],
        "existsOlderComments": bool(response.get("older")),
        "existsNewerComments": bool(response.get("newer")),
    }


@tool("createRecordComment", CreateRecordCommentArguments)
def create_record_comment(
    context: ToolContext, args: CreateRecordCommentArguments
) -> dict[str, Any]:
    require_access(context.policy, args.app_id, Capability.READ, Capability.WRITE)

    response = context.client.post(
        "/record/comment.json",
        {
            "app": args.app_id,
            "record": args.record_id,
            "comment": args.comment.model_dump(),
        },
    )
    return {"success": True, "commentID": response.get("id")}
