"""Executors for record CRUD."""

from __future__ import annotations

import logging
from typing import Any

from kintone_mcp.access.policy import Capability, require_access
from kintone_mcp.models.arguments import (
    CreateRecordArguments,
    DeleteRecordArguments,
    ReadRecordsArguments,
    UpdateRecordArguments,
)
from kintone_mcp.tools.base import ToolContext, tool

LOGGER = logging.getLogger(__name__)


@tool("createRecord", CreateRecordArguments)
def create_record(context: ToolContext, args: CreateRecordArguments) -> dict[str, Any]:
    require_access(context.policy, args.app_id, Capability.WRITE)

    response = context.client.post(
        "/record.json", {"app": args.app_id, "record": args.record.to_payload()}
    )
    return {
        "success": True,
        "recordID": response.get("id"),
        "revision": response.get("revision"),
    }


@tool("readRecords", ReadRecordsArguments)
def read_records(context: ToolContext, args: ReadRecordsArguments) -> Any:
    require_access(context.policy, args.app_id, Capability.READ)

    return context.client.get(
        "/records.json",
        {
            "app": args.app_id,
            "query": args.query,
            "fields": args.fields,
            "limit": args.limit,
            "offset": args.offset,
            "totalCount": True,
        },
    )


@tool("updateRecord", UpdateRecordArguments)
def update_record(context: ToolContext, args: UpdateRecordArguments) -> dict[str, Any]:
    require_access(context.policy, args.app_id, Capability.WRITE)

    body: dict[str, Any] = {
        "app": args.app_id,
        "id": args.record_id,
        "record": args.record.to_payload(),
    }
    if args.revision is not None:
        body["revision"] = args.revision
    response = context.client.put("/record.json", body)
    return {"success": True, "revision": response.get("revision")}


@tool("deleteRecord", DeleteRecordArguments)
def delete_record(context: ToolContext, args: DeleteRecordArguments) -> dict[str, Any]:
    require_access(context.policy, args.app_id, Capability.DELETE)

    # A failed read-back aborts before anything is deleted.
    deleted_record = None
    if context.policy.check_access(args.app_id, Capability.READ).allowed:
        response = context.client.get(
            "/record.json", {"app": args.app_id, "id": args.record_id}
        )
        deleted_record = response.get("record")
    else:
        LOGGER.debug("Skipping read-back of record %s: read not permitted", args.record_id)

    context.client.delete("/records.json", {"app": args.app_id, "ids": [args.record_id]})

    result: dict[str, Any] = {"success": True}
    if deleted_record is not None:
        result["deletedRecord"] = deleted_record
    return result
