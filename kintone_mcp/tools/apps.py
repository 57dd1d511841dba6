"""Executors for app discovery: ``listApps`` and ``readAppInfo``."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kintone_mcp.access.policy import AccessPolicy, Capability, require_access
from kintone_mcp.models.arguments import ListAppsArguments, ReadAppInfoArguments
from kintone_mcp.tools.base import ToolContext, tool


def _with_overlays(policy: AccessPolicy, app: Mapping[str, Any]) -> dict[str, Any]:
    detail = dict(app)
    app_id = str(detail.get("appId", ""))
    description = policy.description_for(app_id)
    if description:
        detail["description_for_ai"] = description
    permissions = policy.permissions_for(app_id)
    if permissions is not None:
        detail["permissions"] = permissions.model_dump()
    return detail


def _fetch_apps(
    context: ToolContext,
    *,
    name: str | None,
    ids: list[str] | None,
    offset: int,
    limit: int,
) -> list[dict[str, Any]]:
    response = context.client.get(
        "/apps.json",
        {"ids": ids, "name": name or None, "offset": offset, "limit": limit},
    )
    return list(response.get("apps") or [])


@tool("listApps", ListAppsArguments)
def list_apps(context: ToolContext, args: ListAppsArguments) -> dict[str, Any]:
    ids = context.policy.listing_scope()
    if ids is not None and not ids:
        return {"apps": [], "hasNext": False}

    apps = _fetch_apps(context, name=args.name, ids=ids, offset=args.offset, limit=args.limit)
    next_page: list[dict[str, Any]] = []
    if len(apps) >= args.limit:
        next_page = _fetch_apps(
            context, name=args.name, ids=ids, offset=args.offset + args.limit, limit=1
        )
    visible = [
        _with_overlays(context.policy, app)
        for app in apps
        if context.policy.check_access(str(app.get("appId", "")), Capability.ANY).allowed
    ]
    return {"apps": visible, "hasNext": bool(next_page)}


@tool("readAppInfo", ReadAppInfoArguments)
def read_app_info(context: ToolContext, args: ReadAppInfoArguments) -> dict[str, Any]:
    require_access(context.policy, args.app_id, Capability.ANY)

    app = context.client.get("/app.json", {"id": args.app_id})
    fields = context.client.get("/app/form/fields.json", {"app": args.app_id})
    detail = _with_overlays(context.policy, {"appId": args.app_id, **app})
    detail["properties"] = fields.get("properties", {})
    return detail
