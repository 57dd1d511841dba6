"""Tool executors. Importing this package registers every tool."""

from kintone_mcp.tools import apps, comments, files, records  # noqa: F401
from kintone_mcp.tools.base import REGISTRY, Tool, ToolContext, ToolRegistry, tool

__all__ = ["REGISTRY", "Tool", "ToolContext", "ToolRegistry", "tool"]
