"""STDIO transport for the gateway."""

from kintone_mcp.stdio.server import JsonRpcStdioServer

__all__ = ["JsonRpcStdioServer"]
