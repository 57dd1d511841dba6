"""MCP server exposing a kintone environment as a set of tools."""

__all__ = ["__version__"]

__version__ = "0.3.0"
