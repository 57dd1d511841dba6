"""Declarative catalog of the tools served by ``tools/list``."""

from kintone_mcp.catalog.loader import CatalogValidationError, ToolCatalog, ToolDescriptor

__all__ = ["CatalogValidationError", "ToolCatalog", "ToolDescriptor"]
