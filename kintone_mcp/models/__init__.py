"""Pydantic models shared by the gateway."""

from kintone_mcp.models.content import (
    ContentItem,
    EmbeddedResource,
    ResourceContent,
    TextContent,
    ToolCallResult,
)
from kintone_mcp.models.records import (
    CodeRef,
    CodeRefValue,
    FieldValue,
    FileRef,
    FileValue,
    MultiValue,
    Record,
    ScalarValue,
    TableRow,
    TableValue,
)

__all__ = [
    "CodeRef",
    "CodeRefValue",
    "ContentItem",
    "EmbeddedResource",
    "FieldValue",
    "FileRef",
    "FileValue",
    "MultiValue",
    "Record",
    "ResourceContent",
    "ScalarValue",
    "TableRow",
    "TableValue",
    "TextContent",
    "ToolCallResult",
]
