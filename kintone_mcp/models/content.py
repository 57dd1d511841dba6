from __future__ import annotations

import base64
import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = [
    "ContentItem",
    "EmbeddedResource",
    "ResourceContent",
    "TextContent",
    "ToolCallResult",
]


class TextContent(BaseModel):
    """Plain text (usually serialised JSON) returned by a tool."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    type: Literal["text"] = "text"
    text: str

    @classmethod
    def from_json(cls, payload: Any) -> TextContent:
        return cls(text=json.dumps(payload, indent=2, ensure_ascii=False))


class EmbeddedResource(BaseModel):
    """Resource body carried inline; exactly one of ``text``/``blob`` is set."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    uri: str
    mime_type: str | None = Field(default=None, alias="mimeType")
    text: str | None = None
    blob: str | None = None

    @model_validator(mode="after")
    def _one_body(self) -> EmbeddedResource:
        if (self.text is None) == (self.blob is None):
            raise ValueError("exactly one of 'text' or 'blob' must be set")
        return self


class ResourceContent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    type: Literal["resource"] = "resource"
    resource: EmbeddedResource

    @classmethod
    def from_bytes(cls, *, uri: str, mime_type: str | None, data: bytes) -> ResourceContent:
        """Embed ``data`` as text when it is textual, otherwise as base64."""

        if mime_type and mime_type.startswith("text/"):
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError:
                pass
            else:
                return cls(resource=EmbeddedResource(uri=uri, mimeType=mime_type, text=text))
        blob = base64.b64encode(data).decode("ascii")
        return cls(resource=EmbeddedResource(uri=uri, mimeType=mime_type, blob=blob))


ContentItem = Union[TextContent, ResourceContent]


class ToolCallResult(BaseModel):
    """Result object of ``tools/call``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    content: list[ContentItem]
    is_error: bool = Field(default=False, alias="isError")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
