"""Per-tool argument models.

Each model parses the ``arguments`` object of a ``tools/call`` request,
applies defaults and range checks, and rejects malformed input before any
backend request is made.
"""

from __future__ import annotations

import base64
import binascii
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .records import Record

__all__ = [
    "CommentPayload",
    "CreateRecordArguments",
    "CreateRecordCommentArguments",
    "DeleteRecordArguments",
    "DownloadAttachmentFileArguments",
    "ListAppsArguments",
    "Mention",
    "ReadAppInfoArguments",
    "ReadRecordCommentsArguments",
    "ReadRecordsArguments",
    "ToolArguments",
    "UpdateRecordArguments",
    "UploadAttachmentFileArguments",
]

LIST_APPS_DEFAULT_LIMIT = 100
READ_RECORDS_DEFAULT_LIMIT = 10
READ_COMMENTS_DEFAULT_LIMIT = 10


def _normalise_id(value: Any) -> str:
    if isinstance(value, bool):
        raise ValueError("must be a string or an integer")
    if isinstance(value, int):
        return str(value)
    if not isinstance(value, str):
        raise ValueError("must be a string or an integer")
    value = value.strip()
    if not value:
        raise ValueError("must not be empty")
    return value


Identifier = Annotated[str, BeforeValidator(_normalise_id)]


class ToolArguments(BaseModel):
    """Base class for tool argument models."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ListAppsArguments(ToolArguments):
    name: str | None = None
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=LIST_APPS_DEFAULT_LIMIT, ge=1, le=100)


class ReadAppInfoArguments(ToolArguments):
    app_id: Identifier = Field(..., alias="appID")


class CreateRecordArguments(ToolArguments):
    app_id: Identifier = Field(..., alias="appID")
    record: Record


class ReadRecordsArguments(ToolArguments):
    app_id: Identifier = Field(..., alias="appID")
    query: str = ""
    fields: list[str] | None = None
    limit: int = Field(default=READ_RECORDS_DEFAULT_LIMIT, ge=0, le=500)
    offset: int = Field(default=0, ge=0, le=10_000)

    @field_validator("limit")
    @classmethod
    def _zero_means_default(cls, value: int) -> int:
        return value or READ_RECORDS_DEFAULT_LIMIT


class UpdateRecordArguments(ToolArguments):
    app_id: Identifier = Field(..., alias="appID")
    record_id: Identifier = Field(..., alias="recordID")
    record: Record
    revision: int | None = Field(default=None, ge=-1)


class DeleteRecordArguments(ToolArguments):
    app_id: Identifier = Field(..., alias="appID")
    record_id: Identifier = Field(..., alias="recordID")


class ReadRecordCommentsArguments(ToolArguments):
    app_id: Identifier = Field(..., alias="appID")
    record_id: Identifier = Field(..., alias="recordID")
    order: Literal["asc", "desc"] = "desc"
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=READ_COMMENTS_DEFAULT_LIMIT, ge=0, le=10)

    @field_validator("limit")
    @classmethod
    def _zero_means_default(cls, value: int) -> int:
        return value or READ_COMMENTS_DEFAULT_LIMIT


class Mention(ToolArguments):
    code: str = Field(..., min_length=1)
    type: Literal["USER", "GROUP", "ORGANIZATION"] = "USER"


class CommentPayload(ToolArguments):
    text: str = Field(..., min_length=1)
    mentions: list[Mention] = Field(default_factory=list)


class CreateRecordCommentArguments(ToolArguments):
    app_id: Identifier = Field(..., alias="appID")
    record_id: Identifier = Field(..., alias="recordID")
    comment: CommentPayload


class DownloadAttachmentFileArguments(ToolArguments):
    file_key: str = Field(..., alias="fileKey", min_length=1)


class UploadAttachmentFileArguments(ToolArguments):
    path: str | None = Field(default=None, min_length=1)
    content: str | None = None
    name: str | None = Field(default=None, min_length=1)
    is_base64: bool = Field(default=False, alias="base64")
    content_type: str | None = Field(default=None, alias="contentType")

    @model_validator(mode="after")
    def _exactly_one_source(self) -> UploadAttachmentFileArguments:
        if self.path is not None and self.content is not None:
            raise ValueError("'path' and 'content' are mutually exclusive")
        if self.path is None and self.content is None:
            raise ValueError("either 'path' or 'content' is required")
        if self.content is not None:
            if self.name is None:
                raise ValueError("'name' is required when uploading inline 'content'")
            if self.is_base64:
                self.decoded_content()
        return self

    def decoded_content(self) -> bytes:
        """Return the inline content as bytes."""

        if self.content is None:
            raise ValueError("no inline content to decode")
        if not self.is_base64:
            return self.content.encode("utf-8")
        try:
            return base64.b64decode(self.content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"'content' is not valid base64: {exc}") from exc
