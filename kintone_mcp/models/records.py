"""Record field values exchanged with the kintone REST API.

A record maps field codes to wrappers of the form ``{"value": ...}``. The
wrapped value takes one of five shapes and the shape alone decides which
model parses it:

* a string (or ``null``) for ordinary fields,
* an array of strings for multi-select fields,
* an array of ``{"fileKey": ...}`` objects for attachment fields,
* an array of ``{"code": ...}`` objects for user, group, organization
  and assignee selections,
* an array of ``{"value": {...}}`` rows for tables.

Tables nest exactly one level: a cell never holds table rows.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, RootModel, Tag

__all__ = [
    "CellValue",
    "CodeRef",
    "CodeRefValue",
    "FieldValue",
    "FileRef",
    "FileValue",
    "MultiValue",
    "Record",
    "ScalarValue",
    "TableRow",
    "TableValue",
]


class FileRef(BaseModel):
    """Reference to a file stored by kintone."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_key: str = Field(..., alias="fileKey", min_length=1)
    name: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")
    size: str | int | None = None


class CodeRef(BaseModel):
    """A selected user, group or organization, identified by its code."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str = Field(..., min_length=1)
    name: str | None = None


class _FieldWrapper(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    shape: ClassVar[str]


class ScalarValue(_FieldWrapper):
    shape: ClassVar[str] = "scalar"

    value: str | None


class MultiValue(_FieldWrapper):
    shape: ClassVar[str] = "multi"

    value: list[str]


class FileValue(_FieldWrapper):
    shape: ClassVar[str] = "file"

    value: list[FileRef]


class CodeRefValue(_FieldWrapper):
    shape: ClassVar[str] = "code"

    value: list[CodeRef]


def _value_shape(raw: Any) -> str | None:
    if isinstance(raw, _FieldWrapper):
        return raw.shape
    if not isinstance(raw, Mapping) or "value" not in raw:
        return None
    value = raw["value"]
    if value is None or isinstance(value, str):
        return "scalar"
    if not isinstance(value, list):
        return None
    if not value or not isinstance(value[0], Mapping):
        return "multi"
    if "fileKey" in value[0]:
        return "file"
    if "code" in value[0]:
        return "code"
    return "table"


def _cell_shape(raw: Any) -> str | None:
    shape = _value_shape(raw)
    return None if shape == "table" else shape


CellValue = Annotated[
    Union[
        Annotated[ScalarValue, Tag("scalar")],
        Annotated[MultiValue, Tag("multi")],
        Annotated[FileValue, Tag("file")],
        Annotated[CodeRefValue, Tag("code")],
    ],
    Discriminator(
        _cell_shape,
        custom_error_type="invalid_cell_value",
        custom_error_message=(
            "table cells must be {'value': ...} holding a string, an array of "
            "strings, an array of file references or an array of code references"
        ),
    ),
]


class TableRow(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str | int | None = None
    value: dict[str, CellValue]


class TableValue(_FieldWrapper):
    shape: ClassVar[str] = "table"

    value: list[TableRow]


FieldValue = Annotated[
    Union[
        Annotated[ScalarValue, Tag("scalar")],
        Annotated[MultiValue, Tag("multi")],
        Annotated[FileValue, Tag("file")],
        Annotated[CodeRefValue, Tag("code")],
        Annotated[TableValue, Tag("table")],
    ],
    Discriminator(
        _value_shape,
        custom_error_type="invalid_field_value",
        custom_error_message=(
            "fields must be {'value': ...} holding a string, an array of strings, "
            "an array of file references, an array of code references or an array "
            "of table rows"
        ),
    ),
]


class Record(RootModel[dict[str, FieldValue]]):
    """A record keyed by field code."""

    def to_payload(self) -> dict[str, Any]:
        """Return the record in kintone's wire shape."""

        return self.model_dump(by_alias=True, exclude_unset=True)
