"""Tool catalog loading and argument validation."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from kintone_mcp.catalog import CatalogValidationError, ToolCatalog
from kintone_mcp.service.errors import InvalidParamsError
from kintone_mcp.tools import REGISTRY

EXPECTED_ORDER = [
    "listApps",
    "readAppInfo",
    "createRecord",
    "readRecords",
    "updateRecord",
    "deleteRecord",
    "readRecordComments",
    "createRecordComment",
    "downloadAttachmentFile",
    "uploadAttachmentFile",
]


@pytest.fixture(scope="module")
def catalog() -> ToolCatalog:
    return ToolCatalog.load()


def test_catalog_lists_tools_in_fixed_order(catalog: ToolCatalog) -> None:
    assert [tool["name"] for tool in catalog.list_tools()] == EXPECTED_ORDER


def test_catalog_matches_registered_executors(catalog: ToolCatalog) -> None:
    assert set(catalog.names()) == set(REGISTRY.names())


def test_listing_entries_are_complete_and_ref_free(catalog: ToolCatalog) -> None:
    for entry in catalog.list_tools():
        assert set(entry) == {"name", "description", "inputSchema"}
        assert entry["description"]
        assert entry["inputSchema"]["type"] == "object"
        assert "$ref" not in json.dumps(entry["inputSchema"])


def test_listing_is_a_copy(catalog: ToolCatalog) -> None:
    catalog.list_tools()[0]["name"] = "mutated"
    assert catalog.list_tools()[0]["name"] == "listApps"


def test_record_schema_is_inlined(catalog: ToolCatalog) -> None:
    record = catalog.get("createRecord").input_schema["properties"]["record"]
    assert record["type"] == "object"
    assert "additionalProperties" in record


def test_validate_arguments_accepts_valid_input(catalog: ToolCatalog) -> None:
    catalog.validate_arguments(
        "createRecord",
        {"appID": 1, "record": {"title": {"value": "x"}, "tags": {"value": ["a"]}}},
    )


@pytest.mark.parametrize(
    "record",
    [
        {"owner": {"value": [{"code": "alice"}]}},
        {"dept": {"value": [{"code": "sales", "name": "Sales"}]}},
        {"table": {"value": [{"value": {"reviewer": {"value": [{"code": "bob"}]}}}]}},
    ],
)
def test_validate_arguments_accepts_code_selections(catalog: ToolCatalog, record: dict) -> None:
    catalog.validate_arguments("createRecord", {"appID": "1", "record": record})


@pytest.mark.parametrize(
    "name,arguments,fragment",
    [
        ("readRecords", {}, "'appID' is a required property"),
        ("readRecords", {"appID": "1", "limit": 501}, "limit"),
        ("readRecordComments", {"appID": "1", "recordID": "2", "order": "up"}, "order"),
        ("createRecord", {"appID": "1", "record": {"title": "x"}}, "record.title"),
        (
            "createRecordComment",
            {
                "appID": "1",
                "recordID": "2",
                "comment": {"text": "hi", "mentions": [{"code": "x", "type": "TEAM"}]},
            },
            "comment.mentions.0.type",
        ),
    ],
)
def test_validate_arguments_rejects_invalid_input(
    catalog: ToolCatalog, name: str, arguments: dict, fragment: str
) -> None:
    with pytest.raises(InvalidParamsError) as excinfo:
        catalog.validate_arguments(name, arguments)
    assert fragment in excinfo.value.message
    assert excinfo.value.message.startswith(f"Invalid arguments for {name}")


def test_unknown_tool_is_invalid_params(catalog: ToolCatalog) -> None:
    with pytest.raises(InvalidParamsError, match="Unknown tool name: dropTable"):
        catalog.validate_arguments("dropTable", {})


def test_duplicate_tool_names_are_rejected(tmp_path: Path) -> None:
    body = "name: dup\ndescription: d\ninputSchema:\n  type: object\n"
    (tmp_path / "a.tool.yaml").write_text(body)
    (tmp_path / "b.tool.yaml").write_text(body)
    with pytest.raises(CatalogValidationError, match="Duplicate tool name 'dup'"):
        ToolCatalog.load(tmp_path)


def test_invalid_schema_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "bad.tool.yaml").write_text(
        "name: bad\ndescription: d\ninputSchema:\n  type: object\n  required: 5\n"
    )
    with pytest.raises(CatalogValidationError, match="schema failed validation"):
        ToolCatalog.load(tmp_path)


def test_missing_fields_are_rejected(tmp_path: Path) -> None:
    (tmp_path / "bad.tool.yaml").write_text("name: bad\n")
    with pytest.raises(CatalogValidationError, match="description, inputSchema"):
        ToolCatalog.load(tmp_path)


def test_missing_reference_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "ref.tool.yaml").write_text(
        "name: ref\ndescription: d\ninputSchema:\n  type: object\n"
        "  properties:\n    x:\n      $ref: missing.json#/$defs/x\n"
    )
    with pytest.raises(CatalogValidationError, match="failed to open schema"):
        ToolCatalog.load(tmp_path)
