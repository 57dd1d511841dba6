from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import validators
from jsonschema.exceptions import SchemaError, best_match

from kintone_mcp.service.errors import InvalidParamsError

__all__ = ["CatalogValidationError", "ToolCatalog", "ToolDescriptor"]

LOGGER = logging.getLogger(__name__)

_CATALOG_DIR = Path(__file__).resolve().parent / "tools"


class CatalogValidationError(Exception):
    """Raised when a tool descriptor fails validation."""


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool as announced by ``tools/list``."""

    name: str
    description: str
    input_schema: Mapping[str, Any]
    source_path: Path

    @classmethod
    def from_dict(
        cls,
        data: Any,
        source_path: Path,
        *,
        schema_cache: dict[tuple[Path, str], Any],
    ) -> ToolDescriptor:
        if not isinstance(data, Mapping):
            raise CatalogValidationError(
                f"Expected mapping for tool {source_path}, got {type(data).__name__}"
            )
        missing = [key for key in ("name", "description", "inputSchema") if key not in data]
        if missing:
            raise CatalogValidationError(
                f"Tool {source_path} missing required field(s): {', '.join(missing)}"
            )
        name = data["name"]
        if not isinstance(name, str) or not name:
            raise CatalogValidationError(f"Tool {source_path} name must be a non-empty string")
        description = data["description"]
        if not isinstance(description, str):
            raise CatalogValidationError(f"Tool {name} description must be a string")
        schema = data["inputSchema"]
        if not isinstance(schema, Mapping):
            raise CatalogValidationError(f"Tool {name} inputSchema must be a mapping")

        resolved = _resolve_refs(schema, source_path.parent, schema_cache, name)
        if resolved.get("type") != "object":
            raise CatalogValidationError(f"Tool {name} inputSchema must describe an object")
        try:
            validators.validator_for(resolved).check_schema(resolved)
        except SchemaError as exc:
            raise CatalogValidationError(
                f"Tool {name} schema failed validation: {exc.message}"
            ) from exc
        return cls(
            name=name,
            description=description.strip(),
            input_schema=resolved,
            source_path=source_path,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": copy.deepcopy(dict(self.input_schema)),
        }


class ToolCatalog:
    """Immutable list of tools, built once before the server starts."""

    def __init__(self, descriptors: Iterable[ToolDescriptor]) -> None:
        tools: dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                raise CatalogValidationError(
                    f"Duplicate tool name '{descriptor.name}' found in {descriptor.source_path}"
                )
            tools[descriptor.name] = descriptor
        self._tools = tools
        self._validators = {
            name: validators.validator_for(tool.input_schema)(tool.input_schema)
            for name, tool in tools.items()
        }
        self._listing = [tool.to_dict() for tool in tools.values()]

    @classmethod
    def load(cls, directory: Path | str | None = None) -> ToolCatalog:
        base_dir = Path(directory) if directory is not None else _CATALOG_DIR
        if not base_dir.is_dir():
            raise CatalogValidationError(f"Tool catalog directory not found: {base_dir}")
        schema_cache: dict[tuple[Path, str], Any] = {}
        descriptors: list[ToolDescriptor] = []
        for path in sorted(base_dir.glob("*.tool.yaml")):
            with path.open("r", encoding="utf-8") as handle:
                try:
                    data = yaml.safe_load(handle)
                except yaml.YAMLError as exc:
                    raise CatalogValidationError(
                        f"Failed to parse YAML for tool {path}: {exc}"
                    ) from exc
            descriptors.append(ToolDescriptor.from_dict(data, path, schema_cache=schema_cache))
        LOGGER.debug("Loaded %d tool descriptors from %s", len(descriptors), base_dir)
        return cls(descriptors)

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDescriptor:
        if name not in self._tools:
            raise InvalidParamsError(f"Unknown tool name: {name}")
        return self._tools[name]

    def list_tools(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._listing)

    def validate_arguments(self, name: str, arguments: Mapping[str, Any]) -> None:
        """Check ``arguments`` against the tool's published input schema."""

        self.get(name)
        error = best_match(self._validators[name].iter_errors(dict(arguments)))
        if error is None:
            return
        location = ".".join(str(part) for part in error.absolute_path)
        where = f" at '{location}'" if location else ""
        raise InvalidParamsError(f"Invalid arguments for {name}{where}: {error.message}")


def _resolve_refs(
    node: Any,
    base_dir: Path,
    cache: dict[tuple[Path, str], Any],
    tool_name: str,
    *,
    current_document: Any | None = None,
) -> Any:
    if isinstance(node, Mapping):
        if set(node.keys()) == {"$ref"}:
            return _load_ref(node["$ref"], base_dir, cache, tool_name, current_document)
        return {
            key: _resolve_refs(
                value, base_dir, cache, tool_name, current_document=current_document
            )
            for key, value in node.items()
        }
    if isinstance(node, list):
        return [
            _resolve_refs(item, base_dir, cache, tool_name, current_document=current_document)
            for item in node
        ]
    return node


def _load_ref(
    reference: Any,
    base_dir: Path,
    cache: dict[tuple[Path, str], Any],
    tool_name: str,
    current_document: Any | None,
) -> Any:
    if not isinstance(reference, str) or not reference:
        raise CatalogValidationError(f"Tool {tool_name} schema $ref must be a non-empty string")
    path_part, _, fragment = reference.partition("#")

    if not path_part:
        if current_document is None:
            raise CatalogValidationError(
                f"Tool {tool_name} schema reference lacks a document: {reference}"
            )
        target = _apply_json_pointer(current_document, fragment, reference, tool_name)
        return _resolve_refs(
            target, base_dir, cache, tool_name, current_document=current_document
        )

    target_path = (base_dir / path_part).resolve()
    cache_key = (target_path, fragment)
    if cache_key in cache:
        return copy.deepcopy(cache[cache_key])
    try:
        with target_path.open("r", encoding="utf-8") as handle:
            document = json.load(handle)
    except OSError as exc:
        raise CatalogValidationError(
            f"Tool {tool_name} failed to open schema {reference}: {exc}"
        ) from exc
    except json.JSONDecodeError as exc:
        raise CatalogValidationError(
            f"Tool {tool_name} failed to load schema {reference}: {exc}"
        ) from exc

    target = _apply_json_pointer(document, fragment, reference, tool_name)
    resolved = _resolve_refs(
        target, target_path.parent, cache, tool_name, current_document=document
    )
    cache[cache_key] = copy.deepcopy(resolved)
    return resolved


def _apply_json_pointer(document: Any, pointer: str, reference: str, tool_name: str) -> Any:
    if not pointer or pointer == "/":
        return document
    current = document
    for raw_part in pointer.lstrip("/").split("/"):
        part = raw_part.replace("~1", "/").replace("~0", "~")
        try:
            current = current[int(part)] if isinstance(current, list) else current[part]
        except (KeyError, IndexError, ValueError, TypeError) as exc:
            raise CatalogValidationError(
                f"Tool {tool_name} schema reference not found: {reference}"
            ) from exc
    return current
