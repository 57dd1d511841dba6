"""Tool executor interface and registry."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from kintone_mcp.access.policy import AccessPolicy
from kintone_mcp.backend.client import KintoneClient
from kintone_mcp.models.arguments import ToolArguments
from kintone_mcp.models.content import TextContent, ToolCallResult
from kintone_mcp.service.errors import InvalidParamsError, describe_validation_errors

__all__ = ["REGISTRY", "Tool", "ToolContext", "ToolRegistry", "tool"]

ArgsT = TypeVar("ArgsT", bound=ToolArguments)


@dataclass(frozen=True)
class ToolContext:
    """Read-only collaborators handed to every executor."""

    client: KintoneClient
    policy: AccessPolicy
    download_dir: Path


ToolFunc = Callable[[ToolContext, Any], Any]


@dataclass(frozen=True)
class Tool:
    name: str
    arguments_model: type[ToolArguments]
    func: ToolFunc

    def parse_arguments(self, arguments: Mapping[str, Any]) -> ToolArguments:
        try:
            return self.arguments_model.model_validate(dict(arguments))
        except ValidationError as exc:
            raise InvalidParamsError(
                f"Invalid arguments for {self.name}: "
                f"{describe_validation_errors(exc.errors(include_url=False))}"
            ) from exc

    def run(self, context: ToolContext, arguments: Mapping[str, Any]) -> ToolCallResult:
        """Validate ``arguments`` and execute the tool.

        Executors return either a JSON-serialisable payload, which becomes a
        single text content item, or a complete :class:`ToolCallResult`.
        """

        parsed = self.parse_arguments(arguments)
        outcome = self.func(context, parsed)
        if isinstance(outcome, ToolCallResult):
            return outcome
        return ToolCallResult(content=[TextContent.from_json(outcome)])


class ToolRegistry:
    """Registry mapping tool names to executors."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, name: str, arguments_model: type[ArgsT]) -> Callable[[ToolFunc], ToolFunc]:
        def decorator(func: ToolFunc) -> ToolFunc:
            if name in self._tools:
                raise ValueError(f"Tool '{name}' is already registered")
            self._tools[name] = Tool(name=name, arguments_model=arguments_model, func=func)
            return func

        return decorator

    def get(self, name: str) -> Tool:
        if name not in self._tools:
            raise InvalidParamsError(f"Unknown tool name: {name}")
        return self._tools[name]

    def names(self) -> list[str]:
        return list(self._tools)


REGISTRY = ToolRegistry()


def tool(name: str, arguments_model: type[ArgsT]) -> Callable[[ToolFunc], ToolFunc]:
    """Register ``func`` as the executor of ``name`` in the default registry."""

    return REGISTRY.register(name, arguments_model)
