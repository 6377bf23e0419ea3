"""Tool registry - the fixed set of wallet commands exposed to agents."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Union

from pydantic import BaseModel, Field, TypeAdapter


@dataclass(frozen=True)
class ToolDefinition:
    """Name, description, and JSON-schema parameters of one command."""

    name: str
    description: str
    parameters: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    model: type[BaseModel]
    func: Callable[..., Any]

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=_extract_parameters(self.model),
        )


class ToolRegistry:
    """An ordered, closed set of commands keyed by their ``command`` tag.

    Each command is a pydantic model whose ``command`` field is a
    ``Literal`` tag; :meth:`adapter` validates raw requests against the
    discriminated union of all registered models.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._adapter: TypeAdapter | None = None

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        self._adapter = None

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def definitions(self) -> list[ToolDefinition]:
        return [t.to_definition() for t in self._tools.values()]

    def adapter(self) -> TypeAdapter:
        if self._adapter is None:
            models = tuple(t.model for t in self._tools.values())
            union = models[0] if len(models) == 1 else Union[models]  # type: ignore[valid-type]
            self._adapter = TypeAdapter(Annotated[union, Field(discriminator="command")])
        return self._adapter


def _extract_parameters(model: type[BaseModel]) -> dict[str, Any]:
    """JSON Schema for a command model, minus its ``command`` tag."""
    schema = copy.deepcopy(model.model_json_schema(by_alias=True))
    schema.pop("title", None)
    schema.get("properties", {}).pop("command", None)
    required = [r for r in schema.get("required", []) if r != "command"]
    if required:
        schema["required"] = required
    else:
        schema.pop("required", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


def tool(registry: ToolRegistry, name: str, description: str, model: type[BaseModel]):
    """Decorator to register a handler for a command model.

    Usage:
        @tool(WALLET_TOOLS, "list_accounts", "List accounts", ListAccounts)
        def list_accounts(manager, cmd):
            ...
    """

    def decorator(func: Callable) -> Callable:
        registry.register(Tool(name=name, description=description, model=model, func=func))
        return func

    return decorator
