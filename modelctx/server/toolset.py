"""A collection of tools with the handlers that run them."""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

from ..content import Content
from ..handler import ExecutionError, ToolHandler, ToolNotFound
from ..tool import Tool

ToolHandlerFn = Callable[[str, Any], Awaitable[list[Content]] | list[Content]]


def _contents_from_json(value: Any) -> list[Content]:
    if not isinstance(value, list):
        raise ExecutionError(f"invalid type: expected a sequence of content, got {value!r}")
    try:
        return [Content.from_dict(item) for item in value]
    except (ValueError, TypeError) as exc:
        raise ExecutionError(str(exc)) from exc


class ToolsetBuilder:
    """Collects tools and their handlers into a Toolset."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}
        self._handlers: dict[str, ToolHandlerFn] = {}

    def add_tool(self, tool: Tool, handler: ToolHandlerFn) -> "ToolsetBuilder":
        """Register a tool with a handler called as handler(name, arguments)."""
        self._tools[tool.name] = tool
        self._handlers[tool.name] = handler
        return self

    def add_tool_from_handler(self, tool_handler: ToolHandler) -> "ToolsetBuilder":
        """Register a ToolHandler whose result must be a list of content objects."""
        name = tool_handler.name

        async def run(_name: str, params: Any) -> list[Content]:
            return _contents_from_json(await tool_handler.call(params))

        tool = Tool(
            name=name,
            description=tool_handler.description,
            input_schema=tool_handler.schema(),
        )
        return self.add_tool(tool, run)

    def build(self) -> "Toolset":
        return Toolset(dict(self._tools), dict(self._handlers))


class Toolset:
    """Tools looked up by name."""

    def __init__(self, tools: dict[str, Tool], handlers: dict[str, ToolHandlerFn]) -> None:
        self._tools = tools
        self._handlers = handlers

    @classmethod
    def builder(cls) -> ToolsetBuilder:
        return ToolsetBuilder()

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    async def call_tool(self, name: str, arguments: Any) -> list[Content]:
        """Run the named tool; raise ToolNotFound if there is none."""
        handler = self._handlers.get(name)
        if handler is None:
            raise ToolNotFound(name)
        result = handler(name, arguments)
        if inspect.isawaitable(result):
            result = await result
        return result

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())