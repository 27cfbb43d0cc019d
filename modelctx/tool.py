"""Tools a server can run and the calls that ask for them."""

from dataclasses import dataclass
from typing import Any


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"{kind} must be a JSON object")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{kind} is missing field {key!r}") from None


@dataclass(frozen=True)
class Tool:
    """A tool a model can use, with a JSON Schema for its parameters."""

    name: str
    description: str
    input_schema: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tool":
        return cls(
            name=_require(data, "name", "tool"),
            description=_require(data, "description", "tool"),
            input_schema=_require(data, "inputSchema", "tool"),
        )


@dataclass(frozen=True)
class ToolCall:
    """A request to run a named tool with arguments."""

    name: str
    arguments: Any

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCall":
        return cls(
            name=_require(data, "name", "tool call"),
            arguments=_require(data, "arguments", "tool call"),
        )