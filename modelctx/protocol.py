"""JSON-RPC messages and the MCP result types exchanged between client and server."""

import json
from dataclasses import dataclass, field
from typing import Any

from .content import Content
from .prompt import Prompt, PromptMessage
from .resource import Resource, ResourceContents, resource_contents_from_dict
from .tool import Tool

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

JSONRPC_VERSION = "2.0"


class InvalidMessageFormat(ValueError):
    """Raised when data is not a valid JSON-RPC message."""


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"{kind} must be a JSON object")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{kind} is missing field {key!r}") from None


@dataclass(frozen=True)
class ErrorData:
    """Error details of a JSON-RPC error response."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ErrorData":
        code = _require(data, "code", "error")
        message = _require(data, "message", "error")
        if not isinstance(code, int) or isinstance(code, bool):
            raise ValueError("error code must be an integer")
        if not isinstance(message, str):
            raise ValueError("error message must be a string")
        return cls(code=code, message=message, data=data.get("data"))


@dataclass(frozen=True)
class JsonRpcRequest:
    method: str
    id: int | None = None
    params: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            out["id"] = self.id
        out["method"] = self.method
        if self.params is not None:
            out["params"] = self.params
        return out


@dataclass(frozen=True)
class JsonRpcResponse:
    id: int | None = None
    result: Any = None
    error: ErrorData | None = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            out["id"] = self.id
        if self.result is not None:
            out["result"] = self.result
        if self.error is not None:
            out["error"] = self.error.to_dict()
        return out


@dataclass(frozen=True)
class JsonRpcNotification:
    method: str
    params: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            out["params"] = self.params
        return out


@dataclass(frozen=True)
class JsonRpcError:
    error: ErrorData
    id: int | None = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            out["id"] = self.id
        out["error"] = self.error.to_dict()
        return out


@dataclass(frozen=True)
class JsonRpcNil:
    """The empty reply to a notification."""

    def to_dict(self) -> None:
        return None


JsonRpcMessage = JsonRpcRequest | JsonRpcResponse | JsonRpcNotification | JsonRpcError | JsonRpcNil


def _message_id(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidMessageFormat(f"Invalid JSON-RPC id: {value!r}")
    return value


def parse_message(data: Any) -> JsonRpcMessage:
    """Classify a decoded JSON object as one kind of JSON-RPC message."""
    if not isinstance(data, dict):
        raise InvalidMessageFormat("JSON-RPC message must be a JSON object")
    jsonrpc = data.get("jsonrpc")
    if not isinstance(jsonrpc, str):
        raise InvalidMessageFormat("missing field `jsonrpc`")
    message_id = _message_id(data.get("id"))
    method = data.get("method")
    if method is not None and not isinstance(method, str):
        raise InvalidMessageFormat(f"Invalid JSON-RPC method: {method!r}")
    params = data.get("params")
    result = data.get("result")
    raw_error = data.get("error")
    try:
        error = None if raw_error is None else ErrorData.from_dict(raw_error)
    except ValueError as exc:
        raise InvalidMessageFormat(str(exc)) from exc

    if error is not None:
        return JsonRpcError(error=error, id=message_id, jsonrpc=jsonrpc)
    if result is not None:
        return JsonRpcResponse(id=message_id, result=result, jsonrpc=jsonrpc)
    if method is not None:
        if message_id is None:
            return JsonRpcNotification(method=method, params=params, jsonrpc=jsonrpc)
        return JsonRpcRequest(method=method, id=message_id, params=params, jsonrpc=jsonrpc)
    if message_id is None:
        return JsonRpcNil()
    raise InvalidMessageFormat(
        f"Invalid JSON-RPC message format: id={message_id!r}, method=None, "
        "result=None, error=None"
    )


def decode_message(text: str | bytes) -> JsonRpcMessage:
    """Parse JSON text into a message; malformed JSON raises json.JSONDecodeError."""
    return parse_message(json.loads(text))


def encode_message(message: JsonRpcMessage) -> str:
    """Compact JSON text for a message."""
    return json.dumps(message.to_dict(), separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class Implementation:
    name: str
    version: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Implementation":
        return cls(
            name=_require(data, "name", "implementation"),
            version=_require(data, "version", "implementation"),
        )


@dataclass(frozen=True)
class PromptsCapability:
    list_changed: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"listChanged": self.list_changed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PromptsCapability":
        return cls(list_changed=data.get("listChanged"))


@dataclass(frozen=True)
class ResourcesCapability:
    subscribe: bool | None = None
    list_changed: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"subscribe": self.subscribe, "listChanged": self.list_changed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourcesCapability":
        return cls(subscribe=data.get("subscribe"), list_changed=data.get("listChanged"))


@dataclass(frozen=True)
class ToolsCapability:
    list_changed: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"listChanged": self.list_changed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolsCapability":
        return cls(list_changed=data.get("listChanged"))


@dataclass(frozen=True)
class ServerCapabilities:
    prompts: PromptsCapability | None = None
    resources: ResourcesCapability | None = None
    tools: ToolsCapability | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.prompts is not None:
            out["prompts"] = self.prompts.to_dict()
        if self.resources is not None:
            out["resources"] = self.resources.to_dict()
        if self.tools is not None:
            out["tools"] = self.tools.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServerCapabilities":
        if not isinstance(data, dict):
            raise ValueError("capabilities must be a JSON object")
        prompts = data.get("prompts")
        resources = data.get("resources")
        tools = data.get("tools")
        return cls(
            prompts=None if prompts is None else PromptsCapability.from_dict(prompts),
            resources=None if resources is None else ResourcesCapability.from_dict(resources),
            tools=None if tools is None else ToolsCapability.from_dict(tools),
        )


@dataclass(frozen=True)
class InitializeResult:
    protocol_version: str
    capabilities: ServerCapabilities
    server_info: Implementation
    instructions: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities.to_dict(),
            "serverInfo": self.server_info.to_dict(),
        }
        if self.instructions is not None:
            out["instructions"] = self.instructions
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InitializeResult":
        return cls(
            protocol_version=_require(data, "protocolVersion", "initialize result"),
            capabilities=ServerCapabilities.from_dict(
                _require(data, "capabilities", "initialize result")
            ),
            server_info=Implementation.from_dict(_require(data, "serverInfo", "initialize result")),
            instructions=data.get("instructions"),
        )


@dataclass(frozen=True)
class ListResourcesResult:
    resources: list[Resource] = field(default_factory=list)
    next_cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"resources": [item.to_dict() for item in self.resources]}
        if self.next_cursor is not None:
            out["nextCursor"] = self.next_cursor
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListResourcesResult":
        items = _require(data, "resources", "resource list")
        return cls(
            resources=[Resource.from_dict(item) for item in items],
            next_cursor=data.get("nextCursor"),
        )


@dataclass(frozen=True)
class ReadResourceResult:
    contents: list[ResourceContents] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"contents": [item.to_dict() for item in self.contents]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReadResourceResult":
        items = _require(data, "contents", "read resource result")
        return cls(contents=[resource_contents_from_dict(item) for item in items])


@dataclass(frozen=True)
class ListToolsResult:
    tools: list[Tool] = field(default_factory=list)
    next_cursor: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"tools": [item.to_dict() for item in self.tools]}
        if self.next_cursor is not None:
            out["nextCursor"] = self.next_cursor
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListToolsResult":
        items = _require(data, "tools", "tool list")
        return cls(tools=[Tool.from_dict(item) for item in items], next_cursor=data.get("nextCursor"))


@dataclass(frozen=True)
class CallToolResult:
    content: list[Content] = field(default_factory=list)
    is_error: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"content": [item.to_dict() for item in self.content]}
        if self.is_error is not None:
            out["isError"] = self.is_error
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CallToolResult":
        items = _require(data, "content", "tool result")
        return cls(content=[Content.from_dict(item) for item in items], is_error=data.get("isError"))


@dataclass(frozen=True)
class ListPromptsResult:
    prompts: list[Prompt] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"prompts": [item.to_dict() for item in self.prompts]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ListPromptsResult":
        items = _require(data, "prompts", "prompt list")
        return cls(prompts=[Prompt.from_dict(item) for item in items])


@dataclass(frozen=True)
class GetPromptResult:
    messages: list[PromptMessage] = field(default_factory=list)
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.description is not None:
            out["description"] = self.description
        out["messages"] = [item.to_dict() for item in self.messages]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GetPromptResult":
        items = _require(data, "messages", "prompt result")
        return cls(
            messages=[PromptMessage.from_dict(item) for item in items],
            description=data.get("description"),
        )