"""A client for MCP servers, speaking JSON-RPC through a service."""

import asyncio
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from ..protocol import (
    METHOD_NOT_FOUND,
    CallToolResult,
    GetPromptResult,
    Implementation,
    InitializeResult,
    JsonRpcError,
    JsonRpcMessage,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ListPromptsResult,
    ListResourcesResult,
    ListToolsResult,
    ReadResourceResult,
    ServerCapabilities,
)

CLIENT_PROTOCOL_VERSION = "1.0.0"

T = TypeVar("T")


class ClientError(Exception):
    """Base class for failures of client operations."""


class RpcError(ClientError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error: code={code}, message={message}")
        self.code = code
        self.message = message


class ClientSerializationError(ClientError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Serialization error: {detail}")
        self.detail = detail


class UnexpectedResponseError(ClientError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Unexpected response from server: {detail}")
        self.detail = detail


class NotInitializedError(ClientError):
    def __init__(self) -> None:
        super().__init__("Not initialized")


class NotReadyError(ClientError):
    def __init__(self) -> None:
        super().__init__("Timeout or service not ready")


class RequestTimeoutError(ClientError, TimeoutError):
    def __init__(self) -> None:
        super().__init__("Request timed out")


class McpServerError(ClientError):
    """A call through the service failed; source holds the underlying error."""

    def __init__(self, method: str, server: str, source: BaseException) -> None:
        super().__init__(f"Call to '{server}' failed for '{method}'. {source}")
        self.method = method
        self.server = server
        self.source = source


@dataclass(frozen=True)
class ClientInfo:
    name: str
    version: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "version": self.version}


@dataclass(frozen=True)
class ClientCapabilities:
    """Capabilities the client announces; none are defined yet."""

    def to_dict(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class InitializeParams:
    client_info: ClientInfo
    capabilities: ClientCapabilities = field(default_factory=ClientCapabilities)
    protocol_version: str = CLIENT_PROTOCOL_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities.to_dict(),
            "clientInfo": self.client_info.to_dict(),
        }


class Service(Protocol):
    async def call(self, message: JsonRpcMessage) -> JsonRpcMessage: ...


def _cursor_payload(next_cursor: str | None) -> dict[str, Any]:
    return {} if next_cursor is None else {"cursor": next_cursor}


def _unsupported(capability: str) -> RpcError:
    return RpcError(METHOD_NOT_FOUND, f"Server does not support '{capability}' capability")


class McpClient:
    """Sends MCP requests through a service and checks the replies."""

    def __init__(self, service: Service) -> None:
        self.service = service
        self.server_capabilities: ServerCapabilities | None = None
        self.server_info: Implementation | None = None
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

    async def _ensure_ready(self) -> None:
        ready = getattr(self.service, "ready", None)
        if ready is None:
            return
        try:
            await ready()
        except Exception as exc:
            raise NotReadyError() from exc

    async def _call(self, method: str, message: JsonRpcMessage) -> JsonRpcMessage:
        try:
            return await self.service.call(message)
        except Exception as exc:
            source: BaseException = exc
            if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
                source = RequestTimeoutError()
            server = self.server_info.name if self.server_info is not None else ""
            raise McpServerError(method=method, server=server, source=source) from exc

    async def _send_request(
        self, method: str, params: Any, parse: Callable[[Any], T]
    ) -> T:
        async with self._lock:
            await self._ensure_ready()
            request_id = next(self._ids)
            request = JsonRpcRequest(method=method, id=request_id, params=params)
            reply = await self._call(method, request)

        if isinstance(reply, JsonRpcResponse):
            if reply.id != request_id:
                raise UnexpectedResponseError("id mismatch for JsonRpcResponse")
            if reply.error is not None:
                raise RpcError(reply.error.code, reply.error.message)
            if reply.result is None:
                raise UnexpectedResponseError("missing result")
            try:
                return parse(reply.result)
            except (ValueError, KeyError, TypeError, AttributeError) as exc:
                raise ClientSerializationError(str(exc)) from exc
        if isinstance(reply, JsonRpcError):
            if reply.id != request_id:
                raise UnexpectedResponseError("id mismatch for JsonRpcError")
            raise RpcError(reply.error.code, reply.error.message)
        raise UnexpectedResponseError("unexpected message type")

    async def _send_notification(self, method: str, params: Any) -> None:
        async with self._lock:
            await self._ensure_ready()
            await self._call(method, JsonRpcNotification(method=method, params=params))

    def _capabilities(self) -> ServerCapabilities:
        if self.server_capabilities is None:
            raise NotInitializedError()
        return self.server_capabilities

    async def initialize(
        self, info: ClientInfo, capabilities: ClientCapabilities | None = None
    ) -> InitializeResult:
        """Perform the handshake and remember what the server offers."""
        params = InitializeParams(
            client_info=info, capabilities=capabilities or ClientCapabilities()
        )
        result = await self._send_request(
            "initialize", params.to_dict(), InitializeResult.from_dict
        )
        await self._send_notification("notifications/initialized", {})
        self.server_capabilities = result.capabilities
        self.server_info = result.server_info
        return result

    async def list_resources(self, next_cursor: str | None = None) -> ListResourcesResult:
        if self._capabilities().resources is None:
            return ListResourcesResult(resources=[], next_cursor=None)
        return await self._send_request(
            "resources/list", _cursor_payload(next_cursor), ListResourcesResult.from_dict
        )

    async def read_resource(self, uri: str) -> ReadResourceResult:
        if self._capabilities().resources is None:
            raise _unsupported("resources")
        return await self._send_request(
            "resources/read", {"uri": uri}, ReadResourceResult.from_dict
        )

    async def list_tools(self, next_cursor: str | None = None) -> ListToolsResult:
        if self._capabilities().tools is None:
            return ListToolsResult(tools=[], next_cursor=None)
        return await self._send_request(
            "tools/list", _cursor_payload(next_cursor), ListToolsResult.from_dict
        )

    async def call_tool(self, name: str, arguments: Any) -> CallToolResult:
        if self._capabilities().tools is None:
            raise _unsupported("tools")
        return await self._send_request(
            "tools/call", {"name": name, "arguments": arguments}, CallToolResult.from_dict
        )

    async def list_prompts(self, next_cursor: str | None = None) -> ListPromptsResult:
        if self._capabilities().prompts is None:
            raise _unsupported("prompts")
        return await self._send_request(
            "prompts/list", _cursor_payload(next_cursor), ListPromptsResult.from_dict
        )

    async def get_prompt(self, name: str, arguments: Any) -> GetPromptResult:
        if self._capabilities().prompts is None:
            raise _unsupported("prompts")
        return await self._send_request(
            "prompts/get", {"name": name, "arguments": arguments}, GetPromptResult.from_dict
        )