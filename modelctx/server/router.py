"""Routing of JSON-RPC requests to the tools, resources and prompts of a server."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any

from ..content import Content
from ..handler import PromptError, ResourceError, ToolError
from ..prompt import Prompt, PromptMessage, PromptMessageRole
from ..protocol import (
    CallToolResult,
    GetPromptResult,
    Implementation,
    InitializeResult,
    JsonRpcRequest,
    JsonRpcResponse,
    ListPromptsResult,
    ListResourcesResult,
    ListToolsResult,
    PromptsCapability,
    ReadResourceResult,
    ResourcesCapability,
    ServerCapabilities,
    ToolsCapability,
)
from ..resource import Resource, TextResourceContents
from ..tool import Tool
from .errors import (
    RouterInternal,
    RouterInvalidParams,
    RouterMethodNotFound,
    RouterPromptNotFound,
    router_error_from_resource_error,
)

PROTOCOL_VERSION = "2024-11-05"
SERVER_VERSION = "0.1.0"
MAX_ARGUMENT_LENGTH = 1000
MAX_PROMPT_LENGTH = 10000
DANGEROUS_PATTERNS = ("../", "//", "\\\\", "<script>", "{{", "}}")


class CapabilitiesBuilder:
    """Collects the capabilities a server announces."""

    def __init__(self) -> None:
        self._tools: ToolsCapability | None = None
        self._prompts: PromptsCapability | None = None
        self._resources: ResourcesCapability | None = None

    def with_tools(self, list_changed: bool) -> "CapabilitiesBuilder":
        self._tools = ToolsCapability(list_changed=list_changed)
        return self

    def with_prompts(self, list_changed: bool) -> "CapabilitiesBuilder":
        self._prompts = PromptsCapability(list_changed=list_changed)
        return self

    def with_resources(self, subscribe: bool, list_changed: bool) -> "CapabilitiesBuilder":
        self._resources = ResourcesCapability(subscribe=subscribe, list_changed=list_changed)
        return self

    def build(self) -> ServerCapabilities:
        return ServerCapabilities(
            prompts=self._prompts, resources=self._resources, tools=self._tools
        )


def _params(request: JsonRpcRequest) -> Any:
    if request.params is None:
        raise RouterInvalidParams("Missing parameters")
    return request.params


def _field(params: Any, key: str) -> Any:
    return params.get(key) if isinstance(params, dict) else None


def _string_field(params: Any, key: str, message: str) -> str:
    value = _field(params, key)
    if not isinstance(value, str):
        raise RouterInvalidParams(message)
    return value


def _byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


class Router(ABC):
    """A server's tools, resources and prompts, and the handlers that serve them."""

    @abstractmethod
    def name(self) -> str:
        """The server name reported on initialisation."""

    @abstractmethod
    def instructions(self) -> str:
        """Instructions for clients on how to use the server."""

    @abstractmethod
    def capabilities(self) -> ServerCapabilities:
        """The capabilities the server announces."""

    @abstractmethod
    def list_tools(self) -> list[Tool]:
        """The tools the server offers."""

    @abstractmethod
    async def call_tool(self, tool_name: str, arguments: Any) -> list[Content]:
        """Run a tool, raising ToolError on failure."""

    @abstractmethod
    def list_resources(self) -> list[Resource]:
        """The resources the server offers."""

    @abstractmethod
    async def read_resource(self, uri: str) -> str:
        """The text of a resource, raising ResourceError on failure."""

    @abstractmethod
    def list_prompts(self) -> list[Prompt]:
        """The prompts the server offers."""

    @abstractmethod
    async def get_prompt(self, prompt_name: str) -> str:
        """The template text of a prompt, raising PromptError on failure."""

    def create_response(self, request_id: int | None) -> JsonRpcResponse:
        """An empty response carrying the given id."""
        return JsonRpcResponse(id=request_id)

    def _respond(self, request: JsonRpcRequest, result: Any) -> JsonRpcResponse:
        try:
            payload = result.to_dict()
        except (TypeError, ValueError) as exc:
            raise RouterInternal(f"JSON serialization error: {exc}") from exc
        return replace(self.create_response(request.id), result=payload)

    async def handle_initialize(self, request: JsonRpcRequest) -> JsonRpcResponse:
        result = InitializeResult(
            protocol_version=PROTOCOL_VERSION,
            capabilities=self.capabilities(),
            server_info=Implementation(name=self.name(), version=SERVER_VERSION),
            instructions=self.instructions(),
        )
        return self._respond(request, result)

    async def handle_tools_list(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return self._respond(request, ListToolsResult(tools=self.list_tools()))

    async def handle_tools_call(self, request: JsonRpcRequest) -> JsonRpcResponse:
        params = _params(request)
        name = _string_field(params, "name", "Missing tool name")
        arguments = _field(params, "arguments")
        try:
            result = CallToolResult(content=await self.call_tool(name, arguments))
        except ToolError as err:
            result = CallToolResult(content=[Content.text(str(err))], is_error=True)
        return self._respond(request, result)

    async def handle_resources_list(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return self._respond(request, ListResourcesResult(resources=self.list_resources()))

    async def handle_resources_read(self, request: JsonRpcRequest) -> JsonRpcResponse:
        params = _params(request)
        uri = _string_field(params, "uri", "Missing resource URI")
        try:
            text = await self.read_resource(uri)
        except ResourceError as err:
            raise router_error_from_resource_error(err) from err
        contents = TextResourceContents(uri=uri, text=text, mime_type="text/plain")
        return self._respond(request, ReadResourceResult(contents=[contents]))

    async def handle_prompts_list(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return self._respond(request, ListPromptsResult(prompts=self.list_prompts()))

    async def handle_prompts_get(self, request: JsonRpcRequest) -> JsonRpcResponse:
        params = _params(request)
        prompt_name = _string_field(params, "name", "Missing prompt name")
        arguments = _field(params, "arguments")
        if not isinstance(arguments, dict):
            raise RouterInvalidParams("Missing arguments object")

        prompt = next((p for p in self.list_prompts() if p.name == prompt_name), None)
        if prompt is None:
            raise RouterPromptNotFound(f"Prompt '{prompt_name}' not found")

        for argument in prompt.arguments or []:
            value = arguments.get(argument.name)
            if argument.required and (not isinstance(value, str) or not value):
                raise RouterInvalidParams(f"Missing required argument: '{argument.name}'")

        try:
            description = await self.get_prompt(prompt_name)
        except PromptError as err:
            raise RouterInternal(str(err)) from err

        for key, value in arguments.items():
            if not key or _byte_length(key) > MAX_ARGUMENT_LENGTH:
                raise RouterInvalidParams("Argument keys must be between 1-1000 characters")
            text = _as_str(value)
            if _byte_length(text) > MAX_ARGUMENT_LENGTH:
                raise RouterInvalidParams("Argument values must not exceed 1000 characters")
            for pattern in DANGEROUS_PATTERNS:
                if pattern in key or pattern in text:
                    raise RouterInvalidParams(
                        f"Arguments contain potentially unsafe pattern: {pattern}"
                    )

        if _byte_length(description) > MAX_PROMPT_LENGTH:
            raise RouterInternal("Prompt description exceeds maximum allowed length")

        filled = description
        for key, value in arguments.items():
            filled = filled.replace("{" + key + "}", _as_str(value))

        messages = [PromptMessage.new_text(PromptMessageRole.USER, filled)]
        return self._respond(request, GetPromptResult(messages=messages, description=filled))


_HANDLERS = {
    "initialize": "handle_initialize",
    "tools/list": "handle_tools_list",
    "tools/call": "handle_tools_call",
    "resources/list": "handle_resources_list",
    "resources/read": "handle_resources_read",
    "prompts/list": "handle_prompts_list",
    "prompts/get": "handle_prompts_get",
}


@dataclass
class RouterService:
    """Dispatches requests to a router by method name."""

    router: Router

    async def call(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Handle one request; handler failures raise RouterError."""
        handler_name = _HANDLERS.get(request.method)
        if handler_name is None:
            error = RouterMethodNotFound(request.method).to_error_data()
            return replace(self.router.create_response(request.id), error=error)
        return await getattr(self.router, handler_name)(request)