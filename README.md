# modelctx

A small toolkit for the Model Context Protocol (MCP), built on `asyncio`.

## What is in it

- **Core types**
  - `modelctx.annotations`: `Role` and `Annotations` (audience, priority, timestamp).
  - `modelctx.content`: `Content` wrapping `TextContent`, `ImageContent` or
    `EmbeddedResource`, with `with_audience`, `with_priority`, `unannotated`.
  - `modelctx.resource`: `Resource`, `TextResourceContents`, `BlobResourceContents`.
    `Resource.create` checks that the URI has a scheme (raising `InvalidURIError`)
    and names the resource after the last path segment; MIME types other than
    `text` or `blob` become `text`.
  - `modelctx.tool`: `Tool` and `ToolCall`.
  - `modelctx.prompt`: `Prompt`, `PromptArgument`, `PromptMessage` (with
    `new_text`, `new_image`, which checks for base64 data and an `image/` MIME
    type, and `new_resource`).
  - `modelctx.protocol`: the JSON-RPC message classes, `parse_message`,
    `decode_message`, `encode_message`, the standard error codes and the MCP
    result types (`InitializeResult`, `ListToolsResult`, `CallToolResult`, ...).

  Every type has `to_dict()` and, where it is read back, `from_dict()`, using the
  camelCase field names of the protocol.

- **Tools from functions** – `modelctx.handler` holds the tool, resource and
  prompt error classes, the `ToolHandler` base class and the `tool` decorator.

- **A server** – subclass `modelctx.server.router.Router`, wrap it in a
  `RouterService`, and run it with `modelctx.server.server.Server` over a
  newline-delimited JSON `modelctx.server.transport.StdioTransport`.

- **A client** – `modelctx.client.client.McpClient` talks to a server through
  `modelctx.client.service.McpService`, either over a child process
  (`modelctx.client.stdio.StdioTransport`) or over Server-Sent Events with HTTP
  POST (`modelctx.client.sse.SseTransport`).

## Installation

```
pip install .
```

## Running the example counter server

The package ships a server offering `increment`, `decrement` and `get_value`
tools, two resources (`str:////Users/to/some/path/` and `memo://insights`) and
one prompt, `example_prompt`, taking a required `message` argument. It speaks
JSON-RPC, one message per line, on standard input and output:

```
modelctx-counter
```

It logs to `logs/mcp-server.log` under the current directory, rotated daily.

## Writing a server

```python
import asyncio
import sys

from modelctx.content import Content
from modelctx.server.router import CapabilitiesBuilder, Router, RouterService
from modelctx.server.server import Server
from modelctx.server.transport import StdioTransport
```

Implement `name`, `instructions`, `capabilities`, `list_tools`, `call_tool`,
`list_resources`, `read_resource`, `list_prompts` and `get_prompt` on a
`Router` subclass. `RouterService` answers `initialize`, `tools/list`,
`tools/call`, `resources/list`, `resources/read`, `prompts/list` and
`prompts/get`; any other method gets a "method not found" error. A tool that
raises `ToolError` produces a result with `isError` set. `prompts/get` checks
required arguments, refuses argument keys or values over 1000 bytes and
values containing `../`, `//`, `\\`, `<script>`, `{{` or `}}`, and fills
`{name}` placeholders in the prompt text.

`StdioTransport(reader, writer)` needs a reader with an async `readline()`
and a writer with `write(bytes)` and, optionally, `drain()` — for example the
pair returned by `asyncio.open_connection`. `Server.run` answers requests,
ignores other messages, replies to unreadable lines with a JSON-RPC error and
returns when the input ends.

## Writing a client

```python
import asyncio

from modelctx.client.client import ClientCapabilities, ClientInfo, McpClient
from modelctx.client.service import McpService
from modelctx.client.stdio import StdioTransport


async def demo():
    transport = StdioTransport("modelctx-counter", [], {})
    handle = await transport.start()
    client = McpClient(McpService.with_timeout(handle, 10.0))

    await client.initialize(ClientInfo("example-client", "1.0.0"), ClientCapabilities())
    print(await client.list_tools(None))
    print(await client.call_tool("increment", {}))
    await transport.close()


asyncio.run(demo())
```

Client methods other than `initialize` raise `NotInitializedError` before the
handshake. If the server lacks a capability, `list_tools` and `list_resources`
return empty lists, while `call_tool`, `read_resource`, `list_prompts` and
`get_prompt` raise `RpcError` with the method-not-found code. Error replies
raise `RpcError`; failures of the service itself raise `McpServerError`, whose
`source` is a `RequestTimeoutError` when the timeout ran out.

`SseTransport(url, env)` opens the event stream, waits up to five seconds for
an `endpoint` event and then posts messages to that endpoint; replies arrive
as `message` events. `parse_sse_lines` turns event-stream lines into
`SseEvent` objects.

## Defining tools from functions

```python
from modelctx.handler import tool


@tool(name="calculator", description="Basic arithmetic", params={"x": "First number"})
async def calculator(x: int, y: int, operation: str) -> int:
    ...
```

The decorator produces a `FunctionTool`. Its `schema()` builds a JSON Schema
from the parameter annotations (`bool`, `int`, `float`, `str`, lists, dicts and
optional variants); its `call(params)` checks a JSON object against the
parameters, raising `InvalidParameters`, and wraps exceptions from the
function in `ExecutionError`. The function itself may be sync or async.

`modelctx.server.toolset.Toolset` collects tools by name: `add_tool(tool,
handler)` takes a handler called as `handler(name, arguments)`, and
`add_tool_from_handler` takes a `ToolHandler` whose `call` returns a list of
content dictionaries (as produced by `Content.to_dict()`); anything else fails
with `ExecutionError`. `call_tool` raises `ToolNotFound` for unknown names.

## What it does not do

- The server side has only the line-based byte-stream transport; there is no
  HTTP or Server-Sent Events server. SSE is supported only by the client.
- The clients act on responses and errors only; requests or notifications
  sent by a server are ignored, as are subscriptions and list-changed
  notifications.
- Client capabilities are empty; the client announces nothing.

## Tests

```
pip install ".[test]"
pytest
```