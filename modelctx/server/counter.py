"""An example server offering a shared counter, a few resources and a prompt."""

import argparse
import asyncio
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, BinaryIO

from ..content import Content
from ..handler import PromptNotFound, ResourceNotFound, ToolNotFound
from ..prompt import Prompt, PromptArgument
from ..protocol import ServerCapabilities
from ..resource import Resource
from ..tool import Tool
from .router import CapabilitiesBuilder, Router, RouterService
from .server import Server
from .transport import StdioTransport

log = logging.getLogger(__name__)

_EMPTY_SCHEMA = {"type": "object", "properties": {}, "required": []}
_CWD_URI = "str:////Users/to/some/path/"
_MEMO_URI = "memo://insights"
_RESOURCE_TEXT = {
    _CWD_URI: "/Users/to/some/path/",
    _MEMO_URI: "Business Intelligence Memo\n\nAnalysis has revealed 5 key insights ...",
}


class CounterRouter(Router):
    """A router whose tools change and report a counter starting at zero."""

    def __init__(self) -> None:
        self._counter = 0
        self._lock = asyncio.Lock()

    async def increment(self) -> int:
        async with self._lock:
            self._counter += 1
            return self._counter

    async def decrement(self) -> int:
        async with self._lock:
            self._counter -= 1
            return self._counter

    async def get_value(self) -> int:
        async with self._lock:
            return self._counter

    def name(self) -> str:
        return "counter"

    def instructions(self) -> str:
        return (
            "This server provides a counter tool that can increment and decrement values. "
            "The counter starts at 0 and can be modified using the 'increment' and "
            "'decrement' tools. Use 'get_value' to check the current count."
        )

    def capabilities(self) -> ServerCapabilities:
        return (
            CapabilitiesBuilder()
            .with_tools(False)
            .with_resources(False, False)
            .with_prompts(False)
            .build()
        )

    def list_tools(self) -> list[Tool]:
        return [
            Tool("increment", "Increment the counter by 1", dict(_EMPTY_SCHEMA)),
            Tool("decrement", "Decrement the counter by 1", dict(_EMPTY_SCHEMA)),
            Tool("get_value", "Get the current counter value", dict(_EMPTY_SCHEMA)),
        ]

    async def call_tool(self, tool_name: str, arguments: Any) -> list[Content]:
        actions = {
            "increment": self.increment,
            "decrement": self.decrement,
            "get_value": self.get_value,
        }
        action = actions.get(tool_name)
        if action is None:
            raise ToolNotFound(f"Tool {tool_name} not found")
        return [Content.text(str(await action()))]

    def list_resources(self) -> list[Resource]:
        return [
            Resource.create(_CWD_URI, "text/plain", "cwd"),
            Resource.create(_MEMO_URI, "text/plain", "memo-name"),
        ]

    async def read_resource(self, uri: str) -> str:
        try:
            return _RESOURCE_TEXT[uri]
        except KeyError:
            raise ResourceNotFound(f"Resource {uri} not found") from None

    def list_prompts(self) -> list[Prompt]:
        return [
            Prompt(
                name="example_prompt",
                description=(
                    "This is an example prompt that takes one required agrument, message"
                ),
                arguments=[
                    PromptArgument(
                        name="message",
                        description="A message to put in the prompt",
                        required=True,
                    )
                ],
            )
        ]

    async def get_prompt(self, prompt_name: str) -> str:
        if prompt_name == "example_prompt":
            return "This is an example prompt with your message here: '{message}'"
        raise PromptNotFound(f"Prompt {prompt_name} not found")


class _BlockingReader:
    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    async def readline(self) -> bytes:
        return await asyncio.to_thread(self._stream.readline)


class _BlockingWriter:
    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        await asyncio.to_thread(self._stream.flush)


def _log_handler() -> logging.Handler:
    directory = Path("logs")
    directory.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        directory / "mcp-server.log", when="midnight", encoding="utf-8"
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)s [%(threadName)s] %(filename)s:%(lineno)d %(message)s"
        )
    )
    return handler


async def _serve(reader: BinaryIO, writer: BinaryIO) -> None:
    server = Server(RouterService(CounterRouter()))
    transport = StdioTransport(_BlockingReader(reader), _BlockingWriter(writer))
    log.info("Server initialized and ready to handle requests")
    await server.run(transport)


def main(argv: list[str] | None = None) -> int:
    """Run the counter server on standard input and output."""
    parser = argparse.ArgumentParser(
        prog="modelctx-counter",
        description="Serve the counter example over standard input and output.",
    )
    parser.parse_args(argv)

    handler = _log_handler()
    root = logging.getLogger()
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    try:
        log.info("Starting MCP server")
        asyncio.run(_serve(sys.stdin.buffer, sys.stdout.buffer))
    finally:
        root.removeHandler(handler)
        handler.close()
        root.setLevel(previous_level)
    return 0