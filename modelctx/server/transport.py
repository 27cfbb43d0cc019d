"""Line-delimited JSON-RPC transports for the server."""

import inspect
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol

from ..protocol import (
    JSONRPC_VERSION,
    InvalidMessageFormat,
    JsonRpcMessage,
    encode_message,
    parse_message,
)
from .errors import (
    InvalidMessageError,
    TransportIoError,
    TransportJsonError,
    TransportUtf8Error,
)

log = logging.getLogger(__name__)


class LineReader(Protocol):
    async def readline(self) -> bytes: ...


class Transport(ABC):
    """An async stream of incoming messages that can also send messages back.

    Reading a malformed message raises a TransportError; the stream may be
    read again afterwards.
    """

    def __aiter__(self) -> "Transport":
        return self

    @abstractmethod
    async def __anext__(self) -> JsonRpcMessage:
        """The next incoming message; StopAsyncIteration at end of input."""

    @abstractmethod
    async def write_message(self, message: JsonRpcMessage) -> None:
        """Send one message, raising TransportError on failure."""


def _decode_line(raw: bytes) -> JsonRpcMessage:
    try:
        line = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TransportUtf8Error(str(exc)) from exc
    log.info("incoming message: %s", line.rstrip("\n"))
    try:
        value = json.loads(line)
    except json.JSONDecodeError as exc:
        raise TransportJsonError(str(exc)) from exc
    if not isinstance(value, dict):
        raise InvalidMessageError("Message must be a JSON object")
    if value.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidMessageError("Missing or invalid jsonrpc version")
    try:
        return parse_message(value)
    except InvalidMessageFormat as exc:
        raise TransportJsonError(str(exc)) from exc


class StdioTransport(Transport):
    """Newline-delimited JSON-RPC over a byte reader and writer.

    The reader needs an async ``readline()``; the writer needs ``write(bytes)``
    and may offer ``drain()``, sync or async.
    """

    def __init__(self, reader: LineReader, writer: Any) -> None:
        self._reader = reader
        self._writer = writer

    def __aiter__(self) -> "StdioTransport":
        return self

    async def __anext__(self) -> JsonRpcMessage:
        try:
            raw = await self._reader.readline()
        except (OSError, ValueError) as exc:
            raise TransportIoError(str(exc)) from exc
        if not raw:
            raise StopAsyncIteration
        return _decode_line(raw)

    async def write_message(self, message: JsonRpcMessage) -> None:
        try:
            data = (encode_message(message) + "\n").encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise TransportJsonError(str(exc)) from exc
        try:
            self._writer.write(data)
            drain = getattr(self._writer, "drain", None)
            if drain is not None:
                result = drain()
                if inspect.isawaitable(result):
                    await result
        except OSError as exc:
            raise TransportIoError(str(exc)) from exc