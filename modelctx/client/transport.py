"""Errors, message passing and pending-request bookkeeping shared by client transports."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..protocol import JsonRpcMessage, JsonRpcNil, JsonRpcNotification, JsonRpcRequest

# Queues gained a shutdown state in newer Pythons; putting into one raises this.
_QUEUE_CLOSED: tuple[type[BaseException], ...] = tuple(
    exc for exc in (getattr(asyncio, "QueueShutDown", None),) if exc is not None
)


class TransportError(Exception):
    """Base class for failures of a client transport."""


class _DetailError(TransportError):
    template = "{}"

    def __init__(self, detail: str) -> None:
        super().__init__(self.template.format(detail))
        self.detail = detail


class TransportIoError(_DetailError):
    template = "I/O error: {}"


class NotConnectedError(TransportError):
    def __init__(self) -> None:
        super().__init__("Transport was not connected or is already closed")


class ChannelClosedError(TransportError):
    def __init__(self) -> None:
        super().__init__("Channel closed")


class TransportSerializationError(_DetailError):
    template = "Serialization error: {}"


class UnsupportedMessageError(TransportError):
    def __init__(self) -> None:
        super().__init__(
            "Unsupported message type. JsonRpcMessage can only be Request or Notification."
        )


class StdioProcessError(_DetailError):
    template = "Stdio process error: {}"


class SseConnectionError(_DetailError):
    template = "SSE connection error: {}"


class HttpError(TransportError):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"HTTP error: {status} - {message}")
        self.status = status
        self.message = message


@dataclass
class TransportMessage:
    """A message to send, with the future its reply goes to (None for notifications)."""

    message: JsonRpcMessage
    response: "asyncio.Future[JsonRpcMessage] | None" = None


async def _put(queue: "asyncio.Queue[TransportMessage]", item: TransportMessage) -> None:
    try:
        await queue.put(item)
    except _QUEUE_CLOSED:
        raise ChannelClosedError() from None


async def send_message(
    queue: "asyncio.Queue[TransportMessage]", message: JsonRpcMessage
) -> JsonRpcMessage:
    """Queue a request and wait for its reply, or queue a notification and return Nil."""
    if isinstance(message, JsonRpcRequest):
        future: asyncio.Future[JsonRpcMessage] = asyncio.get_running_loop().create_future()
        await _put(queue, TransportMessage(message=message, response=future))
        return await future
    if isinstance(message, JsonRpcNotification):
        await _put(queue, TransportMessage(message=message, response=None))
        return JsonRpcNil()
    raise UnsupportedMessageError()


class PendingRequests:
    """Futures of requests still waiting for a reply, keyed by request id."""

    def __init__(self) -> None:
        self._requests: dict[str, asyncio.Future[JsonRpcMessage]] = {}

    def __len__(self) -> int:
        return len(self._requests)

    def __contains__(self, request_id: Any) -> bool:
        return str(request_id) in self._requests

    def insert(self, request_id: Any, future: "asyncio.Future[JsonRpcMessage]") -> None:
        self._requests[str(request_id)] = future

    def respond(self, request_id: Any, response: JsonRpcMessage | BaseException) -> None:
        """Resolve the request's future with a message, or fail it with an exception."""
        future = self._requests.pop(str(request_id), None)
        if future is None or future.done():
            return
        if isinstance(response, BaseException):
            future.set_exception(response)
        else:
            future.set_result(response)

    def clear(self) -> None:
        """Fail every waiting request with ChannelClosedError."""
        for future in self._requests.values():
            if not future.done():
                future.set_exception(ChannelClosedError())
        self._requests.clear()


class TransportHandle(ABC):
    """Sends messages over a started transport."""

    @abstractmethod
    async def send(self, message: JsonRpcMessage) -> JsonRpcMessage:
        """Send a message and return the reply (Nil for notifications)."""


class Transport(ABC):
    """A connection that can be started to obtain a handle."""

    @abstractmethod
    async def start(self) -> TransportHandle:
        """Establish the connection and return a handle for sending messages."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection and free its resources."""