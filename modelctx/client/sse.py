"""A client transport that receives over server-sent events and sends over HTTP POST."""

import asyncio
import contextlib
import json
import logging
import os
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from urllib.parse import urljoin

import httpx

from ..protocol import (
    InvalidMessageFormat,
    JsonRpcError,
    JsonRpcMessage,
    JsonRpcRequest,
    JsonRpcResponse,
    encode_message,
    parse_message,
)
from .transport import (
    ChannelClosedError,
    HttpError,
    NotConnectedError,
    PendingRequests,
    SseConnectionError,
    Transport,
    TransportHandle,
    TransportMessage,
    TransportSerializationError,
    send_message,
)

log = logging.getLogger(__name__)

ENDPOINT_TIMEOUT_SECS = 5.0
_QUEUE_SIZE = 32
_CHECK_INTERVAL = 0.1
_MAX_ATTEMPTS = 10
_STREAM_TIMEOUT = httpx.Timeout(10.0, read=None)


@dataclass(frozen=True)
class SseEvent:
    """One dispatched server-sent event."""

    event: str = "message"
    data: str = ""
    id: str | None = None
    retry: int | None = None


class _SseParser:
    """Turns event-stream lines into events, one blank line per dispatch."""

    def __init__(self) -> None:
        self._last_id: str | None = None
        self._reset()

    def _reset(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._retry: int | None = None

    def feed(self, line: str) -> SseEvent | None:
        if line == "":
            if not self._data:
                self._reset()
                return None
            event = SseEvent(
                event=self._event or "message",
                data="\n".join(self._data),
                id=self._last_id,
                retry=self._retry,
            )
            self._reset()
            return event
        if line.startswith(":"):
            return None
        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            if "\0" not in value:
                self._last_id = value
        elif name == "retry" and value.isdigit():
            self._retry = int(value)
        return None


def parse_sse_lines(lines: Iterable[str]) -> Iterator[SseEvent]:
    """Events in a sequence of event-stream lines; an unterminated last event is dropped."""
    parser = _SseParser()
    for line in lines:
        event = parser.feed(line.rstrip("\r\n"))
        if event is not None:
            yield event


def _fail(item: TransportMessage, error: BaseException) -> None:
    if item.response is not None and not item.response.done():
        item.response.set_exception(error)


def _decode(text: str) -> JsonRpcMessage:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError("Message must be a JSON object")
    return parse_message(value)


class SseActor:
    """Reads the event stream and posts queued messages to the announced endpoint."""

    def __init__(
        self,
        receiver: "asyncio.Queue[TransportMessage]",
        pending_requests: PendingRequests,
        sse_url: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.receiver = receiver
        self.pending_requests = pending_requests
        self.sse_url = sse_url
        self.post_endpoint: str | None = None
        self._client = client

    async def run(self) -> None:
        """Run the incoming and outgoing loops together."""
        client = self._client or httpx.AsyncClient()
        try:
            await asyncio.gather(
                self._handle_incoming(client), self._handle_outgoing(client)
            )
        finally:
            self.pending_requests.clear()
            if self._client is None:
                await client.aclose()

    async def _handle_incoming(self, client: httpx.AsyncClient) -> None:
        parser = _SseParser()
        try:
            async with client.stream(
                "GET",
                self.sse_url,
                headers={"Accept": "text/event-stream"},
                timeout=_STREAM_TIMEOUT,
            ) as response:
                if not response.is_success:
                    log.warning(
                        "SSE connection failed: %s %s",
                        response.status_code,
                        response.reason_phrase,
                    )
                else:
                    async for line in response.aiter_lines():
                        event = parser.feed(line.rstrip("\r\n"))
                        if event is not None:
                            self._dispatch(event)
        except httpx.HTTPError as exc:
            log.warning("SSE stream failed: %s", exc)
        log.error("SSE stream ended or encountered an error; clearing pending requests.")
        self.pending_requests.clear()

    def _dispatch(self, event: SseEvent) -> None:
        if self.post_endpoint is None:
            if event.event == "endpoint":
                self.post_endpoint = urljoin(self.sse_url, event.data)
                log.debug("Discovered SSE POST endpoint: %s", self.post_endpoint)
            return
        if event.event != "message":
            return
        try:
            message = _decode(event.data)
        except (ValueError, TypeError, KeyError, InvalidMessageFormat) as exc:
            log.warning("Failed to parse SSE message: %s", exc)
            return
        if isinstance(message, (JsonRpcResponse, JsonRpcError)) and message.id is not None:
            self.pending_requests.respond(message.id, message)

    async def _handle_outgoing(self, client: httpx.AsyncClient) -> None:
        while True:
            item = await self.receiver.get()
            await self._post(client, item)

    async def _post(self, client: httpx.AsyncClient, item: TransportMessage) -> None:
        endpoint = self.post_endpoint
        if endpoint is None:
            _fail(item, NotConnectedError())
            return
        try:
            body = encode_message(item.message)
        except (TypeError, ValueError) as exc:
            _fail(item, TransportSerializationError(str(exc)))
            return
        if item.response is not None:
            message = item.message
            if isinstance(message, JsonRpcRequest) and message.id is not None:
                self.pending_requests.insert(message.id, item.response)
            else:
                _fail(item, ChannelClosedError())
        try:
            response = await client.post(
                endpoint, content=body, headers={"Content-Type": "application/json"}
            )
        except httpx.HTTPError as exc:
            log.warning("HTTP POST failed: %s", exc)
            return
        if not response.is_success:
            status = response.status_code
            err = HttpError(status, f"{status} {response.reason_phrase}")
            # The reply, if any, still arrives over the event stream.
            log.warning("HTTP request returned error: %s", err)


class SseTransportHandle(TransportHandle):
    """Queues messages for the SSE actor."""

    def __init__(self, sender: "asyncio.Queue[TransportMessage]") -> None:
        self._sender = sender
        self._closed = False

    async def send(self, message: JsonRpcMessage) -> JsonRpcMessage:
        if self._closed:
            raise ChannelClosedError()
        return await send_message(self._sender, message)

    def _close(self) -> None:
        self._closed = True
        while True:
            try:
                item = self._sender.get_nowait()
            except asyncio.QueueEmpty:
                return
            _fail(item, ChannelClosedError())


class SseTransport(Transport):
    """Connects to an SSE endpoint and waits for it to announce where to post messages."""

    def __init__(
        self,
        sse_url: str,
        env: Mapping[str, str] | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.sse_url = sse_url
        self.env = dict(env or {})
        self._client = client
        self._task: asyncio.Task[None] | None = None
        self._handle: SseTransportHandle | None = None

    @staticmethod
    async def _wait_for_endpoint(actor: SseActor) -> str:
        for _ in range(_MAX_ATTEMPTS):
            if actor.post_endpoint is not None:
                return actor.post_endpoint
            await asyncio.sleep(_CHECK_INTERVAL)
        raise SseConnectionError("No endpoint discovered")

    async def start(self) -> SseTransportHandle:
        """Start the actor and give the server a moment to announce its endpoint.

        If no endpoint arrives the handle is returned anyway; sends fail with
        NotConnectedError until one does.
        """
        os.environ.update(self.env)
        queue: asyncio.Queue[TransportMessage] = asyncio.Queue(maxsize=_QUEUE_SIZE)
        actor = SseActor(queue, PendingRequests(), self.sse_url, client=self._client)
        task = asyncio.create_task(actor.run())
        try:
            await asyncio.wait_for(self._wait_for_endpoint(actor), ENDPOINT_TIMEOUT_SECS)
        except asyncio.TimeoutError as exc:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            raise SseConnectionError("deadline has elapsed") from exc
        except SseConnectionError as exc:
            log.warning("%s", exc)
        self._task = task
        self._handle = SseTransportHandle(queue)
        return self._handle

    async def close(self) -> None:
        """Stop the actor and fail anything still waiting."""
        handle, task = self._handle, self._task
        self._handle = self._task = None
        if handle is not None:
            handle._close()
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task