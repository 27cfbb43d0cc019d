import asyncio
import contextlib
import json

import httpx
import pytest

from modelctx.client.sse import SseEvent, SseTransport, parse_sse_lines
from modelctx.client.transport import ChannelClosedError, NotConnectedError
from modelctx.protocol import (
    METHOD_NOT_FOUND,
    JsonRpcError,
    JsonRpcNil,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
)

SSE_URL = "http://localhost:8000/sse"
ENDPOINT_EVENT = b"event: endpoint\ndata: /messages?sessionId=abc\n\n"


class _EventStream(httpx.AsyncByteStream):
    def __init__(self, outbox, announce):
        self._outbox = outbox
        self._announce = announce

    async def __aiter__(self):
        if self._announce:
            yield ENDPOINT_EVENT
            yield b": keep-alive\n\nevent: ping\ndata: ignored\n\n"
        while True:
            chunk = await self._outbox.get()
            if chunk is None:
                return
            yield chunk


class FakeServer:
    def __init__(self, announce=True):
        self.outbox = asyncio.Queue()
        self.announce = announce
        self.posts = []

    async def handle(self, request):
        if request.method == "GET":
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                stream=_EventStream(self.outbox, self.announce),
            )
        body = json.loads(await request.aread())
        self.posts.append((str(request.url), body))
        if "id" in body:
            if body["method"] == "hang":
                await self.outbox.put(None)
            else:
                if body["method"] == "fail":
                    reply = {
                        "jsonrpc": "2.0",
                        "id": body["id"],
                        "error": {"code": METHOD_NOT_FOUND, "message": "nope"},
                    }
                else:
                    reply = {"jsonrpc": "2.0", "id": body["id"], "result": {"echo": body["method"]}}
                await self.outbox.put(f"event: message\ndata: {json.dumps(reply)}\n\n".encode())
        return httpx.Response(202)


@contextlib.asynccontextmanager
async def running(server):
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handle))
    transport = SseTransport(SSE_URL, {}, client=client)
    handle = await transport.start()
    try:
        yield transport, handle
    finally:
        await transport.close()
        await client.aclose()


async def send(handle, message):
    return await asyncio.wait_for(handle.send(message), 10)


def test_parse_sse_lines_groups_fields_into_events():
    lines = [
        "event: endpoint",
        "data: /messages",
        "",
        ": comment",
        "data: first",
        "data:second",
        "",
        "data: trailing",
    ]
    assert list(parse_sse_lines(lines)) == [
        SseEvent(event="endpoint", data="/messages"),
        SseEvent(event="message", data="first\nsecond"),
    ]


def test_parse_sse_lines_keeps_last_id_and_retry():
    events = list(parse_sse_lines(["id: 7", "retry: 3000", "data: a", "", "data: b", ""]))
    assert [event.id for event in events] == ["7", "7"]
    assert [event.retry for event in events] == [3000, None]
    assert [event.data for event in events] == ["a", "b"]


def test_parse_sse_lines_blank_block_resets_event_type():
    events = list(parse_sse_lines(["event: ping", "", "data: y\r\n", ""]))
    assert events == [SseEvent(event="message", data="y")]


@pytest.mark.asyncio
async def test_request_round_trip_posts_to_announced_endpoint():
    server = FakeServer()
    async with running(server) as (_, handle):
        reply = await send(handle, JsonRpcRequest(method="ping", id=1, params={}))
        assert isinstance(reply, JsonRpcResponse)
        assert reply.id == 1
        assert reply.result == {"echo": "ping"}
        assert server.posts[0][0] == "http://localhost:8000/messages?sessionId=abc"


@pytest.mark.asyncio
async def test_notification_returns_nil_and_is_posted_in_order():
    server = FakeServer()
    async with running(server) as (_, handle):
        nil = await send(handle, JsonRpcNotification(method="notifications/initialized", params={}))
        assert isinstance(nil, JsonRpcNil)
        await send(handle, JsonRpcRequest(method="after", id=2, params={}))
        assert [body["method"] for _, body in server.posts] == [
            "notifications/initialized",
            "after",
        ]


@pytest.mark.asyncio
async def test_error_reply_is_delivered():
    server = FakeServer()
    async with running(server) as (_, handle):
        reply = await send(handle, JsonRpcRequest(method="fail", id=5, params={}))
        assert isinstance(reply, JsonRpcError)
        assert reply.error.code == METHOD_NOT_FOUND


@pytest.mark.asyncio
async def test_stream_end_fails_pending_request():
    server = FakeServer()
    async with running(server) as (_, handle):
        with pytest.raises(ChannelClosedError):
            await send(handle, JsonRpcRequest(method="hang", id=9, params={}))


@pytest.mark.asyncio
async def test_without_endpoint_sends_are_not_connected():
    server = FakeServer(announce=False)
    async with running(server) as (_, handle):
        with pytest.raises(NotConnectedError):
            await send(handle, JsonRpcRequest(method="ping", id=1, params={}))
        assert server.posts == []


@pytest.mark.asyncio
async def test_send_after_close_fails():
    server = FakeServer()
    async with running(server) as (transport, handle):
        await transport.close()
        with pytest.raises(ChannelClosedError):
            await send(handle, JsonRpcRequest(method="ping", id=1, params={}))