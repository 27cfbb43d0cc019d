import asyncio
import json

import pytest

from modelctx.protocol import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    JsonRpcError,
    JsonRpcNil,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
)
from modelctx.server.errors import (
    InvalidMessageError,
    ServerError,
    TransportIoError,
    TransportJsonError,
    TransportProtocolError,
    TransportUtf8Error,
)
from modelctx.server.server import Server
from modelctx.server.transport import StdioTransport, Transport


class _EchoService:
    async def call(self, request):
        return JsonRpcResponse(id=request.id, result={"echo": request.method})


class _FailingService:
    async def call(self, request):
        raise RuntimeError("boom")


class _ScriptedTransport(Transport):
    def __init__(self, items):
        self._items = list(items)
        self.written = []

    async def __anext__(self):
        if not self._items:
            raise StopAsyncIteration
        item = self._items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def write_message(self, message):
        self.written.append(message)


class _UnwritableTransport(_ScriptedTransport):
    async def write_message(self, message):
        raise TransportIoError("closed")


class _Sink:
    def __init__(self):
        self.chunks = []

    def write(self, data):
        self.chunks.append(data)


@pytest.mark.asyncio
async def test_request_gets_service_response():
    transport = _ScriptedTransport([JsonRpcRequest(method="ping", id=5)])
    await Server(_EchoService()).run(transport)
    assert transport.written == [JsonRpcResponse(id=5, result={"echo": "ping"})]


@pytest.mark.asyncio
async def test_non_requests_are_ignored():
    transport = _ScriptedTransport(
        [
            JsonRpcNotification(method="notifications/initialized"),
            JsonRpcResponse(id=1, result={}),
            JsonRpcNil(),
        ]
    )
    await Server(_EchoService()).run(transport)
    assert transport.written == []


@pytest.mark.asyncio
async def test_service_failure_becomes_internal_error():
    transport = _ScriptedTransport([JsonRpcRequest(method="ping", id=9)])
    await Server(_FailingService()).run(transport)
    (response,) = transport.written
    assert response.id == 9
    assert response.result is None
    assert response.error.code == INTERNAL_ERROR
    assert response.error.message == "boom"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, code",
    [
        (TransportJsonError("bad json"), PARSE_ERROR),
        (InvalidMessageError("bad shape"), PARSE_ERROR),
        (TransportProtocolError("bad order"), INVALID_REQUEST),
        (TransportIoError("bad pipe"), INTERNAL_ERROR),
        (TransportUtf8Error("bad bytes"), INTERNAL_ERROR),
    ],
)
async def test_transport_errors_are_reported(error, code):
    transport = _ScriptedTransport([error])
    await Server(_EchoService()).run(transport)
    (reply,) = transport.written
    assert isinstance(reply, JsonRpcError)
    assert reply.id is None
    assert reply.error.code == code
    assert reply.error.message == str(error)


@pytest.mark.asyncio
async def test_serving_continues_after_error():
    transport = _ScriptedTransport(
        [TransportJsonError("bad"), JsonRpcRequest(method="after", id=2)]
    )
    await Server(_EchoService()).run(transport)
    assert len(transport.written) == 2
    assert transport.written[1] == JsonRpcResponse(id=2, result={"echo": "after"})


@pytest.mark.asyncio
async def test_write_failure_stops_server():
    transport = _UnwritableTransport([JsonRpcRequest(method="ping", id=1)])
    with pytest.raises(ServerError) as info:
        await Server(_EchoService()).run(transport)
    assert "closed" in str(info.value)


@pytest.mark.asyncio
async def test_over_stdio_lines():
    reader = asyncio.StreamReader()
    reader.feed_data(
        b"not json\n"
        b'{"method":"x"}\n'
        b'{"jsonrpc":"2.0","id":3,"method":"hello"}\n'
    )
    reader.feed_eof()
    sink = _Sink()
    await Server(_EchoService()).run(StdioTransport(reader, sink))
    replies = [json.loads(line) for line in b"".join(sink.chunks).splitlines()]
    assert [reply.get("id") for reply in replies] == [None, None, 3]
    assert replies[0]["error"]["code"] == PARSE_ERROR
    assert replies[1]["error"]["code"] == PARSE_ERROR
    assert replies[2]["result"] == {"echo": "hello"}