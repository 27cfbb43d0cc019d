import asyncio

import pytest

from modelctx.client.transport import (
    ChannelClosedError,
    HttpError,
    NotConnectedError,
    PendingRequests,
    SseConnectionError,
    StdioProcessError,
    Transport,
    TransportError,
    TransportHandle,
    TransportIoError,
    TransportSerializationError,
    UnsupportedMessageError,
    send_message,
)
from modelctx.protocol import (
    JsonRpcNil,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
)


async def _answer_with(queue, pending, reply):
    item = await queue.get()
    pending.insert(item.message.id, item.response)
    pending.respond(item.message.id, reply)
    return item


@pytest.mark.asyncio
async def test_notification_is_queued_without_response():
    queue = asyncio.Queue()
    note = JsonRpcNotification(method="notify", params={"key": "value"})
    result = await send_message(queue, note)
    assert result == JsonRpcNil()
    item = queue.get_nowait()
    assert item.message == note
    assert item.response is None


@pytest.mark.asyncio
async def test_request_receives_reply():
    queue = asyncio.Queue()
    pending = PendingRequests()
    request = JsonRpcRequest(method="tools/list", id=3, params={})
    reply = JsonRpcResponse(id=3, result={"tools": []})
    consumer = asyncio.create_task(_answer_with(queue, pending, reply))
    result = await send_message(queue, request)
    item = await consumer
    assert result == reply
    assert item.message == request
    assert len(pending) == 0


@pytest.mark.asyncio
async def test_request_failure_is_raised():
    queue = asyncio.Queue()
    pending = PendingRequests()
    consumer = asyncio.create_task(_answer_with(queue, pending, NotConnectedError()))
    with pytest.raises(NotConnectedError):
        await send_message(queue, JsonRpcRequest(method="x", id=1))
    await consumer


@pytest.mark.asyncio
async def test_clear_closes_waiting_requests():
    queue = asyncio.Queue()
    pending = PendingRequests()

    async def consume():
        item = await queue.get()
        pending.insert(item.message.id, item.response)
        pending.clear()

    consumer = asyncio.create_task(consume())
    with pytest.raises(ChannelClosedError):
        await send_message(queue, JsonRpcRequest(method="x", id=5))
    await consumer
    assert 5 not in pending


@pytest.mark.asyncio
async def test_responses_cannot_be_sent():
    queue = asyncio.Queue()
    with pytest.raises(UnsupportedMessageError):
        await send_message(queue, JsonRpcResponse(id=1, result={}))
    assert queue.empty()


@pytest.mark.asyncio
async def test_pending_keys_are_strings_of_ids():
    pending = PendingRequests()
    future = asyncio.get_running_loop().create_future()
    pending.insert(7, future)
    assert "7" in pending
    reply = JsonRpcResponse(id=7, result={"ok": True})
    pending.respond("7", reply)
    assert future.result() == reply
    assert len(pending) == 0


@pytest.mark.asyncio
async def test_respond_to_unknown_id_leaves_others():
    pending = PendingRequests()
    future = asyncio.get_running_loop().create_future()
    pending.insert(1, future)
    pending.respond(2, JsonRpcResponse(id=2, result={}))
    assert len(pending) == 1
    assert not future.done()


@pytest.mark.parametrize(
    "error, text",
    [
        (NotConnectedError(), "Transport was not connected or is already closed"),
        (ChannelClosedError(), "Channel closed"),
        (
            UnsupportedMessageError(),
            "Unsupported message type. JsonRpcMessage can only be Request or Notification.",
        ),
        (StdioProcessError("boom"), "Stdio process error: boom"),
        (SseConnectionError("No endpoint discovered"), "SSE connection error: No endpoint discovered"),
        (TransportIoError("broken pipe"), "I/O error: broken pipe"),
        (TransportSerializationError("bad"), "Serialization error: bad"),
        (HttpError(500, "Internal Server Error"), "HTTP error: 500 - Internal Server Error"),
    ],
)
def test_error_messages(error, text):
    assert str(error) == text
    assert isinstance(error, TransportError)


def test_http_error_keeps_status():
    error = HttpError(404, "Not Found")
    assert (error.status, error.message) == (404, "Not Found")


def test_abstract_interfaces_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Transport()
    with pytest.raises(TypeError):
        TransportHandle()