"""A client transport that talks to a child process over its standard streams."""

import asyncio
import contextlib
import json
import logging
import os
import subprocess
import sys
from collections.abc import Mapping, Sequence

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
    PendingRequests,
    StdioProcessError,
    Transport,
    TransportError,
    TransportHandle,
    TransportMessage,
    TransportSerializationError,
    send_message,
)

log = logging.getLogger(__name__)

_QUEUE_SIZE = 32
_LINE_LIMIT = 16 * 1024 * 1024
_CREATE_NO_WINDOW = 0x08000000


def _decode(line: bytes) -> JsonRpcMessage | None:
    try:
        value = json.loads(line)
        if not isinstance(value, dict):
            return None
        return parse_message(value)
    except (ValueError, TypeError, KeyError, InvalidMessageFormat):
        return None


def _fail(item: TransportMessage, error: BaseException) -> None:
    if item.response is not None and not item.response.done():
        item.response.set_exception(error)


def _register(pending: PendingRequests, item: TransportMessage) -> None:
    if item.response is None:
        return
    message = item.message
    if isinstance(message, JsonRpcRequest) and message.id is not None:
        pending.insert(message.id, item.response)
    else:
        _fail(item, ChannelClosedError())


class StdioActor:
    """Moves messages between the send queue and a child process until it goes away."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        receiver: "asyncio.Queue[TransportMessage]",
        pending_requests: PendingRequests,
        error_queue: "asyncio.Queue[TransportError]",
        closed: asyncio.Event,
    ) -> None:
        self.process = process
        self.receiver = receiver
        self.pending_requests = pending_requests
        self.error_queue = error_queue
        self.closed = closed

    async def run(self) -> None:
        """Serve until stdout ends, a write fails or the process exits; then report stderr."""
        try:
            await self._serve()
            message = await self._stderr_message()
            if message is not None:
                log.info("Process stderr: %s", message)
                with contextlib.suppress(asyncio.QueueFull):
                    self.error_queue.put_nowait(StdioProcessError(message))
        finally:
            self.closed.set()
            self._fail_queued()
            self.pending_requests.clear()

    async def _serve(self) -> None:
        tasks = {
            asyncio.ensure_future(self._handle_incoming()): "incoming",
            asyncio.ensure_future(self._handle_outgoing()): "outgoing",
            asyncio.ensure_future(self.process.wait()): "process",
        }
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                log.debug("%s handler completed", tasks[task])
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _handle_incoming(self) -> None:
        stdout = self.process.stdout
        assert stdout is not None
        while True:
            try:
                line = await stdout.readline()
            except (OSError, ValueError) as exc:
                log.error("Error reading line: %s", exc)
                return
            if not line:
                log.error("Child process ended (EOF on stdout)")
                return
            message = _decode(line)
            if message is None:
                continue
            log.debug("Received incoming message: %r", message)
            if isinstance(message, (JsonRpcResponse, JsonRpcError)) and message.id is not None:
                self.pending_requests.respond(message.id, message)

    async def _handle_outgoing(self) -> None:
        stdin = self.process.stdin
        assert stdin is not None
        while True:
            item = await self.receiver.get()
            try:
                text = encode_message(item.message)
            except (TypeError, ValueError) as exc:
                _fail(item, TransportSerializationError(str(exc)))
                continue
            log.debug("Sending outgoing message: %r", item.message)
            _register(self.pending_requests, item)
            try:
                stdin.write((text + "\n").encode("utf-8"))
                await stdin.drain()
            except (OSError, RuntimeError) as exc:
                log.error("Error writing message to child process: %s", exc)
                self.pending_requests.clear()
                return

    async def _stderr_message(self) -> str | None:
        stderr = self.process.stderr
        if stderr is None:
            return None
        try:
            data = await stderr.read()
        except (OSError, ValueError):
            return None
        if data:
            return data.decode("utf-8", "replace")
        return "Process ended unexpectedly"

    def _fail_queued(self) -> None:
        while True:
            try:
                item = self.receiver.get_nowait()
            except asyncio.QueueEmpty:
                return
            _fail(item, ChannelClosedError())


class StdioTransportHandle(TransportHandle):
    """Sends messages to the child process and surfaces its failures."""

    def __init__(
        self,
        sender: "asyncio.Queue[TransportMessage]",
        error_receiver: "asyncio.Queue[TransportError]",
        closed: asyncio.Event,
    ) -> None:
        self._sender = sender
        self._errors = error_receiver
        self._closed = closed

    async def send(self, message: JsonRpcMessage) -> JsonRpcMessage:
        """Send a message; a pending process error takes precedence over the result."""
        try:
            if self._closed.is_set():
                raise ChannelClosedError()
            reply = await send_message(self._sender, message)
        except TransportError as exc:
            await self._raise_pending_error(exc)
            raise
        await self.check_for_errors()
        return reply

    async def _raise_pending_error(self, cause: BaseException) -> None:
        try:
            await self.check_for_errors()
        except TransportError as error:
            raise error from cause

    async def check_for_errors(self) -> None:
        """Raise the process error waiting to be reported, if any."""
        try:
            error = self._errors.get_nowait()
        except asyncio.QueueEmpty:
            return None
        log.debug("Found error: %r", error)
        raise error


class StdioTransport(Transport):
    """Starts a command and exchanges newline-delimited JSON-RPC over its stdin and stdout."""

    def __init__(
        self,
        command: str,
        args: Sequence[str] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.command = command
        self.args = list(args or [])
        self.env = dict(env or {})
        self._process: asyncio.subprocess.Process | None = None
        self._task: asyncio.Task[None] | None = None

    async def _spawn(self) -> asyncio.subprocess.Process:
        options: dict[str, object] = {}
        if sys.platform == "win32":
            options["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", _CREATE_NO_WINDOW)
        else:
            options["start_new_session"] = True
        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self.env},
                limit=_LINE_LIMIT,
                **options,
            )
        except (OSError, ValueError) as exc:
            raise StdioProcessError(str(exc)) from exc
        for stream, name in (
            (process.stdin, "stdin"),
            (process.stdout, "stdout"),
            (process.stderr, "stderr"),
        ):
            if stream is None:
                raise StdioProcessError(f"Failed to get {name}")
        return process

    async def start(self) -> StdioTransportHandle:
        """Start the process and return a handle for talking to it."""
        process = await self._spawn()
        messages: asyncio.Queue[TransportMessage] = asyncio.Queue(maxsize=_QUEUE_SIZE)
        errors: asyncio.Queue[TransportError] = asyncio.Queue(maxsize=1)
        closed = asyncio.Event()
        actor = StdioActor(process, messages, PendingRequests(), errors, closed)
        self._process = process
        self._task = asyncio.create_task(actor.run())
        return StdioTransportHandle(messages, errors, closed)

    async def close(self) -> None:
        """Stop the process and the task serving it."""
        process, task = self._process, self._task
        self._process = self._task = None
        if process is not None and process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if process is not None:
            await process.wait()