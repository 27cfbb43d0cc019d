"""A service that sends messages through a transport handle, optionally with a time limit."""

import asyncio
from datetime import timedelta

from ..protocol import JsonRpcMessage
from .transport import TransportHandle


def _seconds(timeout: float | timedelta | None) -> float | None:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return None if timeout is None else float(timeout)


class McpService:
    """Passes messages to a transport handle; replies slower than the timeout raise TimeoutError."""

    def __init__(
        self, transport: TransportHandle, timeout: float | timedelta | None = None
    ) -> None:
        self.transport = transport
        self.timeout = _seconds(timeout)

    @classmethod
    def with_timeout(
        cls, transport: TransportHandle, timeout: float | timedelta
    ) -> "McpService":
        """A service whose calls fail with TimeoutError after the given time."""
        return cls(transport, timeout)

    async def ready(self) -> None:
        """Wait until the service can take a call; transports are always ready."""
        return None

    async def call(self, message: JsonRpcMessage) -> JsonRpcMessage:
        if self.timeout is None:
            return await self.transport.send(message)
        try:
            return await asyncio.wait_for(self.transport.send(message), self.timeout)
        except asyncio.TimeoutError:
            raise TimeoutError("Request timed out") from None