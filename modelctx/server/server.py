"""The server loop that answers requests arriving on a transport."""

import logging
from typing import Protocol

from ..protocol import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    ErrorData,
    JsonRpcError,
    JsonRpcMessage,
    JsonRpcRequest,
    JsonRpcResponse,
    encode_message,
)
from .errors import (
    InvalidMessageError,
    ServerError,
    TransportError,
    TransportJsonError,
    TransportProtocolError,
)
from .transport import Transport

log = logging.getLogger(__name__)


class Service(Protocol):
    async def call(self, request: JsonRpcRequest) -> JsonRpcResponse: ...


def _error_for(err: TransportError) -> ErrorData:
    if isinstance(err, (TransportJsonError, InvalidMessageError)):
        code = PARSE_ERROR
    elif isinstance(err, TransportProtocolError):
        code = INVALID_REQUEST
    else:
        code = INTERNAL_ERROR
    return ErrorData(code=code, message=str(err))


class Server:
    """Reads requests from a transport, passes them to a service and writes the replies."""

    def __init__(self, service: Service) -> None:
        self.service = service

    async def _send(self, transport: Transport, message: JsonRpcMessage) -> None:
        try:
            await transport.write_message(message)
        except TransportError as err:
            raise ServerError(f"Transport error: {err}") from err

    async def _answer(self, request: JsonRpcRequest) -> JsonRpcResponse:
        log.info(
            "Received request id=%r method=%r json=%s",
            request.id,
            request.method,
            encode_message(request),
        )
        try:
            response = await self.service.call(request)
        except Exception as err:  # any failure becomes an error reply
            log.error("Request processing failed: %s", err)
            response = JsonRpcResponse(
                id=request.id, error=ErrorData(code=INTERNAL_ERROR, message=str(err))
            )
        log.info("Sending response id=%r json=%s", response.id, encode_message(response))
        return response

    async def run(self, transport: Transport) -> None:
        """Serve until the transport runs out of input; raise ServerError if a write fails."""
        log.info("Server started")
        while True:
            try:
                message = await anext(transport)
            except StopAsyncIteration:
                break
            except TransportError as err:
                await self._send(transport, JsonRpcError(error=_error_for(err)))
                continue
            if isinstance(message, JsonRpcRequest):
                await self._send(transport, await self._answer(message))