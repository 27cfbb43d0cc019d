"""Errors raised by the server, its transports and its router."""

from ..handler import ResourceError, ResourceNotFound
from ..protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    ErrorData,
)


class _LabelledError(Exception):
    """An error carrying a message, shown after a fixed label."""

    label = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.message == other.message  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.message))


class TransportError(_LabelledError):
    """Base class for failures while reading or writing messages."""

    label = "Transport error"


class TransportIoError(TransportError):
    label = "IO error"


class TransportJsonError(TransportError):
    label = "JSON serialization error"


class TransportUtf8Error(TransportError):
    label = "Invalid UTF-8 sequence"


class TransportProtocolError(TransportError):
    label = "Protocol error"


class InvalidMessageError(TransportError):
    label = "Invalid message format"


class ServerError(Exception):
    """Raised when the server cannot keep running; the message says why."""


class RouterError(_LabelledError):
    """Base class for errors a router reports back as JSON-RPC errors."""

    label = "Router error"
    code = INTERNAL_ERROR

    def to_error_data(self) -> ErrorData:
        """The JSON-RPC error payload for this error."""
        return ErrorData(code=self.code, message=self.message)


class RouterMethodNotFound(RouterError):
    label = "Method not found"
    code = METHOD_NOT_FOUND


class RouterInvalidParams(RouterError):
    label = "Invalid parameters"
    code = INVALID_PARAMS


class RouterInternal(RouterError):
    label = "Internal error"
    code = INTERNAL_ERROR


class RouterToolNotFound(RouterError):
    label = "Tool not found"
    code = INVALID_REQUEST


class RouterResourceNotFound(RouterError):
    label = "Resource not found"
    code = INVALID_REQUEST


class RouterPromptNotFound(RouterError):
    label = "Not found"
    code = INVALID_REQUEST


def router_error_from_resource_error(err: ResourceError) -> RouterError:
    """Map a resource failure to the router error reported to the client."""
    if isinstance(err, ResourceNotFound):
        return RouterResourceNotFound(err.message)
    return RouterInternal("Unknown resource error")