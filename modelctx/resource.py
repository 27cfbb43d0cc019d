"""Resources that servers provide to clients."""

import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from .annotations import Annotations

EPSILON = 1e-6
DEFAULT_MIME_TYPE = "text"
_MIME_TYPES = frozenset({"text", "blob"})

_SCHEME = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):(.*)$", re.DOTALL)


class InvalidURIError(ValueError):
    """Raised when a string is not an absolute URI."""


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{kind} is missing field {key!r}") from None


def _split_uri(uri: str) -> tuple[str, str]:
    match = _SCHEME.match(uri)
    if match is None:
        raise InvalidURIError(f"Invalid URI: {uri!r} has no scheme")
    return match.group(1).lower(), match.group(2)


def _last_path_segment(rest: str) -> str | None:
    """The final path segment, or None when the URI has no hierarchical path."""
    if not rest.startswith("/"):
        return None
    if rest.startswith("//"):
        after = rest[2:]
        cut = min((after.find(c) for c in "/?#" if c in after), default=len(after))
        rest = after[cut:]
    for marker in "?#":
        rest = rest.split(marker, 1)[0]
    if not rest.startswith("/"):
        return None
    return rest[1:].split("/")[-1]


def _normalize_mime_type(mime_type: str | None) -> str:
    return mime_type if mime_type in _MIME_TYPES else DEFAULT_MIME_TYPE


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TextResourceContents:
    uri: str
    text: str
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"uri": self.uri}
        if self.mime_type is not None:
            out["mimeType"] = self.mime_type
        out["text"] = self.text
        return out


@dataclass(frozen=True)
class BlobResourceContents:
    uri: str
    blob: str
    mime_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"uri": self.uri}
        if self.mime_type is not None:
            out["mimeType"] = self.mime_type
        out["blob"] = self.blob
        return out


ResourceContents = TextResourceContents | BlobResourceContents


def resource_contents_from_dict(data: dict[str, Any]) -> ResourceContents:
    """Decode resource contents, text taking precedence over blob."""
    if not isinstance(data, dict):
        raise ValueError("Resource contents must be a JSON object")
    uri = _require(data, "uri", "resource contents")
    mime_type = data.get("mimeType")
    if "text" in data:
        return TextResourceContents(uri=uri, text=data["text"], mime_type=mime_type)
    if "blob" in data:
        return BlobResourceContents(uri=uri, blob=data["blob"], mime_type=mime_type)
    raise ValueError("Resource contents need either 'text' or 'blob'")


@dataclass
class Resource:
    """A resource with its metadata."""

    uri: str
    name: str
    description: str | None = None
    mime_type: str = DEFAULT_MIME_TYPE
    annotations: Annotations | None = None

    @classmethod
    def create(
        cls, uri: str, mime_type: str | None = None, name: str | None = None
    ) -> "Resource":
        """Build a resource from a URI, naming it after the last path segment."""
        _, rest = _split_uri(uri)
        if name is None:
            segment = _last_path_segment(rest)
            name = "unnamed" if segment is None else segment
        return cls(
            uri=uri,
            name=name,
            mime_type=_normalize_mime_type(mime_type),
            annotations=Annotations.for_resource(0.0, _now()),
        )

    @classmethod
    def with_uri(
        cls, uri: str, name: str, priority: float, mime_type: str | None = None
    ) -> "Resource":
        """Build a resource with an explicit name and priority."""
        _split_uri(uri)
        return cls(
            uri=uri,
            name=name,
            mime_type=_normalize_mime_type(mime_type),
            annotations=Annotations.for_resource(priority, _now()),
        )

    def _current_annotations(self) -> Annotations:
        return self.annotations if self.annotations is not None else Annotations()

    def update_timestamp(self) -> None:
        """Set the timestamp to the current time."""
        self.annotations = replace(self._current_annotations(), timestamp=_now())

    def with_priority(self, priority: float) -> "Resource":
        return replace(
            self, annotations=replace(self._current_annotations(), priority=priority)
        )

    def mark_active(self) -> "Resource":
        """A copy with priority 1.0."""
        return self.with_priority(1.0)

    def is_active(self) -> bool:
        priority = self.priority()
        return priority is not None and abs(priority - 1.0) < EPSILON

    def priority(self) -> float | None:
        return None if self.annotations is None else self.annotations.priority

    def timestamp(self) -> datetime | None:
        return None if self.annotations is None else self.annotations.timestamp

    def scheme(self) -> str:
        scheme, _ = _split_uri(self.uri)
        return scheme

    def with_description(self, description: str) -> "Resource":
        return replace(self, description=description)

    def with_mime_type(self, mime_type: str) -> "Resource":
        """A copy with the given MIME type; anything but text or blob becomes text."""
        return replace(self, mime_type=_normalize_mime_type(mime_type))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"uri": self.uri, "name": self.name}
        if self.description is not None:
            out["description"] = self.description
        out["mimeType"] = self.mime_type
        if self.annotations is not None:
            out["annotations"] = self.annotations.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Resource":
        if not isinstance(data, dict):
            raise ValueError("Resource must be a JSON object")
        annotations = data.get("annotations")
        return cls(
            uri=_require(data, "uri", "resource"),
            name=_require(data, "name", "resource"),
            description=data.get("description"),
            mime_type=data.get("mimeType", DEFAULT_MIME_TYPE),
            annotations=None if annotations is None else Annotations.from_dict(annotations),
        )