"""Content exchanged between agents, extensions and models."""

from dataclasses import dataclass, replace
from typing import Any

from .annotations import Annotations, Role
from .resource import (
    ResourceContents,
    TextResourceContents,
    resource_contents_from_dict,
)


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{kind} is missing field {key!r}") from None


def _annotations_from(data: dict[str, Any]) -> Annotations | None:
    raw = data.get("annotations")
    return None if raw is None else Annotations.from_dict(raw)


def _with_annotations(out: dict[str, Any], annotations: Annotations | None) -> dict[str, Any]:
    if annotations is not None:
        out["annotations"] = annotations.to_dict()
    return out


@dataclass(frozen=True)
class TextContent:
    text: str
    annotations: Annotations | None = None

    def to_dict(self) -> dict[str, Any]:
        return _with_annotations({"text": self.text}, self.annotations)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TextContent":
        return cls(text=_require(data, "text", "text content"), annotations=_annotations_from(data))


@dataclass(frozen=True)
class ImageContent:
    data: str
    mime_type: str
    annotations: Annotations | None = None

    def to_dict(self) -> dict[str, Any]:
        out = {"data": self.data, "mimeType": self.mime_type}
        return _with_annotations(out, self.annotations)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageContent":
        return cls(
            data=_require(data, "data", "image content"),
            mime_type=_require(data, "mimeType", "image content"),
            annotations=_annotations_from(data),
        )


@dataclass(frozen=True)
class EmbeddedResource:
    resource: ResourceContents
    annotations: Annotations | None = None

    def get_text(self) -> str:
        """The text of the resource, or an empty string for binary contents."""
        if isinstance(self.resource, TextResourceContents):
            return self.resource.text
        return ""

    def to_dict(self) -> dict[str, Any]:
        return _with_annotations({"resource": self.resource.to_dict()}, self.annotations)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmbeddedResource":
        return cls(
            resource=resource_contents_from_dict(_require(data, "resource", "embedded resource")),
            annotations=_annotations_from(data),
        )


_TYPE_TAGS: dict[type, str] = {
    TextContent: "text",
    ImageContent: "image",
    EmbeddedResource: "resource",
}
_TYPES_BY_TAG = {tag: kind for kind, tag in _TYPE_TAGS.items()}


@dataclass(frozen=True)
class Content:
    """One piece of text, image or embedded resource content."""

    body: TextContent | ImageContent | EmbeddedResource

    @classmethod
    def text(cls, text: str) -> "Content":
        return cls(TextContent(text=text))

    @classmethod
    def image(cls, data: str, mime_type: str) -> "Content":
        return cls(ImageContent(data=data, mime_type=mime_type))

    @classmethod
    def resource(cls, resource: ResourceContents) -> "Content":
        return cls(EmbeddedResource(resource=resource))

    @classmethod
    def embedded_text(cls, uri: str, content: str) -> "Content":
        return cls.resource(TextResourceContents(uri=uri, text=content, mime_type="text"))

    def as_text(self) -> str | None:
        return self.body.text if isinstance(self.body, TextContent) else None

    def as_image(self) -> tuple[str, str] | None:
        if isinstance(self.body, ImageContent):
            return self.body.data, self.body.mime_type
        return None

    def _annotate(self, **changes: Any) -> "Content":
        current = self.body.annotations if self.body.annotations is not None else Annotations()
        return Content(replace(self.body, annotations=replace(current, **changes)))

    def with_audience(self, audience: list[Role]) -> "Content":
        return self._annotate(audience=list(audience))

    def with_priority(self, priority: float) -> "Content":
        """A copy with the given priority, which must lie in [0.0, 1.0]."""
        if not 0.0 <= priority <= 1.0:
            raise ValueError("Priority must be between 0.0 and 1.0")
        return self._annotate(priority=priority)

    def audience(self) -> list[Role] | None:
        annotations = self.body.annotations
        return None if annotations is None else annotations.audience

    def priority(self) -> float | None:
        annotations = self.body.annotations
        return None if annotations is None else annotations.priority

    def unannotated(self) -> "Content":
        return Content(replace(self.body, annotations=None))

    def to_dict(self) -> dict[str, Any]:
        return {"type": _TYPE_TAGS[type(self.body)], **self.body.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Content":
        if not isinstance(data, dict):
            raise ValueError("Content must be a JSON object")
        tag = _require(data, "type", "content")
        kind = _TYPES_BY_TAG.get(tag)
        if kind is None:
            raise ValueError(f"Unknown content type: {tag!r}")
        return cls(kind.from_dict(data))