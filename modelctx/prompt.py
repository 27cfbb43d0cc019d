"""Prompts, their arguments and the messages they produce."""

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .annotations import Annotations
from .content import EmbeddedResource, ImageContent
from .handler import PromptInvalidParameters
from .resource import TextResourceContents


def _require(data: dict[str, Any], key: str, kind: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"{kind} must be a JSON object")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{kind} is missing field {key!r}") from None


@dataclass(frozen=True)
class PromptArgument:
    """An argument that customises a prompt."""

    name: str
    description: str | None = None
    required: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            out["description"] = self.description
        if self.required is not None:
            out["required"] = self.required
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PromptArgument":
        return cls(
            name=_require(data, "name", "prompt argument"),
            description=data.get("description"),
            required=data.get("required"),
        )


@dataclass(frozen=True)
class Prompt:
    """A prompt that can be used to generate text from a model."""

    name: str
    description: str | None = None
    arguments: list[PromptArgument] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            out["description"] = self.description
        if self.arguments is not None:
            out["arguments"] = [argument.to_dict() for argument in self.arguments]
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Prompt":
        arguments = data.get("arguments") if isinstance(data, dict) else None
        return cls(
            name=_require(data, "name", "prompt"),
            description=data.get("description"),
            arguments=None
            if arguments is None
            else [PromptArgument.from_dict(item) for item in arguments],
        )


class PromptMessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class PromptTextContent:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class PromptImageContent:
    image: ImageContent

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image", "image": self.image.to_dict()}


@dataclass(frozen=True)
class PromptResourceContent:
    resource: EmbeddedResource

    def to_dict(self) -> dict[str, Any]:
        return {"type": "resource", "resource": self.resource.to_dict()}


PromptMessageContent = PromptTextContent | PromptImageContent | PromptResourceContent


def _content_from_dict(data: dict[str, Any]) -> PromptMessageContent:
    tag = _require(data, "type", "prompt message content")
    if tag == "text":
        return PromptTextContent(text=_require(data, "text", "text content"))
    if tag == "image":
        return PromptImageContent(image=ImageContent.from_dict(_require(data, "image", "image")))
    if tag == "resource":
        return PromptResourceContent(
            resource=EmbeddedResource.from_dict(_require(data, "resource", "resource"))
        )
    raise ValueError(f"Unknown prompt message content type: {tag!r}")


@dataclass(frozen=True)
class PromptMessage:
    """One message in a prompt conversation."""

    role: PromptMessageRole
    content: PromptMessageContent

    @classmethod
    def new_text(cls, role: PromptMessageRole, text: str) -> "PromptMessage":
        return cls(role=role, content=PromptTextContent(text=text))

    @classmethod
    def new_image(
        cls,
        role: PromptMessageRole,
        data: str,
        mime_type: str,
        annotations: Annotations | None = None,
    ) -> "PromptMessage":
        """An image message; data must be base64 and the MIME type an image type."""
        try:
            base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raise PromptInvalidParameters("Image data must be valid base64") from None
        if not mime_type.startswith("image/"):
            raise PromptInvalidParameters(
                "MIME type must be a valid image type (e.g. image/jpeg)"
            )
        image = ImageContent(data=data, mime_type=mime_type, annotations=annotations)
        return cls(role=role, content=PromptImageContent(image=image))

    @classmethod
    def new_resource(
        cls,
        role: PromptMessageRole,
        uri: str,
        mime_type: str,
        text: str | None = None,
        annotations: Annotations | None = None,
    ) -> "PromptMessage":
        contents = TextResourceContents(uri=uri, text=text or "", mime_type=mime_type)
        resource = EmbeddedResource(resource=contents, annotations=annotations)
        return cls(role=role, content=PromptResourceContent(resource=resource))

    def to_dict(self) -> dict[str, Any]:
        return {"role": PromptMessageRole(self.role).value, "content": self.content.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PromptMessage":
        return cls(
            role=PromptMessageRole(_require(data, "role", "prompt message")),
            content=_content_from_dict(_require(data, "content", "prompt message")),
        )


@dataclass
class PromptArgumentTemplate:
    """A template for a prompt argument."""

    name: str
    description: str | None = None
    required: bool | None = None


@dataclass
class PromptTemplate:
    """A stored template from which a prompt is built."""

    id: str
    template: str
    arguments: list[PromptArgumentTemplate] = field(default_factory=list)