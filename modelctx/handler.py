"""Tool, resource and prompt errors, and the interface tools implement."""

import types
import typing
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any


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


class ToolError(_LabelledError):
    """Base class for errors raised while running a tool."""

    label = "Tool error"


class InvalidParameters(ToolError):
    label = "Invalid parameters"


class ExecutionError(ToolError):
    label = "Execution failed"


class SchemaError(ToolError):
    label = "Schema error"


class ToolNotFound(ToolError):
    label = "Tool not found"


class ResourceError(_LabelledError):
    """Base class for errors raised while reading a resource."""

    label = "Resource error"


class ResourceExecutionError(ResourceError):
    label = "Execution failed"


class ResourceNotFound(ResourceError):
    label = "Resource not found"


class PromptError(_LabelledError):
    """Base class for errors raised while producing a prompt."""

    label = "Prompt error"


class PromptInvalidParameters(PromptError):
    label = "Invalid parameters"


class PromptInternalError(PromptError):
    label = "Internal error"


class PromptNotFound(PromptError):
    label = "Prompt not found"


class ToolHandler(ABC):
    """A tool with a name, a description, a parameter schema and a coroutine to run it."""

    name: str = ""
    description: str = ""

    @abstractmethod
    def schema(self) -> dict[str, Any]:
        """JSON Schema describing the tool's parameters."""

    @abstractmethod
    async def call(self, params: Any) -> Any:
        """Run the tool with the given parameters, raising ToolError on failure."""


@dataclass(frozen=True)
class _Field:
    name: str
    annotation: Any
    required: bool
    default: Any


_NONE_TYPE = type(None)

_NAMED_TYPES: dict[str, Any] = {
    "bool": bool,
    "int": int,
    "float": float,
    "str": str,
    "list": list,
    "List": list,
    "tuple": tuple,
    "Tuple": tuple,
    "dict": dict,
    "Dict": dict,
    "None": _NONE_TYPE,
    "NoneType": _NONE_TYPE,
    "Any": Any,
}


def _split_top_level(text: str, separator: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _annotation_from_text(text: str) -> Any:
    """Resolve a string annotation to one of the simple types a schema knows."""
    text = text.strip()
    head, _, rest = text.partition("[")
    head_name = head.strip().rsplit(".", 1)[-1]
    if head_name == "Optional" and rest.endswith("]"):
        return typing.Optional[_annotation_from_text(rest[:-1])]
    if head_name == "Union" and rest.endswith("]"):
        members = tuple(_annotation_from_text(part) for part in _split_top_level(rest[:-1], ","))
        return typing.Union[members]
    parts = _split_top_level(text, "|")
    if len(parts) > 1:
        return typing.Union[tuple(_annotation_from_text(part) for part in parts)]
    return _NAMED_TYPES.get(head_name, Any)


def _resolve(annotation: Any) -> Any:
    if isinstance(annotation, str):
        return _annotation_from_text(annotation)
    if annotation is None:
        return _NONE_TYPE
    return annotation


def _is_optional(annotation: Any) -> bool:
    origin = typing.get_origin(annotation)
    return origin in (typing.Union, types.UnionType) and _NONE_TYPE in typing.get_args(annotation)


def _strip_optional(annotation: Any) -> Any:
    if not _is_optional(annotation):
        return annotation
    rest = [arg for arg in typing.get_args(annotation) if arg is not _NONE_TYPE]
    return rest[0] if len(rest) == 1 else Any


def _base_type(annotation: Any) -> Any:
    inner = _strip_optional(annotation)
    origin = typing.get_origin(inner)
    return origin if origin is not None else inner


_JSON_TYPES: dict[Any, str] = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    tuple: "array",
    dict: "object",
}


def _fields_of(func: Callable[..., Any]) -> list[_Field]:
    code = getattr(func, "__code__", None)
    if code is None:
        raise SchemaError(f"cannot read the parameters of {func!r}")
    positional = list(code.co_varnames[: code.co_argcount])
    keyword_only = list(
        code.co_varnames[code.co_argcount : code.co_argcount + code.co_kwonlyargcount]
    )
    defaults = getattr(func, "__defaults__", None) or ()
    kwdefaults = getattr(func, "__kwdefaults__", None) or {}
    annotations = getattr(func, "__annotations__", None) or {}

    default_of: dict[str, Any] = dict(zip(positional[len(positional) - len(defaults) :], defaults))
    default_of.update(kwdefaults)

    if getattr(func, "__self__", None) is not None and hasattr(func, "__func__"):
        positional = positional[1:]

    fields = []
    for name in positional + keyword_only:
        annotation = _resolve(annotations.get(name, Any))
        has_default = name in default_of
        fields.append(
            _Field(
                name=name,
                annotation=annotation,
                required=not has_default and not _is_optional(annotation),
                default=default_of.get(name),
            )
        )
    return fields


def _matches(value: Any, annotation: Any) -> bool:
    if value is None:
        return _is_optional(annotation)
    kind = _base_type(annotation)
    if kind is bool:
        return isinstance(value, bool)
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if kind is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if kind is str:
        return isinstance(value, str)
    if kind in (list, tuple):
        return isinstance(value, list)
    if kind is dict:
        return isinstance(value, dict)
    return True


def _pascal_case(name: str) -> str:
    return "".join(part.capitalize() for part in name.split("_") if part)


def generate_schema(
    func: Callable[..., Any], descriptions: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """JSON Schema for a function's parameters, taken from its annotations."""
    descriptions = descriptions or {}
    fields = _fields_of(func)
    properties: dict[str, Any] = {}
    for field in fields:
        prop: dict[str, Any] = {}
        description = descriptions.get(field.name, "")
        if description:
            prop["description"] = description
        kind = _JSON_TYPES.get(_base_type(field.annotation))
        if kind is not None:
            prop["type"] = [kind, "null"] if _is_optional(field.annotation) else kind
        properties[field.name] = prop
    schema: dict[str, Any] = {
        "title": f"{_pascal_case(func.__name__)}Parameters",
        "type": "object",
    }
    required = [field.name for field in fields if field.required]
    if required:
        schema["required"] = required
    schema["properties"] = properties
    return schema


def _to_json(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    return value


class FunctionTool(ToolHandler):
    """A tool backed by a plain or async function whose parameters come from a JSON object."""

    def __init__(
        self,
        func: Callable[..., Any],
        name: str | None = None,
        description: str = "",
        descriptions: Mapping[str, str] | None = None,
    ) -> None:
        self.func = func
        self.name = name or func.__name__
        self.description = description
        self._descriptions = dict(descriptions or {})
        self._fields = _fields_of(func)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.func(*args, **kwargs)

    def schema(self) -> dict[str, Any]:
        return generate_schema(self.func, self._descriptions)

    def _bind(self, params: Any) -> dict[str, Any]:
        if not isinstance(params, dict):
            raise InvalidParameters("invalid type: expected a JSON object")
        kwargs: dict[str, Any] = {}
        for field in self._fields:
            if field.name not in params:
                if field.required:
                    raise InvalidParameters(f"missing field `{field.name}`")
                kwargs[field.name] = field.default
                continue
            value = params[field.name]
            if not _matches(value, field.annotation):
                raise InvalidParameters(f"invalid type for field `{field.name}`: {value!r}")
            kwargs[field.name] = value
        return kwargs

    async def call(self, params: Any) -> Any:
        kwargs = self._bind(params)
        try:
            result = self.func(**kwargs)
            if isinstance(result, Awaitable):
                result = await result
        except Exception as exc:
            raise ExecutionError(str(exc)) from exc
        return _to_json(result)


def tool(
    name: str | None = None,
    description: str | None = None,
    params: Mapping[str, str] | None = None,
) -> Callable[[Callable[..., Any]], FunctionTool]:
    """Turn a function into a FunctionTool with the given name and descriptions."""

    def decorate(func: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(func, name=name, description=description or "", descriptions=params)

    return decorate