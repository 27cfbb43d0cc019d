"""Roles and the annotations that can be attached to content and resources."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Who a piece of content is meant for or came from."""

    USER = "user"
    ASSISTANT = "assistant"


_TIMESTAMP = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>[Zz]|[+-]\d{2}:?\d{2})?$"
)


def _format_timestamp(moment: datetime) -> str:
    text = moment.astimezone(timezone.utc).isoformat()
    return text.replace("+00:00", "Z")


def _parse_timestamp(text: str) -> datetime:
    match = _TIMESTAMP.match(text.strip())
    if match is None:
        raise ValueError(f"Invalid timestamp: {text!r}")
    base = match.group("base").replace("t", "T").replace(" ", "T")
    frac = match.group("frac")
    if frac:
        base += "." + frac[:6].ljust(6, "0")
    zone = match.group("tz")
    if zone is None or zone in ("Z", "z"):
        zone = "+00:00"
    elif ":" not in zone:
        zone = f"{zone[:3]}:{zone[3:]}"
    return datetime.fromisoformat(base + zone).astimezone(timezone.utc)


@dataclass(frozen=True)
class Annotations:
    """Optional hints on audience, priority and freshness."""

    audience: list[Role] | None = None
    priority: float | None = None
    timestamp: datetime | None = None

    @classmethod
    def for_resource(cls, priority: float, timestamp: datetime) -> "Annotations":
        """Annotations for a resource; priority must lie in [0.0, 1.0]."""
        if not 0.0 <= priority <= 1.0:
            raise ValueError(f"Priority {priority} must be between 0.0 and 1.0")
        return cls(audience=None, priority=priority, timestamp=timestamp)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.audience is not None:
            out["audience"] = [Role(role).value for role in self.audience]
        if self.priority is not None:
            out["priority"] = self.priority
        if self.timestamp is not None:
            out["timestamp"] = _format_timestamp(self.timestamp)
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Annotations":
        if not isinstance(data, dict):
            raise ValueError("Annotations must be a JSON object")
        audience = data.get("audience")
        priority = data.get("priority")
        timestamp = data.get("timestamp")
        return cls(
            audience=None if audience is None else [Role(value) for value in audience],
            priority=None if priority is None else float(priority),
            timestamp=None if timestamp is None else _parse_timestamp(timestamp),
        )