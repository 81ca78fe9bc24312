"""Records kept in the user table, and identifier generation."""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, TypeVar

_KSUID_EPOCH = 1_400_000_000
_KSUID_LENGTH = 27
_BASE62 = string.digits + string.ascii_uppercase + string.ascii_lowercase

_E = TypeVar("_E", bound="BaseEntity")


class Status(str, Enum):
    """State of a user's progress through an entity."""

    STARTED = "STARTED"
    COMPLETED = "COMPLETED"

    def __str__(self) -> str:
        return self.value


def generate_id() -> str:
    """Return a new K-sortable unique identifier of 27 base62 characters."""
    timestamp = int(time.time()) - _KSUID_EPOCH
    number = int.from_bytes(
        timestamp.to_bytes(4, "big") + secrets.token_bytes(16), "big"
    )
    chars = []
    while number:
        number, digit = divmod(number, 62)
        chars.append(_BASE62[digit])
    return "".join(reversed(chars)).rjust(_KSUID_LENGTH, "0")


def _attr(name: str, *, omitempty: bool = False) -> Any:
    return field(default="", metadata={"attr": name, "omitempty": omitempty})


def _time_attr(name: str, *, omitempty: bool = False) -> Any:
    return field(
        default=None, metadata={"attr": name, "omitempty": omitempty, "time": True}
    )


def _parse_time(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        return datetime.fromisoformat(text)
    raise ValueError(f"cannot read {value!r} as a time")


@dataclass
class BaseEntity:
    """Key attributes shared by every record in the table."""

    pk: str = _attr("PK")
    sk: str = _attr("SK")

    def to_item(self) -> dict[str, Any]:
        """Return the record as a mapping of stored attribute names to values."""
        item: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.metadata.get("omitempty") and (value is None or value == ""):
                continue
            if isinstance(value, Enum):
                value = value.value
            item[f.metadata["attr"]] = value
        return item

    @classmethod
    def from_item(cls: type[_E], item: Mapping[str, Any]) -> _E:
        """Build a record from stored attributes; unknown attributes are ignored."""
        values: dict[str, Any] = {}
        for f in fields(cls):
            key = f.metadata["attr"]
            if key not in item:
                continue
            value = item[key]
            if f.metadata.get("time"):
                value = _parse_time(value)
            values[f.name] = value
        return cls(**values)


@dataclass
class CourseProgress(BaseEntity):
    course_id: str = _attr("courseID", omitempty=True)
    user_id: str = _attr("userID", omitempty=True)
    state: str = _attr("progressState", omitempty=True)
    date_started: datetime | None = _time_attr("dateStarted", omitempty=True)


@dataclass
class Note(BaseEntity):
    id: str = _attr("id")
    entity_id: str = _attr("entityID")
    user_id: str = _attr("userID")
    value: str = _attr("value")
    date_created: datetime | None = _time_attr("dateCreated")
    date_updated: datetime | None = _time_attr("dateUpdated")


@dataclass
class Progress(BaseEntity):
    id: str = _attr("id", omitempty=True)
    entity_id: str = _attr("entityID", omitempty=True)
    user_id: str = _attr("userID", omitempty=True)
    state: str = _attr("state", omitempty=True)
    date_started: datetime | None = _time_attr("dateStarted", omitempty=True)
    date_completed: datetime | None = _time_attr("dateCompleted", omitempty=True)


@dataclass
class StepNote(BaseEntity):
    id: str = _attr("id")
    step_id: str = _attr("stepID")
    user_id: str = _attr("userID")
    value: str = _attr("value")


@dataclass
class Timemap(BaseEntity):
    id: str = _attr("id")
    user_id: str = _attr("userID")
    map: str = _attr("map")
    date_created: datetime | None = _time_attr("dateCreated")
    date_updated: datetime | None = _time_attr("dateUpdated")