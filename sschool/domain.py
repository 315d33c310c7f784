"""Records stored by the school service and their conversions."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

from .ids import generate_id

_TEXT = "text"
_TIMESTAMP = "timestamp"
_JSON = "json"


def _column(kind: str, *, optional: bool = False, generated: bool = False) -> Any:
    metadata = {"kind": kind, "optional": optional, "generated": generated}
    if optional or generated:
        return field(default=None, metadata=metadata)
    return field(metadata=metadata)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Turn a datetime or ISO 8601 text into a naive UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        raise ValueError(f"not a timestamp: {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _rfc3339(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else value.isoformat() + "Z"


@dataclass(frozen=True)
class PageMeta:
    """Paging information of a listing."""

    limit: int
    offset: int
    total: int

    def to_dict(self) -> dict[str, int]:
        return {"limit": self.limit, "offset": self.offset, "total": self.total}


@dataclass(frozen=True)
class Page:
    """One page of a listing."""

    meta: PageMeta
    content: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "content": [
                item.to_model() if isinstance(item, Entity) else item
                for item in self.content
            ],
        }


@dataclass(kw_only=True)
class Entity:
    """Base of all stored records: timestamps, free-form meta and columns."""

    TABLE: ClassVar[str] = ""
    PRIMARY_KEY: ClassVar[tuple[str, ...]] = ()

    created_at: Optional[datetime] = _column(_TIMESTAMP, generated=True)
    updated_at: Optional[datetime] = _column(_TIMESTAMP, generated=True)
    meta: Any = _column(_JSON, optional=True)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Entity:
        """Build a new record from an API request body.

        Generated columns get fresh values; a missing or mistyped field raises
        ``ValueError``.
        """
        if not isinstance(payload, Mapping):
            raise ValueError("payload must be a JSON object")
        values: dict[str, Any] = {}
        for column in fields(cls):
            info = column.metadata
            if info["generated"]:
                continue
            if column.name not in payload:
                if not info["optional"]:
                    raise ValueError(f"missing field: {column.name}")
                continue
            value = payload[column.name]
            if value is None:
                if not info["optional"] and info["kind"] != _JSON:
                    raise ValueError(f"field {column.name} must not be null")
                values[column.name] = None
                continue
            if info["kind"] == _TEXT:
                if not isinstance(value, str):
                    raise ValueError(f"field {column.name} must be a string")
            elif info["kind"] == _TIMESTAMP:
                value = _parse_timestamp(value)
            values[column.name] = value
        return cls(**values)

    @classmethod
    def from_row(cls, row: Any) -> Entity:
        """Rebuild a record from a database row indexed by column name."""
        values: dict[str, Any] = {}
        for column in fields(cls):
            value = row[column.name]
            kind = column.metadata["kind"]
            if kind == _TIMESTAMP:
                value = _parse_timestamp(value)
            elif kind == _JSON and isinstance(value, (str, bytes)):
                value = json.loads(value)
            values[column.name] = value
        return cls(**values)

    def to_row(self) -> dict[str, Any]:
        """Column values ready for storage: ISO timestamps and JSON text."""
        row: dict[str, Any] = {}
        for column in fields(self):
            value = getattr(self, column.name)
            kind = column.metadata["kind"]
            if value is not None and kind == _TIMESTAMP:
                value = value.isoformat()
            elif value is not None and kind == _JSON:
                value = json.dumps(value)
            row[column.name] = value
        return row

    def to_model(self) -> dict[str, Any]:
        """The record as it is sent to API clients."""
        model: dict[str, Any] = {}
        for column in fields(self):
            value = getattr(self, column.name)
            if column.metadata["kind"] == _TIMESTAMP:
                value = _rfc3339(value)
            model[column.name] = value
        return model


@dataclass(kw_only=True)
class _IdentifiedEntity(Entity):
    ID_PREFIX: ClassVar[str] = ""
    PRIMARY_KEY: ClassVar[tuple[str, ...]] = ("id",)

    id: str = _column(_TEXT, generated=True)

    def __post_init__(self) -> None:
        if not self.id:
            self.id = generate_id(self.ID_PREFIX)


@dataclass(kw_only=True)
class AccountEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "accounts"
    ID_PREFIX: ClassVar[str] = "ct"

    sub: str = _column(_TEXT)
    name: str = _column(_TEXT)


@dataclass(kw_only=True)
class ActivityEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "activities"
    ID_PREFIX: ClassVar[str] = "ac"

    user_id: str = _column(_TEXT)
    entity_id: str = _column(_TEXT)
    entity_type: str = _column(_TEXT)
    content: str = _column(_TEXT)
    action_type: str = _column(_TEXT)


@dataclass(kw_only=True)
class AssignmentEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "assignments"
    ID_PREFIX: ClassVar[str] = "as"

    lesson_id: str = _column(_TEXT)
    title: str = _column(_TEXT)
    description: Optional[str] = _column(_TEXT, optional=True)
    due_date: datetime = _column(_TIMESTAMP)


@dataclass(kw_only=True)
class CommentEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "comments"
    ID_PREFIX: ClassVar[str] = "cm"

    user_id: Optional[str] = _column(_TEXT, optional=True)
    owner_id: Optional[str] = _column(_TEXT, optional=True)
    content: Optional[str] = _column(_TEXT, optional=True)
    type: Optional[str] = _column(_TEXT, optional=True)


@dataclass(kw_only=True)
class CourseEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "courses"
    ID_PREFIX: ClassVar[str] = "co"

    name: str = _column(_TEXT)
    slug: str = _column(_TEXT)
    description: str = _column(_TEXT)


@dataclass(kw_only=True)
class EnrollmentEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "enrollments"
    ID_PREFIX: ClassVar[str] = "er"

    user_id: str = _column(_TEXT)
    course_id: str = _column(_TEXT)
    enrollment_type: str = _column(_TEXT)


@dataclass(kw_only=True)
class LessonEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "lessons"
    ID_PREFIX: ClassVar[str] = "ls"

    module_id: str = _column(_TEXT)
    title: str = _column(_TEXT)
    content: Any = _column(_JSON)
    description: Optional[str] = _column(_TEXT, optional=True)


@dataclass(kw_only=True)
class ModuleEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "modules"
    ID_PREFIX: ClassVar[str] = "mo"

    course_id: str = _column(_TEXT)
    title: str = _column(_TEXT)
    description: str = _column(_TEXT)


@dataclass(kw_only=True)
class SubmissionEntity(_IdentifiedEntity):
    TABLE: ClassVar[str] = "submissions"
    ID_PREFIX: ClassVar[str] = "su"

    assignment_id: str = _column(_TEXT)
    date_submitted: Optional[datetime] = _column(_TIMESTAMP, optional=True)
    status: str = _column(_TEXT)
    content: str = _column(_TEXT)


@dataclass(kw_only=True)
class SubmissionMemberEntity(Entity):
    TABLE: ClassVar[str] = "submission_members"
    PRIMARY_KEY: ClassVar[tuple[str, ...]] = ("assignment_id", "enrollment_id")

    assignment_id: str = _column(_TEXT)
    enrollment_id: str = _column(_TEXT)
    submission_id: str = _column(_TEXT)
    role: str = _column(_TEXT)