"""Storage operations for every kind of record the school service keeps."""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping
from dataclasses import fields
from typing import Any, ClassVar, Optional

from .db import Database
from .domain import (
    ActivityEntity,
    AssignmentEntity,
    CommentEntity,
    CourseEntity,
    EnrollmentEntity,
    Entity,
    LessonEntity,
    ModuleEntity,
    Page,
    PageMeta,
    SubmissionEntity,
    SubmissionMemberEntity,
)
from .errors import AppError, NotFoundError

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0


def _quote(name: str) -> str:
    return f'"{name}"'


def _columns(entity: type[Entity]) -> str:
    return ", ".join(_quote(column.name) for column in fields(entity))


def _where(keys: Mapping[str, Any]) -> str:
    if not keys:
        return ""
    return " WHERE " + " AND ".join(f"{_quote(name)} = ?" for name in keys)


def _paging(limit: Optional[int], offset: Optional[int]) -> tuple[int, int]:
    limit = DEFAULT_LIMIT if limit is None else limit
    offset = DEFAULT_OFFSET if offset is None else offset
    if limit < 0:
        raise ValueError("LIMIT must not be negative")
    if offset < 0:
        raise ValueError("OFFSET must not be negative")
    return limit, offset


def _describe(entity: type[Entity], keys: Mapping[str, Any]) -> str:
    shown = ", ".join(f"{name}={value!r}" for name, value in keys.items())
    return f"{entity.TABLE} with {shown}"


def _fetch_one(
    conn: sqlite3.Connection, entity: type[Entity], keys: Mapping[str, Any]
) -> Optional[Entity]:
    row = conn.execute(
        f"SELECT {_columns(entity)} FROM {entity.TABLE}{_where(keys)} LIMIT 1",
        tuple(keys.values()),
    ).fetchone()
    return None if row is None else entity.from_row(row)


def _find_page(
    db: Database,
    entity: type[Entity],
    limit: Optional[int],
    offset: Optional[int],
    filters: Mapping[str, Any],
) -> Page:
    limit, offset = _paging(limit, offset)
    with db.connection() as conn:
        rows = conn.execute(
            f"SELECT {_columns(entity)} FROM {entity.TABLE}{_where(filters)} "
            "LIMIT ? OFFSET ?",
            (*filters.values(), limit, offset),
        ).fetchall()
        # The total counts the whole table, whatever the filters.
        total = conn.execute(f"SELECT COUNT(*) FROM {entity.TABLE}").fetchone()[0]
    return Page(PageMeta(limit, offset, total), [entity.from_row(row) for row in rows])


def _insert(db: Database, record: Entity) -> Entity:
    entity = type(record)
    row = {name: value for name, value in record.to_row().items() if value is not None}
    keys = {name: row.get(name) for name in entity.PRIMARY_KEY}
    with db.connection() as conn:
        conn.execute(
            f"INSERT INTO {entity.TABLE} ({', '.join(map(_quote, row))}) "
            f"VALUES ({', '.join('?' for _ in row)})",
            tuple(row.values()),
        )
        stored = _fetch_one(conn, entity, keys)
    if stored is None:
        raise AppError(f"inserted {_describe(entity, keys)} could not be read back")
    return stored


def _get(db: Database, entity: type[Entity], keys: Mapping[str, Any]) -> Entity:
    with db.connection() as conn:
        stored = _fetch_one(conn, entity, keys)
    if stored is None:
        raise NotFoundError(_describe(entity, keys))
    return stored


def _update(
    db: Database,
    entity: type[Entity],
    keys: Mapping[str, Any],
    payload: Mapping[str, Any],
) -> Entity:
    record = entity.from_payload(payload)
    changes = {
        name: value
        for name, value in record.to_row().items()
        if value is not None and name != "id"
    }
    if not changes:
        raise AppError("There are no changes to save")
    assignments = ", ".join(f"{_quote(name)} = ?" for name in changes)
    with db.connection() as conn:
        cursor = conn.execute(
            f"UPDATE {entity.TABLE} SET {assignments}{_where(keys)}",
            (*changes.values(), *keys.values()),
        )
        if cursor.rowcount == 0:
            raise NotFoundError(_describe(entity, keys))
        new_keys = {name: changes.get(name, value) for name, value in keys.items()}
        stored = _fetch_one(conn, entity, new_keys)
    if stored is None:
        raise NotFoundError(_describe(entity, new_keys))
    return stored


def _delete(db: Database, entity: type[Entity], keys: Mapping[str, Any]) -> None:
    with db.connection() as conn:
        conn.execute(f"DELETE FROM {entity.TABLE}{_where(keys)}", tuple(keys.values()))


class EntityService:
    """List, create, read, update and delete records of one table keyed by id."""

    entity: ClassVar[type[Entity]]

    def __init__(self, db: Database) -> None:
        if not hasattr(type(self), "entity"):
            raise TypeError(f"{type(self).__name__} does not name an entity")
        self._db = db

    def find_entity(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> Page:
        """Return one page of records; ``q`` is accepted but not applied."""
        return _find_page(self._db, self.entity, limit, offset, {})

    def create_entity(self, payload: Mapping[str, Any]) -> Entity:
        """Store a new record built from ``payload`` and return it."""
        return _insert(self._db, self.entity.from_payload(payload))

    def get_entity(self, entity_id: str) -> Entity:
        """Return the record with ``entity_id``; raise ``NotFoundError`` if absent."""
        return _get(self._db, self.entity, {"id": entity_id})

    def update_entity(self, entity_id: str, payload: Mapping[str, Any]) -> Entity:
        """Overwrite the given fields of a record and return the stored result."""
        return _update(self._db, self.entity, {"id": entity_id}, payload)

    def delete_entity(self, entity_id: str) -> None:
        """Remove the record with ``entity_id``; a missing record is not an error."""
        _delete(self._db, self.entity, {"id": entity_id})


class CourseService(EntityService):
    entity = CourseEntity


class ModuleService(EntityService):
    entity = ModuleEntity


class LessonService(EntityService):
    entity = LessonEntity


class AssignmentService(EntityService):
    entity = AssignmentEntity


class CommentService(EntityService):
    entity = CommentEntity


class EnrollmentService(EntityService):
    entity = EnrollmentEntity


class SubmissionService(EntityService):
    entity = SubmissionEntity


class ActivityService:
    """Read access to the activity log."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find_activities(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> Page:
        """Return one page of activities; ``q`` is accepted but not applied."""
        return _find_page(self._db, ActivityEntity, limit, offset, {})


class SubmissionMemberService:
    """Members of submissions, addressed by submission and enrollment."""

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _keys(submission_id: str, enrollment_id: str) -> dict[str, str]:
        return {"submission_id": submission_id, "enrollment_id": enrollment_id}

    def find_entity(
        self,
        submission_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> Page:
        """Return one page of the members of ``submission_id``."""
        return _find_page(
            self._db,
            SubmissionMemberEntity,
            limit,
            offset,
            {"submission_id": submission_id},
        )

    def create_entity(self, payload: Mapping[str, Any]) -> Entity:
        """Store a new member built from ``payload`` and return it."""
        return _insert(self._db, SubmissionMemberEntity.from_payload(payload))

    def get_entity(self, submission_id: str, enrollment_id: str) -> Entity:
        """Return one member; raise ``NotFoundError`` if absent."""
        return _get(
            self._db, SubmissionMemberEntity, self._keys(submission_id, enrollment_id)
        )

    def update_entity(
        self, submission_id: str, enrollment_id: str, payload: Mapping[str, Any]
    ) -> Entity:
        """Overwrite the given fields of one member and return the stored result."""
        return _update(
            self._db,
            SubmissionMemberEntity,
            self._keys(submission_id, enrollment_id),
            payload,
        )

    def delete_entity(self, submission_id: str, enrollment_id: str) -> None:
        """Remove one member; a missing member is not an error."""
        _delete(
            self._db, SubmissionMemberEntity, self._keys(submission_id, enrollment_id)
        )