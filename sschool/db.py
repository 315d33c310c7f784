"""Database schema, migrations and a small connection pool over SQLite."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from .config import EnvConfig
from .errors import AppError, app_panic

SCHEMA: dict[str, str] = {
    "accounts": """
        CREATE TABLE IF NOT EXISTS accounts (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            sub TEXT NOT NULL,
            name TEXT NOT NULL
        )""",
    "activities": """
        CREATE TABLE IF NOT EXISTS activities (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            user_id TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            entity_type VARCHAR NOT NULL,
            content VARCHAR NOT NULL,
            action_type VARCHAR NOT NULL
        )""",
    "courses": """
        CREATE TABLE IF NOT EXISTS courses (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            description TEXT NOT NULL
        )""",
    "assignments": """
        CREATE TABLE IF NOT EXISTS assignments (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            lesson_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            due_date TEXT NOT NULL
        )""",
    "comments": """
        CREATE TABLE IF NOT EXISTS comments (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            user_id TEXT,
            owner_id TEXT,
            content TEXT,
            "type" TEXT
        )""",
    "enrollments": """
        CREATE TABLE IF NOT EXISTS enrollments (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            user_id TEXT NOT NULL,
            course_id TEXT NOT NULL,
            enrollment_type TEXT NOT NULL
        )""",
    "lessons": """
        CREATE TABLE IF NOT EXISTS lessons (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            module_id TEXT NOT NULL,
            title TEXT NOT NULL,
            content TEXT NOT NULL,
            description TEXT
        )""",
    "modules": """
        CREATE TABLE IF NOT EXISTS modules (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            course_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT NOT NULL
        )""",
    "submissions": """
        CREATE TABLE IF NOT EXISTS submissions (
            id TEXT PRIMARY KEY NOT NULL,
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            assignment_id TEXT NOT NULL,
            date_submitted TEXT,
            status TEXT NOT NULL,
            content TEXT NOT NULL
        )""",
    "submission_members": """
        CREATE TABLE IF NOT EXISTS submission_members (
            created_at TEXT,
            updated_at TEXT,
            meta TEXT,
            assignment_id TEXT NOT NULL,
            enrollment_id TEXT NOT NULL,
            submission_id TEXT NOT NULL,
            role TEXT NOT NULL,
            PRIMARY KEY (assignment_id, enrollment_id)
        )""",
}

_SHARED_MEMORY = "file:sschool_memory?mode=memory&cache=shared"


def _resolve_url(database_url: str) -> tuple[str, bool]:
    """Return the SQLite target for ``database_url`` and whether it is a URI.

    Accepts a plain file path, ``sqlite:///relative.db``, ``sqlite:////absolute.db``
    and ``:memory:``. Any other scheme raises ``ValueError``.
    """
    if database_url.startswith("sqlite:///"):
        path = database_url[len("sqlite:///"):]
    elif database_url.startswith("sqlite://"):
        path = database_url[len("sqlite://"):]
    elif "://" in database_url:
        scheme = database_url.split("://", 1)[0]
        raise ValueError(f"unsupported database scheme: {scheme}")
    else:
        path = database_url
    if path in ("", ":memory:"):
        return _SHARED_MEMORY, True
    return path, False


def _open(target: str, uri: bool) -> sqlite3.Connection:
    conn = sqlite3.connect(target, uri=uri, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def run_migrations(database_url: str) -> None:
    """Create every table that does not exist yet.

    Aborts through ``app_panic`` when the database cannot be opened or migrated.
    """
    try:
        target, uri = _resolve_url(database_url)
        conn = _open(target, uri)
    except (ValueError, sqlite3.Error) as exc:
        app_panic(f"Failed to connect to db: {exc}")
    try:
        with conn:
            for statement in SCHEMA.values():
                conn.execute(statement)
    except sqlite3.Error as exc:
        app_panic(f"Failed to run migrations: {exc}")
    finally:
        conn.close()


class Database:
    """A bounded pool of SQLite connections."""

    def __init__(self, url: str, max_size: int = 10) -> None:
        if max_size < 1:
            raise ValueError("pool size must be at least 1")
        self.url = url
        self.max_size = max_size
        self._target, self._uri = _resolve_url(url)
        self._slots = threading.BoundedSemaphore(max_size)
        self._lock = threading.Lock()
        self._idle: list[sqlite3.Connection] = []
        self._closed = False
        # An in-memory database lives only while a connection to it is open.
        self._keeper = _open(self._target, self._uri) if self._uri else None

    def _checkout(self) -> sqlite3.Connection:
        with self._lock:
            if self._closed:
                raise AppError("database is closed")
            if self._idle:
                return self._idle.pop()
        try:
            return _open(self._target, self._uri)
        except sqlite3.Error as exc:
            raise AppError(exc) from exc

    def _checkin(self, conn: sqlite3.Connection) -> None:
        with self._lock:
            if self._closed:
                conn.close()
            else:
                self._idle.append(conn)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Lend a connection; commit when the block succeeds, roll back otherwise.

        SQLite failures surface as ``AppError``.
        """
        self._slots.acquire()
        try:
            conn = self._checkout()
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                raise AppError(exc) from exc
            except BaseException:
                conn.rollback()
                raise
            finally:
                self._checkin(conn)
        finally:
            self._slots.release()

    def close(self) -> None:
        """Close every idle connection and refuse further use."""
        with self._lock:
            self._closed = True
            idle, self._idle = self._idle, []
        for conn in idle:
            conn.close()
        if self._keeper is not None:
            self._keeper.close()
            self._keeper = None

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def get_connection(config: EnvConfig) -> Database:
    """Build the connection pool described by ``config`` and migrate the database."""
    database = Database(config.db_url, config.db_max_thread_pool)
    run_migrations(config.db_url)
    return database