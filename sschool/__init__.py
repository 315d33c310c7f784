"""HTTP API server for courses, lessons, assignments, enrollments and submissions, stored in SQLite."""

__version__ = "0.1.0"