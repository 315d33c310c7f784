"""Application errors and their HTTP status codes."""

from __future__ import annotations

import logging
from typing import NoReturn

logger = logging.getLogger(__name__)


def app_panic(message: str) -> NoReturn:
    """Log ``message`` as an error and abort with ``RuntimeError``."""
    text = f"Panic: {message}"
    logger.error(text)
    raise RuntimeError(text)


class AppError(Exception):
    """An internal failure, reported to clients as a server error."""

    STATUS_CODE = 500

    def __init__(self, source: object) -> None:
        self.source = source
        super().__init__(self._describe(source))

    @staticmethod
    def _describe(source: object) -> str:
        return f"I/O error: {source}"

    def status_code(self) -> int:
        """HTTP status that answers this error."""
        return self.STATUS_CODE


class NotFoundError(AppError):
    """A requested record does not exist."""

    STATUS_CODE = 404

    @staticmethod
    def _describe(source: object) -> str:
        return f"Not found: {source}"