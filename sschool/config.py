"""Service configuration read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

_U16_MAX = 0xFFFF


def _parse_unsigned(name: str, value: str, maximum: int | None = None) -> int:
    if not (value.isascii() and value.isdigit()):
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    number = int(value)
    if maximum is not None and number > maximum:
        raise ValueError(f"{name} must be at most {maximum}, got {number}")
    return number


@dataclass(frozen=True)
class EnvConfig:
    """Settings for the HTTP server, the database and telemetry."""

    db_url: str
    db_max_thread_pool: int = 10
    http_host: str = "0.0.0.0"
    http_port: int = 3000
    log_level: str = "debug"
    otlp_span_endpoint: str = "http://localhost:4317"
    otlp_metric_endpoint: str = "http://localhost:4318/v1/metrics"
    otlp_service_name: str = "rust-app-example"
    otlp_version: str = "0.1.0"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EnvConfig:
        """Build a configuration from ``environ`` (the process environment by default).

        Raises ``ValueError`` when ``DB_URL`` is missing or a number is malformed.
        """
        env = os.environ if environ is None else environ
        if "DB_URL" not in env:
            raise ValueError("environment variable DB_URL is required")

        defaults = cls(db_url=env["DB_URL"])
        pool = env.get("DB_MAX_THREAD_POOL")
        port = env.get("PORT")
        return cls(
            db_url=env["DB_URL"],
            db_max_thread_pool=(
                defaults.db_max_thread_pool
                if pool is None
                else _parse_unsigned("DB_MAX_THREAD_POOL", pool)
            ),
            http_host=env.get("HOST", defaults.http_host),
            http_port=(
                defaults.http_port
                if port is None
                else _parse_unsigned("PORT", port, _U16_MAX)
            ),
            log_level=env.get("LOG_LEVEL", defaults.log_level),
            otlp_span_endpoint=env.get("OTLP_SPAN_ENDPOINT", defaults.otlp_span_endpoint),
            otlp_metric_endpoint=env.get(
                "OTLP_METRIC_ENDPOINT", defaults.otlp_metric_endpoint
            ),
            otlp_service_name=env.get("OTLP_SERVICE_NAME", defaults.otlp_service_name),
            otlp_version=env.get("OTLP_VERSION", defaults.otlp_version),
        )