"""HTTP application: routing, middleware, telemetry and the server entry point."""

from __future__ import annotations

import argparse
import logging
import threading
from collections import Counter
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

import uvicorn
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import QueryParams
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import (
    JSONResponse,
    PlainTextResponse,
    RedirectResponse,
    Response,
)
from starlette.routing import BaseRoute, Match, Route
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .api import ApiService
from .api_content import NO_CONTENT, ApiResponse
from .config import EnvConfig
from .db import get_connection
from .errors import AppError

logger = logging.getLogger(__name__)

_CORS_METHODS = ("GET", "POST", "OPTIONS", "PUT", "DELETE", "PATCH")
_BAD_REQUEST = 400
_PERMANENT_REDIRECT = 308

_LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 10,
}


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class HttpMetrics:
    """Counts of handled HTTP requests, rendered in the Prometheus text format."""

    METRIC = "http_requests_total"

    def __init__(
        self,
        service_name: str = EnvConfig.otlp_service_name,
        service_version: str = EnvConfig.otlp_version,
    ) -> None:
        self.service_name = service_name
        self.service_version = service_version
        self._counts: Counter[tuple[str, str, int]] = Counter()
        self._lock = threading.Lock()

    def record(self, method: str, path: str, status: int) -> None:
        """Count one request to the route ``path`` answered with ``status``."""
        with self._lock:
            self._counts[(method.upper(), path, int(status))] += 1

    def render(self) -> str:
        """Every counter as Prometheus exposition text."""
        with self._lock:
            items = sorted(self._counts.items())
        lines = [
            f"# HELP {self.METRIC} Total number of HTTP requests handled.",
            f"# TYPE {self.METRIC} counter",
        ]
        for (method, path, status), count in items:
            labels = ",".join(
                f'{name}="{_escape_label(value)}"'
                for name, value in (
                    ("service_name", self.service_name),
                    ("service_version", self.service_version),
                    ("method", method),
                    ("path", path),
                    ("status", str(status)),
                )
            )
            lines.append(f"{self.METRIC}{{{labels}}} {count}")
        return "\n".join(lines) + "\n"


class _MetricsMiddleware:
    """Records every request that reaches one of the measured routes."""

    def __init__(
        self, app: ASGIApp, metrics: HttpMetrics, routes: Sequence[BaseRoute]
    ) -> None:
        self.app = app
        self.metrics = metrics
        self.routes = routes

    def _template(self, scope: Scope) -> Optional[str]:
        partial = None
        for route in self.routes:
            match, _ = route.matches(scope)
            if match == Match.FULL:
                return getattr(route, "path", None)
            if match == Match.PARTIAL and partial is None:
                partial = getattr(route, "path", None)
        return partial

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        path = self._template(scope)
        if path is None:
            await self.app(scope, receive, send)
            return

        status = 500

        async def send_with_status(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            self.metrics.record(scope["method"], path, status)


async def health(request: Request) -> Response:
    """Liveness probe."""
    return PlainTextResponse("OK")


async def metrics_handler(request: Request) -> Response:
    """Expose the collected request metrics."""
    metrics: HttpMetrics = request.app.state.metrics
    return PlainTextResponse(
        metrics.render(), media_type="text/plain; version=0.0.4"
    )


async def _redirect_to_health(request: Request) -> Response:
    return RedirectResponse("/health", status_code=_PERMANENT_REDIRECT)


async def _error_response(request: Request, exc: Exception) -> Response:
    status = exc.status_code() if isinstance(exc, AppError) else _BAD_REQUEST
    return PlainTextResponse(str(exc), status_code=status)


def _int_param(params: QueryParams, name: str) -> Optional[int]:
    value = params.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"query parameter {name} must be an integer") from None


def _paging(request: Request) -> dict[str, Any]:
    params = request.query_params
    return {
        "limit": _int_param(params, "limit"),
        "offset": _int_param(params, "offset"),
        "q": params.get("q"),
    }


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise ValueError(f"invalid JSON body: {exc}") from exc


def _render(result: ApiResponse) -> Response:
    if result.status == NO_CONTENT or result.body is None:
        return Response(status_code=result.status)
    return JSONResponse(result.body, status_code=result.status)


def _endpoint(
    handler: Callable[..., ApiResponse],
    *,
    keys: Sequence[str] = (),
    body: bool = False,
    paging: bool = False,
) -> Callable[[Request], Any]:
    async def endpoint(request: Request) -> Response:
        args: list[Any] = [request.path_params[key] for key in keys]
        if body:
            args.append(await _read_body(request))
        kwargs = _paging(request) if paging else {}
        result = await run_in_threadpool(handler, *args, **kwargs)
        return _render(result)

    return endpoint


def _resource(
    prefix: str,
    key: str,
    *,
    parents: Sequence[str] = (),
    listing: Optional[Callable[..., ApiResponse]] = None,
    create: Optional[Callable[..., ApiResponse]] = None,
    get: Optional[Callable[..., ApiResponse]] = None,
    update: Optional[Callable[..., ApiResponse]] = None,
    delete: Optional[Callable[..., ApiResponse]] = None,
) -> list[Route]:
    item = f"{prefix}/{{{key}}}"
    item_keys = (*parents, key)
    plan: list[tuple[str, str, Optional[Callable[..., ApiResponse]], Mapping[str, Any]]] = [
        (prefix, "GET", listing, {"keys": parents, "paging": True}),
        (prefix, "POST", create, {"keys": parents, "body": True}),
        (item, "GET", get, {"keys": item_keys}),
        (item, "PUT", update, {"keys": item_keys, "body": True}),
        (item, "DELETE", delete, {"keys": item_keys}),
    ]
    return [
        Route(path, _endpoint(handler, **options), methods=[method])
        for path, method, handler, options in plan
        if handler is not None
    ]


def _api_routes(api: ApiService) -> list[Route]:
    return [
        *_resource(
            "/courses", "course_id",
            listing=api.list_courses, create=api.create_course, get=api.get_course,
            update=api.update_course, delete=api.delete_course,
        ),
        *_resource(
            "/modules", "module_id",
            listing=api.list_modules, create=api.create_module, get=api.get_module,
            update=api.update_module, delete=api.delete_module,
        ),
        *_resource(
            "/lessons", "lesson_id",
            listing=api.list_lesson, create=api.create_lesson, get=api.get_lesson,
            update=api.update_lesson, delete=api.delete_lesson,
        ),
        *_resource(
            "/assignments", "assignment_id",
            listing=api.list_assignments, create=api.create_assignment,
            get=api.get_assignment, update=api.update_assignment,
            delete=api.delete_assignment,
        ),
        *_resource(
            "/enrollments", "enrollment_id",
            listing=api.list_enrollments, create=api.create_enrollment,
            get=api.get_enrollment, update=api.update_enrollment,
            delete=api.delete_enrollment,
        ),
        *_resource(
            "/comments", "comment_id",
            listing=api.list_comments, create=api.create_comment, get=api.get_comment,
        ),
        *_resource("/activities", "activity_id", listing=api.get_submission_activities),
        *_resource(
            "/submissions", "submission_id",
            listing=api.list_submissions, create=api.create_submission,
            get=api.get_submission, update=api.update_submission,
            delete=api.delete_submission,
        ),
        *_resource(
            "/submissions/{submission_id}/members", "enrollment_id",
            parents=("submission_id",),
            listing=api.list_submission_members, create=api.create_submission_member,
            get=api.get_submission_member, update=api.update_submission_member,
            delete=api.delete_submission_member,
        ),
    ]


def create_app(metrics: HttpMetrics, api_service: ApiService) -> Starlette:
    """Assemble the API routes, service endpoints and common middleware."""
    api_routes = _api_routes(api_service)
    service_routes = [
        Route("/", _redirect_to_health, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
        Route("/metrics", metrics_handler, methods=["GET"]),
    ]
    app = Starlette(
        routes=[*api_routes, *service_routes],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=list(_CORS_METHODS),
            ),
            Middleware(GZipMiddleware, minimum_size=1),
            Middleware(_MetricsMiddleware, metrics=metrics, routes=api_routes),
        ],
        exception_handlers={AppError: _error_response, ValueError: _error_response},
    )
    app.state.metrics = metrics
    return app


def _level_from_filter(spec: str) -> int:
    """The global level of a filter such as ``"info,sschool=debug"``."""
    level = logging.ERROR
    for directive in spec.split(","):
        directive = directive.strip()
        if not directive or "=" in directive:
            continue
        try:
            level = _LOG_LEVELS[directive.lower()]
        except KeyError:
            raise ValueError(f"unknown log level: {directive}") from None
    return level


def init_tracing(config: EnvConfig) -> HttpMetrics:
    """Configure console logging and return the request metrics collector."""
    root = logging.getLogger()
    root.setLevel(_level_from_filter(config.log_level))
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(handler)
    return HttpMetrics(config.otlp_service_name, config.otlp_version)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the HTTP server configured from the environment."""
    parser = argparse.ArgumentParser(
        prog="sschool",
        description="Serve the school API; settings come from environment variables.",
    )
    parser.parse_args(argv)

    config = EnvConfig.from_env()
    metrics = init_tracing(config)
    db = get_connection(config)
    try:
        app = create_app(metrics, ApiService.create(db))
        logger.debug("Will start on %s:%s", config.http_host, config.http_port)
        logger.info("Server running on http://%s:%s", config.http_host, config.http_port)
        uvicorn.run(app, host=config.http_host, port=config.http_port, log_config=None)
    finally:
        db.close()
    return 0