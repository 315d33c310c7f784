"""Request handlers for courses, modules, lessons and assignments."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from .domain import Entity, Page
from .services import AssignmentService, CourseService, LessonService, ModuleService

OK = 200
CREATED = 201
NO_CONTENT = 204


@dataclass(frozen=True)
class ApiResponse:
    """The status and JSON-ready body a handler answers with."""

    status: int
    body: Any = None


def _ok(record: Entity) -> ApiResponse:
    return ApiResponse(OK, record.to_model())


def _created(record: Entity) -> ApiResponse:
    return ApiResponse(CREATED, record.to_model())


def _page(page: Page) -> ApiResponse:
    return ApiResponse(OK, page.to_dict())


def _deleted() -> ApiResponse:
    return ApiResponse(NO_CONTENT)


@dataclass
class ContentApi:
    """Handlers for the course structure: courses, modules, lessons, assignments.

    Service failures propagate unchanged: ``NotFoundError`` for a missing
    record, ``ValueError`` for a malformed body, ``AppError`` for storage faults.
    """

    course_service: CourseService
    module_service: ModuleService
    lesson_service: LessonService
    assignment_service: AssignmentService

    # Courses

    def create_course(self, body: Mapping[str, Any]) -> ApiResponse:
        return _created(self.course_service.create_entity(body))

    def delete_course(self, course_id: str) -> ApiResponse:
        self.course_service.delete_entity(course_id)
        return _deleted()

    def get_course(self, course_id: str) -> ApiResponse:
        return _ok(self.course_service.get_entity(course_id))

    def list_courses(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.course_service.find_entity(limit, offset, q))

    def update_course(self, course_id: str, body: Mapping[str, Any]) -> ApiResponse:
        return _ok(self.course_service.update_entity(course_id, body))

    # Modules

    def create_module(self, body: Mapping[str, Any]) -> ApiResponse:
        return _created(self.module_service.create_entity(body))

    def delete_module(self, module_id: str) -> ApiResponse:
        self.module_service.delete_entity(module_id)
        return _deleted()

    def get_module(self, module_id: str) -> ApiResponse:
        return _ok(self.module_service.get_entity(module_id))

    def list_modules(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.module_service.find_entity(limit, offset, q))

    def update_module(self, module_id: str, body: Mapping[str, Any]) -> ApiResponse:
        return _ok(self.module_service.update_entity(module_id, body))

    # Lessons

    def create_lesson(self, body: Mapping[str, Any]) -> ApiResponse:
        return _created(self.lesson_service.create_entity(body))

    def delete_lesson(self, lesson_id: str) -> ApiResponse:
        self.lesson_service.delete_entity(lesson_id)
        return _deleted()

    def get_lesson(self, lesson_id: str) -> ApiResponse:
        return _ok(self.lesson_service.get_entity(lesson_id))

    def list_lesson(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.lesson_service.find_entity(limit, offset, q))

    def update_lesson(self, lesson_id: str, body: Mapping[str, Any]) -> ApiResponse:
        return _ok(self.lesson_service.update_entity(lesson_id, body))

    # Assignments

    def create_assignment(self, body: Mapping[str, Any]) -> ApiResponse:
        return _created(self.assignment_service.create_entity(body))

    def delete_assignment(self, assignment_id: str) -> ApiResponse:
        self.assignment_service.delete_entity(assignment_id)
        return _deleted()

    def get_assignment(self, assignment_id: str) -> ApiResponse:
        return _ok(self.assignment_service.get_entity(assignment_id))

    def list_assignments(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.assignment_service.find_entity(limit, offset, q))

    def update_assignment(
        self, assignment_id: str, body: Mapping[str, Any]
    ) -> ApiResponse:
        return _ok(self.assignment_service.update_entity(assignment_id, body))