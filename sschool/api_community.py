"""Request handlers for enrollments, comments, activities and submissions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from .api_content import CREATED, NO_CONTENT, OK, ApiResponse
from .domain import Entity, Page
from .services import (
    ActivityService,
    CommentService,
    EnrollmentService,
    SubmissionMemberService,
    SubmissionService,
)


def _ok(record: Entity) -> ApiResponse:
    return ApiResponse(OK, record.to_model())


def _created(record: Entity) -> ApiResponse:
    return ApiResponse(CREATED, record.to_model())


def _page(page: Page) -> ApiResponse:
    return ApiResponse(OK, page.to_dict())


def _deleted() -> ApiResponse:
    return ApiResponse(NO_CONTENT)


@dataclass
class CommunityApi:
    """Handlers for what learners do: enrol, comment and submit work.

    Service failures propagate unchanged: ``NotFoundError`` for a missing
    record, ``ValueError`` for a malformed body, ``AppError`` for storage faults.
    """

    enrollment_service: EnrollmentService
    comment_service: CommentService
    activity_service: ActivityService
    submission_service: SubmissionService
    submission_member_service: SubmissionMemberService

    # Enrollments

    def create_enrollment(self, body: Mapping[str, Any]) -> ApiResponse:
        return _created(self.enrollment_service.create_entity(body))

    def delete_enrollment(self, enrollment_id: str) -> ApiResponse:
        self.enrollment_service.delete_entity(enrollment_id)
        return _deleted()

    def get_enrollment(self, enrollment_id: str) -> ApiResponse:
        return _ok(self.enrollment_service.get_entity(enrollment_id))

    def list_enrollments(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.enrollment_service.find_entity(limit, offset, q))

    def update_enrollment(
        self, enrollment_id: str, body: Mapping[str, Any]
    ) -> ApiResponse:
        return _ok(self.enrollment_service.update_entity(enrollment_id, body))

    # Comments

    def create_comment(self, body: Mapping[str, Any]) -> ApiResponse:
        return _created(self.comment_service.create_entity(body))

    def get_comment(self, comment_id: str) -> ApiResponse:
        return _ok(self.comment_service.get_entity(comment_id))

    def list_comments(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.comment_service.find_entity(limit, offset, q))

    # Activities

    def get_submission_activities(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.activity_service.find_activities(limit, offset, q))

    # Submissions

    def create_submission(self, body: Mapping[str, Any]) -> ApiResponse:
        return _created(self.submission_service.create_entity(body))

    def delete_submission(self, submission_id: str) -> ApiResponse:
        self.submission_service.delete_entity(submission_id)
        return _deleted()

    def get_submission(self, submission_id: str) -> ApiResponse:
        return _ok(self.submission_service.get_entity(submission_id))

    def list_submissions(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(self.submission_service.find_entity(limit, offset, q))

    def update_submission(
        self, submission_id: str, body: Mapping[str, Any]
    ) -> ApiResponse:
        return _ok(self.submission_service.update_entity(submission_id, body))

    # Submission members

    def create_submission_member(
        self, submission_id: str, body: Mapping[str, Any]
    ) -> ApiResponse:
        """Add a member; the submission is taken from ``body``, not the path."""
        return _created(self.submission_member_service.create_entity(body))

    def delete_submission_member(
        self, submission_id: str, enrollment_id: str
    ) -> ApiResponse:
        self.submission_member_service.delete_entity(submission_id, enrollment_id)
        return _deleted()

    def get_submission_member(
        self, submission_id: str, enrollment_id: str
    ) -> ApiResponse:
        return _ok(
            self.submission_member_service.get_entity(submission_id, enrollment_id)
        )

    def list_submission_members(
        self,
        submission_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        q: Optional[str] = None,
    ) -> ApiResponse:
        return _page(
            self.submission_member_service.find_entity(submission_id, limit, offset, q)
        )

    def update_submission_member(
        self, submission_id: str, enrollment_id: str, body: Mapping[str, Any]
    ) -> ApiResponse:
        return _ok(
            self.submission_member_service.update_entity(
                submission_id, enrollment_id, body
            )
        )