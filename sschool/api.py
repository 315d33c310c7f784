"""The service object that answers every API request."""

from __future__ import annotations

from dataclasses import dataclass

from .api_community import CommunityApi
from .api_content import ContentApi
from .db import Database
from .services import (
    ActivityService,
    AssignmentService,
    CommentService,
    CourseService,
    EnrollmentService,
    LessonService,
    ModuleService,
    SubmissionMemberService,
    SubmissionService,
)


@dataclass
class ApiService(ContentApi, CommunityApi):
    """All request handlers, backed by one service per kind of record."""

    @classmethod
    def create(cls, db: Database) -> ApiService:
        """Build every service on the shared database pool ``db``."""
        return cls(
            activity_service=ActivityService(db),
            assignment_service=AssignmentService(db),
            comment_service=CommentService(db),
            course_service=CourseService(db),
            enrollment_service=EnrollmentService(db),
            lesson_service=LessonService(db),
            module_service=ModuleService(db),
            submission_service=SubmissionService(db),
            submission_member_service=SubmissionMemberService(db),
        )