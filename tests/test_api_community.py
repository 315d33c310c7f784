import pytest

from sschool.api_community import CommunityApi
from sschool.api_content import ApiResponse
from sschool.db import Database, run_migrations
from sschool.domain import ActivityEntity
from sschool.errors import NotFoundError
from sschool.services import (
    ActivityService,
    CommentService,
    EnrollmentService,
    SubmissionMemberService,
    SubmissionService,
)


@pytest.fixture
def db(tmp_path):
    url = str(tmp_path / "school.db")
    run_migrations(url)
    database = Database(url)
    yield database
    database.close()


@pytest.fixture
def api(db):
    return CommunityApi(
        enrollment_service=EnrollmentService(db),
        comment_service=CommentService(db),
        activity_service=ActivityService(db),
        submission_service=SubmissionService(db),
        submission_member_service=SubmissionMemberService(db),
    )


def _enrollment(api, user_id="ct_user"):
    return api.create_enrollment(
        {"user_id": user_id, "course_id": "co_x", "enrollment_type": "STUDENT"}
    )


def _submission(api, assignment_id="as_x"):
    return api.create_submission(
        {"assignment_id": assignment_id, "status": "DRAFT", "content": "work"}
    )


def _member_body(submission_id, enrollment_id, role="OWNER"):
    return {
        "assignment_id": "as_x",
        "enrollment_id": enrollment_id,
        "submission_id": submission_id,
        "role": role,
    }


def test_enrollment_crud(api):
    created = _enrollment(api)
    assert created.status == 201
    enrollment_id = created.body["id"]
    assert enrollment_id.startswith("er_")
    assert api.get_enrollment(enrollment_id).body == created.body
    updated = api.update_enrollment(
        enrollment_id,
        {"user_id": "ct_user", "course_id": "co_y", "enrollment_type": "STUDENT"},
    )
    assert updated.status == 200
    assert updated.body["course_id"] == "co_y"
    assert api.list_enrollments().body["meta"] == {"limit": 10, "offset": 0, "total": 1}
    assert api.delete_enrollment(enrollment_id) == ApiResponse(204)
    with pytest.raises(NotFoundError):
        api.get_enrollment(enrollment_id)


def test_comment_create_get_and_list(api):
    created = api.create_comment({"content": "Nice work", "type": "NOTE"})
    assert created.status == 201
    comment_id = created.body["id"]
    assert comment_id.startswith("cm_")
    fetched = api.get_comment(comment_id)
    assert fetched.body["content"] == "Nice work"
    assert fetched.body["user_id"] is None
    listing = api.list_comments()
    assert [item["id"] for item in listing.body["content"]] == [comment_id]


def test_get_missing_comment_raises(api):
    with pytest.raises(NotFoundError):
        api.get_comment("cm_missing")


def test_activities_empty_listing(api):
    response = api.get_submission_activities()
    assert response.status == 200
    assert response.body == {"meta": {"limit": 10, "offset": 0, "total": 0}, "content": []}


def test_activities_listing_shows_stored_rows(api, db):
    record = ActivityEntity(
        user_id="ct_user",
        entity_id="su_x",
        entity_type="SUBMISSION",
        content="submitted",
        action_type="CREATE",
    )
    row = {name: value for name, value in record.to_row().items() if value is not None}
    with db.connection() as conn:
        conn.execute(
            f"INSERT INTO activities ({', '.join(row)}) "
            f"VALUES ({', '.join('?' for _ in row)})",
            tuple(row.values()),
        )
    response = api.get_submission_activities(limit=5)
    assert response.body["meta"]["limit"] == 5
    assert response.body["meta"]["total"] == 1
    assert response.body["content"][0]["id"] == record.id


def test_submission_crud(api):
    created = _submission(api)
    assert created.status == 201
    submission_id = created.body["id"]
    assert submission_id.startswith("su_")
    assert created.body["date_submitted"] is None
    updated = api.update_submission(
        submission_id,
        {
            "assignment_id": "as_x",
            "status": "SUBMITTED",
            "content": "final",
            "date_submitted": "2024-03-10T09:00:00Z",
        },
    )
    assert updated.body["status"] == "SUBMITTED"
    assert updated.body["date_submitted"] == "2024-03-10T09:00:00Z"
    assert api.get_submission(submission_id).body == updated.body
    assert api.list_submissions().body["meta"]["total"] == 1
    assert api.delete_submission(submission_id).status == 204
    with pytest.raises(NotFoundError):
        api.get_submission(submission_id)


def test_submission_member_crud(api):
    submission_id = _submission(api).body["id"]
    enrollment_id = _enrollment(api).body["id"]
    created = api.create_submission_member(
        submission_id, _member_body(submission_id, enrollment_id)
    )
    assert created.status == 201
    assert created.body["submission_id"] == submission_id
    fetched = api.get_submission_member(submission_id, enrollment_id)
    assert fetched.body == created.body
    updated = api.update_submission_member(
        submission_id,
        enrollment_id,
        _member_body(submission_id, enrollment_id, role="MEMBER"),
    )
    assert updated.body["role"] == "MEMBER"
    assert api.delete_submission_member(submission_id, enrollment_id).status == 204
    with pytest.raises(NotFoundError):
        api.get_submission_member(submission_id, enrollment_id)


def test_member_listing_filters_by_submission_but_counts_all(api):
    first = _submission(api).body["id"]
    second = _submission(api).body["id"]
    api.create_submission_member(first, _member_body(first, "er_a"))
    second_body = _member_body(second, "er_b")
    second_body["assignment_id"] = "as_y"
    api.create_submission_member(second, second_body)
    response = api.list_submission_members(first)
    assert [item["submission_id"] for item in response.body["content"]] == [first]
    assert response.body["meta"]["total"] == 2


def test_create_submission_member_with_bad_body_raises(api):
    with pytest.raises(ValueError):
        api.create_submission_member("su_x", {"role": "OWNER"})


def test_update_missing_submission_member_raises(api):
    with pytest.raises(NotFoundError):
        api.update_submission_member(
            "su_none", "er_none", _member_body("su_none", "er_none")
        )