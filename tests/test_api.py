import pytest

from sschool.api import ApiService
from sschool.api_content import CREATED, NO_CONTENT, OK
from sschool.db import Database, run_migrations
from sschool.errors import NotFoundError


@pytest.fixture
def db(tmp_path):
    url = str(tmp_path / "school.db")
    run_migrations(url)
    database = Database(url)
    yield database
    database.close()


@pytest.fixture
def api(db):
    return ApiService.create(db)


def _member(role="leader"):
    return {
        "assignment_id": "as_1",
        "enrollment_id": "er_1",
        "submission_id": "su_1",
        "role": role,
    }


def test_course_round_trip(api):
    created = api.create_course(
        {"name": "Algebra", "slug": "algebra", "description": "Numbers"}
    )
    assert created.status == CREATED
    assert created.body["id"].startswith("co_")
    fetched = api.get_course(created.body["id"])
    assert fetched.status == OK
    assert fetched.body == created.body


def test_handlers_share_one_database(api):
    api.create_enrollment(
        {"user_id": "u1", "course_id": "co_1", "enrollment_type": "student"}
    )
    assert api.list_enrollments().body["meta"]["total"] == 1
    assert api.list_courses().body["meta"]["total"] == 0


def test_listing_uses_source_defaults(api):
    page = api.list_lesson()
    assert page.body == {"meta": {"limit": 10, "offset": 0, "total": 0}, "content": []}


def test_activities_listing_honours_limit(api):
    page = api.get_submission_activities(limit=5)
    assert page.body["meta"]["limit"] == 5
    assert page.body["content"] == []


def test_submission_member_flow(api):
    created = api.create_submission_member("su_1", _member())
    assert created.status == CREATED
    fetched = api.get_submission_member("su_1", "er_1")
    assert fetched.body["role"] == "leader"
    listed = api.list_submission_members("su_1")
    assert [item["enrollment_id"] for item in listed.body["content"]] == ["er_1"]
    updated = api.update_submission_member("su_1", "er_1", _member("reviewer"))
    assert updated.body["role"] == "reviewer"
    assert api.delete_submission_member("su_1", "er_1").status == NO_CONTENT
    with pytest.raises(NotFoundError):
        api.get_submission_member("su_1", "er_1")


def test_missing_record_raises_not_found(api):
    with pytest.raises(NotFoundError):
        api.get_assignment("as_missing")


def test_malformed_body_raises_value_error(api):
    with pytest.raises(ValueError):
        api.create_module({"title": "Only a title"})