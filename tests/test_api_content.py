import pytest

from sschool.api_content import ApiResponse, ContentApi
from sschool.db import Database, run_migrations
from sschool.errors import NotFoundError
from sschool.services import (
    AssignmentService,
    CourseService,
    LessonService,
    ModuleService,
)


@pytest.fixture
def api(tmp_path):
    url = str(tmp_path / "school.db")
    run_migrations(url)
    db = Database(url)
    yield ContentApi(
        course_service=CourseService(db),
        module_service=ModuleService(db),
        lesson_service=LessonService(db),
        assignment_service=AssignmentService(db),
    )
    db.close()


def _course(api, name="Algebra"):
    return api.create_course({"name": name, "slug": name.lower(), "description": "d"})


def test_create_course_answers_created(api):
    response = _course(api)
    assert response.status == 201
    assert response.body["name"] == "Algebra"
    assert response.body["id"].startswith("co_")


def test_get_course_returns_created_record(api):
    created = _course(api)
    fetched = api.get_course(created.body["id"])
    assert fetched.status == 200
    assert fetched.body == created.body


def test_list_courses_uses_default_paging(api):
    _course(api, "One")
    _course(api, "Two")
    response = api.list_courses()
    assert response.status == 200
    assert response.body["meta"] == {"limit": 10, "offset": 0, "total": 2}
    assert {item["name"] for item in response.body["content"]} == {"One", "Two"}


def test_list_courses_honours_limit_and_offset(api):
    for name in ("A", "B", "C"):
        _course(api, name)
    response = api.list_courses(limit=1, offset=2)
    assert response.body["meta"] == {"limit": 1, "offset": 2, "total": 3}
    assert len(response.body["content"]) == 1


def test_update_course_changes_fields(api):
    created = _course(api)
    course_id = created.body["id"]
    response = api.update_course(
        course_id, {"name": "Geometry", "slug": "geometry", "description": "new"}
    )
    assert response.status == 200
    assert response.body["id"] == course_id
    assert response.body["name"] == "Geometry"
    assert api.get_course(course_id).body["description"] == "new"


def test_delete_course_then_get_raises(api):
    course_id = _course(api).body["id"]
    assert api.delete_course(course_id) == ApiResponse(204)
    with pytest.raises(NotFoundError):
        api.get_course(course_id)


def test_update_missing_course_raises(api):
    with pytest.raises(NotFoundError):
        api.update_course("co_missing", {"name": "x", "slug": "x", "description": "x"})


def test_create_course_with_missing_field_raises(api):
    with pytest.raises(ValueError):
        api.create_course({"name": "Algebra"})


def test_module_crud(api):
    course_id = _course(api).body["id"]
    created = api.create_module(
        {"course_id": course_id, "title": "Intro", "description": "start"}
    )
    assert created.status == 201
    module_id = created.body["id"]
    assert module_id.startswith("mo_")
    assert api.get_module(module_id).body["course_id"] == course_id
    updated = api.update_module(
        module_id, {"course_id": course_id, "title": "Basics", "description": "start"}
    )
    assert updated.body["title"] == "Basics"
    assert api.list_modules().body["meta"]["total"] == 1
    assert api.delete_module(module_id).status == 204
    assert api.list_modules().body["content"] == []


def test_lesson_content_round_trips(api):
    content = {"blocks": [{"kind": "text", "value": "hello"}]}
    created = api.create_lesson(
        {"module_id": "mo_x", "title": "First", "content": content}
    )
    lesson_id = created.body["id"]
    assert lesson_id.startswith("ls_")
    fetched = api.get_lesson(lesson_id)
    assert fetched.body["content"] == content
    assert fetched.body["description"] is None


def test_lesson_update_list_and_delete(api):
    lesson_id = api.create_lesson(
        {"module_id": "mo_x", "title": "First", "content": []}
    ).body["id"]
    updated = api.update_lesson(
        lesson_id,
        {"module_id": "mo_x", "title": "Second", "content": [1], "description": "d"},
    )
    assert updated.body["title"] == "Second"
    assert updated.body["content"] == [1]
    assert [item["id"] for item in api.list_lesson().body["content"]] == [lesson_id]
    assert api.delete_lesson(lesson_id).status == 204
    with pytest.raises(NotFoundError):
        api.get_lesson(lesson_id)


def test_assignment_due_date_round_trips(api):
    created = api.create_assignment(
        {"lesson_id": "ls_x", "title": "Homework", "due_date": "2024-05-01T12:00:00Z"}
    )
    assert created.status == 201
    assert created.body["id"].startswith("as_")
    fetched = api.get_assignment(created.body["id"])
    assert fetched.body["due_date"] == "2024-05-01T12:00:00Z"


def test_assignment_update_list_and_delete(api):
    assignment_id = api.create_assignment(
        {"lesson_id": "ls_x", "title": "Homework", "due_date": "2024-05-01T12:00:00Z"}
    ).body["id"]
    updated = api.update_assignment(
        assignment_id,
        {"lesson_id": "ls_x", "title": "Project", "due_date": "2024-06-01T08:30:00Z"},
    )
    assert updated.body["title"] == "Project"
    assert updated.body["due_date"] == "2024-06-01T08:30:00Z"
    assert api.list_assignments().body["meta"]["total"] == 1
    assert api.delete_assignment(assignment_id).status == 204
    assert api.list_assignments().body["meta"]["total"] == 0


def test_negative_limit_is_rejected(api):
    with pytest.raises(ValueError):
        api.list_assignments(limit=-1)