"""Tests for the course catalogue and authoring endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from course_engine.models.user import Role
from tests.conftest import OTHER_TEACHER_ID, TEACHER_ID, api_course, api_lesson, auth

# ---- 401: unauthenticated ----


def test_list_courses_rejects_missing_token(client: TestClient) -> None:
    resp = client.get("/v1/courses")
    assert resp.status_code == 401


def test_list_courses_rejects_garbage_token(client: TestClient) -> None:
    resp = client.get("/v1/courses", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


def test_unknown_role_claim_rejected(client: TestClient) -> None:
    resp = client.get("/v1/courses", headers=auth(5, "ADMIN"))
    assert resp.status_code == 401


# ---- create ----


def test_teacher_creates_course(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    course = api_course(client, teacher_headers, published=False)
    assert course["teacher_id"] == TEACHER_ID
    assert course["is_published"] is False
    assert course["id"] > 0


def test_student_cannot_create_course(
    client: TestClient, student_headers: dict[str, str]
) -> None:
    resp = client.post("/v1/courses", json={"title": "x"}, headers=student_headers)
    assert resp.status_code == 403


def test_publishing_without_description_is_422(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    resp = client.post(
        "/v1/courses",
        json={"title": "Rushed", "is_published": True},
        headers=teacher_headers,
    )
    assert resp.status_code == 422


# ---- read / visibility ----


def test_catalogue_lists_published_only(
    client: TestClient,
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    visible = api_course(client, teacher_headers, title="Visible")
    api_course(client, teacher_headers, title="Draft", published=False)

    resp = client.get("/v1/courses", headers=student_headers)
    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()] == [visible["id"]]


def test_catalogue_search_and_facets(
    client: TestClient,
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    api_course(client, teacher_headers, title="Fractions", category="math")
    api_course(client, teacher_headers, title="Colour wheel", category="art")

    resp = client.get("/v1/courses?q=fraction", headers=student_headers)
    assert [c["title"] for c in resp.json()] == ["Fractions"]

    resp = client.get("/v1/courses?category=art", headers=student_headers)
    assert [c["title"] for c in resp.json()] == ["Colour wheel"]

    resp = client.get("/v1/courses/categories", headers=student_headers)
    assert resp.json() == ["art", "math"]

    resp = client.get("/v1/courses/difficulties", headers=student_headers)
    assert resp.json() == ["beginner"]


def test_draft_course_is_404_for_students(
    client: TestClient,
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    draft = api_course(client, teacher_headers, published=False)
    url = f"/v1/courses/{draft['id']}"
    assert client.get(url, headers=student_headers).status_code == 404
    assert client.get(url, headers=teacher_headers).status_code == 200


def test_my_courses_lists_drafts_too(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    api_course(client, teacher_headers, published=False)
    api_course(client, teacher_headers)
    api_course(client, auth(OTHER_TEACHER_ID, Role.TEACHER))

    resp = client.get("/v1/courses/mine", headers=teacher_headers)
    assert resp.status_code == 200
    assert len(resp.json()) == 2


def test_my_courses_requires_teacher(
    client: TestClient, student_headers: dict[str, str]
) -> None:
    assert client.get("/v1/courses/mine", headers=student_headers).status_code == 403


# ---- update / publish / delete ----


def test_owner_updates_course(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    course = api_course(client, teacher_headers)
    resp = client.put(
        f"/v1/courses/{course['id']}",
        json={"difficulty": "advanced"},
        headers=teacher_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["difficulty"] == "advanced"
    assert resp.json()["title"] == course["title"]


def test_publish_unpublish_round(
    client: TestClient,
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    course = api_course(client, teacher_headers, published=False)
    url = f"/v1/courses/{course['id']}"

    resp = client.post(f"{url}/publish", headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["is_published"] is True
    assert client.get(url, headers=student_headers).status_code == 200

    resp = client.post(f"{url}/unpublish", headers=teacher_headers)
    assert resp.json()["is_published"] is False
    assert client.get(url, headers=student_headers).status_code == 404


def test_delete_course(client: TestClient, teacher_headers: dict[str, str]) -> None:
    course = api_course(client, teacher_headers)
    api_lesson(client, teacher_headers, course["id"])

    resp = client.delete(f"/v1/courses/{course['id']}", headers=teacher_headers)
    assert resp.status_code == 204
    resp = client.get(f"/v1/courses/{course['id']}", headers=teacher_headers)
    assert resp.status_code == 404


def test_delete_unknown_course_is_404(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    assert client.delete("/v1/courses/999", headers=teacher_headers).status_code == 404


# ---- lessons under a course ----


def test_course_lessons_in_order(
    client: TestClient,
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    course = api_course(client, teacher_headers)
    first = api_lesson(client, teacher_headers, course["id"], title="First")
    second = api_lesson(client, teacher_headers, course["id"], title="Second")
    assert (first["order"], second["order"]) == (1, 2)

    resp = client.get(f"/v1/courses/{course['id']}/lessons", headers=student_headers)
    assert [lesson["title"] for lesson in resp.json()] == ["First", "Second"]

    resp = client.get(
        f"/v1/courses/{course['id']}/lessons/at/2", headers=student_headers
    )
    assert resp.json()["id"] == second["id"]


def test_course_lessons_filter_by_type(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    course = api_course(client, teacher_headers)
    api_lesson(client, teacher_headers, course["id"], title="Clip", type="VIDEO")
    api_lesson(client, teacher_headers, course["id"], title="Text")

    resp = client.get(
        f"/v1/courses/{course['id']}/lessons?type=VIDEO", headers=teacher_headers
    )
    assert [lesson["title"] for lesson in resp.json()] == ["Clip"]


@pytest.mark.parametrize("field", ["title", "description", "is_published"])
def test_clearing_required_course_field_is_422(
    client: TestClient, teacher_headers: dict[str, str], field: str
) -> None:
    course = api_course(client, teacher_headers)
    url = f"/v1/courses/{course['id']}"

    resp = client.put(url, json={field: None}, headers=teacher_headers)
    assert resp.status_code == 422

    # Nothing was written; the course still reads back whole
    resp = client.get(url, headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json() == course


def test_optional_course_field_can_be_cleared(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    course = api_course(client, teacher_headers)
    resp = client.put(
        f"/v1/courses/{course['id']}",
        json={"category": None},
        headers=teacher_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["category"] is None
