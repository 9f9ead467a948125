"""Tests for enrollment, lesson progress and progress reporting endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from course_engine.models.user import Role
from tests.conftest import (
    OTHER_STUDENT_ID,
    OTHER_TEACHER_ID,
    STUDENT_ID,
    api_course,
    api_lesson,
    auth,
)


@pytest.fixture
def course_with_lessons(
    client: TestClient, teacher_headers: dict[str, str]
) -> tuple[int, list[int]]:
    course = api_course(client, teacher_headers)
    lessons = [
        api_lesson(client, teacher_headers, course["id"], title=f"Lesson {i}")["id"]
        for i in range(1, 5)
    ]
    return course["id"], lessons


def _complete(
    client: TestClient, headers: dict[str, str], course_id: int, lesson_id: int
):
    return client.post(
        "/v1/progress/lesson",
        json={"course_id": course_id, "lesson_id": lesson_id, "completed": True},
        headers=headers,
    )


# ---- 401 ----


def test_progress_rejects_missing_token(client: TestClient) -> None:
    assert client.get("/v1/progress/my").status_code == 401


# ---- enrollment ----


def test_enroll_snapshots_lesson_count(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    student_headers: dict[str, str],
) -> None:
    course_id, _ = course_with_lessons
    resp = client.post(f"/v1/progress/enroll/{course_id}", headers=student_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["student_id"] == STUDENT_ID
    assert body["total_lessons"] == 4
    assert body["lessons_completed"] == 0
    assert body["completion_percentage"] == 0.0
    assert body["is_completed"] is False

    again = client.post(f"/v1/progress/enroll/{course_id}", headers=student_headers)
    assert again.json()["id"] == body["id"]


def test_enroll_in_draft_course_is_404(
    client: TestClient,
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    draft = api_course(client, teacher_headers, published=False)
    resp = client.post(f"/v1/progress/enroll/{draft['id']}", headers=student_headers)
    assert resp.status_code == 404


def test_teacher_cannot_enroll(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    teacher_headers: dict[str, str],
) -> None:
    course_id, _ = course_with_lessons
    resp = client.post(f"/v1/progress/enroll/{course_id}", headers=teacher_headers)
    assert resp.status_code == 403


def test_unenroll_removes_record(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    student_headers: dict[str, str],
) -> None:
    course_id, _ = course_with_lessons
    client.post(f"/v1/progress/enroll/{course_id}", headers=student_headers)

    resp = client.delete(f"/v1/progress/enroll/{course_id}", headers=student_headers)
    assert resp.status_code == 204
    resp = client.get(f"/v1/progress/my/course/{course_id}", headers=student_headers)
    assert resp.status_code == 404


# ---- lesson progress ----


def test_four_lesson_walkthrough(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    student_headers: dict[str, str],
) -> None:
    course_id, lessons = course_with_lessons

    percentages = []
    for lesson_id in lessons:
        resp = _complete(client, student_headers, course_id, lesson_id)
        assert resp.status_code == 200
        percentages.append(resp.json()["completion_percentage"])

    assert percentages == [25.0, 50.0, 75.0, 100.0]
    final = resp.json()
    assert final["is_completed"] is True
    assert final["completed_at"] is not None
    assert final["last_accessed_lesson_id"] == lessons[-1]


def test_minutes_spent_accumulate(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    student_headers: dict[str, str],
) -> None:
    course_id, lessons = course_with_lessons
    for minutes in (5, 7):
        resp = client.post(
            "/v1/progress/lesson",
            json={
                "course_id": course_id,
                "lesson_id": lessons[0],
                "minutes_spent": minutes,
            },
            headers=student_headers,
        )
    assert resp.json()["total_time_spent"] == 12
    assert resp.json()["lessons_completed"] == 0


def test_lesson_from_another_course_is_404(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    course_id, _ = course_with_lessons
    other = api_course(client, teacher_headers, title="Elsewhere")
    stray = api_lesson(client, teacher_headers, other["id"])

    resp = _complete(client, student_headers, course_id, stray["id"])
    assert resp.status_code == 404


def test_reset_zeroes_progress(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    student_headers: dict[str, str],
) -> None:
    course_id, lessons = course_with_lessons
    for lesson_id in lessons:
        _complete(client, student_headers, course_id, lesson_id)

    resp = client.put(f"/v1/progress/reset/{course_id}", headers=student_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["lessons_completed"] == 0
    assert body["completion_percentage"] == 0.0
    assert body["is_completed"] is False
    assert body["completed_at"] is None


def test_reset_without_enrollment_is_409(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    student_headers: dict[str, str],
) -> None:
    course_id, _ = course_with_lessons
    resp = client.put(f"/v1/progress/reset/{course_id}", headers=student_headers)
    assert resp.status_code == 409


def test_refresh_picks_up_new_lessons(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    course_id, lessons = course_with_lessons
    _complete(client, student_headers, course_id, lessons[0])
    api_lesson(client, teacher_headers, course_id, title="Bonus")

    resp = client.put(f"/v1/progress/refresh/{course_id}", headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["total_lessons"] == 5
    assert resp.json()["completion_percentage"] == 20.0


# ---- student views ----


def test_my_views_split_completed_and_in_progress(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    done_id, lessons = course_with_lessons
    for lesson_id in lessons:
        _complete(client, student_headers, done_id, lesson_id)
    started = api_course(client, teacher_headers, title="Started")
    client.post(f"/v1/progress/enroll/{started['id']}", headers=student_headers)

    mine = client.get("/v1/progress/my", headers=student_headers).json()
    assert {p["course_id"] for p in mine} == {done_id, started["id"]}

    completed = client.get("/v1/progress/my/completed", headers=student_headers)
    assert [p["course_id"] for p in completed.json()] == [done_id]

    in_progress = client.get("/v1/progress/my/in-progress", headers=student_headers)
    assert [p["course_id"] for p in in_progress.json()] == [started["id"]]

    stats = client.get("/v1/progress/my/stats", headers=student_headers).json()
    assert stats == {
        "enrolled_courses": 2,
        "completed_courses": 1,
        "in_progress_courses": 1,
        "average_completion": 50.0,
    }


def test_my_stats_without_enrollments(
    client: TestClient, student_headers: dict[str, str]
) -> None:
    stats = client.get("/v1/progress/my/stats", headers=student_headers).json()
    assert stats["enrolled_courses"] == 0
    assert stats["average_completion"] == 0.0


# ---- teacher views ----


def test_course_progress_owner_only(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    course_id, lessons = course_with_lessons
    for lesson_id in lessons[:2]:
        _complete(client, student_headers, course_id, lesson_id)
    other_student = auth(OTHER_STUDENT_ID, Role.STUDENT)
    for lesson_id in lessons:
        _complete(client, other_student, course_id, lesson_id)

    resp = client.get(f"/v1/progress/course/{course_id}", headers=teacher_headers)
    assert resp.status_code == 200
    assert len(resp.json()) == 2

    resp = client.get(
        f"/v1/progress/course/{course_id}/stats", headers=teacher_headers
    )
    assert resp.json() == {
        "course_id": course_id,
        "enrolled_students": 2,
        "completed_students": 1,
        "in_progress_students": 1,
        "average_completion": 75.0,
    }

    other_teacher = auth(OTHER_TEACHER_ID, Role.TEACHER)
    url = f"/v1/progress/course/{course_id}"
    assert client.get(url, headers=other_teacher).status_code == 403
    assert client.get(f"{url}/stats", headers=other_teacher).status_code == 403
    assert client.get(url, headers=student_headers).status_code == 403


def test_high_performers(
    client: TestClient,
    course_with_lessons: tuple[int, list[int]],
    teacher_headers: dict[str, str],
    student_headers: dict[str, str],
) -> None:
    course_id, lessons = course_with_lessons
    for lesson_id in lessons:
        _complete(client, student_headers, course_id, lesson_id)
    other_student = auth(OTHER_STUDENT_ID, Role.STUDENT)
    _complete(client, other_student, course_id, lessons[0])

    resp = client.get("/v1/progress/high-performers", headers=teacher_headers)
    assert resp.status_code == 200
    assert [p["student_id"] for p in resp.json()] == [STUDENT_ID]

    resp = client.get(
        "/v1/progress/high-performers?min_percentage=25", headers=teacher_headers
    )
    assert {p["student_id"] for p in resp.json()} == {STUDENT_ID, OTHER_STUDENT_ID}

    resp = client.get("/v1/progress/high-performers", headers=student_headers)
    assert resp.status_code == 403
