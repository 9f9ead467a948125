from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from course_engine.api import dependencies
from course_engine.main import app
from course_engine.models.content import Course, Lesson, Quiz, QuizType
from course_engine.models.principal import Principal
from course_engine.models.user import Role, User
from course_engine.repos.store import InMemoryStore
from course_engine.services import clock, token_service

# Ensure repo root is on sys.path so `import course_engine` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEACHER_ID = 100
OTHER_TEACHER_ID = 101
STUDENT_ID = 200
OTHER_STUDENT_ID = 201

TEACHER = Principal(user_id=TEACHER_ID, role=Role.TEACHER)
OTHER_TEACHER = Principal(user_id=OTHER_TEACHER_ID, role=Role.TEACHER)
STUDENT = Principal(user_id=STUDENT_ID, role=Role.STUDENT)
OTHER_STUDENT = Principal(user_id=OTHER_STUDENT_ID, role=Role.STUDENT)


@pytest.fixture(autouse=True)
def reset_app_store() -> None:
    """Drop everything the API wrote during the previous test."""
    dependencies.store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def fixed_clock(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    """Freeze clock.utc_now; append to the list to move time forward."""
    ticks = [1_700_000_000]
    monkeypatch.setattr(clock, "utc_now", lambda: ticks[-1])
    return ticks


def mint_token(user_id: int = STUDENT_ID, role: Role | str = Role.STUDENT) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        user_id=user_id, role=role, email=f"user{user_id}@example.com"
    )


def auth(user_id: int = STUDENT_ID, role: Role | str = Role.STUDENT) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user_id, role)}"}


@pytest.fixture
def teacher_headers() -> dict[str, str]:
    return auth(TEACHER_ID, Role.TEACHER)


@pytest.fixture
def student_headers() -> dict[str, str]:
    return auth(STUDENT_ID, Role.STUDENT)


# ---------------------------------------------------------------------------
# Service-level helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryStore:
    """A fresh in-memory store with two teachers and two students."""
    s = InMemoryStore()
    seed_users(s)
    return s


def seed_users(s) -> None:
    with s.transaction() as repos:
        for principal in (TEACHER, OTHER_TEACHER, STUDENT, OTHER_STUDENT):
            repos.users.upsert(
                User(
                    id=principal.user_id,
                    email=f"user{principal.user_id}@example.com",
                    role=principal.role,
                )
            )


def add_course(s, *, teacher_id: int = TEACHER_ID, published: bool = True) -> Course:
    with s.transaction() as repos:
        return repos.courses.add(
            Course(
                teacher_id=teacher_id,
                title="Shapes and Colours",
                description="Drawing basics for early learners",
                category="art",
                difficulty="beginner",
                is_published=published,
            )
        )


def add_lessons(s, course_id: int, count: int) -> list[Lesson]:
    with s.transaction() as repos:
        return [
            repos.lessons.add(
                Lesson(course_id=course_id, title=f"Lesson {i}", order=i)
            )
            for i in range(1, count + 1)
        ]


def add_quiz(
    s,
    lesson_id: int,
    *,
    type: QuizType = QuizType.TRUE_FALSE,
    correct_answer: str | None = "True",
    points: int = 5,
) -> Quiz:
    with s.transaction() as repos:
        return repos.quizzes.add(
            Quiz(
                lesson_id=lesson_id,
                title="Check",
                question="Is a square a rectangle?",
                type=type,
                correct_answer=correct_answer,
                points=points,
            )
        )


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------


def api_course(
    client: TestClient,
    headers: dict[str, str],
    *,
    published: bool = True,
    **fields,
) -> dict:
    """Create a course through the API, published unless told otherwise."""
    body = {
        "title": "Shapes and Colours",
        "description": "Drawing basics for early learners",
        "category": "art",
        "difficulty": "beginner",
        "is_published": published,
        **fields,
    }
    resp = client.post("/v1/courses", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def api_lesson(
    client: TestClient, headers: dict[str, str], course_id: int, **fields
) -> dict:
    body = {"title": "Lesson", **fields}
    resp = client.post(f"/v1/courses/{course_id}/lessons", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def api_quiz(
    client: TestClient, headers: dict[str, str], lesson_id: int, **fields
) -> dict:
    body = {
        "title": "Check",
        "question": "Is a square a rectangle?",
        "type": "TRUE_FALSE",
        "correct_answer": "True",
        "explanation": "All four angles are right angles.",
        "points": 5,
        **fields,
    }
    resp = client.post(f"/v1/lessons/{lesson_id}/quizzes", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()
