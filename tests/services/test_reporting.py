from __future__ import annotations

import pytest

from course_engine.models.content import Course, Lesson
from course_engine.repos.store import InMemoryStore
from course_engine.services import grading, progress_tracker, reporting
from course_engine.services.errors import NotFoundError
from tests.conftest import (
    OTHER_STUDENT_ID,
    STUDENT_ID,
    add_course,
    add_lessons,
    add_quiz,
)


def _complete(store: InMemoryStore, student_id: int, lesson: Lesson) -> None:
    progress_tracker.record_lesson_progress(
        store,
        student_id=student_id,
        course_id=lesson.course_id,
        lesson_id=lesson.id,
        completed=True,
        exact=True,
    )


@pytest.fixture
def course(store: InMemoryStore) -> Course:
    return add_course(store)


@pytest.fixture
def lessons(store: InMemoryStore, course: Course) -> list[Lesson]:
    return add_lessons(store, course.id, 4)


# ---- empty store ----


def test_averages_over_nothing_are_none(store: InMemoryStore, course: Course) -> None:
    assert reporting.average_completion_by_student(store, STUDENT_ID) is None
    assert reporting.average_completion_by_course(store, course.id) is None
    assert reporting.average_score(store, STUDENT_ID, course.id) is None


def test_counts_over_nothing_are_zero(store: InMemoryStore, course: Course) -> None:
    assert reporting.enrolled_count_by_student(store, STUDENT_ID) == 0
    assert reporting.completed_count_by_student(store, STUDENT_ID) == 0
    assert reporting.enrolled_count_by_course(store, course.id) == 0
    assert reporting.completed_count_by_course(store, course.id) == 0
    assert reporting.correct_answers_count(store, STUDENT_ID, course.id) == 0
    assert reporting.total_answers_count(store, STUDENT_ID, course.id) == 0


# ---- progress aggregates ----


def test_course_aggregates(
    store: InMemoryStore, course: Course, lessons: list[Lesson]
) -> None:
    for lesson in lessons:
        _complete(store, STUDENT_ID, lesson)
    _complete(store, OTHER_STUDENT_ID, lessons[0])

    assert reporting.enrolled_count_by_course(store, course.id) == 2
    assert reporting.completed_count_by_course(store, course.id) == 1
    assert reporting.average_completion_by_course(store, course.id) == 62.5

    stats = reporting.course_stats(store, course.id)
    assert stats.enrolled_students == 2
    assert stats.completed_students == 1
    assert stats.in_progress_students == 1
    assert stats.average_completion == 62.5


def test_student_aggregates(
    store: InMemoryStore, course: Course, lessons: list[Lesson]
) -> None:
    other = add_course(store)
    add_lessons(store, other.id, 2)
    for lesson in lessons:
        _complete(store, STUDENT_ID, lesson)
    progress_tracker.enroll(store, STUDENT_ID, other.id)

    assert reporting.enrolled_count_by_student(store, STUDENT_ID) == 2
    assert reporting.completed_count_by_student(store, STUDENT_ID) == 1
    assert reporting.average_completion_by_student(store, STUDENT_ID) == 50.0

    stats = reporting.student_stats(store, STUDENT_ID)
    assert stats.enrolled_courses == 2
    assert stats.completed_courses == 1
    assert stats.in_progress_courses == 1
    assert stats.average_completion == 50.0


def test_high_performers_threshold_is_inclusive(
    store: InMemoryStore, course: Course, lessons: list[Lesson]
) -> None:
    for lesson in lessons[:3]:
        _complete(store, STUDENT_ID, lesson)
    _complete(store, OTHER_STUDENT_ID, lessons[0])

    top = reporting.high_performers(store, 75.0)
    assert [p.student_id for p in top] == [STUDENT_ID]

    everyone = reporting.high_performers(store, 0.0)
    assert [p.student_id for p in everyone] == [STUDENT_ID, OTHER_STUDENT_ID]


def test_course_stats_unknown_course(store: InMemoryStore) -> None:
    with pytest.raises(NotFoundError):
        reporting.course_stats(store, 404)


# ---- quiz aggregates ----


def test_quiz_aggregates(
    store: InMemoryStore, course: Course, lessons: list[Lesson]
) -> None:
    right = add_quiz(store, lessons[0].id, correct_answer="True", points=4)
    wrong = add_quiz(store, lessons[1].id, correct_answer="True", points=4)
    grading.submit(store, quiz_id=right.id, student_id=STUDENT_ID, answer="true")
    grading.submit(store, quiz_id=wrong.id, student_id=STUDENT_ID, answer="false")

    assert reporting.total_answers_count(store, STUDENT_ID, course.id) == 2
    assert reporting.correct_answers_count(store, STUDENT_ID, course.id) == 1
    assert reporting.average_score(store, STUDENT_ID, course.id) == 2.0

    stats = reporting.quiz_stats(store, STUDENT_ID, course.id)
    assert stats.accuracy == 50.0
    assert stats.average_score == 2.0


def test_quiz_stats_accuracy_without_answers(
    store: InMemoryStore, course: Course
) -> None:
    stats = reporting.quiz_stats(store, STUDENT_ID, course.id)
    assert stats.total_answers == 0
    assert stats.accuracy == 0.0
    assert stats.average_score is None
