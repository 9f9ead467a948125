"""Read-only aggregates over stored progress records and quiz results.

Nothing here is cached and nothing mutates.  An average over no records is
``None``; turning that into 0.0 for display is the caller's decision.
"""

from __future__ import annotations

from dataclasses import dataclass

from course_engine.models.progress import UserProgress
from course_engine.repos.store import Store
from course_engine.services.errors import NotFoundError


@dataclass(frozen=True, slots=True)
class StudentStats:
    student_id: int
    enrolled_courses: int
    completed_courses: int
    average_completion: float | None

    @property
    def in_progress_courses(self) -> int:
        return self.enrolled_courses - self.completed_courses


@dataclass(frozen=True, slots=True)
class CourseStats:
    course_id: int
    enrolled_students: int
    completed_students: int
    average_completion: float | None

    @property
    def in_progress_students(self) -> int:
        return self.enrolled_students - self.completed_students


@dataclass(frozen=True, slots=True)
class QuizStats:
    """A student's answers within one course."""

    student_id: int
    course_id: int
    total_answers: int
    correct_answers: int
    average_score: float | None

    @property
    def accuracy(self) -> float:
        if self.total_answers == 0:
            return 0.0
        return 100.0 * self.correct_answers / self.total_answers


# --- Progress ---


def average_completion_by_student(store: Store, student_id: int) -> float | None:
    with store.transaction() as repos:
        return repos.progress.average_completion_by_student(student_id)


def average_completion_by_course(store: Store, course_id: int) -> float | None:
    with store.transaction() as repos:
        return repos.progress.average_completion_by_course(course_id)


def completed_count_by_student(store: Store, student_id: int) -> int:
    with store.transaction() as repos:
        return repos.progress.count_by_student(student_id, completed_only=True)


def enrolled_count_by_student(store: Store, student_id: int) -> int:
    with store.transaction() as repos:
        return repos.progress.count_by_student(student_id)


def completed_count_by_course(store: Store, course_id: int) -> int:
    with store.transaction() as repos:
        return repos.progress.count_by_course(course_id, completed_only=True)


def enrolled_count_by_course(store: Store, course_id: int) -> int:
    with store.transaction() as repos:
        return repos.progress.count_by_course(course_id)


def high_performers(store: Store, min_percentage: float) -> list[UserProgress]:
    """Records at or above ``min_percentage`` completion, highest first."""
    with store.transaction() as repos:
        return repos.progress.list_at_or_above(min_percentage)


# --- Quiz results ---


def average_score(store: Store, student_id: int, course_id: int) -> float | None:
    """Mean points earned by a student across a course's quizzes."""
    with store.transaction() as repos:
        return repos.results.average_points(student_id, course_id)


def correct_answers_count(store: Store, student_id: int, course_id: int) -> int:
    with store.transaction() as repos:
        return repos.results.count_correct(student_id, course_id)


def total_answers_count(store: Store, student_id: int, course_id: int) -> int:
    with store.transaction() as repos:
        return repos.results.count_total(student_id, course_id)


# --- Snapshots ---


def student_stats(store: Store, student_id: int) -> StudentStats:
    with store.transaction() as repos:
        return StudentStats(
            student_id=student_id,
            enrolled_courses=repos.progress.count_by_student(student_id),
            completed_courses=repos.progress.count_by_student(
                student_id, completed_only=True
            ),
            average_completion=repos.progress.average_completion_by_student(
                student_id
            ),
        )


def course_stats(store: Store, course_id: int) -> CourseStats:
    with store.transaction() as repos:
        if repos.courses.get(course_id) is None:
            raise NotFoundError("course not found")
        return CourseStats(
            course_id=course_id,
            enrolled_students=repos.progress.count_by_course(course_id),
            completed_students=repos.progress.count_by_course(
                course_id, completed_only=True
            ),
            average_completion=repos.progress.average_completion_by_course(course_id),
        )


def quiz_stats(store: Store, student_id: int, course_id: int) -> QuizStats:
    with store.transaction() as repos:
        return QuizStats(
            student_id=student_id,
            course_id=course_id,
            total_answers=repos.results.count_total(student_id, course_id),
            correct_answers=repos.results.count_correct(student_id, course_id),
            average_score=repos.results.average_points(student_id, course_id),
        )
