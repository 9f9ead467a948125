from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class QuizResult:
    """One student's single graded attempt at one quiz.

    Immutable once stored; at most one exists per (student_id, quiz_id).
    ``course_id`` is the course the quiz resolved to at submission time and
    backs the course-scoped reports.
    """

    student_id: int
    quiz_id: int
    course_id: int
    user_answer: str | None
    is_correct: bool
    points_earned: int
    time_taken_seconds: int | None = None
    submitted_at: int = 0
    id: int = 0
