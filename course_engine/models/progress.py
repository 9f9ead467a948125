from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class UserProgress:
    """Per (student, course) aggregate of consumption and completion state.

    ``completion_percentage`` and ``is_completed`` are derived fields; they
    are only ever written by :func:`recompute`.
    """

    student_id: int
    course_id: int
    total_lessons: int = 0  # snapshot taken at creation/refresh
    lessons_completed: int = 0
    quiz_score: float = 0.0
    total_time_spent: int = 0  # minutes
    completion_percentage: float = 0.0
    is_completed: bool = False
    last_accessed_lesson_id: int | None = None
    started_at: int = 0
    completed_at: int | None = None
    last_updated: int = 0
    # Only filled when exact lesson completion is enabled
    completed_lesson_ids: frozenset[int] = frozenset()
    id: int = 0

    @staticmethod
    def new(
        *, student_id: int, course_id: int, total_lessons: int, now: int
    ) -> UserProgress:
        return UserProgress(
            student_id=student_id,
            course_id=course_id,
            total_lessons=total_lessons,
            started_at=now,
            last_updated=now,
        )


def recompute(progress: UserProgress, *, now: int) -> UserProgress:
    """Return ``progress`` with its derived fields brought up to date.

    With ``total_lessons == 0`` there is nothing to derive and the record is
    returned untouched.  ``completed_at`` is stamped on the first transition
    into completed and kept from then on, even if the flag later drops.
    """
    if progress.total_lessons <= 0:
        return progress

    percentage = progress.lessons_completed / progress.total_lessons * 100.0
    is_completed = progress.lessons_completed == progress.total_lessons
    completed_at = progress.completed_at
    if is_completed and completed_at is None:
        completed_at = now

    return replace(
        progress,
        completion_percentage=percentage,
        is_completed=is_completed,
        completed_at=completed_at,
    )


def cleared(progress: UserProgress, *, now: int) -> UserProgress:
    """Zero every counter and the completion state, keeping the enrollment."""
    return replace(
        progress,
        lessons_completed=0,
        quiz_score=0.0,
        total_time_spent=0,
        completion_percentage=0.0,
        is_completed=False,
        last_accessed_lesson_id=None,
        completed_at=None,
        completed_lesson_ids=frozenset(),
        last_updated=now,
    )
