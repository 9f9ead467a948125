"""Per-student, per-course progress and the enrollment lifecycle.

A progress record moves Not Enrolled -> Enrolled -> Completed.  ``reset``
takes it back to Enrolled with zeroed counters; ``unenroll`` deletes it.

Completion is counted by ``lessons_completed``.  By default every
``completed=True`` event increments it, so re-marking a lesson counts twice.
With EXACT_LESSON_COMPLETION each lesson id is counted once per record.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from course_engine.core import config
from course_engine.core.metrics import (
    COURSE_COMPLETIONS,
    ENROLLMENT_CHANGES,
    LESSON_PROGRESS_EVENTS,
)
from course_engine.models.progress import UserProgress, cleared, recompute
from course_engine.repos.errors import DuplicateKeyError
from course_engine.repos.store import Repos, Store
from course_engine.services import clock
from course_engine.services.errors import (
    InvalidStateError,
    NotFoundError,
    ProgressNotFoundError,
)

logger = logging.getLogger(__name__)


def _load_or_create(
    repos: Repos, student_id: int, course_id: int, now: int
) -> UserProgress:
    progress = repos.progress.get_for_update(student_id, course_id)
    if progress is not None:
        return progress

    if repos.users.get_by_id(student_id) is None:
        raise NotFoundError("student not found")
    if repos.courses.get(course_id) is None:
        raise NotFoundError("course not found")

    progress = UserProgress.new(
        student_id=student_id,
        course_id=course_id,
        total_lessons=repos.lessons.count_by_course(course_id),
        now=now,
    )
    try:
        progress = repos.progress.add(progress)
    except DuplicateKeyError:
        raise InvalidStateError("progress record was created concurrently") from None

    ENROLLMENT_CHANGES.labels(change="enrolled").inc()
    logger.info(
        "Enrolled student=%d course=%d total_lessons=%d",
        student_id,
        course_id,
        progress.total_lessons,
        extra={"student_id": student_id, "course_id": course_id},
    )
    return progress


def _note_completion(before: UserProgress, after: UserProgress) -> None:
    if after.is_completed and not before.is_completed:
        COURSE_COMPLETIONS.inc()
        logger.info(
            "Course completed: student=%d course=%d",
            after.student_id,
            after.course_id,
            extra={"student_id": after.student_id, "course_id": after.course_id},
        )


def get_or_create(store: Store, student_id: int, course_id: int) -> UserProgress:
    """Existing record, or a fresh one snapshotting the course's lesson count."""
    with store.transaction() as repos:
        return _load_or_create(repos, student_id, course_id, clock.utc_now())


def enroll(store: Store, student_id: int, course_id: int) -> UserProgress:
    """Idempotent: enrolling twice returns the existing record unchanged."""
    return get_or_create(store, student_id, course_id)


def unenroll(store: Store, student_id: int, course_id: int) -> None:
    with store.transaction() as repos:
        removed = repos.progress.delete(student_id, course_id)
    if removed:
        ENROLLMENT_CHANGES.labels(change="unenrolled").inc()
        logger.info("Unenrolled student=%d course=%d", student_id, course_id)


def reset(store: Store, student_id: int, course_id: int) -> UserProgress:
    """Zero counters and completion state, keeping total_lessons and started_at.

    Raises ProgressNotFoundError when the student is not enrolled.
    """
    with store.transaction() as repos:
        progress = repos.progress.get_for_update(student_id, course_id)
        if progress is None:
            raise ProgressNotFoundError("progress record not found")
        progress = repos.progress.update(cleared(progress, now=clock.utc_now()))

    ENROLLMENT_CHANGES.labels(change="reset").inc()
    logger.info("Reset progress student=%d course=%d", student_id, course_id)
    return progress


def record_lesson_progress(
    store: Store,
    *,
    student_id: int,
    course_id: int,
    lesson_id: int,
    minutes_spent: int | None = None,
    completed: bool | None = None,
    exact: bool | None = None,
) -> UserProgress:
    """Apply one lesson event to the record, creating it on first use.

    ``exact`` overrides the EXACT_LESSON_COMPLETION setting.
    """
    if exact is None:
        exact = config.SETTINGS.exact_lesson_completion

    now = clock.utc_now()
    with store.transaction() as repos:
        before = _load_or_create(repos, student_id, course_id, now)
        progress = replace(before, last_accessed_lesson_id=lesson_id, last_updated=now)

        if minutes_spent is not None:
            progress = replace(
                progress, total_time_spent=progress.total_time_spent + minutes_spent
            )

        if completed:
            if not exact:
                progress = replace(
                    progress, lessons_completed=progress.lessons_completed + 1
                )
            elif lesson_id not in progress.completed_lesson_ids:
                done = progress.completed_lesson_ids | {lesson_id}
                progress = replace(
                    progress, completed_lesson_ids=done, lessons_completed=len(done)
                )

        progress = repos.progress.update(recompute(progress, now=now))

    LESSON_PROGRESS_EVENTS.labels(completed="true" if completed else "false").inc()
    logger.debug(
        "Lesson progress student=%d course=%d lesson=%d completed=%s pct=%.1f",
        student_id,
        course_id,
        lesson_id,
        bool(completed),
        progress.completion_percentage,
    )
    _note_completion(before, progress)
    return progress


def update_quiz_score(
    store: Store, student_id: int, course_id: int, score: float
) -> UserProgress:
    now = clock.utc_now()
    with store.transaction() as repos:
        progress = _load_or_create(repos, student_id, course_id, now)
        return repos.progress.update(
            replace(progress, quiz_score=score, last_updated=now)
        )


def refresh_total_lessons(
    store: Store, student_id: int, course_id: int
) -> UserProgress:
    """Re-snapshot total_lessons from the course's current lesson count."""
    now = clock.utc_now()
    with store.transaction() as repos:
        before = repos.progress.get_for_update(student_id, course_id)
        if before is None:
            raise ProgressNotFoundError("progress record not found")
        progress = replace(
            before,
            total_lessons=repos.lessons.count_by_course(course_id),
            last_updated=now,
        )
        progress = repos.progress.update(recompute(progress, now=now))
    _note_completion(before, progress)
    return progress


# --- Reads ---


def get_progress(store: Store, student_id: int, course_id: int) -> UserProgress:
    with store.transaction() as repos:
        progress = repos.progress.get(student_id, course_id)
    if progress is None:
        raise NotFoundError("not enrolled in this course")
    return progress


def list_by_student(store: Store, student_id: int) -> list[UserProgress]:
    """Most recently updated first."""
    with store.transaction() as repos:
        return repos.progress.list_by_student(student_id)


def list_by_course(store: Store, course_id: int) -> list[UserProgress]:
    """Highest completion first."""
    with store.transaction() as repos:
        return repos.progress.list_by_course(course_id)


def list_completed(store: Store, student_id: int) -> list[UserProgress]:
    with store.transaction() as repos:
        return repos.progress.list_by_student(student_id, completed=True)


def list_in_progress(store: Store, student_id: int) -> list[UserProgress]:
    with store.transaction() as repos:
        return repos.progress.list_by_student(student_id, completed=False)
