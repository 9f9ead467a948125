"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from course_engine.db.tables import LessonCompletionRow, UserProgressRow
from course_engine.models.progress import UserProgress
from course_engine.repos.errors import DuplicateKeyError


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using SQLAlchemy.

    Lesson ids counted in exact-completion mode live in ``lesson_completions``
    and are loaded alongside each progress row.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _one(self, stmt: Select) -> UserProgress | None:
        row = self._session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_progress(row, self._completed_lessons(row.id))

    def _all(self, stmt: Select) -> list[UserProgress]:
        rows = self._session.execute(stmt).scalars().all()
        return [_row_to_progress(r, self._completed_lessons(r.id)) for r in rows]

    def _completed_lessons(self, progress_id: int) -> frozenset[int]:
        stmt = select(LessonCompletionRow.lesson_id).where(
            LessonCompletionRow.progress_id == progress_id
        )
        return frozenset(self._session.execute(stmt).scalars())

    def _write_completed_lessons(
        self, progress_id: int, lesson_ids: frozenset[int]
    ) -> None:
        current = self._completed_lessons(progress_id)
        for lesson_id in lesson_ids - current:
            self._session.add(
                LessonCompletionRow(progress_id=progress_id, lesson_id=lesson_id)
            )
        stale = current - lesson_ids
        if stale:
            self._session.execute(
                delete(LessonCompletionRow).where(
                    LessonCompletionRow.progress_id == progress_id,
                    LessonCompletionRow.lesson_id.in_(stale),
                )
            )

    @staticmethod
    def _by_key(student_id: int, course_id: int) -> Select:
        return select(UserProgressRow).where(
            UserProgressRow.student_id == student_id,
            UserProgressRow.course_id == course_id,
        )

    @staticmethod
    def _highest_first(*criteria) -> Select:
        return (
            select(UserProgressRow)
            .where(*criteria)
            .order_by(
                UserProgressRow.completion_percentage.desc(), UserProgressRow.id
            )
        )

    def get(self, student_id: int, course_id: int) -> UserProgress | None:
        return self._one(self._by_key(student_id, course_id))

    def get_for_update(self, student_id: int, course_id: int) -> UserProgress | None:
        # Row lock held until the surrounding transaction ends
        return self._one(self._by_key(student_id, course_id).with_for_update())

    def add(self, progress: UserProgress) -> UserProgress:
        row = UserProgressRow(**_progress_values(progress))
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError:
            raise DuplicateKeyError("progress record already exists") from None
        self._write_completed_lessons(row.id, progress.completed_lesson_ids)
        self._session.flush()
        return _row_to_progress(row, progress.completed_lesson_ids)

    def update(self, progress: UserProgress) -> UserProgress:
        row = self._session.execute(
            self._by_key(progress.student_id, progress.course_id)
        ).scalar_one_or_none()
        if row is None:
            raise KeyError("progress record not found")
        for key, value in _progress_values(progress).items():
            setattr(row, key, value)
        self._write_completed_lessons(row.id, progress.completed_lesson_ids)
        self._session.flush()
        return _row_to_progress(row, progress.completed_lesson_ids)

    def delete(self, student_id: int, course_id: int) -> bool:
        row = self._session.execute(
            self._by_key(student_id, course_id)
        ).scalar_one_or_none()
        if row is None:
            return False
        self._session.execute(
            delete(LessonCompletionRow).where(LessonCompletionRow.progress_id == row.id)
        )
        self._session.delete(row)
        self._session.flush()
        return True

    def delete_by_course(self, course_id: int) -> int:
        ids = select(UserProgressRow.id).where(UserProgressRow.course_id == course_id)
        self._session.execute(
            delete(LessonCompletionRow).where(LessonCompletionRow.progress_id.in_(ids))
        )
        stmt = delete(UserProgressRow).where(UserProgressRow.course_id == course_id)
        return self._session.execute(stmt).rowcount

    def list_by_student(
        self, student_id: int, completed: bool | None = None
    ) -> list[UserProgress]:
        stmt = select(UserProgressRow).where(UserProgressRow.student_id == student_id)
        if completed is not None:
            stmt = stmt.where(UserProgressRow.is_completed.is_(completed))
        stmt = stmt.order_by(
            UserProgressRow.last_updated.desc(), UserProgressRow.id.desc()
        )
        return self._all(stmt)

    def list_by_course(self, course_id: int) -> list[UserProgress]:
        return self._all(self._highest_first(UserProgressRow.course_id == course_id))

    def list_at_or_above(self, min_percentage: float) -> list[UserProgress]:
        return self._all(
            self._highest_first(
                UserProgressRow.completion_percentage >= min_percentage
            )
        )

    def _average(self, *criteria) -> float | None:
        stmt = select(func.avg(UserProgressRow.completion_percentage)).where(*criteria)
        value = self._session.execute(stmt).scalar_one_or_none()
        return float(value) if value is not None else None

    def average_completion_by_student(self, student_id: int) -> float | None:
        return self._average(UserProgressRow.student_id == student_id)

    def average_completion_by_course(self, course_id: int) -> float | None:
        return self._average(UserProgressRow.course_id == course_id)

    def _count(self, completed_only: bool, *criteria) -> int:
        stmt = select(func.count()).select_from(UserProgressRow).where(*criteria)
        if completed_only:
            stmt = stmt.where(UserProgressRow.is_completed.is_(True))
        return self._session.execute(stmt).scalar_one()

    def count_by_student(self, student_id: int, completed_only: bool = False) -> int:
        return self._count(completed_only, UserProgressRow.student_id == student_id)

    def count_by_course(self, course_id: int, completed_only: bool = False) -> int:
        return self._count(completed_only, UserProgressRow.course_id == course_id)


def _progress_values(progress: UserProgress) -> dict:
    values = dict(
        student_id=progress.student_id,
        course_id=progress.course_id,
        total_lessons=progress.total_lessons,
        lessons_completed=progress.lessons_completed,
        quiz_score=progress.quiz_score,
        total_time_spent=progress.total_time_spent,
        completion_percentage=progress.completion_percentage,
        is_completed=progress.is_completed,
        last_accessed_lesson_id=progress.last_accessed_lesson_id,
        started_at=progress.started_at,
        completed_at=progress.completed_at,
        last_updated=progress.last_updated,
    )
    if progress.id:
        values["id"] = progress.id
    return values


def _row_to_progress(
    row: UserProgressRow, completed_lesson_ids: frozenset[int]
) -> UserProgress:
    return UserProgress(
        id=row.id,
        student_id=row.student_id,
        course_id=row.course_id,
        total_lessons=row.total_lessons,
        lessons_completed=row.lessons_completed,
        quiz_score=row.quiz_score,
        total_time_spent=row.total_time_spent,
        completion_percentage=row.completion_percentage,
        is_completed=row.is_completed,
        last_accessed_lesson_id=row.last_accessed_lesson_id,
        started_at=row.started_at,
        completed_at=row.completed_at,
        last_updated=row.last_updated,
        completed_lesson_ids=frozenset(completed_lesson_ids),
    )
