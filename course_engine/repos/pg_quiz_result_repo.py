"""PostgreSQL implementation of QuizResultRepo."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from course_engine.db.tables import QuizResultRow
from course_engine.models.assessment import QuizResult
from course_engine.repos.errors import DuplicateKeyError


class PgQuizResultRepo:
    """Satisfies the QuizResultRepo Protocol using SQLAlchemy.

    The UNIQUE(student_id, quiz_id) constraint is the last line against a
    concurrent duplicate submission; a violation surfaces as
    DuplicateKeyError.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _all(self, stmt: Select) -> list[QuizResult]:
        return [_row_to_result(r) for r in self._session.execute(stmt).scalars()]

    @staticmethod
    def _newest_first(*criteria) -> Select:
        return (
            select(QuizResultRow)
            .where(*criteria)
            .order_by(QuizResultRow.submitted_at.desc(), QuizResultRow.id.desc())
        )

    @staticmethod
    def _scope(student_id: int, course_id: int) -> tuple:
        return (
            QuizResultRow.student_id == student_id,
            QuizResultRow.course_id == course_id,
        )

    def get_by_student_and_quiz(
        self, student_id: int, quiz_id: int
    ) -> QuizResult | None:
        stmt = select(QuizResultRow).where(
            QuizResultRow.student_id == student_id,
            QuizResultRow.quiz_id == quiz_id,
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        return _row_to_result(row) if row is not None else None

    def add(self, result: QuizResult) -> QuizResult:
        row = QuizResultRow(
            student_id=result.student_id,
            quiz_id=result.quiz_id,
            course_id=result.course_id,
            user_answer=result.user_answer,
            is_correct=result.is_correct,
            points_earned=result.points_earned,
            time_taken_seconds=result.time_taken_seconds,
            submitted_at=result.submitted_at,
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError:
            raise DuplicateKeyError("quiz result already exists") from None
        return _row_to_result(row)

    def list_by_student(self, student_id: int) -> list[QuizResult]:
        return self._all(self._newest_first(QuizResultRow.student_id == student_id))

    def list_by_course(self, course_id: int) -> list[QuizResult]:
        return self._all(self._newest_first(QuizResultRow.course_id == course_id))

    def list_by_student_and_course(
        self, student_id: int, course_id: int
    ) -> list[QuizResult]:
        return self._all(self._newest_first(*self._scope(student_id, course_id)))

    def list_by_quiz(self, quiz_id: int) -> list[QuizResult]:
        return self._all(self._newest_first(QuizResultRow.quiz_id == quiz_id))

    def average_points(self, student_id: int, course_id: int) -> float | None:
        stmt = select(func.avg(QuizResultRow.points_earned)).where(
            *self._scope(student_id, course_id)
        )
        value = self._session.execute(stmt).scalar_one_or_none()
        return float(value) if value is not None else None

    def count_correct(self, student_id: int, course_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(QuizResultRow)
            .where(*self._scope(student_id, course_id))
            .where(QuizResultRow.is_correct.is_(True))
        )
        return self._session.execute(stmt).scalar_one()

    def count_total(self, student_id: int, course_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(QuizResultRow)
            .where(*self._scope(student_id, course_id))
        )
        return self._session.execute(stmt).scalar_one()

    def delete_by_quizzes(self, quiz_ids: Iterable[int]) -> int:
        stmt = delete(QuizResultRow).where(QuizResultRow.quiz_id.in_(list(quiz_ids)))
        return self._session.execute(stmt).rowcount

    def delete_by_course(self, course_id: int) -> int:
        stmt = delete(QuizResultRow).where(QuizResultRow.course_id == course_id)
        return self._session.execute(stmt).rowcount


def _row_to_result(row: QuizResultRow) -> QuizResult:
    return QuizResult(
        id=row.id,
        student_id=row.student_id,
        quiz_id=row.quiz_id,
        course_id=row.course_id,
        user_answer=row.user_answer,
        is_correct=row.is_correct,
        points_earned=row.points_earned,
        time_taken_seconds=row.time_taken_seconds,
        submitted_at=row.submitted_at,
    )
