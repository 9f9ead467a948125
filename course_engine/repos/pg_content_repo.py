"""PostgreSQL implementations of CourseRepo, LessonRepo and QuizRepo."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.orm import Session

from course_engine.db.tables import CourseRow, LessonRow, QuizRow
from course_engine.models.content import Course, Lesson, LessonType, Quiz, QuizType


def _like(term: str) -> str:
    return f"%{term.lower()}%"


class PgCourseRepo:
    """Satisfies the CourseRepo Protocol using SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _all(self, stmt: Select) -> list[Course]:
        return [_row_to_course(r) for r in self._session.execute(stmt).scalars()]

    def get(self, course_id: int) -> Course | None:
        row = self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row is not None else None

    def add(self, course: Course) -> Course:
        row = CourseRow(**_course_values(course))
        self._session.add(row)
        self._session.flush()
        return _row_to_course(row)

    def update(self, course: Course) -> Course:
        row = self._session.get(CourseRow, course.id)
        if row is None:
            raise KeyError(f"course {course.id} not found")
        for key, value in _course_values(course).items():
            setattr(row, key, value)
        self._session.flush()
        return _row_to_course(row)

    def delete(self, course_id: int) -> bool:
        stmt = delete(CourseRow).where(CourseRow.id == course_id)
        result = self._session.execute(stmt)
        return result.rowcount > 0

    def list_all(self) -> list[Course]:
        return self._all(select(CourseRow).order_by(CourseRow.id))

    def _published(self) -> Select:
        return (
            select(CourseRow)
            .where(CourseRow.is_published.is_(True))
            .order_by(CourseRow.created_at.desc(), CourseRow.id.desc())
        )

    def list_published(self) -> list[Course]:
        return self._all(self._published())

    def list_by_teacher(self, teacher_id: int) -> list[Course]:
        return self._all(
            select(CourseRow)
            .where(CourseRow.teacher_id == teacher_id)
            .order_by(CourseRow.created_at.desc(), CourseRow.id.desc())
        )

    def filter_published(
        self,
        search: str | None = None,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> list[Course]:
        stmt = self._published()
        if search:
            stmt = stmt.where(
                or_(
                    func.lower(CourseRow.title).like(_like(search)),
                    func.lower(CourseRow.description).like(_like(search)),
                )
            )
        if category:
            stmt = stmt.where(CourseRow.category == category)
        if difficulty:
            stmt = stmt.where(CourseRow.difficulty == difficulty)
        return self._all(stmt)

    def _distinct(self, column) -> list[str]:
        stmt = (
            select(column)
            .where(CourseRow.is_published.is_(True), column.is_not(None))
            .distinct()
            .order_by(column)
        )
        return [v for v in self._session.execute(stmt).scalars() if v]

    def distinct_categories(self) -> list[str]:
        return self._distinct(CourseRow.category)

    def distinct_difficulties(self) -> list[str]:
        return self._distinct(CourseRow.difficulty)

    def count_published(self) -> int:
        stmt = (
            select(func.count())
            .select_from(CourseRow)
            .where(CourseRow.is_published.is_(True))
        )
        return self._session.execute(stmt).scalar_one()

    def count_by_teacher(self, teacher_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(CourseRow)
            .where(CourseRow.teacher_id == teacher_id)
        )
        return self._session.execute(stmt).scalar_one()


class PgLessonRepo:
    """Satisfies the LessonRepo Protocol using SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _all(self, stmt: Select) -> list[Lesson]:
        return [_row_to_lesson(r) for r in self._session.execute(stmt).scalars()]

    @staticmethod
    def _in_course(course_id: int) -> Select:
        return (
            select(LessonRow)
            .where(LessonRow.course_id == course_id)
            .order_by(LessonRow.lesson_order, LessonRow.id)
        )

    def get(self, lesson_id: int) -> Lesson | None:
        row = self._session.get(LessonRow, lesson_id)
        return _row_to_lesson(row) if row is not None else None

    def add(self, lesson: Lesson) -> Lesson:
        row = LessonRow(**_lesson_values(lesson))
        self._session.add(row)
        self._session.flush()
        return _row_to_lesson(row)

    def update(self, lesson: Lesson) -> Lesson:
        row = self._session.get(LessonRow, lesson.id)
        if row is None:
            raise KeyError(f"lesson {lesson.id} not found")
        for key, value in _lesson_values(lesson).items():
            setattr(row, key, value)
        self._session.flush()
        return _row_to_lesson(row)

    def delete(self, lesson_id: int) -> bool:
        stmt = delete(LessonRow).where(LessonRow.id == lesson_id)
        result = self._session.execute(stmt)
        return result.rowcount > 0

    def list_by_course(self, course_id: int) -> list[Lesson]:
        return self._all(self._in_course(course_id))

    def list_by_type(
        self, type: LessonType, course_id: int | None = None
    ) -> list[Lesson]:
        if course_id is not None:
            stmt = self._in_course(course_id)
        else:
            stmt = select(LessonRow).order_by(LessonRow.id)
        return self._all(stmt.where(LessonRow.type == type.value))

    def count_by_course(self, course_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(LessonRow)
            .where(LessonRow.course_id == course_id)
        )
        return self._session.execute(stmt).scalar_one()

    def max_order(self, course_id: int) -> int | None:
        stmt = select(func.max(LessonRow.lesson_order)).where(
            LessonRow.course_id == course_id
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get_by_order(self, course_id: int, order: int) -> Lesson | None:
        stmt = (
            self._in_course(course_id)
            .where(LessonRow.lesson_order == order)
            .limit(1)
        )
        row = self._session.execute(stmt).scalar_one_or_none()
        return _row_to_lesson(row) if row is not None else None

    def list_after(self, course_id: int, order: int) -> list[Lesson]:
        stmt = self._in_course(course_id).where(LessonRow.lesson_order > order)
        return self._all(stmt)

    def list_before(self, course_id: int, order: int) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(LessonRow.course_id == course_id, LessonRow.lesson_order < order)
            .order_by(LessonRow.lesson_order.desc(), LessonRow.id.desc())
        )
        return self._all(stmt)

    def search_in_course(self, course_id: int, term: str) -> list[Lesson]:
        return self._all(
            self._in_course(course_id).where(
                or_(
                    func.lower(LessonRow.title).like(_like(term)),
                    func.lower(LessonRow.content).like(_like(term)),
                )
            )
        )


class PgQuizRepo:
    """Satisfies the QuizRepo Protocol using SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _all(self, stmt: Select) -> list[Quiz]:
        return [_row_to_quiz(r) for r in self._session.execute(stmt).scalars()]

    @staticmethod
    def _in_lessons(lesson_ids: Iterable[int]) -> Select:
        return (
            select(QuizRow)
            .where(QuizRow.lesson_id.in_(list(lesson_ids)))
            .order_by(QuizRow.id)
        )

    def get(self, quiz_id: int) -> Quiz | None:
        row = self._session.get(QuizRow, quiz_id)
        return _row_to_quiz(row) if row is not None else None

    def add(self, quiz: Quiz) -> Quiz:
        row = QuizRow(**_quiz_values(quiz))
        self._session.add(row)
        self._session.flush()
        return _row_to_quiz(row)

    def update(self, quiz: Quiz) -> Quiz:
        row = self._session.get(QuizRow, quiz.id)
        if row is None:
            raise KeyError(f"quiz {quiz.id} not found")
        for key, value in _quiz_values(quiz).items():
            setattr(row, key, value)
        self._session.flush()
        return _row_to_quiz(row)

    def delete(self, quiz_id: int) -> bool:
        stmt = delete(QuizRow).where(QuizRow.id == quiz_id)
        result = self._session.execute(stmt)
        return result.rowcount > 0

    def list_by_lesson(self, lesson_id: int) -> list[Quiz]:
        return self._all(self._in_lessons([lesson_id]))

    def list_by_lessons(self, lesson_ids: Iterable[int]) -> list[Quiz]:
        return self._all(self._in_lessons(lesson_ids))

    def list_by_type(
        self, type: QuizType, lesson_ids: Iterable[int] | None = None
    ) -> list[Quiz]:
        if lesson_ids is not None:
            stmt = self._in_lessons(lesson_ids)
        else:
            stmt = select(QuizRow).order_by(QuizRow.id)
        return self._all(stmt.where(QuizRow.type == type.value))

    def count_by_lesson(self, lesson_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(QuizRow)
            .where(QuizRow.lesson_id == lesson_id)
        )
        return self._session.execute(stmt).scalar_one()

    def search(self, lesson_ids: Iterable[int], term: str) -> list[Quiz]:
        return self._all(
            self._in_lessons(lesson_ids).where(
                or_(
                    func.lower(QuizRow.title).like(_like(term)),
                    func.lower(QuizRow.question).like(_like(term)),
                )
            )
        )


# --- Row <-> dataclass mapping ---


def _course_values(course: Course) -> dict:
    values = {
        "teacher_id": course.teacher_id,
        "title": course.title,
        "description": course.description,
        "category": course.category,
        "difficulty": course.difficulty,
        "estimated_duration": course.estimated_duration,
        "thumbnail_url": course.thumbnail_url,
        "is_published": course.is_published,
        "created_at": course.created_at,
        "updated_at": course.updated_at,
    }
    if course.id:
        values["id"] = course.id
    return values


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        teacher_id=row.teacher_id,
        title=row.title,
        description=row.description or "",
        category=row.category,
        difficulty=row.difficulty,
        estimated_duration=row.estimated_duration,
        thumbnail_url=row.thumbnail_url,
        is_published=row.is_published,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _lesson_values(lesson: Lesson) -> dict:
    values = {
        "course_id": lesson.course_id,
        "title": lesson.title,
        "content": lesson.content,
        "type": lesson.type.value,
        "lesson_order": lesson.order,
        "duration_minutes": lesson.duration_minutes,
        "video_url": lesson.video_url,
        "image_url": lesson.image_url,
        "resources": lesson.resources,
        "created_at": lesson.created_at,
        "updated_at": lesson.updated_at,
    }
    if lesson.id:
        values["id"] = lesson.id
    return values


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        course_id=row.course_id,
        title=row.title,
        content=row.content or "",
        type=LessonType(row.type),
        order=row.lesson_order,
        duration_minutes=row.duration_minutes,
        video_url=row.video_url,
        image_url=row.image_url,
        resources=row.resources,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _quiz_values(quiz: Quiz) -> dict:
    values = {
        "lesson_id": quiz.lesson_id,
        "title": quiz.title,
        "question": quiz.question,
        "type": quiz.type.value,
        "options": quiz.options,
        "correct_answer": quiz.correct_answer,
        "explanation": quiz.explanation,
        "points": quiz.points,
        "time_limit_seconds": quiz.time_limit_seconds,
        "created_at": quiz.created_at,
        "updated_at": quiz.updated_at,
    }
    if quiz.id:
        values["id"] = quiz.id
    return values


def _row_to_quiz(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        lesson_id=row.lesson_id,
        title=row.title,
        question=row.question,
        type=QuizType(row.type),
        options=row.options,
        correct_answer=row.correct_answer,
        explanation=row.explanation,
        points=row.points,
        time_limit_seconds=row.time_limit_seconds,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
