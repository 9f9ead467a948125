"""Repositories for the content hierarchy (courses, lessons, quizzes)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Generic, Protocol, TypeVar

from course_engine.models.content import Course, Lesson, LessonType, Quiz, QuizType


class CourseRepo(Protocol):
    def get(self, course_id: int) -> Course | None: ...
    def add(self, course: Course) -> Course: ...
    def update(self, course: Course) -> Course: ...
    def delete(self, course_id: int) -> bool: ...
    def list_all(self) -> list[Course]: ...
    def list_published(self) -> list[Course]: ...
    def list_by_teacher(self, teacher_id: int) -> list[Course]: ...
    def filter_published(
        self,
        search: str | None = None,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> list[Course]: ...
    def distinct_categories(self) -> list[str]: ...
    def distinct_difficulties(self) -> list[str]: ...
    def count_published(self) -> int: ...
    def count_by_teacher(self, teacher_id: int) -> int: ...


class LessonRepo(Protocol):
    def get(self, lesson_id: int) -> Lesson | None: ...
    def add(self, lesson: Lesson) -> Lesson: ...
    def update(self, lesson: Lesson) -> Lesson: ...
    def delete(self, lesson_id: int) -> bool: ...
    def list_by_course(self, course_id: int) -> list[Lesson]: ...
    def list_by_type(
        self, type: LessonType, course_id: int | None = None
    ) -> list[Lesson]: ...
    def count_by_course(self, course_id: int) -> int: ...
    def max_order(self, course_id: int) -> int | None: ...
    def get_by_order(self, course_id: int, order: int) -> Lesson | None: ...
    def list_after(self, course_id: int, order: int) -> list[Lesson]: ...
    def list_before(self, course_id: int, order: int) -> list[Lesson]: ...
    def search_in_course(self, course_id: int, term: str) -> list[Lesson]: ...


class QuizRepo(Protocol):
    def get(self, quiz_id: int) -> Quiz | None: ...
    def add(self, quiz: Quiz) -> Quiz: ...
    def update(self, quiz: Quiz) -> Quiz: ...
    def delete(self, quiz_id: int) -> bool: ...
    def list_by_lesson(self, lesson_id: int) -> list[Quiz]: ...
    def list_by_lessons(self, lesson_ids: Iterable[int]) -> list[Quiz]: ...
    def list_by_type(
        self, type: QuizType, lesson_ids: Iterable[int] | None = None
    ) -> list[Quiz]: ...
    def count_by_lesson(self, lesson_id: int) -> int: ...
    def search(self, lesson_ids: Iterable[int], term: str) -> list[Quiz]: ...


def _contains(haystack: str | None, needle: str) -> bool:
    return haystack is not None and needle.casefold() in haystack.casefold()


T = TypeVar("T", Course, Lesson, Quiz)


class _InMemoryTable(Generic[T]):
    """Row storage with store-assigned integer ids."""

    def __init__(self) -> None:
        self._rows: dict[int, T] = {}
        self._next_id = 1

    def get(self, entity_id: int) -> T | None:
        return self._rows.get(entity_id)

    def add(self, entity: T) -> T:
        stored = replace(entity, id=self._next_id)
        self._next_id += 1
        self._rows[stored.id] = stored
        return stored

    def update(self, entity: T) -> T:
        if entity.id not in self._rows:
            raise KeyError(f"{type(entity).__name__.lower()} {entity.id} not found")
        self._rows[entity.id] = entity
        return entity

    def delete(self, entity_id: int) -> bool:
        return self._rows.pop(entity_id, None) is not None

    def snapshot(self) -> tuple[dict[int, T], int]:
        return dict(self._rows), self._next_id

    def restore(self, state: tuple[dict[int, T], int]) -> None:
        rows, next_id = state
        self._rows = dict(rows)
        self._next_id = next_id


class InMemoryCourseRepo(_InMemoryTable[Course]):
    @staticmethod
    def _newest_first(courses: Iterable[Course]) -> list[Course]:
        return sorted(courses, key=lambda c: (c.created_at, c.id), reverse=True)

    def list_all(self) -> list[Course]:
        return sorted(self._rows.values(), key=lambda c: c.id)

    def list_published(self) -> list[Course]:
        return self._newest_first(c for c in self._rows.values() if c.is_published)

    def list_by_teacher(self, teacher_id: int) -> list[Course]:
        return self._newest_first(
            c for c in self._rows.values() if c.teacher_id == teacher_id
        )

    def filter_published(
        self,
        search: str | None = None,
        category: str | None = None,
        difficulty: str | None = None,
    ) -> list[Course]:
        courses = self.list_published()
        if search:
            courses = [
                c
                for c in courses
                if _contains(c.title, search) or _contains(c.description, search)
            ]
        if category:
            courses = [c for c in courses if c.category == category]
        if difficulty:
            courses = [c for c in courses if c.difficulty == difficulty]
        return courses

    def distinct_categories(self) -> list[str]:
        return sorted(
            {c.category for c in self._rows.values() if c.is_published and c.category}
        )

    def distinct_difficulties(self) -> list[str]:
        return sorted(
            {
                c.difficulty
                for c in self._rows.values()
                if c.is_published and c.difficulty
            }
        )

    def count_published(self) -> int:
        return sum(1 for c in self._rows.values() if c.is_published)

    def count_by_teacher(self, teacher_id: int) -> int:
        return sum(1 for c in self._rows.values() if c.teacher_id == teacher_id)


class InMemoryLessonRepo(_InMemoryTable[Lesson]):
    def _in_course(self, course_id: int) -> list[Lesson]:
        return sorted(
            (lesson for lesson in self._rows.values() if lesson.course_id == course_id),
            key=lambda lesson: (lesson.order, lesson.id),
        )

    def list_by_course(self, course_id: int) -> list[Lesson]:
        return self._in_course(course_id)

    def list_by_type(
        self, type: LessonType, course_id: int | None = None
    ) -> list[Lesson]:
        lessons = (
            self._in_course(course_id)
            if course_id is not None
            else sorted(self._rows.values(), key=lambda lesson: lesson.id)
        )
        return [lesson for lesson in lessons if lesson.type == type]

    def count_by_course(self, course_id: int) -> int:
        return sum(1 for lesson in self._rows.values() if lesson.course_id == course_id)

    def max_order(self, course_id: int) -> int | None:
        orders = [lesson.order for lesson in self._in_course(course_id)]
        return max(orders, default=None)

    def get_by_order(self, course_id: int, order: int) -> Lesson | None:
        # order is not unique-constrained; the lowest id wins
        return next(
            (lesson for lesson in self._in_course(course_id) if lesson.order == order),
            None,
        )

    def list_after(self, course_id: int, order: int) -> list[Lesson]:
        return [lesson for lesson in self._in_course(course_id) if lesson.order > order]

    def list_before(self, course_id: int, order: int) -> list[Lesson]:
        return [
            lesson
            for lesson in reversed(self._in_course(course_id))
            if lesson.order < order
        ]

    def search_in_course(self, course_id: int, term: str) -> list[Lesson]:
        return [
            lesson
            for lesson in self._in_course(course_id)
            if _contains(lesson.title, term) or _contains(lesson.content, term)
        ]


class InMemoryQuizRepo(_InMemoryTable[Quiz]):
    def list_by_lesson(self, lesson_id: int) -> list[Quiz]:
        return self.list_by_lessons([lesson_id])

    def list_by_lessons(self, lesson_ids: Iterable[int]) -> list[Quiz]:
        wanted = set(lesson_ids)
        return sorted(
            (q for q in self._rows.values() if q.lesson_id in wanted),
            key=lambda q: q.id,
        )

    def list_by_type(
        self, type: QuizType, lesson_ids: Iterable[int] | None = None
    ) -> list[Quiz]:
        quizzes = (
            self.list_by_lessons(lesson_ids)
            if lesson_ids is not None
            else sorted(self._rows.values(), key=lambda q: q.id)
        )
        return [q for q in quizzes if q.type == type]

    def count_by_lesson(self, lesson_id: int) -> int:
        return sum(1 for q in self._rows.values() if q.lesson_id == lesson_id)

    def search(self, lesson_ids: Iterable[int], term: str) -> list[Quiz]:
        return [
            q
            for q in self.list_by_lessons(lesson_ids)
            if _contains(q.title, term) or _contains(q.question, term)
        ]
