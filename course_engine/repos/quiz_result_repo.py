from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol

from course_engine.models.assessment import QuizResult
from course_engine.repos.errors import DuplicateKeyError


class QuizResultRepo(Protocol):
    def get_by_student_and_quiz(
        self, student_id: int, quiz_id: int
    ) -> QuizResult | None: ...
    def add(self, result: QuizResult) -> QuizResult: ...
    def list_by_student(self, student_id: int) -> list[QuizResult]: ...
    def list_by_course(self, course_id: int) -> list[QuizResult]: ...
    def list_by_student_and_course(
        self, student_id: int, course_id: int
    ) -> list[QuizResult]: ...
    def list_by_quiz(self, quiz_id: int) -> list[QuizResult]: ...
    def average_points(self, student_id: int, course_id: int) -> float | None: ...
    def count_correct(self, student_id: int, course_id: int) -> int: ...
    def count_total(self, student_id: int, course_id: int) -> int: ...
    def delete_by_quizzes(self, quiz_ids: Iterable[int]) -> int: ...
    def delete_by_course(self, course_id: int) -> int: ...


class InMemoryQuizResultRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[int, int], QuizResult] = {}  # (student, quiz)
        self._next_id = 1

    def get_by_student_and_quiz(
        self, student_id: int, quiz_id: int
    ) -> QuizResult | None:
        return self._store.get((student_id, quiz_id))

    def add(self, result: QuizResult) -> QuizResult:
        key = (result.student_id, result.quiz_id)
        if key in self._store:
            raise DuplicateKeyError("quiz result already exists")
        stored = replace(result, id=self._next_id)
        self._next_id += 1
        self._store[key] = stored
        return stored

    @staticmethod
    def _newest_first(results: Iterable[QuizResult]) -> list[QuizResult]:
        return sorted(results, key=lambda r: (r.submitted_at, r.id), reverse=True)

    def list_by_student(self, student_id: int) -> list[QuizResult]:
        return self._newest_first(
            r for r in self._store.values() if r.student_id == student_id
        )

    def list_by_course(self, course_id: int) -> list[QuizResult]:
        return self._newest_first(
            r for r in self._store.values() if r.course_id == course_id
        )

    def list_by_student_and_course(
        self, student_id: int, course_id: int
    ) -> list[QuizResult]:
        return self._newest_first(
            r
            for r in self._store.values()
            if r.student_id == student_id and r.course_id == course_id
        )

    def list_by_quiz(self, quiz_id: int) -> list[QuizResult]:
        return self._newest_first(
            r for r in self._store.values() if r.quiz_id == quiz_id
        )

    def average_points(self, student_id: int, course_id: int) -> float | None:
        results = self.list_by_student_and_course(student_id, course_id)
        if not results:
            return None
        return sum(r.points_earned for r in results) / len(results)

    def count_correct(self, student_id: int, course_id: int) -> int:
        results = self.list_by_student_and_course(student_id, course_id)
        return sum(1 for r in results if r.is_correct)

    def count_total(self, student_id: int, course_id: int) -> int:
        return len(self.list_by_student_and_course(student_id, course_id))

    def delete_by_quizzes(self, quiz_ids: Iterable[int]) -> int:
        doomed = set(quiz_ids)
        keys = [k for k, r in self._store.items() if r.quiz_id in doomed]
        for key in keys:
            del self._store[key]
        return len(keys)

    def delete_by_course(self, course_id: int) -> int:
        keys = [k for k, r in self._store.items() if r.course_id == course_id]
        for key in keys:
            del self._store[key]
        return len(keys)

    def snapshot(self) -> tuple[dict[tuple[int, int], QuizResult], int]:
        return dict(self._store), self._next_id

    def restore(self, state: tuple[dict[tuple[int, int], QuizResult], int]) -> None:
        store, next_id = state
        self._store = dict(store)
        self._next_id = next_id
