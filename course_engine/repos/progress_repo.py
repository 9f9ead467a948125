from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Protocol

from course_engine.models.progress import UserProgress
from course_engine.repos.errors import DuplicateKeyError


class ProgressRepo(Protocol):
    def get(self, student_id: int, course_id: int) -> UserProgress | None: ...
    def get_for_update(
        self, student_id: int, course_id: int
    ) -> UserProgress | None: ...
    def add(self, progress: UserProgress) -> UserProgress: ...
    def update(self, progress: UserProgress) -> UserProgress: ...
    def delete(self, student_id: int, course_id: int) -> bool: ...
    def delete_by_course(self, course_id: int) -> int: ...
    def list_by_student(
        self, student_id: int, completed: bool | None = None
    ) -> list[UserProgress]: ...
    def list_by_course(self, course_id: int) -> list[UserProgress]: ...
    def list_at_or_above(self, min_percentage: float) -> list[UserProgress]: ...
    def average_completion_by_student(self, student_id: int) -> float | None: ...
    def average_completion_by_course(self, course_id: int) -> float | None: ...
    def count_by_student(
        self, student_id: int, completed_only: bool = False
    ) -> int: ...
    def count_by_course(self, course_id: int, completed_only: bool = False) -> int: ...


def _average(values: Iterable[float]) -> float | None:
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def _highest_first(records: Iterable[UserProgress]) -> list[UserProgress]:
    return sorted(
        records, key=lambda p: (p.completion_percentage, -p.id), reverse=True
    )


class InMemoryProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[int, int], UserProgress] = {}  # (student, course)
        self._next_id = 1

    def get(self, student_id: int, course_id: int) -> UserProgress | None:
        return self._store.get((student_id, course_id))

    def get_for_update(self, student_id: int, course_id: int) -> UserProgress | None:
        # The store-wide transaction lock already serializes writers
        return self.get(student_id, course_id)

    def add(self, progress: UserProgress) -> UserProgress:
        key = (progress.student_id, progress.course_id)
        if key in self._store:
            raise DuplicateKeyError("progress record already exists")
        stored = replace(progress, id=self._next_id)
        self._next_id += 1
        self._store[key] = stored
        return stored

    def update(self, progress: UserProgress) -> UserProgress:
        key = (progress.student_id, progress.course_id)
        if key not in self._store:
            raise KeyError("progress record not found")
        self._store[key] = progress
        return progress

    def delete(self, student_id: int, course_id: int) -> bool:
        return self._store.pop((student_id, course_id), None) is not None

    def delete_by_course(self, course_id: int) -> int:
        keys = [k for k in self._store if k[1] == course_id]
        for key in keys:
            del self._store[key]
        return len(keys)

    def list_by_student(
        self, student_id: int, completed: bool | None = None
    ) -> list[UserProgress]:
        records = [
            p
            for p in self._store.values()
            if p.student_id == student_id
            and (completed is None or p.is_completed == completed)
        ]
        return sorted(records, key=lambda p: (p.last_updated, p.id), reverse=True)

    def list_by_course(self, course_id: int) -> list[UserProgress]:
        return _highest_first(
            p for p in self._store.values() if p.course_id == course_id
        )

    def list_at_or_above(self, min_percentage: float) -> list[UserProgress]:
        return _highest_first(
            p for p in self._store.values() if p.completion_percentage >= min_percentage
        )

    def average_completion_by_student(self, student_id: int) -> float | None:
        return _average(
            p.completion_percentage
            for p in self._store.values()
            if p.student_id == student_id
        )

    def average_completion_by_course(self, course_id: int) -> float | None:
        return _average(
            p.completion_percentage
            for p in self._store.values()
            if p.course_id == course_id
        )

    def count_by_student(self, student_id: int, completed_only: bool = False) -> int:
        return sum(
            1
            for p in self._store.values()
            if p.student_id == student_id and (p.is_completed or not completed_only)
        )

    def count_by_course(self, course_id: int, completed_only: bool = False) -> int:
        return sum(
            1
            for p in self._store.values()
            if p.course_id == course_id and (p.is_completed or not completed_only)
        )

    def snapshot(self) -> tuple[dict[tuple[int, int], UserProgress], int]:
        return dict(self._store), self._next_id

    def restore(self, state: tuple[dict[tuple[int, int], UserProgress], int]) -> None:
        store, next_id = state
        self._store = dict(store)
        self._next_id = next_id
