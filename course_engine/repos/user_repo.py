from __future__ import annotations

from typing import Protocol

from course_engine.models.user import User


class UserRepo(Protocol):
    def get_by_id(self, user_id: int) -> User | None: ...
    def upsert(self, user: User) -> User: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[int, User] = {}

    def get_by_id(self, user_id: int) -> User | None:
        return self._by_id.get(user_id)

    def upsert(self, user: User) -> User:
        # Identity-provider ids are authoritative; last write wins
        self._by_id[user.id] = user
        return user

    def snapshot(self) -> dict[int, User]:
        return dict(self._by_id)

    def restore(self, state: dict[int, User]) -> None:
        self._by_id = dict(state)
