"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from course_engine.db.tables import UserRow
from course_engine.models.user import Role, User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, user_id: int) -> User | None:
        row = self._session.execute(
            select(UserRow).where(UserRow.id == user_id)
        ).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    def upsert(self, user: User) -> User:
        row = self._session.get(UserRow, user.id)
        if row is None:
            row = UserRow(id=user.id)
            self._session.add(row)
        row.email = user.email
        row.name = user.name
        row.role = user.role.value
        self._session.flush()
        return user


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email or "",
        name=row.name or "",
        role=Role(row.role),
    )
