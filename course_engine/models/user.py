from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"


@dataclass(frozen=True, slots=True)
class User:
    """Local mirror of an identity-provider account.

    The id comes from the identity provider (JWT ``sub``), not from the store.
    """

    id: int
    email: str
    role: Role
    name: str = ""

    @property
    def is_teacher(self) -> bool:
        return self.role is Role.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role is Role.STUDENT
