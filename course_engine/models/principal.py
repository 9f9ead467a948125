from __future__ import annotations

from dataclasses import dataclass

from course_engine.models.user import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Passed explicitly into every core operation that needs to know who is
    acting; the services never read request-scoped state themselves.

        user_id: numeric subject from the token
        role: STUDENT or TEACHER
    """

    user_id: int
    role: Role
    email: str = ""
    name: str = ""

    def has_role(self, role: Role) -> bool:
        return self.role is role

    def is_teacher(self) -> bool:
        return self.role is Role.TEACHER

    def is_student(self) -> bool:
        return self.role is Role.STUDENT
