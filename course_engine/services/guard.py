"""Ownership-based authorization for content mutations.

Every node of the content hierarchy resolves upward to exactly one Course;
the course's teacher is the only principal allowed to mutate anything under
it.  Reads of published content never pass through here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from course_engine.core.metrics import AUTHZ_DENIALS
from course_engine.models.content import ContentNode, Course
from course_engine.models.principal import Principal
from course_engine.models.user import Role, User
from course_engine.repos.store import Repos
from course_engine.services.errors import NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)

DENIED_NOT_FOUND = "not found"
DENIED_UNAUTHORIZED = "unauthorized"


class Action(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    REORDER = "reorder"


@dataclass(frozen=True, slots=True)
class Allowed:
    course: Course


@dataclass(frozen=True, slots=True)
class Denied:
    reason: str  # DENIED_NOT_FOUND | DENIED_UNAUTHORIZED


Decision = Allowed | Denied


def resolve_course(repos: Repos, node: ContentNode) -> Course | None:
    """Walk quiz -> lesson -> course. None when any link is missing."""
    kind, node_id = node.kind, node.id

    if kind == "quiz":
        quiz = repos.quizzes.get(node_id)
        if quiz is None:
            return None
        kind, node_id = "lesson", quiz.lesson_id

    if kind == "lesson":
        lesson = repos.lessons.get(node_id)
        if lesson is None:
            return None
        kind, node_id = "course", lesson.course_id

    return repos.courses.get(node_id)


def is_owner(principal: Principal, course: Course) -> bool:
    return principal.role is Role.TEACHER and principal.user_id == course.teacher_id


def authorize(
    repos: Repos, principal: Principal, node: ContentNode, action: Action
) -> Decision:
    course = resolve_course(repos, node)
    if course is None:
        return Denied(DENIED_NOT_FOUND)
    if not is_owner(principal, course):
        return Denied(DENIED_UNAUTHORIZED)
    return Allowed(course)


def require(
    repos: Repos, principal: Principal, node: ContentNode, action: Action
) -> Course:
    """Authorize or raise. Returns the anchoring course when allowed."""
    decision = authorize(repos, principal, node, action)
    if isinstance(decision, Allowed):
        return decision.course

    AUTHZ_DENIALS.labels(action=action.value, reason=decision.reason).inc()
    logger.warning(
        "Denied %s on %s=%s for user=%s: %s",
        action.value,
        node.kind,
        node.id,
        principal.user_id,
        decision.reason,
    )
    if decision.reason == DENIED_NOT_FOUND:
        raise NotFoundError(f"{node.kind} not found")
    raise UnauthorizedError(f"not allowed to {action.value} this {node.kind}")


def require_course_author(repos: Repos, principal: Principal) -> User:
    """Creating a course needs the TEACHER role and a known teacher user."""
    if not principal.has_role(Role.TEACHER):
        AUTHZ_DENIALS.labels(
            action=Action.CREATE.value, reason=DENIED_UNAUTHORIZED
        ).inc()
        logger.warning(
            "Denied course creation for non-teacher user=%s", principal.user_id
        )
        raise UnauthorizedError("only teachers can create courses")

    teacher = repos.users.get_by_id(principal.user_id)
    if teacher is None or not teacher.is_teacher:
        AUTHZ_DENIALS.labels(action=Action.CREATE.value, reason=DENIED_NOT_FOUND).inc()
        logger.warning(
            "Denied course creation: teacher=%s not found", principal.user_id
        )
        raise NotFoundError("teacher not found")
    return teacher
