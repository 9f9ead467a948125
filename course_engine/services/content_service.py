"""Authoring and browsing of the content hierarchy.

Mutations go through the ownership guard.  Reads follow one visibility rule:
a published course (and everything under it) is visible to anyone, an
unpublished one only to its owner; invisible content reads as not found.

Updates take a ``changes`` mapping of field name to new value, typically a
pydantic ``model_dump(exclude_unset=True)``; fields left out stay as they are.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from course_engine.models.content import (
    ContentNode,
    Course,
    Lesson,
    LessonType,
    Quiz,
    QuizType,
)
from course_engine.models.principal import Principal
from course_engine.repos.store import Repos, Store
from course_engine.services import clock, guard
from course_engine.services.errors import ContentValidationError, NotFoundError
from course_engine.services.guard import Action

logger = logging.getLogger(__name__)

COURSE_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "difficulty",
        "estimated_duration",
        "thumbnail_url",
        "is_published",
    }
)
LESSON_FIELDS = frozenset(
    {
        "title",
        "content",
        "type",
        "order",
        "duration_minutes",
        "video_url",
        "image_url",
        "resources",
    }
)
QUIZ_FIELDS = frozenset(
    {
        "title",
        "question",
        "type",
        "correct_answer",
        "options",
        "explanation",
        "points",
        "time_limit_seconds",
    }
)

# Fields that may be changed but never cleared
COURSE_REQUIRED = frozenset({"title", "description", "is_published"})
LESSON_REQUIRED = frozenset({"title", "content", "type", "order"})
QUIZ_REQUIRED = frozenset({"title", "question", "type", "points"})


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _checked_changes(
    changes: Mapping[str, Any],
    allowed: frozenset[str],
    required: frozenset[str],
    entity: str,
) -> dict[str, Any]:
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ContentValidationError(
            f"unknown {entity} fields: {', '.join(unknown)}"
        )
    nulled = sorted(k for k in required if k in changes and changes[k] is None)
    if nulled:
        raise ContentValidationError(
            f"{entity} fields cannot be null: {', '.join(nulled)}"
        )
    return dict(changes)


def _check_course(course: Course) -> Course:
    if not course.title.strip():
        raise ContentValidationError("course title must be non-blank")
    if course.is_published and not course.is_publishable:
        raise ContentValidationError(
            "a published course needs a non-blank title and description"
        )
    return course


def _check_lesson(lesson: Lesson) -> Lesson:
    if not lesson.title.strip():
        raise ContentValidationError("lesson title must be non-blank")
    try:
        return replace(lesson, type=LessonType(lesson.type))
    except ValueError:
        raise ContentValidationError(f"unknown lesson type {lesson.type!r}") from None


def _check_quiz(quiz: Quiz) -> Quiz:
    if not quiz.title.strip() or not quiz.question.strip():
        raise ContentValidationError("quiz title and question must be non-blank")
    if quiz.points < 0:
        raise ContentValidationError("quiz points must be >= 0")
    try:
        return replace(quiz, type=QuizType(quiz.type))
    except ValueError:
        raise ContentValidationError(f"unknown quiz type {quiz.type!r}") from None


def _visible_course(
    repos: Repos, course_id: int, principal: Principal | None
) -> Course:
    course = repos.courses.get(course_id)
    if course is None:
        raise NotFoundError("course not found")
    if course.is_published:
        return course
    if principal is not None and guard.is_owner(principal, course):
        return course
    raise NotFoundError("course not found")


def _lesson_ids(repos: Repos, course_id: int) -> list[int]:
    return [lesson.id for lesson in repos.lessons.list_by_course(course_id)]


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


def create_course(
    store: Store,
    principal: Principal,
    *,
    title: str,
    description: str = "",
    category: str | None = None,
    difficulty: str | None = None,
    estimated_duration: int | None = None,
    thumbnail_url: str | None = None,
    is_published: bool = False,
) -> Course:
    now = clock.utc_now()
    with store.transaction() as repos:
        teacher = guard.require_course_author(repos, principal)
        course = _check_course(
            Course(
                teacher_id=teacher.id,
                title=title,
                description=description,
                category=category,
                difficulty=difficulty,
                estimated_duration=estimated_duration,
                thumbnail_url=thumbnail_url,
                is_published=is_published,
                created_at=now,
                updated_at=now,
            )
        )
        course = repos.courses.add(course)
    logger.info("Created course=%d teacher=%d", course.id, course.teacher_id)
    return course


def update_course(
    store: Store, principal: Principal, course_id: int, changes: Mapping[str, Any]
) -> Course:
    fields = _checked_changes(changes, COURSE_FIELDS, COURSE_REQUIRED, "course")
    with store.transaction() as repos:
        course = guard.require(
            repos, principal, ContentNode.course(course_id), Action.UPDATE
        )
        course = _check_course(replace(course, **fields, updated_at=clock.utc_now()))
        course = repos.courses.update(course)
    logger.info("Updated course=%d fields=%s", course_id, sorted(fields))
    return course


def delete_course(store: Store, principal: Principal, course_id: int) -> None:
    """Delete a course with its lessons, quizzes, results and progress."""
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.course(course_id), Action.DELETE)
        lesson_ids = _lesson_ids(repos, course_id)
        quizzes = repos.quizzes.list_by_lessons(lesson_ids)

        results = repos.results.delete_by_course(course_id)
        progress = repos.progress.delete_by_course(course_id)
        for quiz in quizzes:
            repos.quizzes.delete(quiz.id)
        for lesson_id in lesson_ids:
            repos.lessons.delete(lesson_id)
        repos.courses.delete(course_id)

    logger.info(
        "Deleted course=%d lessons=%d quizzes=%d results=%d progress=%d",
        course_id,
        len(lesson_ids),
        len(quizzes),
        results,
        progress,
    )


def _set_published(
    store: Store, principal: Principal, course_id: int, published: bool
) -> Course:
    action = Action.PUBLISH if published else Action.UNPUBLISH
    with store.transaction() as repos:
        course = guard.require(repos, principal, ContentNode.course(course_id), action)
        course = _check_course(
            replace(course, is_published=published, updated_at=clock.utc_now())
        )
        course = repos.courses.update(course)
    logger.info("Course=%d %sed", course_id, action.value)
    return course


def publish_course(store: Store, principal: Principal, course_id: int) -> Course:
    return _set_published(store, principal, course_id, True)


def unpublish_course(store: Store, principal: Principal, course_id: int) -> Course:
    return _set_published(store, principal, course_id, False)


def get_course(
    store: Store, course_id: int, principal: Principal | None = None
) -> Course:
    with store.transaction() as repos:
        return _visible_course(repos, course_id, principal)


def list_published_courses(
    store: Store,
    *,
    search: str | None = None,
    category: str | None = None,
    difficulty: str | None = None,
) -> list[Course]:
    with store.transaction() as repos:
        if search or category or difficulty:
            return repos.courses.filter_published(
                search=search, category=category, difficulty=difficulty
            )
        return repos.courses.list_published()


def list_teacher_courses(store: Store, principal: Principal) -> list[Course]:
    with store.transaction() as repos:
        return repos.courses.list_by_teacher(principal.user_id)


def list_categories(store: Store) -> list[str]:
    with store.transaction() as repos:
        return repos.courses.distinct_categories()


def list_difficulties(store: Store) -> list[str]:
    with store.transaction() as repos:
        return repos.courses.distinct_difficulties()


def count_published_courses(store: Store) -> int:
    with store.transaction() as repos:
        return repos.courses.count_published()


def count_teacher_courses(store: Store, teacher_id: int) -> int:
    with store.transaction() as repos:
        return repos.courses.count_by_teacher(teacher_id)


# ---------------------------------------------------------------------------
# Lessons
# ---------------------------------------------------------------------------


def create_lesson(
    store: Store,
    principal: Principal,
    course_id: int,
    *,
    title: str,
    content: str = "",
    type: LessonType | str = LessonType.TEXT,
    order: int | None = None,
    duration_minutes: int | None = None,
    video_url: str | None = None,
    image_url: str | None = None,
    resources: str | None = None,
) -> Lesson:
    """Append a lesson to a course.

    Without an explicit ``order`` the lesson goes last: one past the current
    maximum, or 1 for the first lesson of the course.
    """
    now = clock.utc_now()
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.course(course_id), Action.CREATE)
        if order is None:
            current_max = repos.lessons.max_order(course_id)
            order = current_max + 1 if current_max is not None else 1
        lesson = _check_lesson(
            Lesson(
                course_id=course_id,
                title=title,
                order=order,
                content=content,
                type=type,
                duration_minutes=duration_minutes,
                video_url=video_url,
                image_url=image_url,
                resources=resources,
                created_at=now,
                updated_at=now,
            )
        )
        lesson = repos.lessons.add(lesson)
    logger.info("Created lesson=%d course=%d order=%d", lesson.id, course_id, order)
    return lesson


def update_lesson(
    store: Store, principal: Principal, lesson_id: int, changes: Mapping[str, Any]
) -> Lesson:
    fields = _checked_changes(changes, LESSON_FIELDS, LESSON_REQUIRED, "lesson")
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.lesson(lesson_id), Action.UPDATE)
        lesson = repos.lessons.get(lesson_id)
        lesson = _check_lesson(replace(lesson, **fields, updated_at=clock.utc_now()))
        lesson = repos.lessons.update(lesson)
    logger.info("Updated lesson=%d fields=%s", lesson_id, sorted(fields))
    return lesson


def reorder_lesson(
    store: Store, principal: Principal, lesson_id: int, new_order: int
) -> Lesson:
    """Move a lesson to ``new_order``. Other lessons keep their positions."""
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.lesson(lesson_id), Action.REORDER)
        lesson = repos.lessons.get(lesson_id)
        lesson = repos.lessons.update(
            replace(lesson, order=new_order, updated_at=clock.utc_now())
        )
    logger.info("Reordered lesson=%d to order=%d", lesson_id, new_order)
    return lesson


def delete_lesson(store: Store, principal: Principal, lesson_id: int) -> None:
    """Delete a lesson with its quizzes and their results."""
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.lesson(lesson_id), Action.DELETE)
        quiz_ids = [q.id for q in repos.quizzes.list_by_lesson(lesson_id)]
        results = repos.results.delete_by_quizzes(quiz_ids)
        for quiz_id in quiz_ids:
            repos.quizzes.delete(quiz_id)
        repos.lessons.delete(lesson_id)
    logger.info(
        "Deleted lesson=%d quizzes=%d results=%d", lesson_id, len(quiz_ids), results
    )


def get_lesson(
    store: Store, lesson_id: int, principal: Principal | None = None
) -> Lesson:
    with store.transaction() as repos:
        lesson = repos.lessons.get(lesson_id)
        if lesson is None:
            raise NotFoundError("lesson not found")
        _visible_course(repos, lesson.course_id, principal)
        return lesson


def list_lessons(
    store: Store,
    course_id: int,
    principal: Principal | None = None,
    *,
    search: str | None = None,
    type: LessonType | None = None,
) -> list[Lesson]:
    """Lessons of a course in position order, optionally narrowed."""
    with store.transaction() as repos:
        _visible_course(repos, course_id, principal)
        if search:
            lessons = repos.lessons.search_in_course(course_id, search)
            if type is not None:
                lessons = [lesson for lesson in lessons if lesson.type == type]
            return lessons
        if type is not None:
            return repos.lessons.list_by_type(type, course_id=course_id)
        return repos.lessons.list_by_course(course_id)


def lesson_at(
    store: Store, course_id: int, order: int, principal: Principal | None = None
) -> Lesson:
    with store.transaction() as repos:
        _visible_course(repos, course_id, principal)
        lesson = repos.lessons.get_by_order(course_id, order)
        if lesson is None:
            raise NotFoundError("lesson not found")
        return lesson


def _neighbour(
    store: Store, lesson_id: int, principal: Principal | None, forward: bool
) -> Lesson | None:
    with store.transaction() as repos:
        lesson = repos.lessons.get(lesson_id)
        if lesson is None:
            raise NotFoundError("lesson not found")
        _visible_course(repos, lesson.course_id, principal)
        if forward:
            candidates = repos.lessons.list_after(lesson.course_id, lesson.order)
        else:
            candidates = repos.lessons.list_before(lesson.course_id, lesson.order)
        return candidates[0] if candidates else None


def next_lesson(
    store: Store, lesson_id: int, principal: Principal | None = None
) -> Lesson | None:
    return _neighbour(store, lesson_id, principal, forward=True)


def previous_lesson(
    store: Store, lesson_id: int, principal: Principal | None = None
) -> Lesson | None:
    return _neighbour(store, lesson_id, principal, forward=False)


def count_lessons(store: Store, course_id: int) -> int:
    with store.transaction() as repos:
        return repos.lessons.count_by_course(course_id)


# ---------------------------------------------------------------------------
# Quizzes
# ---------------------------------------------------------------------------


def create_quiz(
    store: Store,
    principal: Principal,
    lesson_id: int,
    *,
    title: str,
    question: str,
    type: QuizType | str,
    correct_answer: str | None = None,
    options: str | None = None,
    explanation: str | None = None,
    points: int = 1,
    time_limit_seconds: int | None = None,
) -> Quiz:
    now = clock.utc_now()
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.lesson(lesson_id), Action.CREATE)
        quiz = _check_quiz(
            Quiz(
                lesson_id=lesson_id,
                title=title,
                question=question,
                type=type,
                correct_answer=correct_answer,
                options=options,
                explanation=explanation,
                points=points,
                time_limit_seconds=time_limit_seconds,
                created_at=now,
                updated_at=now,
            )
        )
        quiz = repos.quizzes.add(quiz)
    logger.info("Created quiz=%d lesson=%d type=%s", quiz.id, lesson_id, quiz.type)
    return quiz


def update_quiz(
    store: Store, principal: Principal, quiz_id: int, changes: Mapping[str, Any]
) -> Quiz:
    fields = _checked_changes(changes, QUIZ_FIELDS, QUIZ_REQUIRED, "quiz")
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.quiz(quiz_id), Action.UPDATE)
        quiz = repos.quizzes.get(quiz_id)
        quiz = _check_quiz(replace(quiz, **fields, updated_at=clock.utc_now()))
        quiz = repos.quizzes.update(quiz)
    logger.info("Updated quiz=%d fields=%s", quiz_id, sorted(fields))
    return quiz


def delete_quiz(store: Store, principal: Principal, quiz_id: int) -> None:
    with store.transaction() as repos:
        guard.require(repos, principal, ContentNode.quiz(quiz_id), Action.DELETE)
        results = repos.results.delete_by_quizzes([quiz_id])
        repos.quizzes.delete(quiz_id)
    logger.info("Deleted quiz=%d results=%d", quiz_id, results)


def _quiz_course(
    repos: Repos, quiz_id: int, principal: Principal | None
) -> Course:
    course = guard.resolve_course(repos, ContentNode.quiz(quiz_id))
    if course is None:
        raise NotFoundError("quiz not found")
    return _visible_course(repos, course.id, principal)


def quiz_course(
    store: Store, quiz_id: int, principal: Principal | None = None
) -> Course:
    """The visible course a quiz belongs to."""
    with store.transaction() as repos:
        return _quiz_course(repos, quiz_id, principal)


def get_quiz(store: Store, quiz_id: int, principal: Principal | None = None) -> Quiz:
    with store.transaction() as repos:
        _quiz_course(repos, quiz_id, principal)
        return repos.quizzes.get(quiz_id)


def list_quizzes_by_lesson(
    store: Store, lesson_id: int, principal: Principal | None = None
) -> list[Quiz]:
    with store.transaction() as repos:
        lesson = repos.lessons.get(lesson_id)
        if lesson is None:
            raise NotFoundError("lesson not found")
        _visible_course(repos, lesson.course_id, principal)
        return repos.quizzes.list_by_lesson(lesson_id)


def list_quizzes_by_course(
    store: Store,
    course_id: int,
    principal: Principal | None = None,
    *,
    search: str | None = None,
    type: QuizType | None = None,
) -> list[Quiz]:
    with store.transaction() as repos:
        _visible_course(repos, course_id, principal)
        lesson_ids = _lesson_ids(repos, course_id)
        if search:
            quizzes = repos.quizzes.search(lesson_ids, search)
            if type is not None:
                quizzes = [q for q in quizzes if q.type == type]
            return quizzes
        if type is not None:
            return repos.quizzes.list_by_type(type, lesson_ids=lesson_ids)
        return repos.quizzes.list_by_lessons(lesson_ids)


def count_quizzes(store: Store, lesson_id: int) -> int:
    with store.transaction() as repos:
        return repos.quizzes.count_by_lesson(lesson_id)
