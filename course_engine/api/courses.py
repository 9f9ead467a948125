"""Course catalogue and authoring endpoints.

Reads are open to any authenticated user; an unpublished course is only
visible to the teacher who owns it.  Mutations are owner-only and go through
the ownership guard in the service layer.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, ConfigDict, Field

from course_engine.api.dependencies import (
    CurrentTeacher,
    CurrentUser,
    StoreDep,
    http_error,
)
from course_engine.api.lessons import LessonIn, LessonOut
from course_engine.api.quizzes import QuizOut, quiz_out
from course_engine.models.content import Course, LessonType, QuizType
from course_engine.services import content_service, guard
from course_engine.services.errors import CourseEngineError

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CourseIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = ""
    category: str | None = None
    difficulty: str | None = None
    estimated_duration: int | None = Field(default=None, ge=0)
    thumbnail_url: str | None = None
    is_published: bool = False


class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    estimated_duration: int | None = Field(default=None, ge=0)
    thumbnail_url: str | None = None
    is_published: bool | None = None


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    teacher_id: int
    title: str
    description: str
    category: str | None
    difficulty: str | None
    estimated_duration: int | None
    thumbnail_url: str | None
    is_published: bool
    created_at: int
    updated_at: int


def course_out(course: Course) -> CourseOut:
    return CourseOut.model_validate(course)


@router.get("", response_model=list[CourseOut])
def list_courses(
    _principal: CurrentUser,
    store: StoreDep,
    q: Annotated[str | None, Query(max_length=200)] = None,
    category: str | None = None,
    difficulty: str | None = None,
) -> list[CourseOut]:
    courses = content_service.list_published_courses(
        store, search=q, category=category, difficulty=difficulty
    )
    return [course_out(c) for c in courses]


@router.get("/categories", response_model=list[str])
def list_categories(_principal: CurrentUser, store: StoreDep) -> list[str]:
    return content_service.list_categories(store)


@router.get("/difficulties", response_model=list[str])
def list_difficulties(_principal: CurrentUser, store: StoreDep) -> list[str]:
    return content_service.list_difficulties(store)


@router.get("/mine", response_model=list[CourseOut])
def list_my_courses(principal: CurrentTeacher, store: StoreDep) -> list[CourseOut]:
    courses = content_service.list_teacher_courses(store, principal)
    return [course_out(c) for c in courses]


@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: int, principal: CurrentUser, store: StoreDep) -> CourseOut:
    try:
        return course_out(content_service.get_course(store, course_id, principal))
    except CourseEngineError as e:
        http_error(e)


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(
    body: CourseIn, principal: CurrentTeacher, store: StoreDep
) -> CourseOut:
    try:
        course = content_service.create_course(store, principal, **body.model_dump())
    except CourseEngineError as e:
        http_error(e)
    return course_out(course)


@router.put("/{course_id}", response_model=CourseOut)
def update_course(
    course_id: int, body: CourseUpdate, principal: CurrentUser, store: StoreDep
) -> CourseOut:
    try:
        course = content_service.update_course(
            store, principal, course_id, body.model_dump(exclude_unset=True)
        )
    except CourseEngineError as e:
        http_error(e)
    return course_out(course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(course_id: int, principal: CurrentUser, store: StoreDep) -> None:
    try:
        content_service.delete_course(store, principal, course_id)
    except CourseEngineError as e:
        http_error(e)


@router.post("/{course_id}/publish", response_model=CourseOut)
def publish_course(
    course_id: int, principal: CurrentUser, store: StoreDep
) -> CourseOut:
    try:
        return course_out(content_service.publish_course(store, principal, course_id))
    except CourseEngineError as e:
        http_error(e)


@router.post("/{course_id}/unpublish", response_model=CourseOut)
def unpublish_course(
    course_id: int, principal: CurrentUser, store: StoreDep
) -> CourseOut:
    try:
        course = content_service.unpublish_course(store, principal, course_id)
        return course_out(course)
    except CourseEngineError as e:
        http_error(e)


# --- Lessons and quizzes scoped to a course ---


@router.get("/{course_id}/lessons", response_model=list[LessonOut])
def list_course_lessons(
    course_id: int,
    principal: CurrentUser,
    store: StoreDep,
    q: Annotated[str | None, Query(max_length=200)] = None,
    type: LessonType | None = None,
) -> list[LessonOut]:
    try:
        lessons = content_service.list_lessons(
            store, course_id, principal, search=q, type=type
        )
    except CourseEngineError as e:
        http_error(e)
    return [LessonOut.model_validate(lesson) for lesson in lessons]


@router.get("/{course_id}/lessons/at/{order}", response_model=LessonOut)
def lesson_at_position(
    course_id: int, order: int, principal: CurrentUser, store: StoreDep
) -> LessonOut:
    try:
        lesson = content_service.lesson_at(store, course_id, order, principal)
    except CourseEngineError as e:
        http_error(e)
    return LessonOut.model_validate(lesson)


@router.post(
    "/{course_id}/lessons",
    response_model=LessonOut,
    status_code=status.HTTP_201_CREATED,
)
def create_lesson(
    course_id: int, body: LessonIn, principal: CurrentUser, store: StoreDep
) -> LessonOut:
    try:
        lesson = content_service.create_lesson(
            store, principal, course_id, **body.model_dump()
        )
    except CourseEngineError as e:
        http_error(e)
    return LessonOut.model_validate(lesson)


@router.get("/{course_id}/quizzes", response_model=list[QuizOut])
def list_course_quizzes(
    course_id: int,
    principal: CurrentUser,
    store: StoreDep,
    q: Annotated[str | None, Query(max_length=200)] = None,
    type: QuizType | None = None,
) -> list[QuizOut]:
    try:
        course = content_service.get_course(store, course_id, principal)
        quizzes = content_service.list_quizzes_by_course(
            store, course_id, principal, search=q, type=type
        )
    except CourseEngineError as e:
        http_error(e)
    reveal = guard.is_owner(principal, course)
    return [quiz_out(quiz, reveal_answer=reveal) for quiz in quizzes]
