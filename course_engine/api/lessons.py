"""Lesson navigation and authoring endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from course_engine.api.dependencies import CurrentUser, StoreDep, http_error
from course_engine.api.quizzes import QuizIn, QuizOut, quiz_out
from course_engine.models.content import LessonType
from course_engine.services import content_service, guard
from course_engine.services.errors import CourseEngineError

router = APIRouter(prefix="/v1/lessons", tags=["lessons"])


class LessonIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    content: str = ""
    type: LessonType = LessonType.TEXT
    order: int | None = None  # appended after the last lesson when omitted
    duration_minutes: int | None = Field(default=None, ge=0)
    video_url: str | None = None
    image_url: str | None = None
    resources: str | None = None


class LessonUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    content: str | None = None
    type: LessonType | None = None
    order: int | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    video_url: str | None = None
    image_url: str | None = None
    resources: str | None = None


class ReorderIn(BaseModel):
    order: int


class LessonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    content: str
    type: LessonType
    order: int
    duration_minutes: int | None
    video_url: str | None
    image_url: str | None
    resources: str | None
    created_at: int
    updated_at: int


@router.get("/{lesson_id}", response_model=LessonOut)
def get_lesson(lesson_id: int, principal: CurrentUser, store: StoreDep) -> LessonOut:
    try:
        lesson = content_service.get_lesson(store, lesson_id, principal)
    except CourseEngineError as e:
        http_error(e)
    return LessonOut.model_validate(lesson)


@router.get("/{lesson_id}/next", response_model=LessonOut | None)
def next_lesson(
    lesson_id: int, principal: CurrentUser, store: StoreDep
) -> LessonOut | None:
    try:
        lesson = content_service.next_lesson(store, lesson_id, principal)
    except CourseEngineError as e:
        http_error(e)
    return LessonOut.model_validate(lesson) if lesson is not None else None


@router.get("/{lesson_id}/previous", response_model=LessonOut | None)
def previous_lesson(
    lesson_id: int, principal: CurrentUser, store: StoreDep
) -> LessonOut | None:
    try:
        lesson = content_service.previous_lesson(store, lesson_id, principal)
    except CourseEngineError as e:
        http_error(e)
    return LessonOut.model_validate(lesson) if lesson is not None else None


@router.put("/{lesson_id}", response_model=LessonOut)
def update_lesson(
    lesson_id: int, body: LessonUpdate, principal: CurrentUser, store: StoreDep
) -> LessonOut:
    try:
        lesson = content_service.update_lesson(
            store, principal, lesson_id, body.model_dump(exclude_unset=True)
        )
    except CourseEngineError as e:
        http_error(e)
    return LessonOut.model_validate(lesson)


@router.post("/{lesson_id}/reorder", response_model=LessonOut)
def reorder_lesson(
    lesson_id: int, body: ReorderIn, principal: CurrentUser, store: StoreDep
) -> LessonOut:
    try:
        lesson = content_service.reorder_lesson(
            store, principal, lesson_id, body.order
        )
    except CourseEngineError as e:
        http_error(e)
    return LessonOut.model_validate(lesson)


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_lesson(lesson_id: int, principal: CurrentUser, store: StoreDep) -> None:
    try:
        content_service.delete_lesson(store, principal, lesson_id)
    except CourseEngineError as e:
        http_error(e)


# --- Quizzes under a lesson ---


@router.get("/{lesson_id}/quizzes", response_model=list[QuizOut])
def list_lesson_quizzes(
    lesson_id: int, principal: CurrentUser, store: StoreDep
) -> list[QuizOut]:
    try:
        lesson = content_service.get_lesson(store, lesson_id, principal)
        course = content_service.get_course(store, lesson.course_id, principal)
        quizzes = content_service.list_quizzes_by_lesson(store, lesson_id, principal)
    except CourseEngineError as e:
        http_error(e)
    reveal = guard.is_owner(principal, course)
    return [quiz_out(quiz, reveal_answer=reveal) for quiz in quizzes]


@router.post(
    "/{lesson_id}/quizzes",
    response_model=QuizOut,
    status_code=status.HTTP_201_CREATED,
)
def create_quiz(
    lesson_id: int, body: QuizIn, principal: CurrentUser, store: StoreDep
) -> QuizOut:
    try:
        quiz = content_service.create_quiz(
            store, principal, lesson_id, **body.model_dump()
        )
    except CourseEngineError as e:
        http_error(e)
    return quiz_out(quiz, reveal_answer=True)
