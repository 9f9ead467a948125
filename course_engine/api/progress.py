"""Enrollment, lesson progress and progress reporting endpoints.

Students act on their own progress records only; the student id always
comes from the bearer token.  Course-level views are for the owning teacher.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from course_engine.api.dependencies import (
    CurrentStudent,
    CurrentTeacher,
    StoreDep,
    http_error,
)
from course_engine.core.config import SETTINGS
from course_engine.models.principal import Principal
from course_engine.models.progress import UserProgress
from course_engine.repos.store import Store
from course_engine.services import content_service, guard, progress_tracker, reporting
from course_engine.services.errors import CourseEngineError

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class LessonProgressIn(BaseModel):
    course_id: int
    lesson_id: int
    minutes_spent: int | None = Field(default=None, ge=0)
    completed: bool | None = None


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    course_id: int
    total_lessons: int
    lessons_completed: int
    quiz_score: float
    total_time_spent: int
    completion_percentage: float
    is_completed: bool
    last_accessed_lesson_id: int | None
    started_at: int
    completed_at: int | None
    last_updated: int


class StudentStatsOut(BaseModel):
    enrolled_courses: int
    completed_courses: int
    in_progress_courses: int
    average_completion: float


class CourseStatsOut(BaseModel):
    course_id: int
    enrolled_students: int
    completed_students: int
    in_progress_students: int
    average_completion: float


def _out(records: list[UserProgress]) -> list[ProgressOut]:
    return [ProgressOut.model_validate(p) for p in records]


def _require_owned_course(store: Store, principal: Principal, course_id: int) -> None:
    course = content_service.get_course(store, course_id, principal)
    if not guard.is_owner(principal, course):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="not the owner of this course",
        )


# --- Enrollment lifecycle ---


@router.post(
    "/enroll/{course_id}",
    response_model=ProgressOut,
    status_code=status.HTTP_201_CREATED,
)
def enroll(course_id: int, principal: CurrentStudent, store: StoreDep) -> ProgressOut:
    try:
        content_service.get_course(store, course_id, principal)
        progress = progress_tracker.enroll(store, principal.user_id, course_id)
    except CourseEngineError as e:
        http_error(e)
    return ProgressOut.model_validate(progress)


@router.delete("/enroll/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def unenroll(course_id: int, principal: CurrentStudent, store: StoreDep) -> None:
    progress_tracker.unenroll(store, principal.user_id, course_id)


@router.post("/lesson", response_model=ProgressOut)
def record_lesson(
    body: LessonProgressIn, principal: CurrentStudent, store: StoreDep
) -> ProgressOut:
    try:
        lesson = content_service.get_lesson(store, body.lesson_id, principal)
        if lesson.course_id != body.course_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="lesson not found in this course",
            )
        progress = progress_tracker.record_lesson_progress(
            store,
            student_id=principal.user_id,
            course_id=body.course_id,
            lesson_id=body.lesson_id,
            minutes_spent=body.minutes_spent,
            completed=body.completed,
        )
    except CourseEngineError as e:
        http_error(e)
    return ProgressOut.model_validate(progress)


@router.put("/reset/{course_id}", response_model=ProgressOut)
def reset(course_id: int, principal: CurrentStudent, store: StoreDep) -> ProgressOut:
    try:
        progress = progress_tracker.reset(store, principal.user_id, course_id)
    except CourseEngineError as e:
        http_error(e)
    return ProgressOut.model_validate(progress)


@router.put("/refresh/{course_id}", response_model=ProgressOut)
def refresh(course_id: int, principal: CurrentStudent, store: StoreDep) -> ProgressOut:
    """Pick up lessons added to the course since enrollment."""
    try:
        progress = progress_tracker.refresh_total_lessons(
            store, principal.user_id, course_id
        )
    except CourseEngineError as e:
        http_error(e)
    return ProgressOut.model_validate(progress)


# --- Student views ---


@router.get("/my", response_model=list[ProgressOut])
def my_progress(principal: CurrentStudent, store: StoreDep) -> list[ProgressOut]:
    return _out(progress_tracker.list_by_student(store, principal.user_id))


@router.get("/my/course/{course_id}", response_model=ProgressOut)
def my_course_progress(
    course_id: int, principal: CurrentStudent, store: StoreDep
) -> ProgressOut:
    try:
        progress = progress_tracker.get_progress(store, principal.user_id, course_id)
    except CourseEngineError as e:
        http_error(e)
    return ProgressOut.model_validate(progress)


@router.get("/my/completed", response_model=list[ProgressOut])
def my_completed(principal: CurrentStudent, store: StoreDep) -> list[ProgressOut]:
    return _out(progress_tracker.list_completed(store, principal.user_id))


@router.get("/my/in-progress", response_model=list[ProgressOut])
def my_in_progress(principal: CurrentStudent, store: StoreDep) -> list[ProgressOut]:
    return _out(progress_tracker.list_in_progress(store, principal.user_id))


@router.get("/my/stats", response_model=StudentStatsOut)
def my_stats(principal: CurrentStudent, store: StoreDep) -> StudentStatsOut:
    stats = reporting.student_stats(store, principal.user_id)
    return StudentStatsOut(
        enrolled_courses=stats.enrolled_courses,
        completed_courses=stats.completed_courses,
        in_progress_courses=stats.in_progress_courses,
        average_completion=stats.average_completion or 0.0,
    )


# --- Teacher views ---


@router.get("/course/{course_id}", response_model=list[ProgressOut])
def course_progress(
    course_id: int, principal: CurrentTeacher, store: StoreDep
) -> list[ProgressOut]:
    try:
        _require_owned_course(store, principal, course_id)
    except CourseEngineError as e:
        http_error(e)
    return _out(progress_tracker.list_by_course(store, course_id))


@router.get("/course/{course_id}/stats", response_model=CourseStatsOut)
def course_stats(
    course_id: int, principal: CurrentTeacher, store: StoreDep
) -> CourseStatsOut:
    try:
        _require_owned_course(store, principal, course_id)
        stats = reporting.course_stats(store, course_id)
    except CourseEngineError as e:
        http_error(e)
    return CourseStatsOut(
        course_id=course_id,
        enrolled_students=stats.enrolled_students,
        completed_students=stats.completed_students,
        in_progress_students=stats.in_progress_students,
        average_completion=stats.average_completion or 0.0,
    )


@router.get("/high-performers", response_model=list[ProgressOut])
def high_performers(
    _principal: CurrentTeacher,
    store: StoreDep,
    min_percentage: Annotated[float | None, Query(ge=0.0)] = None,
) -> list[ProgressOut]:
    if min_percentage is None:
        min_percentage = SETTINGS.high_performer_threshold
    return _out(reporting.high_performers(store, min_percentage))
