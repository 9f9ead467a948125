"""Quiz authoring, submission and result endpoints.

The answer key (``correct_answer`` and ``explanation``) is only returned to
the teacher who owns the quiz; everyone else gets the question alone.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from course_engine.api.dependencies import (
    CurrentStudent,
    CurrentTeacher,
    CurrentUser,
    StoreDep,
    http_error,
)
from course_engine.models.assessment import QuizResult
from course_engine.models.content import Quiz, QuizType
from course_engine.services import content_service, grading, guard, reporting
from course_engine.services.errors import CourseEngineError

router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


class QuizIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    question: str = Field(min_length=1)
    type: QuizType
    correct_answer: str | None = None
    options: str | None = None
    explanation: str | None = None
    points: int = Field(default=1, ge=0)
    time_limit_seconds: int | None = Field(default=None, ge=0)


class QuizUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    question: str | None = Field(default=None, min_length=1)
    type: QuizType | None = None
    correct_answer: str | None = None
    options: str | None = None
    explanation: str | None = None
    points: int | None = Field(default=None, ge=0)
    time_limit_seconds: int | None = Field(default=None, ge=0)


class QuizOut(BaseModel):
    id: int
    lesson_id: int
    title: str
    question: str
    type: QuizType
    options: str | None
    points: int
    time_limit_seconds: int | None
    correct_answer: str | None = None
    explanation: str | None = None


class SubmissionIn(BaseModel):
    quiz_id: int
    answer: str | None = None
    time_taken_seconds: int | None = Field(default=None, ge=0)


class QuizResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    quiz_id: int
    course_id: int
    user_answer: str | None
    is_correct: bool
    points_earned: int
    time_taken_seconds: int | None
    submitted_at: int


class QuizStatsOut(BaseModel):
    course_id: int
    total_answers: int
    correct_answers: int
    accuracy: float
    average_score: float  # 0.0 when there are no answers yet


def quiz_out(quiz: Quiz, *, reveal_answer: bool) -> QuizOut:
    out = QuizOut(
        id=quiz.id,
        lesson_id=quiz.lesson_id,
        title=quiz.title,
        question=quiz.question,
        type=quiz.type,
        options=quiz.options,
        points=quiz.points,
        time_limit_seconds=quiz.time_limit_seconds,
    )
    if reveal_answer:
        out.correct_answer = quiz.correct_answer
        out.explanation = quiz.explanation
    return out


def _results_out(results: list[QuizResult]) -> list[QuizResultOut]:
    return [QuizResultOut.model_validate(r) for r in results]


# --- Submission and results ---


@router.post(
    "/submit", response_model=QuizResultOut, status_code=status.HTTP_201_CREATED
)
def submit_quiz(
    body: SubmissionIn, principal: CurrentStudent, store: StoreDep
) -> QuizResultOut:
    try:
        content_service.get_quiz(store, body.quiz_id, principal)
        result = grading.submit(
            store,
            quiz_id=body.quiz_id,
            student_id=principal.user_id,
            answer=body.answer,
            time_taken_seconds=body.time_taken_seconds,
        )
    except CourseEngineError as e:
        http_error(e)
    return QuizResultOut.model_validate(result)


@router.get("/results/my", response_model=list[QuizResultOut])
def my_results(principal: CurrentStudent, store: StoreDep) -> list[QuizResultOut]:
    return _results_out(grading.list_student_results(store, principal.user_id))


@router.get("/results/my/course/{course_id}", response_model=list[QuizResultOut])
def my_course_results(
    course_id: int, principal: CurrentStudent, store: StoreDep
) -> list[QuizResultOut]:
    results = grading.list_student_results(store, principal.user_id, course_id)
    return _results_out(results)


@router.get("/results/{quiz_id}/my", response_model=QuizResultOut)
def my_quiz_result(
    quiz_id: int, principal: CurrentStudent, store: StoreDep
) -> QuizResultOut:
    try:
        result = grading.get_result(store, principal.user_id, quiz_id)
    except CourseEngineError as e:
        http_error(e)
    return QuizResultOut.model_validate(result)


@router.get("/stats/my/course/{course_id}", response_model=QuizStatsOut)
def my_course_stats(
    course_id: int, principal: CurrentStudent, store: StoreDep
) -> QuizStatsOut:
    stats = reporting.quiz_stats(store, principal.user_id, course_id)
    return QuizStatsOut(
        course_id=course_id,
        total_answers=stats.total_answers,
        correct_answers=stats.correct_answers,
        accuracy=stats.accuracy,
        average_score=stats.average_score or 0.0,
    )


@router.get("/results/course/{course_id}", response_model=list[QuizResultOut])
def course_results(
    course_id: int, principal: CurrentTeacher, store: StoreDep
) -> list[QuizResultOut]:
    try:
        course = content_service.get_course(store, course_id, principal)
        if not guard.is_owner(principal, course):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="not the owner of this course",
            )
        results = grading.list_course_results(store, course_id)
    except CourseEngineError as e:
        http_error(e)
    return _results_out(results)


# --- Single quiz ---


@router.get("/{quiz_id}", response_model=QuizOut)
def get_quiz(quiz_id: int, principal: CurrentUser, store: StoreDep) -> QuizOut:
    try:
        quiz = content_service.get_quiz(store, quiz_id, principal)
        course = content_service.quiz_course(store, quiz_id, principal)
    except CourseEngineError as e:
        http_error(e)
    return quiz_out(quiz, reveal_answer=guard.is_owner(principal, course))


@router.put("/{quiz_id}", response_model=QuizOut)
def update_quiz(
    quiz_id: int, body: QuizUpdate, principal: CurrentUser, store: StoreDep
) -> QuizOut:
    try:
        quiz = content_service.update_quiz(
            store, principal, quiz_id, body.model_dump(exclude_unset=True)
        )
    except CourseEngineError as e:
        http_error(e)
    return quiz_out(quiz, reveal_answer=True)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_quiz(quiz_id: int, principal: CurrentUser, store: StoreDep) -> None:
    try:
        content_service.delete_quiz(store, principal, quiz_id)
    except CourseEngineError as e:
        http_error(e)
