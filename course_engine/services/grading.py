"""Quiz grading and single-attempt submission."""

from __future__ import annotations

import logging

from course_engine.core.metrics import DUPLICATE_SUBMISSIONS, QUIZ_SUBMISSIONS
from course_engine.models.assessment import QuizResult
from course_engine.models.content import ContentNode, Quiz, QuizType
from course_engine.repos.errors import DuplicateKeyError
from course_engine.repos.store import Store
from course_engine.services import clock, guard
from course_engine.services.errors import AlreadySubmittedError, NotFoundError

logger = logging.getLogger(__name__)

# Compared after trimming and case folding
_LENIENT_TYPES = frozenset(
    {QuizType.MULTIPLE_CHOICE, QuizType.TRUE_FALSE, QuizType.FILL_BLANK}
)


def evaluate_answer(quiz: Quiz, answer: str | None) -> bool:
    """Pure verdict for one answer.

    Choice, true/false and fill-in answers match ignoring surrounding
    whitespace and case.  Drawing and matching answers must match exactly.
    A quiz without an answer key, or a missing answer, is never correct.
    """
    expected = quiz.correct_answer
    if expected is None or answer is None:
        return False
    if quiz.type in _LENIENT_TYPES:
        return expected.strip().casefold() == answer.strip().casefold()
    return expected == answer


def submit(
    store: Store,
    *,
    quiz_id: int,
    student_id: int,
    answer: str | None,
    time_taken_seconds: int | None = None,
) -> QuizResult:
    """Grade and persist a student's only attempt at a quiz.

    Raises NotFoundError when the quiz or student does not resolve and
    AlreadySubmittedError when a result for (student, quiz) exists.
    """
    with store.transaction() as repos:
        quiz = repos.quizzes.get(quiz_id)
        course = guard.resolve_course(repos, ContentNode.quiz(quiz_id))
        if quiz is None or course is None:
            raise NotFoundError("quiz not found")
        if repos.users.get_by_id(student_id) is None:
            raise NotFoundError("student not found")

        if repos.results.get_by_student_and_quiz(student_id, quiz_id) is not None:
            DUPLICATE_SUBMISSIONS.inc()
            logger.warning(
                "Duplicate submission rejected: student=%d quiz=%d", student_id, quiz_id
            )
            raise AlreadySubmittedError("quiz already submitted")

        is_correct = evaluate_answer(quiz, answer)
        result = QuizResult(
            student_id=student_id,
            quiz_id=quiz_id,
            course_id=course.id,
            user_answer=answer,
            is_correct=is_correct,
            points_earned=quiz.points if is_correct else 0,
            time_taken_seconds=time_taken_seconds,
            submitted_at=clock.utc_now(),
        )
        try:
            result = repos.results.add(result)
        except DuplicateKeyError:
            # Lost a race against a concurrent submission
            DUPLICATE_SUBMISSIONS.inc()
            raise AlreadySubmittedError("quiz already submitted") from None

    verdict = "correct" if is_correct else "incorrect"
    QUIZ_SUBMISSIONS.labels(quiz_type=quiz.type.value, verdict=verdict).inc()
    logger.info(
        "Graded quiz=%d student=%d verdict=%s points=%d",
        quiz_id,
        student_id,
        verdict,
        result.points_earned,
        extra={"quiz_id": quiz_id, "student_id": student_id, "course_id": course.id},
    )
    return result


def get_result(store: Store, student_id: int, quiz_id: int) -> QuizResult:
    with store.transaction() as repos:
        result = repos.results.get_by_student_and_quiz(student_id, quiz_id)
    if result is None:
        raise NotFoundError("no result for this quiz")
    return result


def list_student_results(
    store: Store, student_id: int, course_id: int | None = None
) -> list[QuizResult]:
    """A student's results, newest first, optionally within one course."""
    with store.transaction() as repos:
        if course_id is None:
            return repos.results.list_by_student(student_id)
        return repos.results.list_by_student_and_course(student_id, course_id)


def list_course_results(store: Store, course_id: int) -> list[QuizResult]:
    with store.transaction() as repos:
        if repos.courses.get(course_id) is None:
            raise NotFoundError("course not found")
        return repos.results.list_by_course(course_id)


def list_quiz_results(store: Store, quiz_id: int) -> list[QuizResult]:
    with store.transaction() as repos:
        if repos.quizzes.get(quiz_id) is None:
            raise NotFoundError("quiz not found")
        return repos.results.list_by_quiz(quiz_id)
