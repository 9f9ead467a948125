"""Content hierarchy: Course -> Lesson -> Quiz.

Ids are assigned by the store; an unsaved entity carries ``id=0``.
Ownership always resolves upward to a Course, whose ``teacher_id`` is the
authorization anchor (see services/guard.py).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal


class LessonType(StrEnum):
    TEXT = "TEXT"
    VIDEO = "VIDEO"
    INTERACTIVE = "INTERACTIVE"
    DIAGRAM = "DIAGRAM"
    QUIZ = "QUIZ"


class QuizType(StrEnum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    TRUE_FALSE = "TRUE_FALSE"
    FILL_BLANK = "FILL_BLANK"
    DRAWING = "DRAWING"
    MATCHING = "MATCHING"


NodeKind = Literal["course", "lesson", "quiz"]


@dataclass(frozen=True, slots=True)
class ContentNode:
    """Reference to any node of the hierarchy, used by the guard."""

    kind: NodeKind
    id: int

    @staticmethod
    def course(course_id: int) -> ContentNode:
        return ContentNode(kind="course", id=course_id)

    @staticmethod
    def lesson(lesson_id: int) -> ContentNode:
        return ContentNode(kind="lesson", id=lesson_id)

    @staticmethod
    def quiz(quiz_id: int) -> ContentNode:
        return ContentNode(kind="quiz", id=quiz_id)


@dataclass(frozen=True, slots=True)
class Course:
    teacher_id: int
    title: str
    description: str = ""
    category: str | None = None
    difficulty: str | None = None  # free-form tag, e.g. beginner|intermediate
    estimated_duration: int | None = None  # minutes
    thumbnail_url: str | None = None
    is_published: bool = False
    created_at: int = 0
    updated_at: int = 0
    id: int = 0

    @property
    def is_publishable(self) -> bool:
        return bool(self.title.strip()) and bool(self.description.strip())


@dataclass(frozen=True, slots=True)
class Lesson:
    course_id: int
    title: str
    order: int
    content: str = ""
    type: LessonType = LessonType.TEXT
    duration_minutes: int | None = None
    video_url: str | None = None
    image_url: str | None = None
    resources: str | None = None  # serialized, opaque to the engine
    created_at: int = 0
    updated_at: int = 0
    id: int = 0


@dataclass(frozen=True, slots=True)
class Quiz:
    lesson_id: int
    title: str
    question: str
    type: QuizType
    correct_answer: str | None = None
    options: str | None = None  # serialized option set, opaque to the engine
    explanation: str | None = None
    points: int = 1
    time_limit_seconds: int | None = None
    created_at: int = 0
    updated_at: int = 0
    id: int = 0
