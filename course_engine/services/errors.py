"""Error kinds raised by the core services.

The transport layer maps ``kind`` to a response; the core only carries the
kind and a short message.
"""

from __future__ import annotations


class CourseEngineError(Exception):
    kind = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.replace("_", " "))
        self.message = message or self.kind.replace("_", " ")


class NotFoundError(CourseEngineError):
    """A referenced course, lesson, quiz, student or record does not resolve."""

    kind = "not_found"


class UnauthorizedError(CourseEngineError):
    """The principal fails the ownership check."""

    kind = "unauthorized"


class AlreadySubmittedError(CourseEngineError):
    """A result already exists for this (student, quiz)."""

    kind = "already_submitted"


class InvalidStateError(CourseEngineError):
    """The operation needs a prior state that is absent."""

    kind = "invalid_state"


class ProgressNotFoundError(InvalidStateError, NotFoundError):
    """No progress record for (student, course).

    Both an InvalidState (the operation needs an enrollment) and a NotFound
    (the record does not resolve); callers may catch either.
    """

    kind = "invalid_state"


class ContentValidationError(CourseEngineError, ValueError):
    """Content fields violate an invariant, e.g. publishing without a title."""

    kind = "invalid"
