"""Unit-of-work boundary over all repositories.

Every mutating service operation runs inside ``store.transaction()``: the
repos handed out share one atomic scope, so a failure midway leaves nothing
behind.

- InMemoryStore: one re-entrant lock serializes transactions; each repo is
  snapshotted on entry and restored if the block raises.
- SqlStore: one SQLAlchemy session per transaction, committed on success and
  rolled back on error.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import ContextManager, Protocol

from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from course_engine.core.config import Settings
from course_engine.repos.content_repo import (
    CourseRepo,
    InMemoryCourseRepo,
    InMemoryLessonRepo,
    InMemoryQuizRepo,
    LessonRepo,
    QuizRepo,
)
from course_engine.repos.pg_content_repo import (
    PgCourseRepo,
    PgLessonRepo,
    PgQuizRepo,
)
from course_engine.repos.pg_progress_repo import PgProgressRepo
from course_engine.repos.pg_quiz_result_repo import PgQuizResultRepo
from course_engine.repos.pg_user_repo import PgUserRepo
from course_engine.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from course_engine.repos.quiz_result_repo import (
    InMemoryQuizResultRepo,
    QuizResultRepo,
)
from course_engine.repos.user_repo import InMemoryUserRepo, UserRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Repos:
    users: UserRepo
    courses: CourseRepo
    lessons: LessonRepo
    quizzes: QuizRepo
    results: QuizResultRepo
    progress: ProgressRepo


class Store(Protocol):
    def transaction(self) -> ContextManager[Repos]: ...
    def ping(self) -> None: ...


def _fresh_repos() -> Repos:
    return Repos(
        users=InMemoryUserRepo(),
        courses=InMemoryCourseRepo(),
        lessons=InMemoryLessonRepo(),
        quizzes=InMemoryQuizRepo(),
        results=InMemoryQuizResultRepo(),
        progress=InMemoryProgressRepo(),
    )


class InMemoryStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._repos = _fresh_repos()

    def _all(self) -> tuple:
        r = self._repos
        return (r.users, r.courses, r.lessons, r.quizzes, r.results, r.progress)

    @contextmanager
    def transaction(self) -> Iterator[Repos]:
        with self._lock:
            if self._depth:
                # Nested block joins the outer transaction
                self._depth += 1
                try:
                    yield self._repos
                finally:
                    self._depth -= 1
                return

            snapshots = [repo.snapshot() for repo in self._all()]
            self._depth = 1
            try:
                yield self._repos
            except BaseException:
                for repo, state in zip(self._all(), snapshots):
                    repo.restore(state)
                logger.debug("In-memory transaction rolled back")
                raise
            finally:
                self._depth = 0

    def ping(self) -> None:
        return None

    def clear(self) -> None:
        """Drop all data. Test helper."""
        with self._lock:
            self._repos = _fresh_repos()


class SqlStore:
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def transaction(self) -> Iterator[Repos]:
        with self._session_factory() as session:
            with session.begin():
                yield Repos(
                    users=PgUserRepo(session),
                    courses=PgCourseRepo(session),
                    lessons=PgLessonRepo(session),
                    quizzes=PgQuizRepo(session),
                    results=PgQuizResultRepo(session),
                    progress=PgProgressRepo(session),
                )

    def ping(self) -> None:
        with self._session_factory() as session:
            session.execute(text("SELECT 1"))


def build_store(settings: Settings) -> Store:
    """Pick the backing store from configuration."""
    if settings.database_url:
        from course_engine.db import engine as db_engine

        if db_engine.session_factory is None:
            raise RuntimeError("DATABASE_URL is set but no engine was created")
        logger.info("Using SQL store")
        return SqlStore(db_engine.session_factory)

    logger.info("Using in-memory store")
    return InMemoryStore()
