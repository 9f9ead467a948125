from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from course_engine.api.courses import router as courses_router
from course_engine.api.health import router as health_router
from course_engine.api.lessons import router as lessons_router
from course_engine.api.metrics_endpoint import router as metrics_router
from course_engine.api.progress import router as progress_router
from course_engine.api.quizzes import router as quizzes_router
from course_engine.core.config import SETTINGS
from course_engine.core.logging import setup_logging
from course_engine.db.engine import lifespan_db
from course_engine.middleware.metrics import MetricsMiddleware
from course_engine.middleware.request_context import (
    RequestContextMiddleware,
    install_log_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_log_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    with lifespan_db():
        yield


app = FastAPI(
    title="course-engine",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last added runs first: RequestContext -> Metrics -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(lessons_router)
app.include_router(quizzes_router)
app.include_router(progress_router)

logger.info(
    "course-engine started  env=%s log_level=%s port=%d store=%s exact_completion=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "sql" if SETTINGS.database_url else "memory",
    SETTINGS.exact_lesson_completion,
)
