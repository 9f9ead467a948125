from __future__ import annotations

import logging

import pytest

from course_engine.core.logging import _ContainerFormatter, setup_logging


def _record(level: int, filename: str, lineno: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="course_engine.services.guard",
        level=level,
        pathname=f"course_engine/services/{filename}",
        lineno=lineno,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.mark.parametrize(
    "name,expected",
    [
        ("debug", logging.DEBUG),
        ("warning", logging.WARNING),
        ("nonexistent", logging.INFO),
    ],
)
def test_setup_logging_sets_root_level(name: str, expected: int) -> None:
    setup_logging(name)
    assert logging.getLogger().level == expected


@pytest.mark.parametrize("noisy", ["uvicorn", "uvicorn.access", "sqlalchemy.engine"])
def test_setup_logging_quiets_third_party_below_warning(noisy: str) -> None:
    setup_logging("debug")
    assert logging.getLogger(noisy).level == logging.WARNING


def test_setup_logging_allows_uvicorn_at_error() -> None:
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_logging_installs_single_stdout_handler() -> None:
    setup_logging("info")
    setup_logging("info")
    assert len(logging.getLogger().handlers) == 1


def test_formatter_omits_location_below_warning() -> None:
    output = _ContainerFormatter().format(
        _record(logging.INFO, "grading.py", 60, "Graded quiz=3 correct=True")
    )
    assert "Graded quiz=3 correct=True" in output
    assert "[grading.py:" not in output


@pytest.mark.parametrize("level", [logging.WARNING, logging.ERROR])
def test_formatter_adds_location_from_warning_up(level: int) -> None:
    output = _ContainerFormatter().format(
        _record(level, "guard.py", 97, "Denied update on quiz 4: unauthorized")
    )
    assert "Denied update on quiz 4: unauthorized" in output
    assert "[guard.py:97]" in output
