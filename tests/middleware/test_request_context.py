"""Tests for the request context middleware.

Verifies that every response gets:
- An X-Request-ID header (generated or echoed from the request)
- Request timing logged
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from course_engine.middleware.request_context import (
    _RequestContextFilter,
    request_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    """When no X-Request-ID header is sent, one is generated."""
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    # Should be a valid UUID
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    """When the client sends X-Request-ID, the same value is echoed back."""
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401, 404) get an X-Request-ID header."""
    resp = client.get("/v1/courses")  # no bearer token: 401
    assert resp.headers.get("x-request-id") is not None
    assert resp.status_code == 401


def test_request_is_logged_with_context(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="course_engine.middleware"):
        client.get("/health", headers={"X-Request-ID": "trace-42"})

    name = "course_engine.middleware.request_context"
    records = [r for r in caplog.records if r.name == name]
    assert records
    record = records[-1]
    assert record.request_id == "trace-42"  # type: ignore[attr-defined]
    assert record.status_code == 200  # type: ignore[attr-defined]
    assert record.path == "/health"  # type: ignore[attr-defined]
    assert "GET /health -> 200" in record.getMessage()


def test_log_filter_copies_current_request_id() -> None:
    record = logging.LogRecord("svc", logging.INFO, "svc.py", 1, "hi", (), None)
    token = request_id_var.set("req-7")
    try:
        _RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "req-7"  # type: ignore[attr-defined]


def test_log_filter_keeps_explicit_request_id() -> None:
    record = logging.LogRecord("svc", logging.INFO, "svc.py", 1, "hi", (), None)
    record.request_id = "explicit"  # type: ignore[attr-defined]
    _RequestContextFilter().filter(record)
    assert record.request_id == "explicit"  # type: ignore[attr-defined]


def test_log_filter_outside_request_uses_placeholder() -> None:
    record = logging.LogRecord("svc", logging.INFO, "svc.py", 1, "hi", (), None)
    _RequestContextFilter().filter(record)
    assert record.request_id == "-"  # type: ignore[attr-defined]
