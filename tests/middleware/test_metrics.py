"""Tests for Prometheus metrics middleware.

prometheus-client counters live in a global registry and cannot be reset
between tests, so every assertion compares a before and after reading.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY


def _get_sample(name: str, labels: dict | None = None) -> float:
    """Read a metric sample's current value from the global registry."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(
    client: TestClient, student_headers: dict[str, str]
) -> None:
    labels = {"method": "GET", "endpoint": "/v1/courses", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/v1/courses", headers=student_headers)
    assert _get_sample("http_requests_total", labels) - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    """Each request should add an observation to the duration histogram."""
    before = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    client.get("/health")
    after = _get_sample(
        "http_request_duration_seconds_count",
        {"method": "GET", "endpoint": "/health"},
    )
    assert after - before >= 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """GET /metrics should return Prometheus text exposition format."""
    # Make a request first so there's data to report
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    # Prometheus text format contains HELP and TYPE lines
    assert "http_requests_total" in resp.text
    assert "http_request_duration_seconds" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    """Requests to /metrics itself should not be counted in metrics."""
    before = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    client.get("/metrics")
    client.get("/metrics")
    after = _get_sample(
        "http_requests_total",
        {"method": "GET", "endpoint": "/metrics", "status_code": "200"},
    )
    # Should not have incremented (we skip /metrics in the middleware)
    assert after == before


def test_endpoint_label_is_route_template(
    client: TestClient, teacher_headers: dict[str, str]
) -> None:
    """Ids in the path collapse into the matched route template."""
    labels = {
        "method": "GET",
        "endpoint": "/v1/courses/{course_id}",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)
    client.get("/v1/courses/987654", headers=teacher_headers)
    client.get("/v1/courses/987655", headers=teacher_headers)
    after = _get_sample("http_requests_total", labels)
    assert after - before == 2


def test_unmatched_path_uses_fixed_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/route")
    after = _get_sample("http_requests_total", labels)
    assert after - before == 1


def test_active_requests_gauge_returns_to_baseline(client: TestClient) -> None:
    before = _get_sample("http_active_requests")
    client.get("/health")
    assert _get_sample("http_active_requests") == before


def test_domain_counters_exposed(client: TestClient) -> None:
    body = client.get("/metrics").text
    for name in (
        "quiz_submissions_total",
        "lesson_progress_events_total",
        "enrollment_changes_total",
        "authorization_denials_total",
    ):
        assert f"# HELP {name.removesuffix('_total')}" in body
