"""Prometheus metrics for course-engine.

One inventory of everything the service measures.  HTTP metrics are
recorded by MetricsMiddleware; the domain counters are incremented by the
services at the point where the event happens.  Scraped from /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# --- HTTP ---

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# --- Domain ---

QUIZ_SUBMISSIONS = Counter(
    "quiz_submissions_total",
    "Graded quiz submissions by quiz type and verdict",
    ["quiz_type", "verdict"],  # verdict: correct|incorrect
)

DUPLICATE_SUBMISSIONS = Counter(
    "quiz_duplicate_submissions_total",
    "Quiz submissions rejected because a result already existed",
)

LESSON_PROGRESS_EVENTS = Counter(
    "lesson_progress_events_total",
    "Lesson progress writes by whether the lesson was marked completed",
    ["completed"],  # "true" or "false"
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Progress records that transitioned into the completed state",
)

ENROLLMENT_CHANGES = Counter(
    "enrollment_changes_total",
    "Enrollment lifecycle transitions",
    ["change"],  # enrolled|unenrolled|reset
)

AUTHZ_DENIALS = Counter(
    "authorization_denials_total",
    "Content mutations denied by the ownership guard",
    ["action", "reason"],
)
