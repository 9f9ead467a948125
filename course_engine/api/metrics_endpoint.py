"""Prometheus scrape endpoint.

Serves the text exposition format for everything registered in
core/metrics.py: HTTP traffic plus the grading, progress and authorization
counters.  Restrict access at the ingress in production.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
