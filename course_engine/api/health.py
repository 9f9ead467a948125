"""Health and readiness endpoints.

  /health (liveness): the process can answer.  Always 200; the body says
  whether the store is reachable ("ok") or not ("degraded").

  /ready (readiness): the store answers a trivial query.  503 otherwise, so
  the load balancer stops routing here without restarting the container.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status
from sqlalchemy.exc import SQLAlchemyError

from course_engine.api.dependencies import StoreDep
from course_engine.repos.store import SqlStore, Store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _store_check(store: Store) -> str:
    try:
        store.ping()
    except SQLAlchemyError as e:
        logger.warning("Store ping failed: %s", e)
        return "degraded"
    return "ok"


@router.get("/health")
def health(store: StoreDep) -> dict:
    check = _store_check(store)
    return {
        "status": check,
        "checks": {
            "store": check,
            "backend": "sql" if isinstance(store, SqlStore) else "memory",
        },
    }


@router.get("/ready")
def ready(store: StoreDep) -> Response:
    if _store_check(store) != "ok":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
