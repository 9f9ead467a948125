from __future__ import annotations

import datetime


def utc_now() -> int:
    """Current time as integer epoch seconds (UTC)."""
    return int(datetime.datetime.now(datetime.UTC).timestamp())
