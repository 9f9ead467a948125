from __future__ import annotations


class DuplicateKeyError(ValueError):
    """A uniqueness constraint of the store was violated."""
