"""Split a requested proxy count into per-request chunks."""

from __future__ import annotations


def plan(total_requested: int, per_request_cap: int, quota_remaining: int) -> list[int]:
    """Return the chunk sizes for fetching ``total_requested`` proxies.

    Chunks are ``per_request_cap`` each except possibly the last, and the
    plan is truncated so it never sums past ``quota_remaining``. The plan is
    empty when the quota is zero or nothing was requested.

    >>> plan(12, 5, 100)
    [5, 5, 2]
    >>> plan(12, 5, 7)
    [5, 2]
    """
    if per_request_cap < 1:
        raise ValueError(f"per_request_cap must be at least 1, got {per_request_cap}")

    budget = min(total_requested, quota_remaining)
    if budget <= 0:
        return []

    full, remainder = divmod(budget, per_request_cap)
    chunks = [per_request_cap] * full
    if remainder:
        chunks.append(remainder)
    return chunks
