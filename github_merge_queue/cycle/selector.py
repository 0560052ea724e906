"""Selects the next pull request to process from the queue."""

from collections.abc import Iterable

import structlog

from github_merge_queue.cycle.models import QueuedPR

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


def queue_sort_key(pull_request: QueuedPR) -> tuple:
    """Order by creation time, breaking ties by ascending pull request number."""
    return (pull_request.created_at, pull_request.number)


def order_queue(pull_requests: Iterable[QueuedPR]) -> list[QueuedPR]:
    """Return queued pull requests in the order they will be processed (FIFO)."""
    return sorted(pull_requests, key=queue_sort_key)


def select_next_pull_request(pull_requests: Iterable[QueuedPR]) -> QueuedPR | None:
    """Pick the oldest queued pull request, or None when the queue is empty.

    Only one pull request is ever in flight, so two queued pull requests never
    invalidate each other's freshness by being updated in the same window.
    """
    ordered = order_queue(pull_requests)
    if not ordered:
        logger.info("Merge queue is empty")
        return None
    candidate = ordered[0]
    logger.info("Selected pull request from merge queue", pull_number=candidate.number, queue_length=len(ordered))
    return candidate
