"""Utility modules for shared functionality."""

from .constants import (
    DEFAULT_BASE_BRANCH,
    DEFAULT_CHECK_EXCLUDE_PREFIX,
    DEFAULT_QUEUE_LABEL,
    DEFAULT_REQUEST_TIMEOUT,
)

__all__ = [
    "DEFAULT_BASE_BRANCH",
    "DEFAULT_CHECK_EXCLUDE_PREFIX",
    "DEFAULT_QUEUE_LABEL",
    "DEFAULT_REQUEST_TIMEOUT",
]
