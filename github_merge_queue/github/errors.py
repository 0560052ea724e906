"""Translate githubkit failures into the merge queue error taxonomy.

The merge queue never retries a request in-process. Rate limits, timeouts,
network failures and GitHub server errors all become ``TransientAPIError`` so
the cycle can end and the next scheduled invocation picks the work back up.
"""

import functools
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from githubkit.exception import (
    GraphQLFailed,
    PrimaryRateLimitExceeded,
    RequestError,
    RequestFailed,
    RequestTimeout,
    SecondaryRateLimitExceeded,
)

from github_merge_queue.cycle.exceptions import RepositoryClientError, TransientAPIError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
"""HTTP status codes that indicate GitHub may succeed if asked again later."""


def is_transient_response(exc: RequestFailed) -> bool:
    """Whether a failed GitHub response is worth retrying on a later cycle."""
    status_code = exc.response.status_code
    if status_code in TRANSIENT_STATUS_CODES:
        return True
    return status_code == 403 and "rate limit" in str(exc).lower()


def translate_github_errors(func: F) -> F:
    """Decorator mapping githubkit exceptions onto TransientAPIError or RepositoryClientError."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except (PrimaryRateLimitExceeded, SecondaryRateLimitExceeded) as exc:
            logger.warning(
                "GitHub rate limit exceeded",
                function=func.__name__,
                rate_limit_type="primary" if isinstance(exc, PrimaryRateLimitExceeded) else "secondary",
                retry_after=str(exc.retry_after),
            )
            raise TransientAPIError(f"GitHub rate limit exceeded in {func.__name__}") from exc
        except RequestFailed as exc:
            status_code = exc.response.status_code
            if is_transient_response(exc):
                logger.warning("Transient GitHub API failure", function=func.__name__, status_code=status_code, error=str(exc))
                raise TransientAPIError(f"GitHub returned {status_code} in {func.__name__}") from exc
            logger.error("GitHub API request failed", function=func.__name__, status_code=status_code, error=str(exc))
            raise RepositoryClientError(f"GitHub returned {status_code} in {func.__name__}: {exc}") from exc
        except RequestTimeout as exc:
            logger.warning("GitHub API request timed out", function=func.__name__)
            raise TransientAPIError(f"GitHub request timed out in {func.__name__}") from exc
        except RequestError as exc:
            logger.warning("GitHub API request could not be sent", function=func.__name__, error=str(exc))
            raise TransientAPIError(f"GitHub request failed in {func.__name__}: {exc}") from exc
        except GraphQLFailed as exc:
            logger.error("GitHub GraphQL query failed", function=func.__name__, error=str(exc))
            raise RepositoryClientError(f"GitHub GraphQL query failed in {func.__name__}: {exc}") from exc

    return wrapper  # type: ignore
