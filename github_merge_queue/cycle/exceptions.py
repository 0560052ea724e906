"""Error taxonomy for a merge queue cycle.

None of these are fatal to the process. Each one ends the current cycle, and
the next scheduled invocation acts as the retry.
"""


class MergeQueueError(Exception):
    """Base class for errors raised while processing the merge queue."""

    pass


class RepositoryClientError(MergeQueueError):
    """Raised when a GitHub API call fails for a reason the merge queue cannot act on."""

    pass


class TransientAPIError(RepositoryClientError):
    """Raised when the GitHub API is unreachable, times out, or rate limits the request."""

    pass


class PreconditionFailedError(MergeQueueError):
    """Raised when GitHub rejects a mutating call because the pull request head moved."""

    pass


class AmbiguousStateError(MergeQueueError):
    """Raised when mergeability or CI state cannot be classified."""

    pass


class TerminalPullRequestError(MergeQueueError):
    """Raised when a pull request can never merge without human intervention."""

    def __init__(self, reason: str, details: tuple[str, ...] = ()) -> None:
        """Initialize the error with a human-readable reason and optional details."""
        super().__init__(reason)
        self.reason = reason
        self.details = details
