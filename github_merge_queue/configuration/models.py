"""Models for configuration between CLI arguments and environment variables."""

from dataclasses import dataclass
from enum import Enum

from github_merge_queue.utils.constants import (
    DEFAULT_BASE_BRANCH,
    DEFAULT_CHECK_EXCLUDE_PREFIX,
    DEFAULT_QUEUE_LABEL,
    DEFAULT_REQUEST_TIMEOUT,
)


class GitHubAuthenticationType(str, Enum):
    """Enum for GitHub authentication types."""

    PAT = "pat"
    APP = "app"


class MergeMethod(str, Enum):
    """Merge methods accepted by the GitHub merge endpoint."""

    SQUASH = "squash"
    MERGE = "merge"
    REBASE = "rebase"


@dataclass(frozen=True)
class MergeQueueConfig:
    """Configuration for a single merge queue cycle."""

    repo: str
    base_branch: str = DEFAULT_BASE_BRANCH
    label: str = DEFAULT_QUEUE_LABEL
    merge_method: MergeMethod = MergeMethod.SQUASH
    check_exclude_prefix: str = DEFAULT_CHECK_EXCLUDE_PREFIX
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    delete_branch_after_merge: bool = True
    dry_run: bool = False
