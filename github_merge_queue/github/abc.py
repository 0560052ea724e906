"""Base ABC for repository clients used by the merge queue."""

from abc import ABC, abstractmethod

from github_merge_queue.configuration.models import MergeMethod
from github_merge_queue.cycle.models import BranchFreshness, CheckRun, MergeableState, QueuedPR, ReviewState


class RepositoryClientBase(ABC):
    """Pull request, branch and check operations the merge queue needs from its host."""

    # Queue membership
    @abstractmethod
    async def list_queued_pull_requests(self, label: str, base_branch: str) -> list[QueuedPR]:
        """List open pull requests carrying the label and targeting the base branch."""
        pass

    # Pull request state
    @abstractmethod
    async def get_review_decision(self, pull_number: int) -> ReviewState:
        """Get the aggregate review decision for a pull request."""
        pass

    @abstractmethod
    async def get_mergeable_state(self, pull_number: int) -> MergeableState:
        """Get whether a pull request can be merged without conflicts."""
        pass

    @abstractmethod
    async def get_head(self, pull_number: int) -> tuple[str, str]:
        """Get the head branch name and head commit SHA of a pull request."""
        pass

    # Branches
    @abstractmethod
    async def compare_branches(self, base: str, head: str) -> BranchFreshness:
        """Compare a head ref against a base ref and report how far behind it is."""
        pass

    @abstractmethod
    async def update_branch(self, pull_number: int, expected_head_sha: str) -> None:
        """Merge the base branch into the pull request head if the head is still expected_head_sha."""
        pass

    @abstractmethod
    async def delete_branch(self, ref: str) -> None:
        """Delete a branch. Deleting a branch that no longer exists is not an error."""
        pass

    # Checks
    @abstractmethod
    async def list_checks(self, ref: str, exclude_name_prefix: str | None = None) -> list[CheckRun]:
        """List checks reported on a commit, omitting those whose name starts with exclude_name_prefix."""
        pass

    # Mutations
    @abstractmethod
    async def merge_pull_request(self, pull_number: int, method: MergeMethod, expected_head_sha: str | None = None) -> None:
        """Merge a pull request using the given merge method."""
        pass

    @abstractmethod
    async def remove_label(self, pull_number: int, label: str) -> None:
        """Remove a label from a pull request. Removing an absent label is not an error."""
        pass

    @abstractmethod
    async def post_comment(self, pull_number: int, body: str) -> None:
        """Post a comment on a pull request."""
        pass
