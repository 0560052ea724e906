"""GitHub repository client adapter for the githubkit library."""

from pathlib import Path
from typing import Any, Self

import structlog
from githubkit import Response
from githubkit.exception import RequestFailed
from githubkit.versions.latest.models import CommitComparison, PullRequest, PullRequestSimple

from github_merge_queue.configuration.models import GitHubAuthenticationType, MergeMethod
from github_merge_queue.cycle.exceptions import AmbiguousStateError, PreconditionFailedError
from github_merge_queue.cycle.models import BranchFreshness, CheckRun, CheckRunStatus, MergeableState, QueuedPR, ReviewState
from github_merge_queue.utils.constants import DEFAULT_REQUEST_TIMEOUT
from github_merge_queue.utils.github import split_repository_slug

from .abc import RepositoryClientBase
from .client import GitHubClient, get_github_client
from .errors import translate_github_errors

logger = structlog.get_logger(__name__)

PULL_REQUEST_STATE_QUERY = """
query($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    pullRequest(number: $number) {
      reviewDecision
      mergeable
    }
  }
}
"""
"""GraphQL query for the aggregate review decision and mergeability, which REST does not expose."""


class GitHubKitAdapter(RepositoryClientBase):
    """Repository client adapter for the githubkit library."""

    def __init__(self, client: GitHubClient, owner: str, repo_name: str) -> None:
        """Initialize the GitHub client adapter with an already-initialized client."""
        self.client = client
        self.owner = owner
        self.repo_name = repo_name
        self._pull_request_states: dict[int, dict[str, Any]] = {}

    @classmethod
    async def create(
        cls,
        repo: str,
        github_auth_type: GitHubAuthenticationType,
        github_pat_token: str | None = None,
        github_app_id: int | None = None,
        github_app_private_key_path: Path | None = None,
        github_app_installation_id: int | None = None,
        github_api_url: str = "https://api.github.com",
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> Self:
        """Create a new GitHub client adapter.

        Args:
            repo: Repository in 'owner/repo' format
            github_auth_type: Type of authentication (PAT or APP)
            github_pat_token: Personal access token (required for PAT auth)
            github_app_id: GitHub App ID (required for APP auth)
            github_app_private_key_path: Path to private key file (required for APP auth)
            github_app_installation_id: Installation ID (required for APP auth)
            github_api_url: GitHub API URL (defaults to https://api.github.com)
            timeout: Per-request timeout in seconds

        Returns:
            Configured GitHubKitAdapter instance
        """
        owner, repo_name = await split_repository_slug(repo)
        logger.info(
            "Creating client for GitHub instance and repository",
            github_api_url=github_api_url,
            owner=owner,
            repo_name=repo_name,
            timeout=timeout,
        )
        client = await get_github_client(
            github_auth_type=github_auth_type,
            github_pat_token=github_pat_token,
            github_app_id=github_app_id,
            github_app_private_key_path=github_app_private_key_path,
            github_app_installation_id=github_app_installation_id,
            github_api_url=github_api_url,
            timeout=timeout,
        )
        return cls(client, owner, repo_name)

    @property
    def full_name(self) -> str:
        """Repository in 'owner/repo' format."""
        return f"{self.owner}/{self.repo_name}"

    def _to_queued_pull_request(self, pull_request: PullRequestSimple) -> QueuedPR:
        """Convert a listed pull request into a queue snapshot."""
        head_repo = pull_request.head.repo
        head_full_name = getattr(head_repo, "full_name", None)
        return QueuedPR(
            number=pull_request.number,
            created_at=pull_request.created_at,
            head_ref=pull_request.head.ref,
            head_sha=pull_request.head.sha,
            is_cross_repository=head_full_name is None or head_full_name.lower() != self.full_name.lower(),
        )

    # Queue membership
    @translate_github_errors
    async def list_queued_pull_requests(self, label: str, base_branch: str, per_page: int = 100) -> list[QueuedPR]:
        """List open pull requests against base_branch that carry label, handling pagination."""
        queued: list[QueuedPR] = []
        page: int = 1
        while True:
            response: Response[list[PullRequestSimple]] = await self.client.rest.pulls.async_list(
                owner=self.owner,
                repo=self.repo_name,
                state="open",
                base=base_branch,
                sort="created",
                direction="asc",
                per_page=per_page,
                page=page,
            )
            pull_requests: list[PullRequestSimple] = response.parsed_data
            if not pull_requests:
                break
            for pull_request in pull_requests:
                if any(pr_label.name == label for pr_label in pull_request.labels):
                    queued.append(self._to_queued_pull_request(pull_request))
            if len(pull_requests) < per_page:
                break
            page += 1
        logger.debug("Listed queued pull requests", label=label, base_branch=base_branch, count=len(queued))
        return queued

    # Pull request state
    async def _get_pull_request_state(self, pull_number: int) -> dict[str, Any]:
        """Fetch the review decision and mergeability of a pull request via GraphQL.

        Both values come back from one query. The result is kept so the
        mergeability read that follows a review read reuses it.
        """
        data: dict[str, Any] = await self.client.async_graphql(
            PULL_REQUEST_STATE_QUERY,
            variables={"owner": self.owner, "name": self.repo_name, "number": pull_number},
        )
        pull_request = (data.get("repository") or {}).get("pullRequest")
        if not pull_request:
            raise AmbiguousStateError(f"GitHub returned no state for pull request #{pull_number}")
        self._pull_request_states[pull_number] = pull_request
        return pull_request

    @translate_github_errors
    async def get_review_decision(self, pull_number: int) -> ReviewState:
        """Get the aggregate review decision for a pull request.

        A missing decision (no review required) is not treated as approval.
        Always queries GitHub.
        """
        state = await self._get_pull_request_state(pull_number)
        decision = state.get("reviewDecision")
        logger.debug("Fetched review decision", pull_number=pull_number, review_decision=decision)
        return ReviewState.APPROVED if decision == "APPROVED" else ReviewState.NOT_APPROVED

    @translate_github_errors
    async def get_mergeable_state(self, pull_number: int) -> MergeableState:
        """Get whether a pull request can be merged without conflicts.

        Consumes the state fetched by the preceding get_review_decision call
        for the same pull request, if there is one.
        """
        state = self._pull_request_states.pop(pull_number, None)
        if state is None:
            state = await self._get_pull_request_state(pull_number)
            self._pull_request_states.pop(pull_number, None)
        mergeable = state.get("mergeable")
        logger.debug("Fetched mergeable state", pull_number=pull_number, mergeable=mergeable)
        if mergeable == "MERGEABLE":
            return MergeableState.MERGEABLE
        if mergeable == "CONFLICTING":
            return MergeableState.CONFLICTING
        return MergeableState.UNKNOWN

    @translate_github_errors
    async def get_head(self, pull_number: int) -> tuple[str, str]:
        """Get the head branch name and head commit SHA of a pull request."""
        response: Response[PullRequest] = await self.client.rest.pulls.async_get(owner=self.owner, repo=self.repo_name, pull_number=pull_number)
        pull_request = response.parsed_data
        return pull_request.head.ref, pull_request.head.sha

    # Branches
    @translate_github_errors
    async def compare_branches(self, base: str, head: str) -> BranchFreshness:
        """Compare head against base and report how many base commits head is missing."""
        response: Response[CommitComparison] = await self.client.rest.repos.async_compare_commits(
            owner=self.owner,
            repo=self.repo_name,
            basehead=f"{base}...{head}",
        )
        comparison = response.parsed_data
        logger.debug("Compared branches", base=base, head=head, behind_by=comparison.behind_by, status=comparison.status)
        return BranchFreshness(behind_by=comparison.behind_by)

    @translate_github_errors
    async def update_branch(self, pull_number: int, expected_head_sha: str) -> None:
        """Merge the base branch into the pull request head, guarded by expected_head_sha."""
        try:
            await self.client.rest.pulls.async_update_branch(
                owner=self.owner,
                repo=self.repo_name,
                pull_number=pull_number,
                expected_head_sha=expected_head_sha,
            )
        except RequestFailed as exc:
            if exc.response.status_code == 422:
                raise PreconditionFailedError(f"GitHub rejected the branch update for pull request #{pull_number}: {exc}") from exc
            raise
        logger.info("Requested branch update", pull_number=pull_number, expected_head_sha=expected_head_sha)

    @translate_github_errors
    async def delete_branch(self, ref: str) -> None:
        """Delete a branch, ignoring branches that are already gone."""
        try:
            await self.client.rest.git.async_delete_ref(owner=self.owner, repo=self.repo_name, ref=f"heads/{ref}")
        except RequestFailed as exc:
            if exc.response.status_code in (404, 422):
                logger.info("Branch already deleted", branch=ref)
                return
            raise
        logger.info("Deleted branch", branch=ref)

    # Checks
    @translate_github_errors
    async def list_checks(self, ref: str, exclude_name_prefix: str | None = None, per_page: int = 100) -> list[CheckRun]:
        """List check runs and commit statuses reported on ref."""
        checks: list[CheckRun] = []
        page: int = 1
        while True:
            response = await self.client.rest.checks.async_list_for_ref(
                owner=self.owner,
                repo=self.repo_name,
                ref=ref,
                per_page=per_page,
                page=page,
            )
            check_runs = response.parsed_data.check_runs
            for check_run in check_runs:
                # Completed runs carry their result in the conclusion; others only have a status.
                raw_state = check_run.conclusion if check_run.status == "completed" else check_run.status
                checks.append(CheckRun(name=check_run.name, status=CheckRunStatus.from_github(raw_state)))
            if len(check_runs) < per_page:
                break
            page += 1

        page = 1
        while True:
            status_response = await self.client.rest.repos.async_get_combined_status_for_ref(
                owner=self.owner,
                repo=self.repo_name,
                ref=ref,
                per_page=per_page,
                page=page,
            )
            statuses = status_response.parsed_data.statuses
            for status in statuses:
                checks.append(CheckRun(name=status.context, status=CheckRunStatus.from_github(status.state)))
            if len(statuses) < per_page:
                break
            page += 1

        if exclude_name_prefix:
            excluded = [check.name for check in checks if check.name.startswith(exclude_name_prefix)]
            if excluded:
                logger.debug("Excluding merge queue checks", ref=ref, excluded=excluded)
            checks = [check for check in checks if not check.name.startswith(exclude_name_prefix)]
        return checks

    # Mutations
    @translate_github_errors
    async def merge_pull_request(self, pull_number: int, method: MergeMethod, expected_head_sha: str | None = None) -> None:
        """Merge a pull request, refusing if the head moved away from expected_head_sha."""
        params: dict[str, Any] = {"merge_method": method.value}
        if expected_head_sha is not None:
            params["sha"] = expected_head_sha
        try:
            await self.client.rest.pulls.async_merge(owner=self.owner, repo=self.repo_name, pull_number=pull_number, **params)
        except RequestFailed as exc:
            # 405: not mergeable right now, 409: head moved since it was read.
            if exc.response.status_code in (405, 409):
                raise PreconditionFailedError(f"GitHub refused to merge pull request #{pull_number}: {exc}") from exc
            raise
        logger.info("Merged pull request", pull_number=pull_number, merge_method=method.value)

    @translate_github_errors
    async def remove_label(self, pull_number: int, label: str) -> None:
        """Remove a label from a pull request, ignoring labels that are already gone."""
        try:
            await self.client.rest.issues.async_remove_label(owner=self.owner, repo=self.repo_name, issue_number=pull_number, name=label)
        except RequestFailed as exc:
            if exc.response.status_code == 404:
                logger.info("Label already removed", pull_number=pull_number, label=label)
                return
            raise
        logger.info("Removed label", pull_number=pull_number, label=label)

    @translate_github_errors
    async def post_comment(self, pull_number: int, body: str) -> None:
        """Post a comment on a pull request."""
        await self.client.rest.issues.async_create_comment(owner=self.owner, repo=self.repo_name, issue_number=pull_number, body=body)
        logger.info("Posted comment", pull_number=pull_number)
