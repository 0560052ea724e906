"""Gate pipeline deciding the single outcome for a queued pull request.

Gates run in a fixed order: approval, conflicts, freshness, CI. The cheap
pull request reads gate the more expensive compare and checks calls, and a
branch that is behind its base never has its CI results trusted for a merge.
"""

from collections.abc import Iterable

import structlog

from github_merge_queue.configuration.models import MergeQueueConfig
from github_merge_queue.cycle.exceptions import AmbiguousStateError, TerminalPullRequestError
from github_merge_queue.cycle.models import (
    BranchFreshness,
    CheckRun,
    CheckRunStatus,
    CheckState,
    MergeableState,
    Outcome,
    QueuedPR,
    ReviewState,
)
from github_merge_queue.github.abc import RepositoryClientBase
from github_merge_queue.utils.constants import CI_FAILED_REASON, MERGE_CONFLICTS_REASON, NOT_APPROVED_REASON

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

FAILING_CHECK_STATUSES = frozenset(
    {
        CheckRunStatus.FAILURE,
        CheckRunStatus.CANCELLED,
        CheckRunStatus.TIMED_OUT,
        CheckRunStatus.ACTION_REQUIRED,
        CheckRunStatus.ERROR,
        CheckRunStatus.STARTUP_FAILURE,
    }
)
PENDING_CHECK_STATUSES = frozenset(
    {
        CheckRunStatus.QUEUED,
        CheckRunStatus.IN_PROGRESS,
        CheckRunStatus.PENDING,
        CheckRunStatus.WAITING,
        CheckRunStatus.REQUESTED,
        CheckRunStatus.EXPECTED,
    }
)
PASSING_CHECK_STATUSES = frozenset({CheckRunStatus.SUCCESS, CheckRunStatus.SKIPPED, CheckRunStatus.NEUTRAL})


def check_approval(review_state: ReviewState) -> Outcome | None:
    """Skip pull requests that are not approved; approval can come back, so they stay queued."""
    if review_state is not ReviewState.APPROVED:
        return Outcome.skip(NOT_APPROVED_REASON)
    return None


def check_mergeability(mergeable_state: MergeableState) -> None:
    """Fail on conflicts, and wait while GitHub is still computing mergeability."""
    if mergeable_state is MergeableState.CONFLICTING:
        raise TerminalPullRequestError(MERGE_CONFLICTS_REASON)
    if mergeable_state is not MergeableState.MERGEABLE:
        raise AmbiguousStateError("mergeability has not been computed yet")


def check_freshness(freshness: BranchFreshness) -> Outcome | None:
    """Ask for a branch update when the head is behind the base branch."""
    if not freshness.is_up_to_date:
        return Outcome.update_branch()
    return None


def is_excluded_check(check: CheckRun, exclude_name_prefix: str | None) -> bool:
    """Whether a check belongs to the merge queue job itself."""
    if not exclude_name_prefix:
        return False
    return check.name.startswith(exclude_name_prefix)


def classify_checks(checks: Iterable[CheckRun], exclude_name_prefix: str | None = None) -> CheckState:
    """Aggregate the checks on a commit into a single CheckState.

    No checks at all is PENDING, never SUCCESS: CI may simply not have
    registered yet. Any failing check wins over pending ones. Anything that is
    neither failing, pending nor passing makes the whole set UNKNOWN.
    """
    relevant = [check for check in checks if not is_excluded_check(check, exclude_name_prefix)]
    if not relevant:
        return CheckState.PENDING
    statuses = {check.status for check in relevant}
    if statuses & FAILING_CHECK_STATUSES:
        return CheckState.FAILURE
    if statuses & PENDING_CHECK_STATUSES:
        return CheckState.PENDING
    if statuses <= PASSING_CHECK_STATUSES:
        return CheckState.SUCCESS
    return CheckState.UNKNOWN


def failing_check_names(checks: Iterable[CheckRun], exclude_name_prefix: str | None = None) -> tuple[str, ...]:
    """Names of the failing checks, in the order GitHub reported them."""
    return tuple(
        check.name for check in checks if check.status in FAILING_CHECK_STATUSES and not is_excluded_check(check, exclude_name_prefix)
    )


def check_ci(check_state: CheckState, failing_checks: tuple[str, ...] = ()) -> Outcome:
    """Turn the aggregate CI state into the final outcome for an up-to-date pull request."""
    if check_state is CheckState.SUCCESS:
        return Outcome.merge()
    if check_state is CheckState.PENDING:
        return Outcome.retry("checks pending")
    if check_state is CheckState.FAILURE:
        raise TerminalPullRequestError(CI_FAILED_REASON, failing_checks)
    raise AmbiguousStateError("checks are in an unrecognized combination of states")


async def run_gate_pipeline(client: RepositoryClientBase, pull_request: QueuedPR, config: MergeQueueConfig) -> Outcome:
    """Evaluate one pull request through every gate and return exactly one outcome.

    Each gate's input is fetched only once the previous gate has passed.
    Terminal failures become Dequeue and ambiguous states become Retry;
    repository client errors propagate to the caller.
    """
    log = logger.bind(pull_number=pull_request.number)
    try:
        review_state = await client.get_review_decision(pull_request.number)
        log.debug("Approval gate", review_state=review_state.value)
        outcome = check_approval(review_state)
        if outcome is not None:
            return outcome

        mergeable_state = await client.get_mergeable_state(pull_request.number)
        log.debug("Conflict gate", mergeable_state=mergeable_state.value)
        check_mergeability(mergeable_state)

        freshness = await client.compare_branches(config.base_branch, pull_request.head_sha)
        log.debug("Freshness gate", behind_by=freshness.behind_by)
        outcome = check_freshness(freshness)
        if outcome is not None:
            return outcome

        checks = await client.list_checks(pull_request.head_sha, config.check_exclude_prefix)
        check_state = classify_checks(checks, config.check_exclude_prefix)
        log.debug("CI gate", check_state=check_state.value, check_count=len(checks))
        return check_ci(check_state, failing_check_names(checks, config.check_exclude_prefix))
    except TerminalPullRequestError as exc:
        log.info("Pull request cannot be merged", reason=exc.reason, details=list(exc.details))
        return Outcome.dequeue(exc.reason, exc.details)
    except AmbiguousStateError as exc:
        log.info("Pull request state is ambiguous", reason=str(exc))
        return Outcome.retry(str(exc))
