"""Contains unit tests for the cycle gates module."""

import pytest

from github_merge_queue.configuration.models import MergeQueueConfig
from github_merge_queue.cycle.exceptions import AmbiguousStateError, TerminalPullRequestError, TransientAPIError
from github_merge_queue.cycle.gates import (
    check_approval,
    check_ci,
    check_freshness,
    check_mergeability,
    classify_checks,
    failing_check_names,
    run_gate_pipeline,
)
from github_merge_queue.cycle.models import (
    BranchFreshness,
    CheckRun,
    CheckRunStatus,
    CheckState,
    MergeableState,
    Outcome,
    OutcomeKind,
    QueuedPR,
    ReviewState,
)

from .fakes import FakePullRequest, FakeRepositoryClient


def check(name: str, status: CheckRunStatus) -> CheckRun:
    """Build a check run."""
    return CheckRun(name=name, status=status)


def snapshot(pr: FakePullRequest) -> QueuedPR:
    """Build the queue snapshot of a fake pull request."""
    return QueuedPR(number=pr.number, created_at=pr.created_at, head_ref=pr.head_ref, head_sha=pr.head_sha)


def test_check_approval() -> None:
    """Only approved pull requests pass; everything else is skipped, not dequeued."""
    assert check_approval(ReviewState.APPROVED) is None
    assert check_approval(ReviewState.NOT_APPROVED) == Outcome.skip("not approved")


def test_check_mergeability() -> None:
    """Conflicts are terminal, unknown mergeability is ambiguous."""
    check_mergeability(MergeableState.MERGEABLE)
    with pytest.raises(TerminalPullRequestError, match="merge conflicts"):
        check_mergeability(MergeableState.CONFLICTING)
    with pytest.raises(AmbiguousStateError):
        check_mergeability(MergeableState.UNKNOWN)


@pytest.mark.parametrize(
    "behind_by,expected",
    [
        (0, None),
        (1, Outcome.update_branch()),
        (25, Outcome.update_branch()),
    ],
)
def test_check_freshness(behind_by: int, expected: Outcome | None) -> None:
    """Any distance behind the base branch requests a branch update."""
    assert check_freshness(BranchFreshness(behind_by=behind_by)) == expected


@pytest.mark.parametrize(
    "checks,expected",
    [
        pytest.param([], CheckState.PENDING, id="no checks is pending"),
        pytest.param([check("build", CheckRunStatus.SUCCESS)], CheckState.SUCCESS, id="single success"),
        pytest.param(
            [check("build", CheckRunStatus.SUCCESS), check("docs", CheckRunStatus.SKIPPED), check("lint", CheckRunStatus.NEUTRAL)],
            CheckState.SUCCESS,
            id="success skipped neutral",
        ),
        pytest.param([check("build", CheckRunStatus.SUCCESS), check("test", CheckRunStatus.IN_PROGRESS)], CheckState.PENDING, id="in progress"),
        pytest.param([check("build", CheckRunStatus.QUEUED)], CheckState.PENDING, id="queued"),
        pytest.param([check("ci/legacy", CheckRunStatus.PENDING)], CheckState.PENDING, id="legacy status pending"),
        pytest.param([check("build", CheckRunStatus.FAILURE), check("test", CheckRunStatus.IN_PROGRESS)], CheckState.FAILURE, id="failure dominates pending"),
        pytest.param([check("build", CheckRunStatus.CANCELLED)], CheckState.FAILURE, id="cancelled"),
        pytest.param([check("build", CheckRunStatus.TIMED_OUT)], CheckState.FAILURE, id="timed out"),
        pytest.param([check("build", CheckRunStatus.ACTION_REQUIRED)], CheckState.FAILURE, id="action required"),
        pytest.param([check("ci/legacy", CheckRunStatus.ERROR)], CheckState.FAILURE, id="legacy status error"),
        pytest.param([check("build", CheckRunStatus.SUCCESS), check("old", CheckRunStatus.STALE)], CheckState.UNKNOWN, id="stale is unknown"),
        pytest.param([check("build", CheckRunStatus.UNKNOWN)], CheckState.UNKNOWN, id="unknown"),
    ],
)
def test_classify_checks(checks: list[CheckRun], expected: CheckState) -> None:
    """Check runs aggregate into a single CI state."""
    assert classify_checks(checks) == expected


def test_classify_checks_excludes_own_job() -> None:
    """The merge queue's own running check never holds up or fails the queue."""
    checks = [check("merge-queue / run", CheckRunStatus.IN_PROGRESS), check("build", CheckRunStatus.SUCCESS)]
    assert classify_checks(checks, "merge-queue") == CheckState.SUCCESS
    assert classify_checks([check("merge-queue / run", CheckRunStatus.IN_PROGRESS)], "merge-queue") == CheckState.PENDING


def test_failing_check_names() -> None:
    """Failing check names are reported in order, excluding the merge queue job."""
    checks = [
        check("lint", CheckRunStatus.FAILURE),
        check("build", CheckRunStatus.SUCCESS),
        check("merge-queue / run", CheckRunStatus.CANCELLED),
        check("test", CheckRunStatus.TIMED_OUT),
    ]
    assert failing_check_names(checks, "merge-queue") == ("lint", "test")


def test_check_ci() -> None:
    """Only a green CI state produces a merge."""
    assert check_ci(CheckState.SUCCESS) == Outcome.merge()
    assert check_ci(CheckState.PENDING).kind is OutcomeKind.RETRY
    with pytest.raises(TerminalPullRequestError) as exc_info:
        check_ci(CheckState.FAILURE, ("lint",))
    assert exc_info.value.reason == "CI failed"
    assert exc_info.value.details == ("lint",)
    with pytest.raises(AmbiguousStateError):
        check_ci(CheckState.UNKNOWN)


@pytest.mark.asyncio
async def test_run_gate_pipeline_merge(config: MergeQueueConfig) -> None:
    """A pull request that passes every gate is merged, after all four reads in gate order."""
    pr = FakePullRequest(number=5)
    client = FakeRepositoryClient(pr)
    outcome = await run_gate_pipeline(client, snapshot(pr), config)
    assert outcome == Outcome.merge()
    assert [call[0] for call in client.calls] == ["get_review_decision", "get_mergeable_state", "compare_branches", "list_checks"]


@pytest.mark.asyncio
async def test_run_gate_pipeline_short_circuits_on_approval(config: MergeQueueConfig) -> None:
    """An unapproved pull request is skipped without any further reads."""
    pr = FakePullRequest(number=7, review=ReviewState.NOT_APPROVED, mergeable=MergeableState.CONFLICTING)
    client = FakeRepositoryClient(pr)
    outcome = await run_gate_pipeline(client, snapshot(pr), config)
    assert outcome == Outcome.skip("not approved")
    assert [call[0] for call in client.calls] == ["get_review_decision"]


@pytest.mark.asyncio
async def test_run_gate_pipeline_conflicts_dequeue(config: MergeQueueConfig) -> None:
    """Conflicts dequeue before freshness or CI are looked at."""
    pr = FakePullRequest(number=3, mergeable=MergeableState.CONFLICTING, behind_by=4)
    client = FakeRepositoryClient(pr)
    outcome = await run_gate_pipeline(client, snapshot(pr), config)
    assert outcome == Outcome.dequeue("merge conflicts")
    assert not client.called("compare_branches")


@pytest.mark.asyncio
async def test_run_gate_pipeline_unknown_mergeability_retries(config: MergeQueueConfig) -> None:
    """Mergeability still being computed ends in Retry."""
    pr = FakePullRequest(number=3, mergeable=MergeableState.UNKNOWN)
    outcome = await run_gate_pipeline(FakeRepositoryClient(pr), snapshot(pr), config)
    assert outcome.kind is OutcomeKind.RETRY


@pytest.mark.asyncio
async def test_run_gate_pipeline_stale_branch_ignores_ci(config: MergeQueueConfig) -> None:
    """A branch behind its base is updated and its CI is never consulted, even if red."""
    pr = FakePullRequest(number=9, behind_by=2, checks=[CheckRun(name="build", status=CheckRunStatus.FAILURE)])
    client = FakeRepositoryClient(pr)
    outcome = await run_gate_pipeline(client, snapshot(pr), config)
    assert outcome == Outcome.update_branch()
    assert not client.called("list_checks")


@pytest.mark.asyncio
async def test_run_gate_pipeline_ci_failure_dequeues_with_check_names(config: MergeQueueConfig) -> None:
    """Red CI dequeues and names the failing checks."""
    pr = FakePullRequest(number=8, checks=[CheckRun(name="build", status=CheckRunStatus.SUCCESS), CheckRun(name="test", status=CheckRunStatus.FAILURE)])
    outcome = await run_gate_pipeline(FakeRepositoryClient(pr), snapshot(pr), config)
    assert outcome == Outcome.dequeue("CI failed", ("test",))


@pytest.mark.asyncio
async def test_run_gate_pipeline_no_checks_waits(config: MergeQueueConfig) -> None:
    """A head commit with no checks registered yet is never merged."""
    pr = FakePullRequest(number=8, checks=[])
    outcome = await run_gate_pipeline(FakeRepositoryClient(pr), snapshot(pr), config)
    assert outcome.kind is OutcomeKind.RETRY


@pytest.mark.asyncio
async def test_run_gate_pipeline_propagates_transient_errors(config: MergeQueueConfig) -> None:
    """Repository client errors are left for the orchestrator to handle."""
    pr = FakePullRequest(number=8)
    client = FakeRepositoryClient(pr)
    client.failures["compare_branches"] = TransientAPIError("timeout")
    with pytest.raises(TransientAPIError):
        await run_gate_pipeline(client, snapshot(pr), config)
