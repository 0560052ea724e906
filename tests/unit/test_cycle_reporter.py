"""Contains unit tests for the cycle reporter module."""

from dataclasses import replace

import pytest

from github_merge_queue.configuration.models import MergeMethod, MergeQueueConfig
from github_merge_queue.cycle.exceptions import TransientAPIError
from github_merge_queue.cycle.models import Mutation, Outcome, OutcomeKind, QueuedPR
from github_merge_queue.cycle.reporter import apply_outcome, render_dequeue_comment

from .fakes import FakePullRequest, FakeRepositoryClient


def snapshot(pr: FakePullRequest) -> QueuedPR:
    """Build the queue snapshot of a fake pull request."""
    return QueuedPR(
        number=pr.number, created_at=pr.created_at, head_ref=pr.head_ref, head_sha=pr.head_sha, is_cross_repository=pr.is_cross_repository
    )


def test_render_dequeue_comment() -> None:
    """The comment names the reason and how to re-queue."""
    body = render_dequeue_comment(Outcome.dequeue("merge conflicts"), "queue")
    assert "**merge conflicts**" in body
    assert "re-apply the `queue` label" in body
    assert "Failing checks" not in body


def test_render_dequeue_comment_lists_failing_checks() -> None:
    """Failing checks are listed when CI caused the dequeue."""
    body = render_dequeue_comment(Outcome.dequeue("CI failed", ("lint", "test (3.12)")), "ready-to-merge")
    assert "**CI failed**" in body
    assert "- `lint`" in body
    assert "- `test (3.12)`" in body
    assert "`ready-to-merge`" in body


@pytest.mark.asyncio
@pytest.mark.parametrize("outcome", [Outcome.skip("not approved"), Outcome.retry("checks pending")])
async def test_apply_outcome_without_side_effects(config: MergeQueueConfig, outcome: Outcome) -> None:
    """Skip and Retry never touch the repository."""
    pr = FakePullRequest(number=1)
    client = FakeRepositoryClient(pr)
    applied, mutations = await apply_outcome(client, snapshot(pr), outcome, config)
    assert applied == outcome
    assert mutations == []
    assert client.calls == []


@pytest.mark.asyncio
async def test_apply_outcome_update_branch(config: MergeQueueConfig) -> None:
    """Branch updates pass the known head SHA as a precondition."""
    pr = FakePullRequest(number=9, behind_by=2)
    client = FakeRepositoryClient(pr)
    applied, mutations = await apply_outcome(client, snapshot(pr), Outcome.update_branch(), config)
    assert applied == Outcome.update_branch()
    assert mutations == [Mutation.UPDATE_BRANCH]
    assert client.called("update_branch") == [("update_branch", 9, "sha-9")]


@pytest.mark.asyncio
async def test_apply_outcome_update_branch_rejected(config: MergeQueueConfig) -> None:
    """A rejected branch update ends as Retry and keeps the label."""
    pr = FakePullRequest(number=9, behind_by=2, reject_update=True)
    client = FakeRepositoryClient(pr)
    applied, mutations = await apply_outcome(client, snapshot(pr), Outcome.update_branch(), config)
    assert applied.kind is OutcomeKind.RETRY
    assert mutations == []
    assert "queue" in pr.labels


@pytest.mark.asyncio
async def test_apply_outcome_merge_deletes_branch(config: MergeQueueConfig) -> None:
    """Merging uses the configured method and deletes the head branch."""
    pr = FakePullRequest(number=5)
    client = FakeRepositoryClient(pr)
    merge_config = replace(config, merge_method=MergeMethod.REBASE)
    applied, mutations = await apply_outcome(client, snapshot(pr), Outcome.merge(), merge_config)
    assert applied == Outcome.merge()
    assert mutations == [Mutation.MERGE]
    assert client.called("merge_pull_request") == [("merge_pull_request", 5, MergeMethod.REBASE, "sha-5")]
    assert client.deleted_branches == ["feature/5"]


@pytest.mark.asyncio
async def test_apply_outcome_merge_keeps_fork_branch(config: MergeQueueConfig) -> None:
    """Branches living in a fork are never deleted from the base repository."""
    pr = FakePullRequest(number=5, head_ref="main", is_cross_repository=True)
    client = FakeRepositoryClient(pr)
    await apply_outcome(client, snapshot(pr), Outcome.merge(), config)
    assert client.deleted_branches == []


@pytest.mark.asyncio
async def test_apply_outcome_merge_branch_deletion_failure_is_logged(config: MergeQueueConfig) -> None:
    """A branch that fails to delete does not undo the merge outcome."""
    pr = FakePullRequest(number=5)
    client = FakeRepositoryClient(pr)
    client.failures["delete_branch"] = TransientAPIError("timeout")
    applied, mutations = await apply_outcome(client, snapshot(pr), Outcome.merge(), config)
    assert applied == Outcome.merge()
    assert mutations == [Mutation.MERGE]


@pytest.mark.asyncio
async def test_apply_outcome_merge_rejected_when_head_moved(config: MergeQueueConfig) -> None:
    """A merge whose head moved since evaluation is refused and retried later."""
    pr = FakePullRequest(number=5)
    client = FakeRepositoryClient(pr)
    stale = snapshot(pr)
    pr.head_sha = "sha-5-new"
    applied, mutations = await apply_outcome(client, stale, Outcome.merge(), config)
    assert applied.kind is OutcomeKind.RETRY
    assert mutations == []
    assert pr.state == "open"
    assert client.deleted_branches == []


@pytest.mark.asyncio
async def test_apply_outcome_dequeue(config: MergeQueueConfig) -> None:
    """Dequeue removes the label and posts exactly one comment."""
    pr = FakePullRequest(number=3)
    client = FakeRepositoryClient(pr)
    applied, mutations = await apply_outcome(client, snapshot(pr), Outcome.dequeue("merge conflicts"), config)
    assert applied == Outcome.dequeue("merge conflicts")
    assert mutations == [Mutation.REMOVE_LABEL]
    assert "queue" not in pr.labels
    assert len(client.comments[3]) == 1
    assert "merge conflicts" in client.comments[3][0]


@pytest.mark.asyncio
async def test_apply_outcome_dequeue_comment_failure(config: MergeQueueConfig) -> None:
    """A failed comment is logged; the label removal still counts."""
    pr = FakePullRequest(number=3)
    client = FakeRepositoryClient(pr)
    client.failures["post_comment"] = TransientAPIError("rate limited")
    applied, mutations = await apply_outcome(client, snapshot(pr), Outcome.dequeue("CI failed"), config)
    assert applied.kind is OutcomeKind.DEQUEUE
    assert mutations == [Mutation.REMOVE_LABEL]


@pytest.mark.asyncio
async def test_apply_outcome_dequeue_label_failure_propagates(config: MergeQueueConfig) -> None:
    """If the label cannot be removed, no comment is posted and the error reaches the orchestrator."""
    pr = FakePullRequest(number=3)
    client = FakeRepositoryClient(pr)
    client.failures["remove_label"] = TransientAPIError("timeout")
    with pytest.raises(TransientAPIError):
        await apply_outcome(client, snapshot(pr), Outcome.dequeue("CI failed"), config)
    assert not client.called("post_comment")
