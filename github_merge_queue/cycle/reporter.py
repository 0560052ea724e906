"""Applies the outcome of a cycle to GitHub."""

import structlog
from pydantic import BaseModel

from github_merge_queue.configuration.models import MergeQueueConfig
from github_merge_queue.cycle.exceptions import MergeQueueError, PreconditionFailedError
from github_merge_queue.cycle.models import Mutation, Outcome, OutcomeKind, QueuedPR
from github_merge_queue.github.abc import RepositoryClientBase
from github_merge_queue.utils.constants import DEQUEUE_COMMENT_TEMPLATE
from github_merge_queue.utils.templates import construct_jinja2_template_from_string, render_template_with_model

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class DequeueComment(BaseModel):
    """Values rendered into the comment explaining a dequeue."""

    reason: str
    label: str
    failing_checks: list[str] = []


def render_dequeue_comment(outcome: Outcome, label: str) -> str:
    """Render the human-readable comment posted when a pull request leaves the queue."""
    template = construct_jinja2_template_from_string(DEQUEUE_COMMENT_TEMPLATE)
    comment = DequeueComment(reason=outcome.reason or "unknown reason", label=label, failing_checks=list(outcome.details))
    return render_template_with_model(comment, template)


async def apply_outcome(
    client: RepositoryClientBase,
    pull_request: QueuedPR,
    outcome: Outcome,
    config: MergeQueueConfig,
) -> tuple[Outcome, list[Mutation]]:
    """Perform the side effect of an outcome.

    Returns the outcome that actually took effect together with the mutating
    calls that succeeded. A rejected branch update or merge ends as Retry.
    Repository client errors propagate to the caller.
    """
    log = logger.bind(pull_number=pull_request.number, outcome=outcome.kind.value)

    if outcome.kind is OutcomeKind.UPDATE_BRANCH:
        try:
            await client.update_branch(pull_request.number, pull_request.head_sha)
        except PreconditionFailedError as exc:
            log.info("Branch update rejected, will retry next cycle", error=str(exc))
            return Outcome.retry("branch update rejected"), []
        return outcome, [Mutation.UPDATE_BRANCH]

    if outcome.kind is OutcomeKind.MERGE:
        try:
            await client.merge_pull_request(pull_request.number, config.merge_method, pull_request.head_sha)
        except PreconditionFailedError as exc:
            log.info("Merge rejected, will retry next cycle", error=str(exc))
            return Outcome.retry("merge rejected"), []
        if config.delete_branch_after_merge:
            await _delete_head_branch(client, pull_request, config)
        return outcome, [Mutation.MERGE]

    if outcome.kind is OutcomeKind.DEQUEUE:
        await client.remove_label(pull_request.number, config.label)
        try:
            await client.post_comment(pull_request.number, render_dequeue_comment(outcome, config.label))
        except MergeQueueError as exc:
            # The label is already gone, so the pull request is out of the queue either way.
            log.error("Failed to post dequeue comment", reason=outcome.reason, error=str(exc))
        log.info("Dequeued pull request", reason=outcome.reason)
        return outcome, [Mutation.REMOVE_LABEL]

    # Skip and Retry have no side effects.
    log.debug("No action taken", reason=outcome.reason)
    return outcome, []


async def _delete_head_branch(client: RepositoryClientBase, pull_request: QueuedPR, config: MergeQueueConfig) -> None:
    """Delete the head branch of a merged pull request, logging rather than raising on failure."""
    if pull_request.is_cross_repository or pull_request.head_ref == config.base_branch:
        logger.info("Not deleting head branch", pull_number=pull_request.number, branch=pull_request.head_ref)
        return
    try:
        await client.delete_branch(pull_request.head_ref)
    except MergeQueueError as exc:
        # The merge already happened; a leftover branch is harmless.
        logger.warning("Failed to delete head branch", pull_number=pull_request.number, branch=pull_request.head_ref, error=str(exc))
