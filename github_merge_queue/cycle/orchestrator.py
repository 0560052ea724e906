"""Drives one end-to-end pass of the merge queue."""

import structlog
from structlog.contextvars import bound_contextvars

from github_merge_queue.configuration.models import MergeQueueConfig
from github_merge_queue.cycle.exceptions import MergeQueueError
from github_merge_queue.cycle.gates import run_gate_pipeline
from github_merge_queue.cycle.models import CycleResult, CycleState, Outcome, QueuedPR
from github_merge_queue.cycle.reporter import apply_outcome
from github_merge_queue.cycle.selector import select_next_pull_request
from github_merge_queue.github.abc import RepositoryClientBase

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


class MergeQueueCycle:
    """State machine for a single merge queue invocation.

    IDLE -> SELECTING -> DONE when the queue is empty, otherwise
    SELECTING -> EVALUATING -> ACTING -> DONE. At most one pull request is
    evaluated and at most one mutating call is made. Every error ends the
    cycle; the next scheduled invocation is the retry.
    """

    def __init__(self, client: RepositoryClientBase, config: MergeQueueConfig) -> None:
        """Initialize the cycle with a repository client and its configuration."""
        self.client = client
        self.config = config
        self.state = CycleState.IDLE
        self.result = CycleResult(states=[CycleState.IDLE])

    def _transition(self, state: CycleState) -> None:
        """Move to the next state and record it on the result."""
        logger.debug("Merge queue cycle transition", from_state=self.state.value, to_state=state.value)
        self.state = state
        self.result.states.append(state)

    def _finish(self, error: MergeQueueError | None = None) -> CycleResult:
        """Enter DONE and return the result, recording a cycle-ending error if there was one."""
        if error is not None:
            self.result.error = str(error)
        self._transition(CycleState.DONE)
        return self.result

    async def run(self) -> CycleResult:
        """Run the cycle to completion."""
        self._transition(CycleState.SELECTING)
        try:
            queued = await self.client.list_queued_pull_requests(self.config.label, self.config.base_branch)
        except MergeQueueError as exc:
            logger.error("Failed to list queued pull requests", label=self.config.label, base_branch=self.config.base_branch, error=str(exc))
            return self._finish(exc)

        candidate = select_next_pull_request(queued)
        if candidate is None:
            return self._finish()

        with bound_contextvars(pull_number=candidate.number):
            return await self._process(candidate)

    async def _process(self, candidate: QueuedPR) -> CycleResult:
        """Evaluate the selected pull request and apply the resulting outcome."""
        self._transition(CycleState.EVALUATING)
        try:
            head_ref, head_sha = await self.client.get_head(candidate.number)
            pull_request = candidate.model_copy(update={"head_ref": head_ref, "head_sha": head_sha})
            self.result.pull_request = pull_request
            outcome = await run_gate_pipeline(self.client, pull_request, self.config)
        except MergeQueueError as exc:
            logger.error("Failed to evaluate pull request", error=str(exc))
            self.result.pull_request = self.result.pull_request or candidate
            self.result.outcome = self.result.applied_outcome = Outcome.retry("evaluation failed")
            return self._finish(exc)

        self.result.outcome = outcome
        logger.info("Pull request evaluated", outcome=outcome.kind.value, reason=outcome.reason)

        self._transition(CycleState.ACTING)
        if self.config.dry_run:
            logger.info("Dry run, not applying outcome", outcome=outcome.kind.value)
            self.result.applied_outcome = outcome
            return self._finish()

        try:
            applied_outcome, mutations = await apply_outcome(self.client, pull_request, outcome, self.config)
        except MergeQueueError as exc:
            logger.error("Failed to apply outcome", outcome=outcome.kind.value, error=str(exc))
            self.result.applied_outcome = Outcome.retry("action failed")
            return self._finish(exc)

        self.result.applied_outcome = applied_outcome
        self.result.mutations.extend(mutations)
        logger.info("Merge queue cycle finished", outcome=applied_outcome.kind.value, mutations=[m.value for m in mutations])
        return self._finish()


async def run_merge_queue_cycle(client: RepositoryClientBase, config: MergeQueueConfig) -> CycleResult:
    """Run one merge queue cycle against the given repository client."""
    return await MergeQueueCycle(client, config).run()
