"""Data models for the merge queue state machine."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class QueuedPR(BaseModel):
    """Snapshot of a queued pull request, fetched fresh at the start of every cycle."""

    model_config = ConfigDict(frozen=True)

    number: int
    created_at: datetime
    head_ref: str
    head_sha: str
    is_cross_repository: bool = False


class ReviewState(str, Enum):
    """Aggregate review decision for a pull request."""

    APPROVED = "approved"
    NOT_APPROVED = "not_approved"


class MergeableState(str, Enum):
    """Whether GitHub can merge the pull request without conflicts."""

    MERGEABLE = "mergeable"
    CONFLICTING = "conflicting"
    UNKNOWN = "unknown"


class BranchFreshness(BaseModel):
    """How far the pull request head is behind the base branch."""

    model_config = ConfigDict(frozen=True)

    behind_by: int = Field(ge=0)

    @property
    def is_up_to_date(self) -> bool:
        """Whether the head already contains every base branch commit."""
        return self.behind_by == 0


class CheckRunStatus(str, Enum):
    """Normalized state of a single check run or commit status."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    NEUTRAL = "neutral"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    ERROR = "error"
    STARTUP_FAILURE = "startup_failure"
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    WAITING = "waiting"
    REQUESTED = "requested"
    EXPECTED = "expected"
    STALE = "stale"
    UNKNOWN = "unknown"

    @classmethod
    def from_github(cls, value: str | None) -> "CheckRunStatus":
        """Map a GitHub status or conclusion string onto a CheckRunStatus."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


class CheckRun(BaseModel):
    """A named check on the pull request head commit."""

    model_config = ConfigDict(frozen=True)

    name: str
    status: CheckRunStatus


class CheckState(str, Enum):
    """Aggregate CI state across all checks on a commit."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILURE = "failure"
    UNKNOWN = "unknown"


class OutcomeKind(str, Enum):
    """The single decision produced for a pull request in one cycle."""

    SKIP = "skip"
    UPDATE_BRANCH = "update_branch"
    MERGE = "merge"
    DEQUEUE = "dequeue"
    RETRY = "retry"


class Outcome(BaseModel):
    """Tagged outcome of the gate pipeline."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    reason: str | None = None
    details: tuple[str, ...] = ()

    @classmethod
    def skip(cls, reason: str) -> "Outcome":
        """Leave the pull request queued without acting on it."""
        return cls(kind=OutcomeKind.SKIP, reason=reason)

    @classmethod
    def update_branch(cls) -> "Outcome":
        """Bring the pull request head up to date with the base branch."""
        return cls(kind=OutcomeKind.UPDATE_BRANCH)

    @classmethod
    def merge(cls) -> "Outcome":
        """Merge the pull request."""
        return cls(kind=OutcomeKind.MERGE)

    @classmethod
    def dequeue(cls, reason: str, details: tuple[str, ...] = ()) -> "Outcome":
        """Remove the pull request from the queue and explain why."""
        return cls(kind=OutcomeKind.DEQUEUE, reason=reason, details=details)

    @classmethod
    def retry(cls, reason: str | None = None) -> "Outcome":
        """Do nothing now and re-evaluate on the next cycle."""
        return cls(kind=OutcomeKind.RETRY, reason=reason)


class CycleState(str, Enum):
    """States walked by one invocation of the orchestrator."""

    IDLE = "idle"
    SELECTING = "selecting"
    EVALUATING = "evaluating"
    ACTING = "acting"
    DONE = "done"


class Mutation(str, Enum):
    """Mutating calls that count toward the one-action-per-cycle limit."""

    UPDATE_BRANCH = "update_branch"
    MERGE = "merge"
    REMOVE_LABEL = "remove_label"


class CycleResult(BaseModel):
    """What one cycle decided and what it actually did."""

    pull_request: QueuedPR | None = None
    outcome: Outcome | None = None
    applied_outcome: Outcome | None = None
    mutations: list[Mutation] = Field(default_factory=list)
    states: list[CycleState] = Field(default_factory=list)
    error: str | None = None

    @property
    def is_noop(self) -> bool:
        """Whether the cycle found nothing to do."""
        return self.pull_request is None
