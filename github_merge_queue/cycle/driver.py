"""Builds the GitHub adapter and runs merge queue workflows against it."""

import time
from pathlib import Path

import structlog

from github_merge_queue.configuration.models import GitHubAuthenticationType, MergeQueueConfig
from github_merge_queue.cycle.models import CycleResult, QueuedPR
from github_merge_queue.cycle.orchestrator import run_merge_queue_cycle
from github_merge_queue.cycle.selector import order_queue
from github_merge_queue.github.adapter import GitHubKitAdapter

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


async def create_adapter(
    config: MergeQueueConfig,
    github_auth_type: GitHubAuthenticationType,
    github_api_url: str,
    github_pat_token: str | None = None,
    github_app_id: int | None = None,
    github_app_private_key_path: Path | None = None,
    github_app_installation_id: int | None = None,
) -> GitHubKitAdapter:
    """Create a GitHub adapter for the configured repository."""
    return await GitHubKitAdapter.create(
        repo=config.repo,
        github_auth_type=github_auth_type,
        github_pat_token=github_pat_token,
        github_app_id=github_app_id,
        github_app_private_key_path=github_app_private_key_path,
        github_app_installation_id=github_app_installation_id,
        github_api_url=github_api_url,
        timeout=config.request_timeout,
    )


async def run_merge_queue_workflow(config: MergeQueueConfig, github_adapter: GitHubKitAdapter) -> CycleResult:
    """Run a single merge queue cycle and log how long it took."""
    start_time = time.time()
    logger.info(
        "Running merge queue cycle",
        repo=config.repo,
        base_branch=config.base_branch,
        label=config.label,
        merge_method=config.merge_method.value,
        dry_run=config.dry_run,
    )
    result = await run_merge_queue_cycle(github_adapter, config)
    logger.info(
        "Ran merge queue cycle",
        repo=config.repo,
        pull_number=result.pull_request.number if result.pull_request else None,
        outcome=result.applied_outcome.kind.value if result.applied_outcome else None,
        duration=round(time.time() - start_time, 2),
    )
    return result


async def list_merge_queue(config: MergeQueueConfig, github_adapter: GitHubKitAdapter) -> list[QueuedPR]:
    """Return the queued pull requests in the order they will be processed."""
    queued = await github_adapter.list_queued_pull_requests(config.label, config.base_branch)
    return order_queue(queued)
