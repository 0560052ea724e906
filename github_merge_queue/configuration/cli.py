"""Defines the Command Line Interface (CLI) using Typer."""

import asyncio
from dataclasses import replace
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer import Argument, Option
from typing_extensions import Annotated

from github_merge_queue.configuration.env import settings
from github_merge_queue.configuration.exceptions import (
    GitHubAuthenticationConfigurationUndefinedError,
    InvalidMergeQueueConfigurationError,
)
from github_merge_queue.configuration.models import MergeMethod, MergeQueueConfig
from github_merge_queue.configuration.reconcile import build_merge_queue_config, validate_github_authentication_configuration
from github_merge_queue.cycle.driver import create_adapter, list_merge_queue, run_merge_queue_workflow
from github_merge_queue.cycle.exceptions import MergeQueueError
from github_merge_queue.cycle.models import CycleResult, QueuedPR
from github_merge_queue.github.adapter import GitHubKitAdapter
from github_merge_queue.utils.logging import configure_logging

load_dotenv()

typer_app = typer.Typer(pretty_exceptions_show_locals=False, help="Merge approved pull requests one at a time.")

repo_app = typer.Typer(help="Repository-related commands")


def repo_callback(
    ctx: typer.Context,
    repo: Annotated[str, Argument(help="Repository name (owner/repo).")],
    github_api_url: Annotated[str, Option(envvar="GITHUB_API_URL", help="GitHub API URL.")] = settings.GITHUB_API_URL,
    github_pat_token: Annotated[str | None, Option(envvar="GITHUB_PAT_TOKEN", help="GitHub Personal Access Token.")] = settings.GITHUB_PAT_TOKEN,
    github_app_id: Annotated[int | None, Option(envvar="GITHUB_APP_ID", help="GitHub App ID.")] = settings.GITHUB_APP_ID,
    github_app_private_key_path: Annotated[
        Path | None, Option(envvar="GITHUB_APP_PRIVATE_KEY_PATH", help="Path to GitHub App private key.")
    ] = settings.GITHUB_APP_PRIVATE_KEY_PATH,
    github_app_installation_id: Annotated[
        int | None, Option(envvar="GITHUB_APP_INSTALLATION_ID", help="GitHub App Installation ID.")
    ] = settings.GITHUB_APP_INSTALLATION_ID,
    base_branch: Annotated[str, Option(envvar="BASE_BRANCH", help="Branch queued pull requests merge into.")] = settings.BASE_BRANCH,
    label: Annotated[str, Option(envvar="QUEUE_LABEL", help="Label marking a pull request as queued.")] = settings.QUEUE_LABEL,
    merge_method: Annotated[MergeMethod, Option(envvar="MERGE_METHOD", help="Merge method to use.")] = settings.MERGE_METHOD,
    check_exclude_prefix: Annotated[
        str, Option(envvar="CHECK_EXCLUDE_PREFIX", help="Ignore checks whose name starts with this prefix (the merge queue job itself).")
    ] = settings.CHECK_EXCLUDE_PREFIX,
    request_timeout: Annotated[float, Option(envvar="REQUEST_TIMEOUT", help="Timeout in seconds for each GitHub API request.")] = settings.REQUEST_TIMEOUT,
    debug: Annotated[bool, Option(envvar="DEBUG", help="Enable debug logging.")] = settings.DEBUG,
) -> None:
    """Set the repository and merge queue settings for the current context."""
    configure_logging(debug)
    ctx.ensure_object(dict)
    try:
        github_auth_type = asyncio.run(
            validate_github_authentication_configuration(
                github_pat_token=github_pat_token,
                github_app_id=github_app_id,
                github_app_private_key_path=github_app_private_key_path,
                github_app_installation_id=github_app_installation_id,
            )
        )
        config = asyncio.run(
            build_merge_queue_config(
                repo=repo,
                base_branch=base_branch,
                label=label,
                merge_method=merge_method,
                check_exclude_prefix=check_exclude_prefix,
                request_timeout=request_timeout,
            )
        )
    except (GitHubAuthenticationConfigurationUndefinedError, InvalidMergeQueueConfigurationError) as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(2) from e

    ctx.obj["config"] = config
    ctx.obj["github_auth_type"] = github_auth_type
    ctx.obj["github_api_url"] = github_api_url
    ctx.obj["github_pat_token"] = github_pat_token
    ctx.obj["github_app_id"] = github_app_id
    ctx.obj["github_app_private_key_path"] = github_app_private_key_path
    ctx.obj["github_app_installation_id"] = github_app_installation_id


repo_app.callback()(repo_callback)


async def _create_adapter_from_context(ctx: typer.Context, config: MergeQueueConfig) -> GitHubKitAdapter:
    """Create the GitHub adapter from the credentials stored on the context.

    Credentials that cannot be turned into a client (an unreadable App private
    key, for example) are reported as a configuration error.
    """
    try:
        return await create_adapter(
            config,
            github_auth_type=ctx.obj["github_auth_type"],
            github_api_url=ctx.obj["github_api_url"],
            github_pat_token=ctx.obj["github_pat_token"],
            github_app_id=ctx.obj["github_app_id"],
            github_app_private_key_path=ctx.obj["github_app_private_key_path"],
            github_app_installation_id=ctx.obj["github_app_installation_id"],
        )
    except (ValueError, RuntimeError) as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(2) from e


@repo_app.command(name="run")
def run_cli(
    ctx: typer.Context,
    dry_run: Annotated[bool, Option(envvar="DRY_RUN", help="Evaluate the next pull request without changing anything.")] = False,
    keep_branch: Annotated[bool, Option(help="Keep the head branch after merging.")] = False,
) -> None:
    """Run one merge queue cycle: evaluate the oldest queued pull request and take at most one action."""
    config: MergeQueueConfig = replace(ctx.obj["config"], delete_branch_after_merge=not keep_branch, dry_run=dry_run)

    async def _run() -> CycleResult:
        github_adapter = await _create_adapter_from_context(ctx, config)
        return await run_merge_queue_workflow(config, github_adapter)

    result = asyncio.run(_run())

    if result.is_noop:
        typer.echo(f"No pull requests labeled '{config.label}' against '{config.base_branch}'.")
        return
    if result.pull_request is None or result.applied_outcome is None:
        typer.echo(f"Cycle ended without an outcome: {result.error}")
        return
    line = f"#{result.pull_request.number}: {result.applied_outcome.kind.value}"
    if result.applied_outcome.reason:
        line += f" ({result.applied_outcome.reason})"
    if dry_run:
        line += " [dry run]"
    typer.echo(line)
    if result.error:
        typer.echo(f"Cycle ended early: {result.error}", err=True)


@repo_app.command(name="list")
def list_cli(ctx: typer.Context) -> None:
    """List queued pull requests in the order they will be processed."""
    config: MergeQueueConfig = ctx.obj["config"]

    async def _list() -> list[QueuedPR]:
        github_adapter = await _create_adapter_from_context(ctx, config)
        return await list_merge_queue(config, github_adapter)

    try:
        queued = asyncio.run(_list())
    except MergeQueueError as e:
        typer.echo(f"Failed to list the merge queue: {e}", err=True)
        raise typer.Exit(1) from e

    if not queued:
        typer.echo(f"No pull requests labeled '{config.label}' against '{config.base_branch}'.")
        return
    for position, pull_request in enumerate(queued, start=1):
        typer.echo(f"{position}. #{pull_request.number} {pull_request.head_ref} (created {pull_request.created_at.isoformat()})")


typer_app.add_typer(repo_app, name="repo")


if __name__ == "__main__":
    typer_app()
