"""Reconcile GitHub authentication and merge queue configuration."""

from pathlib import Path

from github_merge_queue.configuration.exceptions import (
    GitHubAuthenticationConfigurationUndefinedError,
    InvalidMergeQueueConfigurationError,
)
from github_merge_queue.configuration.models import GitHubAuthenticationType, MergeMethod, MergeQueueConfig
from github_merge_queue.utils.github import split_repository_slug


async def validate_github_authentication_configuration(
    github_pat_token: str | None,
    github_app_id: int | None,
    github_app_private_key_path: Path | None,
    github_app_installation_id: int | None,
) -> GitHubAuthenticationType:
    """Validates the GitHub authentication configuration.

    Args:
        github_pat_token (str | None): The GitHub PAT token.
        github_app_id (int | None): The GitHub App ID.
        github_app_private_key_path (Path | None): The path to the GitHub App private key.
        github_app_installation_id (int | None): The GitHub App installation ID.

    Raises:
        GitHubAuthenticationConfigurationUndefinedError: If neither or both of the PAT and App configurations are defined,
            or if the App configuration is incomplete.

    Returns:
        GitHubAuthenticationType: The type of GitHub authentication used.
    """
    app_settings = {
        "GITHUB_APP_ID": github_app_id,
        "GITHUB_APP_PRIVATE_KEY_PATH": github_app_private_key_path,
        "GITHUB_APP_INSTALLATION_ID": github_app_installation_id,
    }
    provided_app_settings = [name for name, value in app_settings.items() if value]

    if github_pat_token and provided_app_settings:
        raise GitHubAuthenticationConfigurationUndefinedError("Both PAT and GitHub App configurations are defined. Please use one or the other.")

    if github_pat_token:
        return GitHubAuthenticationType.PAT

    if len(provided_app_settings) == len(app_settings):
        return GitHubAuthenticationType.APP

    if provided_app_settings:
        missing = [name for name in app_settings if name not in provided_app_settings]
        raise GitHubAuthenticationConfigurationUndefinedError(
            "Incomplete GitHub App configuration - missing environment variables or options: " + ", ".join(missing)
        )

    raise GitHubAuthenticationConfigurationUndefinedError(
        "No GitHub authentication configuration provided. Please provide either a PAT or a GitHub App configuration."
    )


async def build_merge_queue_config(
    repo: str,
    base_branch: str,
    label: str,
    merge_method: MergeMethod | str,
    check_exclude_prefix: str,
    request_timeout: float,
    delete_branch_after_merge: bool = True,
    dry_run: bool = False,
) -> MergeQueueConfig:
    """Validate merge queue settings and assemble them into a MergeQueueConfig."""
    try:
        await split_repository_slug(repo)
    except ValueError as exc:
        raise InvalidMergeQueueConfigurationError("repo", repo, str(exc)) from exc

    if not base_branch.strip():
        raise InvalidMergeQueueConfigurationError("base_branch", base_branch, "must not be empty")
    if not label.strip():
        raise InvalidMergeQueueConfigurationError("label", label, "must not be empty")
    if request_timeout <= 0:
        raise InvalidMergeQueueConfigurationError("request_timeout", request_timeout, "must be greater than zero")

    try:
        method = MergeMethod(merge_method)
    except ValueError as exc:
        choices = ", ".join(m.value for m in MergeMethod)
        raise InvalidMergeQueueConfigurationError("merge_method", merge_method, f"must be one of {choices}") from exc

    return MergeQueueConfig(
        repo=repo.strip("/"),
        base_branch=base_branch.strip(),
        label=label.strip(),
        merge_method=method,
        check_exclude_prefix=check_exclude_prefix,
        request_timeout=request_timeout,
        delete_branch_after_merge=delete_branch_after_merge,
        dry_run=dry_run,
    )
