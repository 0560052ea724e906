"""Pydantic Settings model for application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from github_merge_queue.configuration.models import MergeMethod
from github_merge_queue.utils.constants import (
    DEFAULT_BASE_BRANCH,
    DEFAULT_CHECK_EXCLUDE_PREFIX,
    DEFAULT_QUEUE_LABEL,
    DEFAULT_REQUEST_TIMEOUT,
)


class Settings(BaseSettings):
    """Environment variable settings for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Generic application-wide settings
    DEBUG: bool = False

    # GitHub API settings
    GITHUB_API_URL: str = "https://api.github.com"

    # GitHub PAT settings
    GITHUB_PAT_TOKEN: str | None = None

    # GitHub App settings
    GITHUB_APP_ID: int | None = None
    GITHUB_APP_PRIVATE_KEY_PATH: Path | None = None
    GITHUB_APP_INSTALLATION_ID: int | None = None

    # Merge queue settings
    BASE_BRANCH: str = DEFAULT_BASE_BRANCH
    QUEUE_LABEL: str = DEFAULT_QUEUE_LABEL
    MERGE_METHOD: MergeMethod = MergeMethod.SQUASH
    CHECK_EXCLUDE_PREFIX: str = DEFAULT_CHECK_EXCLUDE_PREFIX
    REQUEST_TIMEOUT: float = DEFAULT_REQUEST_TIMEOUT


settings = Settings()
