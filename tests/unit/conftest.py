"""Fixtures for unit tests."""

from typing import Generator

import pytest
import structlog

from github_merge_queue.configuration.models import MergeQueueConfig

from .fakes import FakeRepositoryClient


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Configure structlog for use with caplog."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def config() -> MergeQueueConfig:
    """Default merge queue configuration for a test repository."""
    return MergeQueueConfig(repo="octo-org/octo-repo")


@pytest.fixture
def fake_client() -> FakeRepositoryClient:
    """An empty in-memory repository."""
    return FakeRepositoryClient()
