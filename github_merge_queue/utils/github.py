"""Contains utility functions for GitHub interactions."""


async def split_repository_slug(repo: str | None) -> tuple[str, str]:
    """Split an 'owner/repo' slug into its owner and repository name."""
    if repo is None:
        raise ValueError("A repository in 'owner/repo' format is required.")
    parts = repo.strip("/").split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Repository must be in the format 'owner/repo', got {repo!r}.")
    owner, repository = parts
    return owner, repository
