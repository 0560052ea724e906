"""Sequential merge queue for GitHub pull requests."""
