"""Contains exceptions raised when reconciling application configuration."""


class GitHubAuthenticationConfigurationUndefinedError(Exception):
    """Raised when the GitHub authentication configuration is undefined."""

    pass


class InvalidMergeQueueConfigurationError(Exception):
    """Raised when a merge queue setting has an unusable value."""

    def __init__(self, name: str, value: object, message: str) -> None:
        """Initializes the exception with the offending setting and value."""
        super().__init__(f"Invalid value for {name} ({value!r}): {message}")
        self.name = name
        self.value = value
