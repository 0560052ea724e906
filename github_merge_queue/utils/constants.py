"""Shared constants used across the application."""

# Queue Defaults
# --------------

DEFAULT_BASE_BRANCH = "main"
"""Branch that queued pull requests are merged into."""

DEFAULT_QUEUE_LABEL = "queue"
"""Label that marks a pull request as queued for merging."""

DEFAULT_CHECK_EXCLUDE_PREFIX = "merge-queue"
"""Checks whose name starts with this prefix belong to the merge queue job itself and are ignored."""

DEFAULT_REQUEST_TIMEOUT = 30.0
"""Timeout in seconds applied to every GitHub API request."""

# Dequeue Reasons
# ---------------

NOT_APPROVED_REASON = "not approved"
MERGE_CONFLICTS_REASON = "merge conflicts"
CI_FAILED_REASON = "CI failed"

# Comment Templates
# -----------------

DEQUEUE_COMMENT_TEMPLATE = """\
This pull request was removed from the merge queue: **{{ reason }}**.
{% if failing_checks %}
Failing checks:
{% for check in failing_checks %}
- `{{ check }}`
{% endfor %}
{% endif %}
Once the problem is resolved, re-apply the `{{ label }}` label to queue it again."""
"""Jinja2 template for the comment posted when a pull request is dequeued."""
