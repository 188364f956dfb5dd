"""GitHub integration: remote repository client and error classification."""

from src.issue_workflow.github.base import RemoteRepositoryClient
from src.issue_workflow.github.client import GitHubRepositoryClient
from src.issue_workflow.github.errors import (
    GitHubAPIError,
    RateLimitError,
    classify_github_error,
)
from src.issue_workflow.github.formatting import (
    format_analysis_comment,
    format_status_comment,
    status_label,
)

__all__ = [
    "RemoteRepositoryClient",
    "GitHubRepositoryClient",
    "GitHubAPIError",
    "RateLimitError",
    "classify_github_error",
    "format_analysis_comment",
    "format_status_comment",
    "status_label",
]
