"""GitHub API errors and their translation into classified workflow errors.

GitHubAPIError and RateLimitError describe what the transport saw.
``classify_github_error`` is the single place where HTTP status codes are
turned into ClassifiedError codes and retryability; nothing above the
client inspects status codes.
"""

from typing import Any, Dict, Mapping, Optional

import httpx

from src.issue_workflow.errors import ClassifiedError, ErrorCode, describe_error


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response.
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


def classify_github_error(
    exc: BaseException,
    default_code: ErrorCode,
    message_prefix: str,
    terminal: Optional[Mapping[int, tuple]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> ClassifiedError:
    """Translate a client-side failure into a ClassifiedError.

    Args:
        exc: The exception raised while talking to GitHub.
        default_code: Code used for every failure not listed in ``terminal``.
            These failures are retryable: rate limits, 5xx responses,
            timeouts, network errors and anything unrecognized.
        message_prefix: Prefix for the default message, e.g.
            "Failed to create branch".
        terminal: Map of HTTP status code to ``(ErrorCode, message)`` for
            failures that can never succeed on retry.
        context: Extra structured details attached to terminal errors.

    Returns:
        The classified error. An already classified ``exc`` is returned
        unchanged.

    Example:
        >>> err = classify_github_error(
        ...     GitHubAPIError("GitHub API error: 404", status_code=404),
        ...     ErrorCode.STATUS_UPDATE_FAILED,
        ...     "Failed to update issue status",
        ...     terminal={404: (ErrorCode.ISSUE_NOT_FOUND, "Issue not found")},
        ... )
        >>> err.code, err.retryable
        (<ErrorCode.ISSUE_NOT_FOUND: 'ISSUE_NOT_FOUND'>, False)
    """
    if isinstance(exc, ClassifiedError):
        return exc

    status_code = None
    if isinstance(exc, GitHubAPIError):
        status_code = exc.status_code
    elif isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code

    if (
        terminal
        and status_code is not None
        and not isinstance(exc, RateLimitError)
        and status_code in terminal
    ):
        code, message = terminal[status_code]
        return ClassifiedError(
            message,
            code,
            retryable=False,
            cause=exc,
            context=dict(context or {}, status_code=status_code),
        )

    return ClassifiedError(
        f"{message_prefix}: {describe_error(exc)}",
        default_code,
        retryable=True,
        cause=exc,
        context={"status_code": status_code} if status_code is not None else None,
    )
