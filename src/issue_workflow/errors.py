"""Classified error taxonomy for the issue workflow.

Every failure surfaced by a workflow step is a ClassifiedError carrying a
stable code and a retryability flag. The retry executor consults only the
flag; transport-specific knowledge (HTTP status codes, subprocess exit
codes) is translated into codes at the collaborator boundary.

Taxonomy:
    Validation (bad webhook, invalid context, disabled agent) -> not retryable
    Access / not found / conflict                              -> not retryable
    Transient, network, timeout, unclassified                  -> retryable
    Exhausted retries (MAX_RETRIES_EXCEEDED)                   -> not retryable
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable error codes attached to ClassifiedError instances."""

    # Webhook / queue payload
    INVALID_WEBHOOK = "INVALID_WEBHOOK"
    INVALID_WEBHOOK_PAYLOAD = "INVALID_WEBHOOK_PAYLOAD"
    WEBHOOK_PARSE_ERROR = "WEBHOOK_PARSE_ERROR"
    REPO_ACCESS_DENIED = "REPO_ACCESS_DENIED"

    # Remote repository
    REPO_NOT_FOUND = "REPO_NOT_FOUND"
    BRANCH_EXISTS = "BRANCH_EXISTS"
    BRANCH_CREATION_FAILED = "BRANCH_CREATION_FAILED"
    ISSUE_NOT_FOUND = "ISSUE_NOT_FOUND"
    STATUS_UPDATE_FAILED = "STATUS_UPDATE_FAILED"
    ANALYSIS_UPDATE_FAILED = "ANALYSIS_UPDATE_FAILED"

    # Agents and prompt runners
    INVALID_CONTEXT = "INVALID_CONTEXT"
    AGENT_DISABLED = "AGENT_DISABLED"
    AGENT_TIMEOUT = "AGENT_TIMEOUT"
    AGENT_EXECUTION_FAILED = "AGENT_EXECUTION_FAILED"
    AGENT_ASSIGNMENT_FAILED = "AGENT_ASSIGNMENT_FAILED"
    TECH_LEAD_ANALYSIS_FAILED = "TECH_LEAD_ANALYSIS_FAILED"
    PROMPT_TIMEOUT = "PROMPT_TIMEOUT"
    PROMPT_RUNNER_FAILED = "PROMPT_RUNNER_FAILED"

    # Retry executor
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"


class ClassifiedError(Exception):
    """An error tagged with a stable code and a retryability flag.

    Attributes:
        message: Human-readable error description.
        code: Stable error code.
        retryable: False short-circuits the retry executor immediately.
        cause: The underlying exception, if any.
        context: Optional structured details for logging.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        retryable: bool = True,
        cause: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.retryable = retryable
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    def __repr__(self) -> str:
        return (
            f"ClassifiedError(code={self.code.value!r}, "
            f"retryable={self.retryable}, message={self.message!r})"
        )


class InvalidTransitionError(Exception):
    """Raised when a WorkItem is asked to move backwards or out of a terminal state."""

    def __init__(self, from_status: Any, to_status: Any):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition from {from_status.value} to {to_status.value}"
        )


def is_retryable(exc: BaseException) -> bool:
    """Return the retryability of an exception.

    Unclassified exceptions default to retryable.
    """
    if isinstance(exc, ClassifiedError):
        return exc.retryable
    return True


def describe_error(exc: Optional[BaseException]) -> str:
    """Format an exception as a message that is never empty."""
    if exc is None:
        return "Unknown error"
    if isinstance(exc, ClassifiedError) and exc.message:
        return exc.message
    text = str(exc)
    if text:
        return text
    return type(exc).__name__ or "Unknown error"
