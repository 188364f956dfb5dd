"""Workflow event models for observability.

This module defines the data models for workflow events:
- EventType: Enum of all event types emitted by the workflow
- WorkflowEvent: Structured event with correlation metadata

Events replace ad hoc console output: every step start/end, retry attempt,
agent outcome and terminal outcome is emitted through an EventEmitter so
tests can assert on them and operators can route them to logs or metrics.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the workflow.

    Attributes:
        STATE_TRANSITION: WorkItem moved from one status to another.
        STEP_STARTED: A labelled workflow step began.
        STEP_COMPLETED: A labelled workflow step finished successfully.
        RETRY_ATTEMPT: An attempt failed and another will follow after a delay.
        RETRY_SUCCEEDED: An operation succeeded after at least one retry.
        RETRY_EXHAUSTED: All attempts of an operation failed.
        AGENT_COMPLETED: An analysis agent produced output.
        AGENT_FAILED: An analysis agent reported failure.
        TIMEOUT: An operation exceeded its deadline.
        ERROR: The workflow failed terminally.
        COMPLETION: The workflow completed successfully.
    """

    STATE_TRANSITION = "state_transition"
    STEP_STARTED = "step_started"
    STEP_COMPLETED = "step_completed"
    RETRY_ATTEMPT = "retry_attempt"
    RETRY_SUCCEEDED = "retry_succeeded"
    RETRY_EXHAUSTED = "retry_exhausted"
    AGENT_COMPLETED = "agent_completed"
    AGENT_FAILED = "agent_failed"
    TIMEOUT = "timeout"
    ERROR = "error"
    COMPLETION = "completion"


class WorkflowEvent(BaseModel):
    """Structured event emitted by the workflow.

    Details Field Conventions:
        STATE_TRANSITION: from_status, to_status
        STEP_STARTED / STEP_COMPLETED: step
        RETRY_ATTEMPT: label, attempt, max_attempts, delay_ms, error, code
        RETRY_SUCCEEDED: label, attempt
        RETRY_EXHAUSTED: label, attempts, error
        AGENT_COMPLETED / AGENT_FAILED: agent_type, duration_seconds, error
        TIMEOUT: operation, timeout_seconds
        ERROR: step, error_message, code, retryable
        COMPLETION: branch_name, duration_seconds

    Attributes:
        event_type: The category of event.
        issue_id: Canonical issue identifier "{owner}/{repo}#{number}",
            absent for events raised before an issue is known.
        repository: Full repository path "{owner}/{repo}", when known.
        timestamp: When the event occurred (UTC).
        details: Additional context specific to the event type.
    """

    event_type: EventType = Field(..., description="The category of event")

    issue_id: Optional[str] = Field(
        default=None,
        description='Canonical issue identifier "{owner}/{repo}#{number}"',
    )

    repository: Optional[str] = Field(
        default=None,
        description='Full repository path "{owner}/{repo}"',
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context specific to the event type",
    )

    def to_log_dict(self) -> Dict[str, Any]:
        """Flatten the event into a dictionary for structured logging.

        Example:
            >>> event = WorkflowEvent(
            ...     event_type=EventType.RETRY_ATTEMPT,
            ...     details={"label": "CREATE_BRANCH", "attempt": 1},
            ... )
            >>> event.to_log_dict()["label"]
            'CREATE_BRANCH'
        """
        return {
            "event_type": self.event_type.value,
            "issue_id": self.issue_id,
            "repository": self.repository,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
