"""Workflow state models.

This module defines the per-issue context threaded through the workflow:
- WorkflowStatus: Enum of all workflow states
- WorkItem: Mutable context owned by one orchestrator run
- VALID_TRANSITIONS: Map defining allowed status transitions

Status Flow:
    pending → parsing → branch_creating → agent_assigned → processing
    → completed

Any status other than failed can transition to failed. Re-entering the
current status is a no-op so that retried steps stay idempotent.

The models use Pydantic for validation, consistent with the webhook and
event models.
"""

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.issue_workflow.errors import InvalidTransitionError


class WorkflowStatus(str, Enum):
    """Statuses a WorkItem progresses through.

    Attributes:
        PENDING: Item created, nothing validated yet.
        PARSING: Webhook parsed, repository access being verified.
        BRANCH_CREATING: Feature branch being created.
        AGENT_ASSIGNED: Analysis agent selected for the item.
        PROCESSING: Analysis agent running.
        COMPLETED: Analysis posted and completion status recorded.
        FAILED: Terminal failure; last_error holds the reason.
    """

    PENDING = "pending"
    PARSING = "parsing"
    BRANCH_CREATING = "branch_creating"
    AGENT_ASSIGNED = "agent_assigned"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Forward order of the non-failure statuses.
STATUS_ORDER: List[WorkflowStatus] = [
    WorkflowStatus.PENDING,
    WorkflowStatus.PARSING,
    WorkflowStatus.BRANCH_CREATING,
    WorkflowStatus.AGENT_ASSIGNED,
    WorkflowStatus.PROCESSING,
    WorkflowStatus.COMPLETED,
]

# Each status may only advance to its direct successor or to FAILED.
# FAILED is terminal. COMPLETED may still fall to FAILED when the final
# status update cannot be delivered.
VALID_TRANSITIONS: Dict[WorkflowStatus, List[WorkflowStatus]] = {
    WorkflowStatus.PENDING: [WorkflowStatus.PARSING, WorkflowStatus.FAILED],
    WorkflowStatus.PARSING: [WorkflowStatus.BRANCH_CREATING, WorkflowStatus.FAILED],
    WorkflowStatus.BRANCH_CREATING: [
        WorkflowStatus.AGENT_ASSIGNED,
        WorkflowStatus.FAILED,
    ],
    WorkflowStatus.AGENT_ASSIGNED: [WorkflowStatus.PROCESSING, WorkflowStatus.FAILED],
    WorkflowStatus.PROCESSING: [WorkflowStatus.COMPLETED, WorkflowStatus.FAILED],
    WorkflowStatus.COMPLETED: [WorkflowStatus.FAILED],
    WorkflowStatus.FAILED: [],
}


def is_valid_transition(from_status: WorkflowStatus, to_status: WorkflowStatus) -> bool:
    """Check whether moving from one status to another is allowed.

    Example:
        >>> is_valid_transition(WorkflowStatus.PARSING, WorkflowStatus.BRANCH_CREATING)
        True
        >>> is_valid_transition(WorkflowStatus.PROCESSING, WorkflowStatus.PARSING)
        False
    """
    return to_status in VALID_TRANSITIONS.get(from_status, [])


def is_terminal_status(status: WorkflowStatus) -> bool:
    """Return True for COMPLETED and FAILED."""
    return status in (WorkflowStatus.COMPLETED, WorkflowStatus.FAILED)


def make_branch_name(issue_number: int, epoch_ms: Optional[int] = None) -> str:
    """Build the feature branch name for an issue.

    The millisecond timestamp keeps names distinct across retried attempts.

    Args:
        issue_number: The issue number within the repository.
        epoch_ms: Creation time in epoch milliseconds; defaults to now.

    Returns:
        Branch name in the form ``feature/issue-<number>-<epoch-ms>``.
    """
    if epoch_ms is None:
        epoch_ms = int(time.time() * 1000)
    return f"feature/issue-{issue_number}-{epoch_ms}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkItem(BaseModel):
    """Mutable context for one issue travelling through the workflow.

    A WorkItem is owned exclusively by a single orchestrator run and is
    never shared between concurrent runs.

    Attributes:
        issue_id: Numeric GitHub issue id.
        issue_number: Issue number within the repository.
        owner: Repository owner (user or organization).
        repository: Repository name without owner prefix.
        default_branch: Base branch the feature branch is created from.
        title: Issue title.
        body: Issue body; empty string when the issue has none.
        labels: Label names attached to the issue.
        status: Current workflow status.
        branch_name: Feature branch created for the issue.
        agent_type: Analysis agent assigned to the item.
        retry_count: Retries spent on this item across all steps.
        last_error: Error message recorded on terminal failure.
        created_at: When the item was created (UTC).
        updated_at: When the status last changed (UTC).
    """

    issue_id: int = Field(..., frozen=True, description="Numeric GitHub issue id")
    issue_number: int = Field(..., gt=0, frozen=True, description="Issue number in the repository")
    owner: str = Field(..., frozen=True, description="Repository owner login")
    repository: str = Field(..., frozen=True, description="Repository name")
    default_branch: str = Field(default="main", description="Base branch name")

    title: str = Field(..., description="Issue title")
    body: str = Field(default="", description="Issue body (may be empty)")
    labels: List[str] = Field(default_factory=list, description="Issue label names")

    status: WorkflowStatus = Field(default=WorkflowStatus.PENDING)
    branch_name: Optional[str] = Field(default=None)
    agent_type: Optional[str] = Field(default=None)
    retry_count: int = Field(default=0, ge=0)
    last_error: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def full_repository(self) -> str:
        """Repository path in format "{owner}/{repository}"."""
        return f"{self.owner}/{self.repository}"

    @property
    def display_id(self) -> str:
        """Canonical identifier in format "{owner}/{repository}#{number}"."""
        return f"{self.owner}/{self.repository}#{self.issue_number}"

    def has_required_fields(self) -> bool:
        """True when title, repository and owner are all non-blank."""
        return all(
            isinstance(value, str) and value.strip()
            for value in (self.title, self.repository, self.owner)
        )

    def has_reached(self, status: WorkflowStatus) -> bool:
        """True if the item is at or beyond ``status`` on the forward path."""
        if self.status == WorkflowStatus.FAILED:
            return status == WorkflowStatus.FAILED
        if status == WorkflowStatus.FAILED:
            return False
        return STATUS_ORDER.index(self.status) >= STATUS_ORDER.index(status)

    def advance(self, status: WorkflowStatus) -> bool:
        """Move the item to ``status``.

        Re-entering the current status is a no-op.

        Args:
            status: Target status.

        Returns:
            True if the status changed, False for a no-op.

        Raises:
            InvalidTransitionError: For backward moves, skipped steps, or
                any move out of FAILED.
        """
        if status == self.status:
            return False
        if not is_valid_transition(self.status, status):
            raise InvalidTransitionError(self.status, status)
        self.status = status
        self.updated_at = _utcnow()
        return True
