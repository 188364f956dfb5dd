"""GitHub webhook event models for the issue workflow.

This module defines the data model for GitHub issue webhook events that
trigger the workflow. Only ``issues.opened`` events for open issues are
processed; everything else is rejected at parse time.

The models use Pydantic for validation, consistent with the workflow's
configuration approach in config.py.
"""

from enum import Enum

from pydantic import BaseModel, Field

from src.issue_workflow.state.models import WorkItem


class IssueAction(str, Enum):
    """GitHub issue event action types.

    Attributes:
        OPENED: A new issue was created. The only action that starts a
                workflow run.
    """

    OPENED = "opened"


class IssueState(str, Enum):
    """State of the issue at the time the webhook was sent."""

    OPEN = "open"
    CLOSED = "closed"


class GitHubIssueEvent(BaseModel):
    """Parsed GitHub issue webhook event.

    Attributes:
        action: The type of issue event.
        state: The issue state (only open issues are processed).
        issue_id: The numeric, globally unique GitHub issue id.
        issue_number: The issue number within the repository.
        title: The issue title text.
        body: The issue body/description text. May be empty.
        labels: List of label names attached to the issue.
        repository: The repository name (without owner prefix).
        owner: The repository owner (user or organization).
        default_branch: The repository's default branch.
        author: The GitHub username who created the issue, when present.
    """

    action: IssueAction = Field(
        ...,
        description="The type of issue event that triggered the webhook",
    )

    state: IssueState = Field(
        default=IssueState.OPEN,
        description="The issue state when the event was sent",
    )

    issue_id: int = Field(
        ...,
        description="The numeric GitHub issue id",
    )

    issue_number: int = Field(
        ...,
        gt=0,
        description="The issue number within the repository (positive integer)",
    )

    title: str = Field(
        ...,
        min_length=1,
        description="The issue title text (cannot be empty)",
    )

    body: str = Field(
        default="",
        description="The issue body/description text (may be empty)",
    )

    labels: list[str] = Field(
        default_factory=list,
        description="List of label names attached to the issue",
    )

    repository: str = Field(
        ...,
        min_length=1,
        description="The repository name without owner prefix",
    )

    owner: str = Field(
        ...,
        min_length=1,
        description="The repository owner (user or organization)",
    )

    default_branch: str = Field(
        default="main",
        min_length=1,
        description="The repository default branch used as the branch base",
    )

    author: str = Field(
        default="",
        description="The GitHub username who created the issue",
    )

    @property
    def display_id(self) -> str:
        """Canonical issue identifier "{owner}/{repository}#{issue_number}"."""
        return f"{self.owner}/{self.repository}#{self.issue_number}"

    @property
    def full_repository(self) -> str:
        """Repository path in format "{owner}/{repository}"."""
        return f"{self.owner}/{self.repository}"

    def to_work_item(self) -> WorkItem:
        """Build the initial PENDING WorkItem for this event."""
        return WorkItem(
            issue_id=self.issue_id,
            issue_number=self.issue_number,
            owner=self.owner,
            repository=self.repository,
            default_branch=self.default_branch,
            title=self.title,
            body=self.body,
            labels=list(self.labels),
        )
