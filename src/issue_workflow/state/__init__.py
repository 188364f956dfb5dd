"""Workflow state for a single issue.

Issues progress forward only:
- pending → parsing → branch_creating → agent_assigned → processing
- → completed, or failed from anywhere
"""

from src.issue_workflow.state.models import (
    STATUS_ORDER,
    VALID_TRANSITIONS,
    WorkItem,
    WorkflowStatus,
    is_terminal_status,
    is_valid_transition,
    make_branch_name,
)

__all__ = [
    "STATUS_ORDER",
    "VALID_TRANSITIONS",
    "WorkItem",
    "WorkflowStatus",
    "is_terminal_status",
    "is_valid_transition",
    "make_branch_name",
]
