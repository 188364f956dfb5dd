"""Markdown bodies for the comments the workflow posts on issues."""

from datetime import datetime, timezone
from typing import Optional


def status_label(status: str) -> str:
    """Label recording the latest workflow status on an issue."""
    return f"workflow:{status}"


def format_status_comment(
    status: str,
    details: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> str:
    """Format a workflow status update comment.

    Args:
        status: Status name shown in the comment.
        details: Optional free-text details section.
        timestamp: Time shown in the comment; defaults to now (UTC).

    Returns:
        Markdown comment body.
    """
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    comment = "## 🔄 Workflow Status Update\n\n"
    comment += f"**Status:** {status}\n"
    comment += f"**Timestamp:** {timestamp.isoformat()}\n"

    if details:
        comment += f"\n**Details:**\n{details}\n"

    comment += "\n---\n*Automated workflow system*"
    return comment


def format_analysis_comment(analysis: str) -> str:
    """Wrap tech lead analysis text in the analysis comment template."""
    return (
        "## 🤖 Tech Lead Analysis\n\n"
        f"{analysis}\n\n"
        "---\n"
        "*Generated automatically by workflow system*"
    )
