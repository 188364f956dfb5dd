"""Webhook payload models and parsing."""

from src.issue_workflow.webhook.models import GitHubIssueEvent, IssueAction, IssueState
from src.issue_workflow.webhook.parser import (
    WebhookParser,
    decode_message_body,
    unwrap_envelope,
)

__all__ = [
    "GitHubIssueEvent",
    "IssueAction",
    "IssueState",
    "WebhookParser",
    "decode_message_body",
    "unwrap_envelope",
]
