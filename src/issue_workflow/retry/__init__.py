"""Retry policy and executor with exponential backoff."""

from src.issue_workflow.retry.executor import RetryExecutor
from src.issue_workflow.retry.policy import RetryPolicy

__all__ = ["RetryExecutor", "RetryPolicy"]
