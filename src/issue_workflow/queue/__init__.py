"""Queue transport: dispatcher and SQS consumer."""

from src.issue_workflow.queue.dispatcher import QueueDispatcher
from src.issue_workflow.queue.sqs import SQSConsumer

__all__ = ["QueueDispatcher", "SQSConsumer"]
