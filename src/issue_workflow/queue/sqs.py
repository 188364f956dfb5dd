"""SQS long-poll consumer feeding the queue dispatcher.

boto3 is synchronous, so every SQS call runs in a worker thread through
``asyncio.to_thread`` to keep the event loop free while long-polling.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import boto3

from src.issue_workflow.queue.dispatcher import QueueDispatcher

logger = logging.getLogger(__name__)


class SQSConsumer:
    """Long-polls an SQS queue and dispatches each received batch concurrently.

    Attributes:
        dispatcher: Processes and acknowledges individual messages.
        queue_url: URL of the queue to consume.
        max_messages: Messages requested per receive call (1-10).
        wait_time_seconds: Long-poll wait per receive call.
        visibility_timeout_seconds: How long a received message stays hidden.
        error_backoff_seconds: Pause after a failed poll.
    """

    def __init__(
        self,
        dispatcher: QueueDispatcher,
        queue_url: str,
        region: Optional[str] = None,
        max_messages: int = 10,
        wait_time_seconds: int = 20,
        visibility_timeout_seconds: int = 300,
        error_backoff_seconds: float = 5.0,
        sqs_client: Optional[Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the consumer.

        Args:
            dispatcher: Dispatcher receiving message bodies.
            queue_url: URL of the queue to consume.
            region: AWS region for the default client.
            max_messages: Messages requested per receive call.
            wait_time_seconds: Long-poll wait per receive call.
            visibility_timeout_seconds: Visibility timeout for received messages.
            error_backoff_seconds: Pause after a failed poll.
            sqs_client: Optional boto3 SQS client (for testing).
            sleep: Coroutine function used for the error back-off.
        """
        self.dispatcher = dispatcher
        self.queue_url = queue_url
        self.max_messages = max_messages
        self.wait_time_seconds = wait_time_seconds
        self.visibility_timeout_seconds = visibility_timeout_seconds
        self.error_backoff_seconds = error_backoff_seconds
        self._sqs = sqs_client or boto3.client("sqs", region_name=region)
        self._sleep = sleep
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Poll until ``stop`` is called."""
        if self._running:
            logger.info("Consumer is already running")
            return

        self._running = True
        logger.info("Starting SQS consumer for queue: %s", self.queue_url)

        while self._running:
            try:
                await self.poll_once()
            except Exception as e:
                logger.error(
                    "Error in message polling loop: %s",
                    e,
                    extra={"queue_url": self.queue_url},
                )
                await self._sleep(self.error_backoff_seconds)

        logger.info("SQS consumer stopped")

    def stop(self) -> None:
        logger.info("Stopping SQS consumer...")
        self._running = False

    async def poll_once(self) -> int:
        """Receive one batch and process it concurrently.

        Returns:
            Number of messages received.
        """
        response = await asyncio.to_thread(
            self._sqs.receive_message,
            QueueUrl=self.queue_url,
            MaxNumberOfMessages=self.max_messages,
            WaitTimeSeconds=self.wait_time_seconds,
            VisibilityTimeout=self.visibility_timeout_seconds,
        )

        messages = response.get("Messages") or []
        if not messages:
            return 0

        await asyncio.gather(
            *(self.process_message(message) for message in messages),
            return_exceptions=True,
        )
        return len(messages)

    async def process_message(self, message: Dict[str, Any]) -> bool:
        """Dispatch one received message.

        Returns:
            True if the message was processed and acknowledged.
        """
        body = message.get("Body")
        receipt_handle = message.get("ReceiptHandle")
        if not body or not receipt_handle:
            logger.warning("Received message without body or receipt handle, skipping")
            return False

        async def acknowledge() -> None:
            await self._delete_message(receipt_handle)

        return await self.dispatcher.dispatch(
            body, acknowledge, message_id=message.get("MessageId", "")
        )

    async def _delete_message(self, receipt_handle: str) -> None:
        await asyncio.to_thread(
            self._sqs.delete_message,
            QueueUrl=self.queue_url,
            ReceiptHandle=receipt_handle,
        )

    async def health_check(self) -> Dict[str, str]:
        """Check queue connectivity without receiving messages.

        Returns:
            ``{"status": ..., "queue_url": ..., "timestamp": ...}``
        """
        try:
            await asyncio.to_thread(
                self._sqs.get_queue_attributes,
                QueueUrl=self.queue_url,
                AttributeNames=["ApproximateNumberOfMessages"],
            )
            status = "healthy"
        except Exception as e:
            logger.warning("SQS health check failed: %s", e)
            status = "unhealthy"

        return {
            "status": status,
            "queue_url": self.queue_url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
