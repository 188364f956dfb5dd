"""Delivery of queued webhook events to the workflow.

The dispatcher is transport-agnostic: it decodes one message body, hands
the payload to the workflow, and acknowledges the message only when the
workflow did not raise. Delivery is at-least-once; an unacknowledged
message becomes visible again and is redelivered by the transport.
"""

import logging
from typing import Awaitable, Callable

from src.issue_workflow.errors import describe_error, is_retryable
from src.issue_workflow.webhook.parser import RawPayload, decode_message_body

logger = logging.getLogger(__name__)

ProcessFunc = Callable[[RawPayload], Awaitable[None]]
AckFunc = Callable[[], Awaitable[None]]


class QueueDispatcher:
    """Hands message bodies to the workflow and acknowledges successes.

    Attributes:
        process: Coroutine function processing one decoded payload,
            typically ``WorkflowOrchestrator.process``.
    """

    def __init__(self, process: ProcessFunc):
        self.process = process

    async def dispatch(
        self,
        body: RawPayload,
        acknowledge: AckFunc,
        message_id: str = "",
    ) -> bool:
        """Process one message body.

        Never raises. A failed acknowledgement after successful processing
        is only logged; the message will be redelivered.

        Args:
            body: Raw message body.
            acknowledge: Coroutine function deleting the message.
            message_id: Transport message id for log context.

        Returns:
            True if the payload was processed successfully.
        """
        logger.info("Processing message: %s", message_id)

        try:
            payload = decode_message_body(body)
            await self.process(payload)
        except Exception as e:
            logger.error(
                "Failed to process message %s: %s",
                message_id,
                describe_error(e),
                extra={"message_id": message_id},
            )
            if not is_retryable(e):
                logger.error(
                    "Non-retryable error, message is a dead-letter candidate: %s",
                    describe_error(e),
                    extra={"message_id": message_id},
                )
            return False

        try:
            await acknowledge()
        except Exception as e:
            logger.error(
                "Failed to acknowledge message %s: %s",
                message_id,
                describe_error(e),
                extra={"message_id": message_id},
            )

        logger.info("Successfully processed message: %s", message_id)
        return True
