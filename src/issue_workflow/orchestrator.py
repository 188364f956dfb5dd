"""Workflow orchestrator driving one issue through the workflow.

Receives raw webhook events and drives them through a fixed sequence of
steps:

    PARSE_WEBHOOK → CREATE_BRANCH → ASSIGN_AGENT → UPDATE_STATUS

Each step runs inside the RetryExecutor with the process-wide RetryPolicy
and its own label. Steps mutate a single WorkItem owned by the current
``process`` call. Once a WorkItem exists, the run ends in COMPLETED or
FAILED, and a failed run posts exactly one best-effort failure status on
the issue before the original error is re-raised.

Steps are written to be safe to re-run: interim status posts are best
effort, status moves that were already made are skipped, and every branch
creation attempt uses a fresh timestamped name.
"""

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from src.issue_workflow.agents.base import AnalysisAgent
from src.issue_workflow.errors import ClassifiedError, ErrorCode, describe_error
from src.issue_workflow.events.emitter import EventEmitter, safe_emit
from src.issue_workflow.events.models import EventType, WorkflowEvent
from src.issue_workflow.github.base import RemoteRepositoryClient
from src.issue_workflow.retry.executor import RetryExecutor
from src.issue_workflow.retry.policy import RetryPolicy
from src.issue_workflow.state.models import WorkflowStatus, WorkItem
from src.issue_workflow.webhook.parser import RawPayload, WebhookParser

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HEALTH_PROBE = ("octocat", "Hello-World")

# Interim statuses posted on the issue while the workflow runs.
BRANCH_CREATING_STATUS = "branch-creating"
PROCESSING_STATUS = "processing"


class WorkflowStep(str, Enum):
    """Labels of the retried workflow steps."""

    PARSE_WEBHOOK = "PARSE_WEBHOOK"
    CREATE_BRANCH = "CREATE_BRANCH"
    ASSIGN_AGENT = "ASSIGN_AGENT"
    UPDATE_STATUS = "UPDATE_STATUS"


def _wrap_step_error(exc: Exception, code: ErrorCode, prefix: str) -> ClassifiedError:
    """Re-label a step failure while keeping terminal errors intact."""
    if isinstance(exc, ClassifiedError) and not exc.retryable:
        return exc
    return ClassifiedError(
        f"{prefix}: {describe_error(exc)}",
        code,
        retryable=True,
        cause=exc,
    )


class WorkflowOrchestrator:
    """Sequences the issue workflow with retries and a terminal status.

    All collaborators are injected. The orchestrator keeps no per-run
    state on the instance, so concurrent ``process`` calls for different
    issues are safe.

    Attributes:
        repository_client: Remote repository operations.
        agent: Analysis agent run in the ASSIGN_AGENT step.
        retry_policy: Backoff configuration shared by every step.
        retry_executor: Runs each step with retries.
        event_emitter: Receives step, transition, error and completion events.
        parser: Turns raw payloads into issue events.
        agent_enabled: When False every item fails with AGENT_DISABLED.
        health_probe: (owner, repo) used by ``health_check``.
    """

    def __init__(
        self,
        repository_client: RemoteRepositoryClient,
        agent: AnalysisAgent,
        retry_policy: RetryPolicy,
        retry_executor: Optional[RetryExecutor] = None,
        event_emitter: Optional[EventEmitter] = None,
        parser: Optional[WebhookParser] = None,
        agent_enabled: bool = True,
        health_probe: Tuple[str, str] = DEFAULT_HEALTH_PROBE,
    ):
        self.repository_client = repository_client
        self.agent = agent
        self.retry_policy = retry_policy
        self.event_emitter = event_emitter
        self.retry_executor = retry_executor or RetryExecutor(event_emitter=event_emitter)
        self.parser = parser or WebhookParser()
        self.agent_enabled = agent_enabled
        self.health_probe = health_probe

    async def process(self, raw_event: RawPayload) -> None:
        """Drive one webhook event through the workflow.

        Args:
            raw_event: Webhook payload as JSON text, bytes or dictionary,
                optionally wrapped in an SNS/SQS envelope.

        Raises:
            ClassifiedError: The error that ended the run. Non-retryable
                errors surface unchanged; exhausted retries surface as
                MAX_RETRIES_EXCEEDED. Unexpected exceptions are re-raised
                as they are.
        """
        start_time = time.monotonic()
        item: Optional[WorkItem] = None
        step = WorkflowStep.PARSE_WEBHOOK

        try:
            item = await self._run_step(step, lambda: self._parse(raw_event))

            logger.info(
                "Starting workflow for issue",
                extra={"issue_id": item.display_id, "issue_number": item.issue_number},
            )

            step = WorkflowStep.CREATE_BRANCH
            await self._run_step(step, lambda: self._create_branch(item), item)

            step = WorkflowStep.ASSIGN_AGENT
            await self._run_step(step, lambda: self._assign_agent(item), item)

            step = WorkflowStep.UPDATE_STATUS
            await self._run_step(step, lambda: self._complete(item), item)

        except Exception as exc:
            await self._fail(item, step, exc)
            raise

        duration = time.monotonic() - start_time
        logger.info(
            "Successfully processed issue %s",
            item.display_id,
            extra={"issue_id": item.display_id, "branch_name": item.branch_name},
        )
        await self._emit(
            EventType.COMPLETION,
            item,
            {"branch_name": item.branch_name, "duration_seconds": duration},
        )

    async def health_check(self) -> Dict[str, str]:
        """Probe remote repository access.

        Returns:
            ``{"status": "healthy" | "unhealthy", "timestamp": <ISO-8601>}``
        """
        owner, repo = self.health_probe
        try:
            healthy = await self.repository_client.validate_access(owner, repo)
        except Exception as e:
            logger.warning("Health probe failed: %s", describe_error(e))
            healthy = False

        return {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def _parse(self, raw_event: RawPayload) -> WorkItem:
        event = self.parser.parse_issue_event(raw_event)
        item = event.to_work_item()
        item.advance(WorkflowStatus.PARSING)

        has_access = await self.repository_client.validate_access(
            item.owner, item.repository
        )
        if not has_access:
            raise ClassifiedError(
                "No access to repository or repository not found",
                ErrorCode.REPO_ACCESS_DENIED,
                retryable=False,
                context={"owner": item.owner, "repo": item.repository},
            )

        logger.info(
            "Parsed webhook for issue %d in %s",
            item.issue_number,
            item.full_repository,
        )
        return item

    async def _create_branch(self, item: WorkItem) -> None:
        await self._advance_to(item, WorkflowStatus.BRANCH_CREATING)

        try:
            await self.repository_client.post_status_best_effort(
                item, BRANCH_CREATING_STATUS, "Creating feature branch..."
            )
            item.branch_name = await self.repository_client.create_branch(item)
        except Exception as exc:
            raise _wrap_step_error(
                exc, ErrorCode.BRANCH_CREATION_FAILED, "Branch creation failed"
            ) from exc

        logger.info(
            "Created branch %s for issue %d", item.branch_name, item.issue_number
        )

    async def _assign_agent(self, item: WorkItem) -> None:
        await self._advance_to(item, WorkflowStatus.AGENT_ASSIGNED)
        item.agent_type = self.agent.agent_type.value

        try:
            await self.repository_client.post_status_best_effort(
                item,
                PROCESSING_STATUS,
                f"{self.agent.display_name} analyzing requirements...",
            )

            if not self.agent_enabled:
                raise ClassifiedError(
                    f"{self.agent.display_name} agent is disabled",
                    ErrorCode.AGENT_DISABLED,
                    retryable=False,
                )

            await self._advance_to(item, WorkflowStatus.PROCESSING)
            result = await self.agent.execute(item)

            if not result.success:
                raise ClassifiedError(
                    f"Agent execution failed: {result.error}",
                    ErrorCode.AGENT_EXECUTION_FAILED,
                    retryable=result.retryable,
                    context={
                        "agent_type": item.agent_type,
                        "agent_error_code": result.error_code.value
                        if result.error_code
                        else None,
                        "duration_seconds": result.duration_seconds,
                    },
                )

            await self.repository_client.post_analysis(item, result.output)
        except ClassifiedError:
            raise
        except Exception as exc:
            raise ClassifiedError(
                f"Agent assignment failed: {describe_error(exc)}",
                ErrorCode.AGENT_ASSIGNMENT_FAILED,
                retryable=True,
                cause=exc,
            ) from exc

        logger.info(
            "Agent %s completed analysis for issue %d",
            item.agent_type,
            item.issue_number,
        )

    async def _complete(self, item: WorkItem) -> None:
        await self._advance_to(item, WorkflowStatus.COMPLETED)

        try:
            await self.repository_client.post_status(
                item, WorkflowStatus.COMPLETED.value
            )
        except Exception as exc:
            raise _wrap_step_error(
                exc, ErrorCode.STATUS_UPDATE_FAILED, "Status update failed"
            ) from exc

    async def _fail(
        self,
        item: Optional[WorkItem],
        step: WorkflowStep,
        exc: Exception,
    ) -> None:
        """Record a terminal failure and post one best-effort failed status."""
        if isinstance(exc, ClassifiedError):
            message = exc.message
        else:
            message = f"Unexpected error: {describe_error(exc)}"

        logger.error(
            "Workflow failed for issue %s: %s",
            item.display_id if item else "unknown",
            message,
            extra={"step": step.value},
        )

        if item is not None:
            item.last_error = message
            await self._advance_to(item, WorkflowStatus.FAILED)
            await self.repository_client.post_status_best_effort(
                item, WorkflowStatus.FAILED.value, message
            )

        await self._emit(
            EventType.ERROR,
            item,
            {
                "step": step.value,
                "error_message": message,
                "code": exc.code.value if isinstance(exc, ClassifiedError) else None,
                "retryable": exc.retryable if isinstance(exc, ClassifiedError) else True,
            },
        )

    async def _run_step(
        self,
        step: WorkflowStep,
        operation: Callable[[], Awaitable[T]],
        item: Optional[WorkItem] = None,
    ) -> T:
        await self._emit(EventType.STEP_STARTED, item, {"step": step.value})

        on_retry = None
        if item is not None:

            def on_retry(attempt: int) -> None:
                item.retry_count += 1

        result = await self.retry_executor.execute(
            operation,
            self.retry_policy,
            step.value,
            issue_id=item.display_id if item else None,
            repository=item.full_repository if item else None,
            on_retry=on_retry,
        )

        await self._emit(EventType.STEP_COMPLETED, item or result, {"step": step.value})
        return result

    async def _advance_to(self, item: WorkItem, status: WorkflowStatus) -> None:
        """Move ``item`` forward to ``status`` unless it is already there or beyond."""
        if item.has_reached(status):
            return

        previous = item.status
        item.advance(status)
        await self._emit(
            EventType.STATE_TRANSITION,
            item,
            {"from_status": previous.value, "to_status": status.value},
        )

    async def _emit(
        self,
        event_type: EventType,
        item: Any,
        details: Dict[str, Any],
    ) -> None:
        issue_id = None
        repository = None
        if isinstance(item, WorkItem):
            issue_id = item.display_id
            repository = item.full_repository

        await safe_emit(
            self.event_emitter,
            WorkflowEvent(
                event_type=event_type,
                issue_id=issue_id,
                repository=repository,
                details=details,
            ),
        )
