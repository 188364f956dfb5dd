"""Base class for LLM-backed analysis agents.

An agent turns a WorkItem into a prompt, runs it through a PromptRunner and
reports a structured AgentResult. Agents never raise for expected failures:
invalid input, runner errors and timeouts are all reported as unsuccessful
results so the orchestrator decides how to proceed.

The deadline is enforced by racing the runner task against a timer. When
the timer wins, the runner task is cancelled and its eventual outcome is
consumed and discarded; a late result never reaches the caller.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from src.issue_workflow.agents.models import AgentResult, AgentType
from src.issue_workflow.errors import ErrorCode, describe_error
from src.issue_workflow.events.emitter import EventEmitter, safe_emit
from src.issue_workflow.events.models import EventType, WorkflowEvent
from src.issue_workflow.llm.base import PromptRunner
from src.issue_workflow.state.models import WorkItem


logger = logging.getLogger(__name__)

INVALID_CONTEXT_MESSAGE = "Invalid workflow context: missing required fields"


def _discard_outcome(task: "asyncio.Future[str]") -> None:
    if not task.cancelled():
        task.exception()


class AnalysisAgent(ABC):
    """LLM-backed agent with input validation and a hard deadline.

    Subclasses set ``agent_type``, ``display_name`` and ``failure_code`` and
    implement ``build_prompt``.

    Attributes:
        runner: PromptRunner executing the prompt.
        timeout_seconds: Deadline for one run.
        event_emitter: Receives AGENT_COMPLETED / AGENT_FAILED / TIMEOUT.
    """

    agent_type: AgentType
    display_name: str
    failure_code: ErrorCode = ErrorCode.AGENT_EXECUTION_FAILED

    def __init__(
        self,
        runner: PromptRunner,
        timeout_seconds: float = 30.0,
        event_emitter: Optional[EventEmitter] = None,
    ):
        self.runner = runner
        self.timeout_seconds = timeout_seconds
        self.event_emitter = event_emitter

    @abstractmethod
    def build_prompt(self, item: WorkItem) -> str:
        """Build the prompt for ``item``. Must be deterministic."""

    def validate_context(self, item: WorkItem) -> bool:
        return item.has_required_fields()

    async def execute(self, item: WorkItem) -> AgentResult:
        """Run the agent against ``item``.

        Args:
            item: Work item to analyse. Not modified.

        Returns:
            AgentResult describing success or failure, with the elapsed
            duration recorded in both cases.
        """
        start_time = time.monotonic()

        if not self.validate_context(item):
            result = AgentResult(
                success=False,
                error=INVALID_CONTEXT_MESSAGE,
                error_code=ErrorCode.INVALID_CONTEXT,
                retryable=False,
            )
        else:
            result = await self._run_with_deadline(self.build_prompt(item), item)

        result.duration_seconds = time.monotonic() - start_time
        await self._report(item, result)
        return result

    async def _run_with_deadline(self, prompt: str, item: WorkItem) -> AgentResult:
        task = asyncio.ensure_future(self.runner.run(prompt, self.timeout_seconds))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            task.add_done_callback(_discard_outcome)
            raise

        if not done:
            task.cancel()
            task.add_done_callback(_discard_outcome)
            await safe_emit(
                self.event_emitter,
                WorkflowEvent(
                    event_type=EventType.TIMEOUT,
                    issue_id=item.display_id,
                    repository=item.full_repository,
                    details={
                        "operation": f"agent:{self.agent_type.value}",
                        "timeout_seconds": self.timeout_seconds,
                    },
                ),
            )
            return AgentResult(
                success=False,
                error=f"Agent {self.agent_type.value} timed out after {self.timeout_seconds}s",
                error_code=ErrorCode.AGENT_TIMEOUT,
                retryable=True,
            )

        if task.cancelled():
            return AgentResult(
                success=False,
                error=f"{self.display_name} analysis failed: prompt cancelled",
                error_code=self.failure_code,
                retryable=True,
            )

        exc = task.exception()
        if exc is not None:
            return AgentResult(
                success=False,
                error=f"{self.display_name} analysis failed: {describe_error(exc)}",
                error_code=self.failure_code,
                retryable=True,
            )

        return AgentResult(success=True, output=task.result())

    async def _report(self, item: WorkItem, result: AgentResult) -> None:
        details = {
            "agent_type": self.agent_type.value,
            "duration_seconds": result.duration_seconds,
        }
        if result.success:
            logger.info(
                "Agent %s completed for %s in %.2fs",
                self.agent_type.value,
                item.display_id,
                result.duration_seconds,
            )
            event_type = EventType.AGENT_COMPLETED
        else:
            logger.error(
                "Agent %s failed for %s after %.2fs: %s",
                self.agent_type.value,
                item.display_id,
                result.duration_seconds,
                result.error,
                extra={
                    "issue_id": item.display_id,
                    "error_code": result.error_code.value if result.error_code else None,
                },
            )
            event_type = EventType.AGENT_FAILED
            details["error"] = result.error

        await safe_emit(
            self.event_emitter,
            WorkflowEvent(
                event_type=event_type,
                issue_id=item.display_id,
                repository=item.full_repository,
                details=details,
            ),
        )
