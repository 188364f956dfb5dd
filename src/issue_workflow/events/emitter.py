"""Event emitter implementations for workflow observability.

The orchestrator, retry executor and agents report what they do through an
injected EventEmitter instead of writing to the console. Concrete sinks:

- LoggingEventEmitter: Emits events as structured log entries
- CompositeEventEmitter: Emits to multiple sinks simultaneously
- NullEventEmitter: Discards events

Emitters are fault-tolerant from the caller's point of view: callers use
``safe_emit`` so a failing sink never disturbs the workflow.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional

from src.issue_workflow.events.models import EventType, WorkflowEvent


logger = logging.getLogger(__name__)


class EventSinkType(str, Enum):
    """Types of event sinks supported by the workflow.

    Attributes:
        LOGGING: Emit events as structured log entries.
        METRICS: Emit events as Prometheus metrics.
    """

    LOGGING = "logging"
    METRICS = "metrics"


class EventEmitter(ABC):
    """Abstract base class for workflow event emitters.

    Example:
        >>> class MyEmitter(EventEmitter):
        ...     async def emit(self, event: WorkflowEvent) -> None:
        ...         pass
    """

    @abstractmethod
    async def emit(self, event: WorkflowEvent) -> None:
        """Publish a workflow event to the sink.

        Args:
            event: The workflow event to emit.
        """
        pass

    async def close(self) -> None:
        """Release resources held by the emitter. Default does nothing."""
        pass


class LoggingEventEmitter(EventEmitter):
    """Event emitter that writes events as structured log entries.

    Log levels by event type:

    - ERROR, RETRY_EXHAUSTED, AGENT_FAILED: ERROR
    - RETRY_ATTEMPT, TIMEOUT: WARNING
    - STEP_STARTED, STEP_COMPLETED: DEBUG
    - everything else: INFO
    """

    def __init__(self, logger_name: Optional[str] = None):
        """Initialize the logging event emitter.

        Args:
            logger_name: Optional logger name. Defaults to the module logger.
        """
        self._logger = logging.getLogger(logger_name) if logger_name else logger
        self._log_level_map = {
            EventType.ERROR: logging.ERROR,
            EventType.RETRY_EXHAUSTED: logging.ERROR,
            EventType.AGENT_FAILED: logging.ERROR,
            EventType.RETRY_ATTEMPT: logging.WARNING,
            EventType.TIMEOUT: logging.WARNING,
            EventType.STEP_STARTED: logging.DEBUG,
            EventType.STEP_COMPLETED: logging.DEBUG,
        }

    async def emit(self, event: WorkflowEvent) -> None:
        """Emit event as a structured log entry."""
        log_level = self._log_level_map.get(event.event_type, logging.INFO)
        self._logger.log(
            log_level,
            "Workflow event: %s for %s",
            event.event_type.value,
            event.issue_id or "unknown issue",
            extra={"workflow_event": event.to_log_dict()},
        )


class CompositeEventEmitter(EventEmitter):
    """Event emitter that delegates to multiple child emitters.

    Failures in one child do not affect the others.

    Example:
        >>> composite = CompositeEventEmitter(
        ...     [LoggingEventEmitter(), MetricsEventEmitter()]
        ... )
        >>> await composite.emit(event)
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = emitters or []

    def add_emitter(self, emitter: EventEmitter) -> None:
        """Add a child emitter to the composite."""
        self._emitters.append(emitter)

    @property
    def emitters(self) -> List[EventEmitter]:
        """Copy of the child emitter list."""
        return list(self._emitters)

    async def emit(self, event: WorkflowEvent) -> None:
        """Emit the event to every child emitter."""
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Failed to emit event to %s: %s",
                    type(emitter).__name__,
                    str(e),
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "issue_id": event.issue_id,
                    },
                )

    async def close(self) -> None:
        """Close all child emitters, logging individual failures."""
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                logger.error(
                    "Failed to close emitter %s: %s",
                    type(emitter).__name__,
                    str(e),
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: WorkflowEvent) -> None:
        pass


async def safe_emit(emitter: Optional[EventEmitter], event: WorkflowEvent) -> None:
    """Emit an event, swallowing sink failures so the workflow is never disrupted.

    Args:
        emitter: Target emitter; None discards the event.
        event: The event to emit.
    """
    if emitter is None:
        return
    try:
        await emitter.emit(event)
    except Exception:
        logger.exception(
            "Failed to emit workflow event",
            extra={
                "event_type": event.event_type.value,
                "issue_id": event.issue_id,
            },
        )


def create_event_emitter(
    sink_types: Optional[List[EventSinkType]] = None,
    logger_name: Optional[str] = None,
) -> EventEmitter:
    """Create an emitter for the requested sinks.

    Args:
        sink_types: Sinks to enable. None or empty returns a
            LoggingEventEmitter.
        logger_name: Optional logger name for the logging sink.

    Returns:
        A single emitter, or a CompositeEventEmitter for several sinks.

    Example:
        >>> emitter = create_event_emitter([EventSinkType.LOGGING])
        >>> isinstance(emitter, LoggingEventEmitter)
        True
    """
    if not sink_types:
        return LoggingEventEmitter(logger_name=logger_name)

    emitters: List[EventEmitter] = []
    for sink_type in sink_types:
        if sink_type == EventSinkType.LOGGING:
            emitters.append(LoggingEventEmitter(logger_name=logger_name))
        elif sink_type == EventSinkType.METRICS:
            # Imported here because metrics.py imports this module
            from src.issue_workflow.events.metrics import MetricsEventEmitter

            emitters.append(MetricsEventEmitter())
        else:
            logger.warning("Unknown event sink type: %s, skipping", sink_type)

    if not emitters:
        return LoggingEventEmitter(logger_name=logger_name)
    if len(emitters) == 1:
        return emitters[0]
    return CompositeEventEmitter(emitters)
