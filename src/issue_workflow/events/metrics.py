"""Prometheus metrics for workflow observability.

Metrics Defined:
- workflow_items_processed_total: Counter of items by result
- workflow_items_failed_total: Counter of failed items by failing step
- workflow_step_retries_total: Counter of retry attempts by step label
- workflow_agent_duration_seconds: Histogram of analysis agent run time
- workflow_processing_duration_seconds: Histogram of end-to-end run time

MetricsEventEmitter turns workflow events into metric updates; the
application exposes them at ``/metrics``.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from src.issue_workflow.events.emitter import EventEmitter
from src.issue_workflow.events.models import EventType, WorkflowEvent


logger = logging.getLogger(__name__)


# 100ms to 10 minutes
DEFAULT_DURATION_BUCKETS = (
    0.1,
    0.5,
    1.0,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
    300.0,
    600.0,
)


class WorkflowMetrics:
    """Container for all workflow Prometheus metrics.

    Pass a dedicated CollectorRegistry in tests to avoid duplicate
    registration in the process-wide default registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.items_processed_total = Counter(
            "workflow_items_processed_total",
            "Total number of work items processed",
            labelnames=["repository", "result"],
            registry=self.registry,
        )

        self.items_failed_total = Counter(
            "workflow_items_failed_total",
            "Total number of work items that failed, by failing step",
            labelnames=["repository", "step"],
            registry=self.registry,
        )

        self.step_retries_total = Counter(
            "workflow_step_retries_total",
            "Total number of retry attempts, by step label",
            labelnames=["label"],
            registry=self.registry,
        )

        self.agent_duration_seconds = Histogram(
            "workflow_agent_duration_seconds",
            "Time spent in analysis agents in seconds",
            labelnames=["agent_type", "result"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

        self.processing_duration_seconds = Histogram(
            "workflow_processing_duration_seconds",
            "End-to-end processing time of work items in seconds",
            labelnames=["repository"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

    def record_item_processed(self, repository: str, success: bool) -> None:
        result = "success" if success else "failure"
        self.items_processed_total.labels(repository=repository, result=result).inc()

    def record_item_failed(self, repository: str, step: str) -> None:
        self.items_failed_total.labels(repository=repository, step=step).inc()

    def record_retry(self, label: str) -> None:
        self.step_retries_total.labels(label=label).inc()

    def record_agent_duration(
        self, agent_type: str, success: bool, duration_seconds: float
    ) -> None:
        result = "success" if success else "failure"
        self.agent_duration_seconds.labels(
            agent_type=agent_type, result=result
        ).observe(duration_seconds)

    def record_processing_duration(
        self, repository: str, duration_seconds: float
    ) -> None:
        self.processing_duration_seconds.labels(repository=repository).observe(
            duration_seconds
        )


_default_metrics: Optional[WorkflowMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> WorkflowMetrics:
    """Get the global metrics instance, or a new one for a custom registry."""
    global _default_metrics

    if registry is not None:
        return WorkflowMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = WorkflowMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Render metrics in Prometheus text format for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    - RETRY_ATTEMPT: increments step retries
    - AGENT_COMPLETED / AGENT_FAILED: observes agent duration
    - ERROR: records a failed item at its failing step
    - COMPLETION: records a processed item and its duration
    """

    def __init__(
        self,
        metrics: Optional[WorkflowMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        self._metrics = metrics if metrics is not None else get_metrics(registry)

    @property
    def metrics(self) -> WorkflowMetrics:
        return self._metrics

    async def emit(self, event: WorkflowEvent) -> None:
        repository = event.repository or "unknown"
        details = event.details
        try:
            if event.event_type == EventType.RETRY_ATTEMPT:
                self._metrics.record_retry(details.get("label", "unknown"))
            elif event.event_type in (EventType.AGENT_COMPLETED, EventType.AGENT_FAILED):
                duration = details.get("duration_seconds")
                if duration is not None:
                    self._metrics.record_agent_duration(
                        agent_type=details.get("agent_type", "unknown"),
                        success=event.event_type == EventType.AGENT_COMPLETED,
                        duration_seconds=float(duration),
                    )
            elif event.event_type == EventType.ERROR:
                self._metrics.record_item_failed(
                    repository, details.get("step", "unknown")
                )
                self._metrics.record_item_processed(repository, success=False)
            elif event.event_type == EventType.COMPLETION:
                self._metrics.record_item_processed(repository, success=True)
                duration = details.get("duration_seconds")
                if duration is not None:
                    self._metrics.record_processing_duration(
                        repository, float(duration)
                    )
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                str(e),
                extra={"event_type": event.event_type.value, "issue_id": event.issue_id},
            )
