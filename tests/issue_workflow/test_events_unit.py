"""Unit tests for workflow event emitters and Prometheus metrics."""

import asyncio
import logging

import pytest
from prometheus_client import CollectorRegistry

from src.issue_workflow.events import (
    CompositeEventEmitter,
    EventSinkType,
    EventType,
    LoggingEventEmitter,
    MetricsEventEmitter,
    NullEventEmitter,
    WorkflowEvent,
    WorkflowMetrics,
    create_event_emitter,
    generate_metrics_output,
    safe_emit,
)


def run_async(coro):
    return asyncio.run(coro)


def _event(event_type, **details):
    return WorkflowEvent(
        event_type=event_type,
        issue_id="acme/widgets#7",
        repository="acme/widgets",
        details=details,
    )


class FailingEmitter(NullEventEmitter):
    async def emit(self, event):
        raise RuntimeError("sink down")


@pytest.fixture
def registry():
    return CollectorRegistry()


@pytest.fixture
def metrics_emitter(registry):
    return MetricsEventEmitter(metrics=WorkflowMetrics(registry=registry))


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


def test_log_dict_flattens_details():
    event = _event(EventType.STATE_TRANSITION, from_status="parsing", to_status="branch_creating")

    data = event.to_log_dict()

    assert data["event_type"] == "state_transition"
    assert data["issue_id"] == "acme/widgets#7"
    assert data["repository"] == "acme/widgets"
    assert data["from_status"] == "parsing"
    assert data["to_status"] == "branch_creating"
    assert data["timestamp"].endswith("+00:00")


# ---------------------------------------------------------------------------
# Emitters
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "event_type,level",
    [
        (EventType.ERROR, logging.ERROR),
        (EventType.RETRY_EXHAUSTED, logging.ERROR),
        (EventType.RETRY_ATTEMPT, logging.WARNING),
        (EventType.TIMEOUT, logging.WARNING),
        (EventType.STEP_STARTED, logging.DEBUG),
        (EventType.COMPLETION, logging.INFO),
    ],
)
def test_logging_emitter_levels(caplog, event_type, level):
    caplog.set_level(logging.DEBUG, logger="workflow.events.test")
    emitter = LoggingEventEmitter(logger_name="workflow.events.test")

    run_async(emitter.emit(_event(event_type, step="CREATE_BRANCH")))

    record = caplog.records[-1]
    assert record.levelno == level
    assert record.workflow_event["event_type"] == event_type.value
    assert record.workflow_event["step"] == "CREATE_BRANCH"


def test_composite_isolates_child_failures(emitter):
    composite = CompositeEventEmitter([FailingEmitter(), emitter])

    run_async(composite.emit(_event(EventType.COMPLETION)))

    assert len(emitter.events) == 1


def test_composite_add_emitter(emitter):
    composite = CompositeEventEmitter()
    composite.add_emitter(emitter)

    run_async(composite.emit(_event(EventType.ERROR)))

    assert composite.emitters == [emitter]
    assert emitter.events[0].event_type == EventType.ERROR


def test_safe_emit_swallows_failures_and_accepts_none(emitter):
    run_async(safe_emit(None, _event(EventType.ERROR)))
    run_async(safe_emit(FailingEmitter(), _event(EventType.ERROR)))
    run_async(safe_emit(emitter, _event(EventType.ERROR)))

    assert len(emitter.events) == 1


def test_create_event_emitter_variants():
    assert isinstance(create_event_emitter(), LoggingEventEmitter)
    assert isinstance(create_event_emitter([EventSinkType.LOGGING]), LoggingEventEmitter)

    composite = create_event_emitter([EventSinkType.LOGGING, EventSinkType.METRICS])

    assert isinstance(composite, CompositeEventEmitter)
    assert [type(e) for e in composite.emitters] == [LoggingEventEmitter, MetricsEventEmitter]


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def test_metrics_count_retries_by_label(metrics_emitter, registry):
    run_async(metrics_emitter.emit(_event(EventType.RETRY_ATTEMPT, label="CREATE_BRANCH")))
    run_async(metrics_emitter.emit(_event(EventType.RETRY_ATTEMPT, label="CREATE_BRANCH")))

    value = registry.get_sample_value(
        "workflow_step_retries_total", {"label": "CREATE_BRANCH"}
    )
    assert value == 2.0


def test_metrics_record_completion(metrics_emitter, registry):
    run_async(metrics_emitter.emit(_event(EventType.COMPLETION, duration_seconds=3.2)))

    assert registry.get_sample_value(
        "workflow_items_processed_total",
        {"repository": "acme/widgets", "result": "success"},
    ) == 1.0
    assert registry.get_sample_value(
        "workflow_processing_duration_seconds_count", {"repository": "acme/widgets"}
    ) == 1.0


def test_metrics_record_failure_step(metrics_emitter, registry):
    run_async(metrics_emitter.emit(_event(EventType.ERROR, step="ASSIGN_AGENT")))

    assert registry.get_sample_value(
        "workflow_items_failed_total",
        {"repository": "acme/widgets", "step": "ASSIGN_AGENT"},
    ) == 1.0
    assert registry.get_sample_value(
        "workflow_items_processed_total",
        {"repository": "acme/widgets", "result": "failure"},
    ) == 1.0


def test_metrics_record_agent_duration(metrics_emitter, registry):
    run_async(
        metrics_emitter.emit(
            _event(EventType.AGENT_FAILED, agent_type="tech-lead", duration_seconds=0.4)
        )
    )

    assert registry.get_sample_value(
        "workflow_agent_duration_seconds_sum",
        {"agent_type": "tech-lead", "result": "failure"},
    ) == pytest.approx(0.4)


def test_metrics_ignore_bad_details(metrics_emitter, registry):
    run_async(
        metrics_emitter.emit(_event(EventType.COMPLETION, duration_seconds="not-a-number"))
    )

    # The counter is updated before the bad duration is rejected.
    assert registry.get_sample_value(
        "workflow_items_processed_total",
        {"repository": "acme/widgets", "result": "success"},
    ) == 1.0


def test_generate_metrics_output(metrics_emitter, registry):
    run_async(metrics_emitter.emit(_event(EventType.RETRY_ATTEMPT, label="UPDATE_STATUS")))

    output = generate_metrics_output(registry).decode("utf-8")

    assert 'workflow_step_retries_total{label="UPDATE_STATUS"} 1.0' in output
