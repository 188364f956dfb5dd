"""Unit tests for analysis agents.

Covers input validation, the deterministic tech lead prompt, the race-based
timeout, failure formatting and event emission.
"""

import asyncio

import pytest

from src.issue_workflow.agents import (
    AGENT_CLASSES,
    INVALID_CONTEXT_MESSAGE,
    AgentConfig,
    AgentType,
    TechLeadAgent,
    create_agent,
)
from src.issue_workflow.errors import ClassifiedError, ErrorCode
from src.issue_workflow.events.models import EventType


def run_async(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": ""},
        {"title": "   "},
        {"owner": ""},
        {"repository": ""},
        {"title": "", "body": "", "labels": []},
    ],
)
def test_invalid_context_never_calls_runner(item_factory, prompt_runner, overrides):
    agent = TechLeadAgent(runner=prompt_runner)

    result = run_async(agent.execute(item_factory(**overrides)))

    assert result.success is False
    assert INVALID_CONTEXT_MESSAGE in result.error
    assert result.error_code == ErrorCode.INVALID_CONTEXT
    assert result.retryable is False
    assert prompt_runner.call_count == 0


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------


def test_prompt_embeds_issue_details(item_factory, runner_factory):
    agent = TechLeadAgent(runner=runner_factory())
    prompt = agent.build_prompt(item_factory())

    assert prompt.startswith("You are an expert tech lead reviewing a GitHub issue.")
    assert "- Title: Add user authentication\n" in prompt
    assert "- Description: We need OAuth2 login.\n" in prompt
    assert "- Labels: enhancement, backend\n" in prompt
    assert "- Repository: testuser/test-repo\n" in prompt
    for section in (
        "### Complexity Assessment",
        "### Recommended Technologies",
        "### Implementation Approach",
        "### Testing Strategy",
        "### Estimated Timeline",
        "### Dependencies",
        "### Acceptance Criteria",
    ):
        assert section in prompt


def test_prompt_with_empty_body_and_no_labels(item_factory, runner_factory):
    agent = TechLeadAgent(runner=runner_factory())
    prompt = agent.build_prompt(item_factory(body="", labels=[]))

    assert "- Description: \n" in prompt
    assert "- Labels: \n" in prompt


def test_prompt_is_deterministic(item_factory, runner_factory):
    agent = TechLeadAgent(runner=runner_factory())

    assert agent.build_prompt(item_factory()) == agent.build_prompt(item_factory())


def test_prompt_keeps_braces_in_issue_text(item_factory, runner_factory):
    agent = TechLeadAgent(runner=runner_factory())
    prompt = agent.build_prompt(item_factory(body="Use {placeholder} syntax"))

    assert "Use {placeholder} syntax" in prompt


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def test_success_returns_output_verbatim(item_factory, emitter, runner_factory):
    runner = runner_factory(response="  \n## Analysis\n\nDetails  \n\n")
    agent = TechLeadAgent(runner=runner, event_emitter=emitter)

    result = run_async(agent.execute(item_factory()))

    assert result.success is True
    assert result.output == "  \n## Analysis\n\nDetails  \n\n"
    assert result.error is None
    assert result.duration_seconds >= 0
    assert runner.call_count == 1

    completed = emitter.of_type(EventType.AGENT_COMPLETED)
    assert len(completed) == 1
    assert completed[0].details["agent_type"] == "tech-lead"
    assert completed[0].issue_id == "testuser/test-repo#123"


def test_runner_error_is_reported_as_failure(item_factory, emitter, runner_factory):
    runner = runner_factory(
        error=ClassifiedError("LLM invocation failed: 502", ErrorCode.PROMPT_RUNNER_FAILED)
    )
    agent = TechLeadAgent(runner=runner, event_emitter=emitter)

    result = run_async(agent.execute(item_factory()))

    assert result.success is False
    assert result.error == "Tech lead analysis failed: LLM invocation failed: 502"
    assert result.error_code == ErrorCode.TECH_LEAD_ANALYSIS_FAILED
    assert result.retryable is True
    assert len(emitter.of_type(EventType.AGENT_FAILED)) == 1


def test_runner_error_without_message_is_formatted_safely(item_factory, runner_factory):
    agent = TechLeadAgent(runner=runner_factory(error=RuntimeError()))

    result = run_async(agent.execute(item_factory()))

    assert result.success is False
    assert result.error == "Tech lead analysis failed: RuntimeError"


def test_timeout_returns_failure_and_ignores_late_result(item_factory, emitter, runner_factory):
    runner = runner_factory(response="late analysis", delay=0.5)
    agent = TechLeadAgent(runner=runner, timeout_seconds=0.05, event_emitter=emitter)

    async def scenario():
        result = await agent.execute(item_factory())
        # Give the abandoned runner task time to finish if it were still alive.
        await asyncio.sleep(0.6)
        return result

    result = run_async(scenario())

    assert result.success is False
    assert "timed out after" in result.error
    assert result.error_code == ErrorCode.AGENT_TIMEOUT
    assert result.retryable is True
    assert result.output == ""
    assert runner.call_count == 1
    assert runner.completed == 0
    assert len(emitter.of_type(EventType.TIMEOUT)) == 1


def test_failing_emitter_does_not_change_result(item_factory, runner_factory):
    class BrokenEmitter:
        async def emit(self, event):
            raise RuntimeError("sink down")

    agent = TechLeadAgent(runner=runner_factory(response="ok"), event_emitter=BrokenEmitter())

    result = run_async(agent.execute(item_factory()))

    assert result.success is True
    assert result.output == "ok"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_create_agent_uses_config_timeout(prompt_runner):
    agent = create_agent(
        AgentType.TECH_LEAD,
        prompt_runner,
        config=AgentConfig(timeout_seconds=12.5),
    )

    assert isinstance(agent, TechLeadAgent)
    assert agent.timeout_seconds == 12.5


def test_agent_types_are_all_registered():
    assert set(AGENT_CLASSES) == set(AgentType)


def test_create_agent_rejects_unregistered_type(prompt_runner, monkeypatch):
    monkeypatch.delitem(AGENT_CLASSES, AgentType.TECH_LEAD)

    with pytest.raises(ValueError, match="No agent implementation for type: tech-lead"):
        create_agent(AgentType.TECH_LEAD, prompt_runner)
