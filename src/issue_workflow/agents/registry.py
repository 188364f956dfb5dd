"""Lookup of concrete agent classes by AgentType."""

from typing import Dict, Optional, Type

from src.issue_workflow.agents.base import AnalysisAgent
from src.issue_workflow.agents.models import AgentConfig, AgentType
from src.issue_workflow.agents.tech_lead import TechLeadAgent
from src.issue_workflow.events.emitter import EventEmitter
from src.issue_workflow.llm.base import PromptRunner


AGENT_CLASSES: Dict[AgentType, Type[AnalysisAgent]] = {
    AgentType.TECH_LEAD: TechLeadAgent,
}


def create_agent(
    agent_type: AgentType,
    runner: PromptRunner,
    config: Optional[AgentConfig] = None,
    event_emitter: Optional[EventEmitter] = None,
) -> AnalysisAgent:
    """Instantiate the agent registered for ``agent_type``.

    Raises:
        ValueError: If no agent class is registered for the type.
    """
    agent_class = AGENT_CLASSES.get(agent_type)
    if agent_class is None:
        raise ValueError(f"No agent implementation for type: {agent_type.value}")

    config = config or AgentConfig()
    return agent_class(
        runner=runner,
        timeout_seconds=config.timeout_seconds,
        event_emitter=event_emitter,
    )
