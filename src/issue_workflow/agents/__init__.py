"""LLM-backed analysis agents."""

from src.issue_workflow.agents.base import INVALID_CONTEXT_MESSAGE, AnalysisAgent
from src.issue_workflow.agents.models import AgentConfig, AgentResult, AgentType
from src.issue_workflow.agents.registry import AGENT_CLASSES, create_agent
from src.issue_workflow.agents.tech_lead import TECH_LEAD_PROMPT_TEMPLATE, TechLeadAgent

__all__ = [
    "AnalysisAgent",
    "AgentConfig",
    "AgentResult",
    "AgentType",
    "AGENT_CLASSES",
    "INVALID_CONTEXT_MESSAGE",
    "TECH_LEAD_PROMPT_TEMPLATE",
    "TechLeadAgent",
    "create_agent",
]
