"""Analysis agent types, configuration and results."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.issue_workflow.errors import ErrorCode


class AgentType(str, Enum):
    """Kinds of analysis agents.

    Attributes:
        TECH_LEAD: Produces a technical analysis of a new issue.
    """

    TECH_LEAD = "tech-lead"


class AgentConfig(BaseModel):
    """Per-agent runtime configuration.

    Attributes:
        enabled: Disabled agents fail every item with AGENT_DISABLED.
        timeout_seconds: Hard deadline for one agent run.
    """

    enabled: bool = Field(default=True)
    timeout_seconds: float = Field(default=30.0, gt=0)


@dataclass
class AgentResult:
    """Result of one analysis agent run.

    Attributes:
        success: True when the agent produced output.
        output: Model output, verbatim. Empty on failure.
        error: Failure description. None on success.
        error_code: Classified code of the failure.
        retryable: False when running again cannot help (invalid input).
        duration_seconds: Wall-clock time spent in the agent.
    """

    success: bool
    output: str = ""
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None
    retryable: bool = True
    duration_seconds: float = 0.0
