"""Tech lead agent: technical analysis of newly opened issues."""

from src.issue_workflow.agents.base import AnalysisAgent
from src.issue_workflow.agents.models import AgentType
from src.issue_workflow.errors import ErrorCode
from src.issue_workflow.state.models import WorkItem


TECH_LEAD_PROMPT_TEMPLATE = """You are an expert tech lead reviewing a GitHub issue. Please provide a comprehensive technical analysis and recommendations.

**Issue Details:**
- Title: {title}
- Description: {body}
- Labels: {labels}
- Repository: {owner}/{repository}

**Please provide a detailed analysis in the following format:**

## Technical Analysis

### Complexity Assessment
[Assess if this is Low/Medium/High complexity and explain why]

### Recommended Technologies
[List specific technologies, libraries, or frameworks that should be used]

### Implementation Approach
[Provide a step-by-step implementation plan with numbered steps]

### Testing Strategy
[Outline what types of tests should be written]

### Estimated Timeline
[Provide time estimate in business days]

### Dependencies
[List any external dependencies or prerequisites]

### Acceptance Criteria
[Create a checklist of requirements that must be met]

Please be specific and actionable in your recommendations. Focus on practical implementation details that a developer can follow."""


class TechLeadAgent(AnalysisAgent):
    """Asks the model for a structured technical analysis of an issue."""

    agent_type = AgentType.TECH_LEAD
    display_name = "Tech lead"
    failure_code = ErrorCode.TECH_LEAD_ANALYSIS_FAILED

    def build_prompt(self, item: WorkItem) -> str:
        """Render the analysis prompt.

        The same item always produces a byte-identical prompt. A missing
        body renders as an empty description; no labels render as an empty
        label list.

        Example:
            >>> prompt = agent.build_prompt(item)
            >>> "- Repository: testuser/test-repo" in prompt
            True
        """
        return TECH_LEAD_PROMPT_TEMPLATE.format(
            title=item.title,
            body=item.body or "",
            labels=", ".join(item.labels),
            owner=item.owner,
            repository=item.repository,
        )
