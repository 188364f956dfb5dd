"""Workflow configuration using pydantic-settings.

This module defines the WorkflowSettings class that reads configuration
from environment variables with the WORKFLOW_ prefix. Required fields must
be set via environment variables for the service to start.
"""

from enum import Enum
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.issue_workflow.agents.models import AgentConfig
from src.issue_workflow.retry.policy import RetryPolicy


class PromptRunnerKind(str, Enum):
    """Available prompt runner backends."""

    LANGCHAIN = "langchain"
    CLAUDE_CLI = "claude_cli"


class WorkflowSettings(BaseSettings):
    """Issue workflow configuration from environment variables.

    All environment variables are prefixed with WORKFLOW_ (e.g., WORKFLOW_GITHUB_TOKEN).

    Required fields (must be set via environment variables):
    - github_token: GitHub API token for branches, comments and labels
    - llm_url: URL of the LLM endpoint, when prompt_runner is "langchain"
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    # GitHub API token for branches, comments, labels
    github_token: str

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    # Repository used by the health probe
    health_probe_owner: str = "octocat"
    health_probe_repo: str = "Hello-World"

    # -------------------------------------------------------------------------
    # Retry Configuration
    # -------------------------------------------------------------------------
    retry_max_retries: int = 3
    retry_initial_delay_ms: float = 1000
    retry_max_delay_ms: float = 30000
    retry_backoff_multiplier: float = 2.0

    # -------------------------------------------------------------------------
    # Agent Configuration
    # -------------------------------------------------------------------------
    tech_lead_enabled: bool = True
    tech_lead_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Prompt Runner Configuration
    # -------------------------------------------------------------------------
    prompt_runner: PromptRunnerKind = PromptRunnerKind.LANGCHAIN

    # OpenAI-compatible endpoint used by the langchain runner
    llm_url: Optional[str] = None
    llm_model: str = "Qwen/Qwen2.5-Coder-14B-Instruct-GPTQ-Int4"
    llm_api_key: str = "not-needed"

    # Path to the claude executable used by the claude_cli runner
    claude_cli_path: str = "claude"

    # -------------------------------------------------------------------------
    # Queue Configuration
    # -------------------------------------------------------------------------
    # The SQS consumer only starts when a queue URL is configured
    sqs_queue_url: Optional[str] = None
    aws_region: str = "us-east-1"
    sqs_max_messages: int = 10
    sqs_wait_time_seconds: int = 20
    sqs_visibility_timeout_seconds: int = 300

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v

    @field_validator("llm_url")
    @classmethod
    def validate_llm_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate that LLM URL is a valid URL format when set."""
        if v is None:
            return v
        if not v.strip():
            raise ValueError("llm_url cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("llm_url must start with http:// or https://")
        return v

    @field_validator("retry_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retry_max_retries cannot be negative")
        return v

    @field_validator("retry_backoff_multiplier")
    @classmethod
    def validate_backoff_multiplier(cls, v: float) -> float:
        if v <= 1:
            raise ValueError("retry_backoff_multiplier must be greater than 1")
        return v

    @field_validator("tech_lead_timeout_seconds")
    @classmethod
    def validate_tech_lead_timeout(cls, v: float) -> float:
        """Validate that the tech lead timeout is positive."""
        if v <= 0:
            raise ValueError("tech_lead_timeout_seconds must be positive")
        return v

    @field_validator("sqs_max_messages")
    @classmethod
    def validate_sqs_max_messages(cls, v: int) -> int:
        """SQS accepts between 1 and 10 messages per receive call."""
        if not 1 <= v <= 10:
            raise ValueError("sqs_max_messages must be between 1 and 10")
        return v

    @field_validator("sqs_wait_time_seconds")
    @classmethod
    def validate_sqs_wait_time(cls, v: int) -> int:
        if not 0 <= v <= 20:
            raise ValueError("sqs_wait_time_seconds must be between 0 and 20")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def validate_runner_settings(self) -> "WorkflowSettings":
        """Require an LLM URL when the langchain runner is selected."""
        if self.prompt_runner == PromptRunnerKind.LANGCHAIN and not self.llm_url:
            raise ValueError("llm_url is required when prompt_runner is 'langchain'")
        if self.retry_max_delay_ms < self.retry_initial_delay_ms:
            raise ValueError("retry_max_delay_ms must be >= retry_initial_delay_ms")
        return self

    def retry_policy(self) -> RetryPolicy:
        """Build the immutable retry policy shared by every workflow step."""
        return RetryPolicy(
            max_retries=self.retry_max_retries,
            initial_delay_ms=self.retry_initial_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
            backoff_multiplier=self.retry_backoff_multiplier,
        )

    def tech_lead_config(self) -> AgentConfig:
        return AgentConfig(
            enabled=self.tech_lead_enabled,
            timeout_seconds=self.tech_lead_timeout_seconds,
        )


def get_settings() -> WorkflowSettings:
    """Create and return a WorkflowSettings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return WorkflowSettings()
