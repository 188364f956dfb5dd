"""FastAPI application entry point for the issue workflow service.

The application wires the workflow together during its lifespan, runs the
SQS consumer as a background task, and exposes health, readiness and
Prometheus metrics endpoints.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from .agents.models import AgentType
from .agents.registry import create_agent
from .config import PromptRunnerKind, WorkflowSettings, get_settings
from .events.emitter import EventEmitter, EventSinkType, create_event_emitter
from .events.metrics import generate_metrics_output
from .github.client import GitHubRepositoryClient
from .llm.base import PromptRunner
from .llm.claude_cli import ClaudeCliPromptRunner
from .llm.langchain_runner import LangChainPromptRunner
from .orchestrator import WorkflowOrchestrator
from .queue.dispatcher import QueueDispatcher
from .queue.sqs import SQSConsumer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Global instances, initialized during lifespan startup
settings: WorkflowSettings
orchestrator: Optional[WorkflowOrchestrator] = None
github_client: Optional[GitHubRepositoryClient] = None
event_emitter: Optional[EventEmitter] = None
consumer: Optional[SQSConsumer] = None
consumer_task: Optional["asyncio.Task[None]"] = None


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: WorkflowSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Workflow configuration:")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  GitHub Token: {_redact_secret(settings.github_token)}")
    logger.info(
        f"  Retry: max_retries={settings.retry_max_retries} "
        f"initial_delay_ms={settings.retry_initial_delay_ms} "
        f"max_delay_ms={settings.retry_max_delay_ms} "
        f"multiplier={settings.retry_backoff_multiplier}"
    )
    logger.info(f"  Tech Lead Enabled: {settings.tech_lead_enabled}")
    logger.info(f"  Tech Lead Timeout Seconds: {settings.tech_lead_timeout_seconds}")
    logger.info(f"  Prompt Runner: {settings.prompt_runner.value}")
    logger.info(f"  LLM URL: {settings.llm_url}")
    logger.info(f"  LLM Model: {settings.llm_model}")
    logger.info(f"  LLM API Key: {_redact_secret(settings.llm_api_key)}")
    logger.info(f"  Claude CLI Path: {settings.claude_cli_path}")
    logger.info(f"  SQS Queue URL: {settings.sqs_queue_url}")
    logger.info(f"  AWS Region: {settings.aws_region}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def _build_prompt_runner(cfg: WorkflowSettings) -> PromptRunner:
    if cfg.prompt_runner == PromptRunnerKind.CLAUDE_CLI:
        return ClaudeCliPromptRunner(claude_path=cfg.claude_cli_path)
    return LangChainPromptRunner(
        llm_url=cfg.llm_url,
        model_name=cfg.llm_model,
        api_key=cfg.llm_api_key,
    )


def _build_orchestrator(
    cfg: WorkflowSettings,
    gh_client: GitHubRepositoryClient,
    emitter: EventEmitter,
) -> WorkflowOrchestrator:
    """Wire all workflow dependencies into a WorkflowOrchestrator.

    Args:
        cfg: Validated workflow settings.
        gh_client: Authenticated GitHub API client.
        emitter: Event emitter shared by all components.

    Returns:
        Fully wired WorkflowOrchestrator.
    """
    tech_lead_config = cfg.tech_lead_config()
    agent = create_agent(
        AgentType.TECH_LEAD,
        runner=_build_prompt_runner(cfg),
        config=tech_lead_config,
        event_emitter=emitter,
    )

    return WorkflowOrchestrator(
        repository_client=gh_client,
        agent=agent,
        retry_policy=cfg.retry_policy(),
        event_emitter=emitter,
        agent_enabled=tech_lead_config.enabled,
        health_probe=(cfg.health_probe_owner, cfg.health_probe_repo),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown.

    Handles:
    - Configuration loading and validation
    - Logging configuration (with secrets redacted)
    - Dependency wiring for the workflow orchestrator
    - Starting and stopping the SQS consumer
    """
    global settings, orchestrator, github_client, event_emitter, consumer, consumer_task

    logger.info("Issue workflow starting up...")

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    _log_configuration(settings)

    event_emitter = create_event_emitter([EventSinkType.LOGGING, EventSinkType.METRICS])
    github_client = GitHubRepositoryClient(
        token=settings.github_token,
        base_url=settings.github_base_url,
    )
    orchestrator = _build_orchestrator(settings, github_client, event_emitter)

    if settings.sqs_queue_url:
        consumer = SQSConsumer(
            dispatcher=QueueDispatcher(orchestrator.process),
            queue_url=settings.sqs_queue_url,
            region=settings.aws_region,
            max_messages=settings.sqs_max_messages,
            wait_time_seconds=settings.sqs_wait_time_seconds,
            visibility_timeout_seconds=settings.sqs_visibility_timeout_seconds,
        )
        consumer_task = asyncio.create_task(consumer.start())
    else:
        logger.warning("WORKFLOW_SQS_QUEUE_URL not set, queue consumer disabled")

    logger.info("Issue workflow started successfully")

    yield

    logger.info("Issue workflow shutting down...")

    if consumer is not None:
        consumer.stop()
    if consumer_task is not None:
        consumer_task.cancel()
        try:
            await consumer_task
        except asyncio.CancelledError:
            pass

    if github_client is not None:
        await github_client.close()
    if event_emitter is not None:
        await event_emitter.close()

    logger.info("Issue workflow shutdown complete")


app = FastAPI(
    title="Issue Workflow",
    description="Retry-driven workflow for newly opened GitHub issues",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    """Liveness probe endpoint.

    Returns:
        dict: Status indicating the application is running.
    """
    return {"status": "healthy"}


@app.get("/ready")
async def ready():
    """Readiness probe endpoint.

    Probes GitHub access through the orchestrator and, when configured,
    SQS connectivity. Returns 503 when any dependency is unhealthy.
    """
    if orchestrator is None:
        return JSONResponse(status_code=503, content={"status": "not_ready"})

    dependencies = {"github": await orchestrator.health_check()}
    if consumer is not None:
        dependencies["sqs"] = await consumer.health_check()

    is_ready = all(dep["status"] == "healthy" for dep in dependencies.values())
    body = {
        "status": "ready" if is_ready else "not_ready",
        "dependencies": dependencies,
    }
    return JSONResponse(status_code=200 if is_ready else 503, content=body)


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_metrics_output(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.issue_workflow.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
