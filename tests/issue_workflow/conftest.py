"""Shared fakes and fixtures for issue workflow tests."""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from src.issue_workflow.events.emitter import EventEmitter
from src.issue_workflow.events.models import EventType, WorkflowEvent
from src.issue_workflow.github.base import RemoteRepositoryClient
from src.issue_workflow.llm.base import PromptRunner
from src.issue_workflow.state.models import WorkItem, make_branch_name


class FakeRepositoryClient(RemoteRepositoryClient):
    """In-memory RemoteRepositoryClient recording every call.

    Failures are scripted per operation as a list of exceptions raised in
    order before calls start succeeding.
    """

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Any]] = []
        self.has_access = True
        self.branch_errors: List[Exception] = []
        self.analysis_errors: List[Exception] = []
        self.status_errors: Dict[str, List[Exception]] = {}
        self.statuses: List[Tuple[str, Optional[str]]] = []
        self.labels: List[str] = []
        self.analyses: List[str] = []
        self.branches: List[str] = []
        self.last_item: Optional[WorkItem] = None

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    async def validate_access(self, owner: str, repo: str) -> bool:
        self.calls.append(("validate_access", (owner, repo)))
        return self.has_access

    async def create_branch(self, item: WorkItem) -> str:
        self.last_item = item
        self.calls.append(("create_branch", item.issue_number))
        if self.branch_errors:
            raise self.branch_errors.pop(0)
        name = make_branch_name(item.issue_number)
        self.branches.append(name)
        return name

    async def post_status(
        self, item: WorkItem, status: str, details: Optional[str] = None
    ) -> None:
        self.last_item = item
        self.calls.append(("post_status", status))
        errors = self.status_errors.get(status)
        if errors:
            raise errors.pop(0)
        self.statuses.append((status, details))
        self.labels.append(f"workflow:{status}")

    async def post_analysis(self, item: WorkItem, text: str) -> None:
        self.last_item = item
        self.calls.append(("post_analysis", len(text)))
        if self.analysis_errors:
            raise self.analysis_errors.pop(0)
        self.analyses.append(text)


class FakePromptRunner(PromptRunner):
    """PromptRunner returning a canned response after an optional delay."""

    def __init__(
        self,
        response: str = "## Technical Analysis\n\nLow complexity.",
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ) -> None:
        self.response = response
        self.delay = delay
        self.error = error
        self.prompts: List[str] = []
        self.completed = 0

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def run(self, prompt: str, timeout_seconds: float) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.completed += 1
        return self.response


class RecordingEventEmitter(EventEmitter):
    """EventEmitter keeping every event in memory."""

    def __init__(self) -> None:
        self.events: List[WorkflowEvent] = []

    async def emit(self, event: WorkflowEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: EventType) -> List[WorkflowEvent]:
        return [e for e in self.events if e.event_type == event_type]


class RecordingSleep:
    """Async sleep replacement recording requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_webhook_payload(
    issue_number: int = 123,
    title: str = "Add user authentication",
    body: Optional[str] = "We need OAuth2 login.",
    labels: Optional[List[str]] = None,
    owner: str = "testuser",
    repo: str = "test-repo",
    action: str = "opened",
    state: str = "open",
    default_branch: str = "main",
) -> Dict[str, Any]:
    return {
        "action": action,
        "issue": {
            "id": 987654,
            "number": issue_number,
            "title": title,
            "body": body,
            "state": state,
            "labels": [{"name": name} for name in (labels or ["enhancement"])],
            "user": {"login": "reporter"},
        },
        "repository": {
            "name": repo,
            "full_name": f"{owner}/{repo}",
            "default_branch": default_branch,
            "owner": {"login": owner},
        },
    }


def make_work_item(**overrides: Any) -> WorkItem:
    fields = {
        "issue_id": 987654,
        "issue_number": 123,
        "owner": "testuser",
        "repository": "test-repo",
        "title": "Add user authentication",
        "body": "We need OAuth2 login.",
        "labels": ["enhancement", "backend"],
    }
    fields.update(overrides)
    return WorkItem(**fields)


@pytest.fixture
def repository_client() -> FakeRepositoryClient:
    return FakeRepositoryClient()


@pytest.fixture
def prompt_runner() -> FakePromptRunner:
    return FakePromptRunner()


@pytest.fixture
def emitter() -> RecordingEventEmitter:
    return RecordingEventEmitter()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def payload_factory():
    return make_webhook_payload


@pytest.fixture
def item_factory():
    return make_work_item


@pytest.fixture
def runner_factory():
    return FakePromptRunner
