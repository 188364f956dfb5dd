"""Property-based tests for WorkItem status transitions.

Verifies that statuses only move forward, that FAILED is terminal and
reachable from every other status, and that timestamps move with
transitions.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

import pytest
from hypothesis import given, settings, strategies as st
from pydantic import ValidationError

from src.issue_workflow.errors import InvalidTransitionError
from src.issue_workflow.state import (
    STATUS_ORDER,
    VALID_TRANSITIONS,
    WorkflowStatus,
    WorkItem,
    is_terminal_status,
    is_valid_transition,
    make_branch_name,
)


def _new_item() -> WorkItem:
    return WorkItem(
        issue_id=1,
        issue_number=7,
        owner="acme",
        repository="widgets",
        title="Fix login",
    )


statuses = st.sampled_from(list(WorkflowStatus))


@settings(max_examples=100)
@given(requests=st.lists(statuses, min_size=1, max_size=20))
def test_status_never_moves_backwards(requests):
    """Applying any sequence of requested statuses never decreases the
    item's position in the forward order, and nothing leaves FAILED."""
    item = _new_item()

    for requested in requests:
        before = item.status
        try:
            item.advance(requested)
        except InvalidTransitionError:
            assert item.status == before
            continue

        if before == WorkflowStatus.FAILED:
            assert item.status == WorkflowStatus.FAILED
        elif item.status != WorkflowStatus.FAILED:
            assert STATUS_ORDER.index(item.status) >= STATUS_ORDER.index(before)


@settings(max_examples=100)
@given(from_status=statuses)
def test_failed_reachable_from_every_non_failed_status(from_status):
    if from_status == WorkflowStatus.FAILED:
        assert VALID_TRANSITIONS[from_status] == []
    else:
        assert is_valid_transition(from_status, WorkflowStatus.FAILED)


@settings(max_examples=100)
@given(from_status=statuses, to_status=statuses)
def test_valid_transitions_only_step_forward_by_one(from_status, to_status):
    if not is_valid_transition(from_status, to_status):
        return
    if to_status == WorkflowStatus.FAILED:
        return
    assert STATUS_ORDER.index(to_status) == STATUS_ORDER.index(from_status) + 1


def test_full_forward_path_updates_timestamp():
    item = _new_item()
    first_update = item.updated_at

    for status in STATUS_ORDER[1:]:
        assert item.advance(status) is True

    assert item.status == WorkflowStatus.COMPLETED
    assert item.updated_at >= first_update
    assert is_terminal_status(item.status)


def test_reentering_current_status_is_noop():
    item = _new_item()
    item.advance(WorkflowStatus.PARSING)
    stamp = item.updated_at

    assert item.advance(WorkflowStatus.PARSING) is False
    assert item.updated_at == stamp


def test_skipping_a_status_is_rejected():
    item = _new_item()

    with pytest.raises(InvalidTransitionError) as exc_info:
        item.advance(WorkflowStatus.PROCESSING)

    assert "pending" in str(exc_info.value)
    assert item.status == WorkflowStatus.PENDING


def test_has_reached_tracks_forward_order():
    item = _new_item()
    item.advance(WorkflowStatus.PARSING)
    item.advance(WorkflowStatus.BRANCH_CREATING)

    assert item.has_reached(WorkflowStatus.PARSING)
    assert item.has_reached(WorkflowStatus.BRANCH_CREATING)
    assert not item.has_reached(WorkflowStatus.AGENT_ASSIGNED)
    assert not item.has_reached(WorkflowStatus.FAILED)


@pytest.mark.parametrize(
    "title,owner,repository,expected",
    [
        ("Fix login", "acme", "widgets", True),
        ("", "acme", "widgets", False),
        ("   ", "acme", "widgets", False),
        ("Fix login", "", "widgets", False),
        ("Fix login", "acme", "", False),
    ],
)
def test_has_required_fields(title, owner, repository, expected):
    item = WorkItem(
        issue_id=1,
        issue_number=7,
        owner=owner,
        repository=repository,
        title=title,
    )
    assert item.has_required_fields() is expected


@pytest.mark.parametrize(
    "field,value",
    [("issue_id", 2), ("issue_number", 8), ("owner", "other"), ("repository", "gadgets")],
)
def test_identity_fields_cannot_be_reassigned(field, value):
    item = _new_item()

    with pytest.raises(ValidationError, match="frozen"):
        setattr(item, field, value)

    assert item.display_id == "acme/widgets#7"


def test_progress_fields_remain_assignable():
    item = _new_item()

    item.branch_name = "feature/issue-7-1"
    item.agent_type = "tech-lead"
    item.retry_count = 2
    item.last_error = "boom"

    assert item.branch_name == "feature/issue-7-1"
    assert item.retry_count == 2


@settings(max_examples=100)
@given(number=st.integers(min_value=1, max_value=10**6), ms=st.integers(min_value=0, max_value=2**42))
def test_branch_name_format(number, ms):
    assert make_branch_name(number, ms) == f"feature/issue-{number}-{ms}"
