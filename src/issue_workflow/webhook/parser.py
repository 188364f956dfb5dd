"""GitHub webhook payload parsing for the issue workflow.

Payloads reach the workflow either as the raw GitHub webhook JSON or wrapped
in an SNS/SQS envelope by the queue transport. This module unwraps the
envelope and turns the GitHub payload into a GitHubIssueEvent.

All failures raised here are non-retryable: re-parsing the same bytes can
never succeed.

GitHub Webhook Payload Structure (issues event):
{
  "action": "opened",
  "issue": {
    "id": 987654,
    "number": 123,
    "title": "Issue title",
    "body": "Issue body",
    "state": "open",
    "labels": [{"name": "bug"}, {"name": "enhancement"}],
    "user": {"login": "username"}
  },
  "repository": {
    "name": "repo-name",
    "default_branch": "main",
    "owner": {"login": "owner-name"}
  }
}

Envelope shapes:
    {"Records": [{"Sns": {"Message": "<github payload json>"}}]}
    {"Records": [{"body": "<github payload json>"}]}
"""

import json
import logging
from typing import Any, Dict, List, Optional, Union

from src.issue_workflow.errors import ClassifiedError, ErrorCode
from src.issue_workflow.webhook.models import GitHubIssueEvent, IssueAction, IssueState

logger = logging.getLogger(__name__)

REQUIRED_PAYLOAD_FIELDS = ("action", "issue", "repository")

RawPayload = Union[str, bytes, Dict[str, Any]]


def unwrap_envelope(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Strip an SNS or SQS record envelope, if there is one.

    Args:
        payload: Decoded message body.

    Returns:
        The inner GitHub payload, or ``payload`` itself when it is not
        wrapped.

    Raises:
        ClassifiedError: WEBHOOK_PARSE_ERROR if the inner message is not
            valid JSON.
    """
    records = payload.get("Records")
    if not isinstance(records, list) or not records:
        return payload

    record = records[0]
    if not isinstance(record, dict):
        return payload

    sns = record.get("Sns")
    if isinstance(sns, dict) and "Message" in sns:
        return _loads(sns["Message"])

    if "body" in record:
        return _loads(record["body"])

    return payload


def decode_message_body(raw: RawPayload) -> Dict[str, Any]:
    """Decode a queue message body into a GitHub webhook payload.

    Args:
        raw: JSON text, bytes, or an already-decoded dictionary.

    Returns:
        The unwrapped GitHub payload.

    Raises:
        ClassifiedError: WEBHOOK_PARSE_ERROR for malformed JSON,
            INVALID_WEBHOOK_PAYLOAD when action, issue or repository is
            missing.
    """
    payload = raw if isinstance(raw, dict) else _loads(raw)
    payload = unwrap_envelope(payload)

    missing = [name for name in REQUIRED_PAYLOAD_FIELDS if not payload.get(name)]
    if missing:
        raise ClassifiedError(
            "Invalid webhook payload: missing required fields",
            ErrorCode.INVALID_WEBHOOK_PAYLOAD,
            retryable=False,
            context={"missing": missing},
        )
    return payload


def _loads(text: Any) -> Dict[str, Any]:
    if isinstance(text, dict):
        return text
    try:
        decoded = json.loads(text)
    except (TypeError, ValueError) as e:
        raise ClassifiedError(
            f"Failed to parse webhook payload: {e}",
            ErrorCode.WEBHOOK_PARSE_ERROR,
            retryable=False,
            cause=e,
        ) from e
    if not isinstance(decoded, dict):
        raise ClassifiedError(
            f"Failed to parse webhook payload: expected object, got {type(decoded).__name__}",
            ErrorCode.WEBHOOK_PARSE_ERROR,
            retryable=False,
        )
    return decoded


class WebhookParser:
    """Parser turning raw webhook payloads into GitHubIssueEvent objects.

    Unlike a filter that quietly drops events, the parser raises a
    non-retryable INVALID_WEBHOOK error for anything the workflow must not
    process, so the caller can record why.
    """

    def parse_issue_event(self, raw: RawPayload) -> GitHubIssueEvent:
        """Parse and validate an ``issues.opened`` event.

        Args:
            raw: The webhook payload as JSON text, bytes or a dictionary,
                optionally wrapped in an SNS/SQS envelope.

        Returns:
            The parsed event.

        Raises:
            ClassifiedError: INVALID_WEBHOOK for a payload that is not an
                opened event for an open issue with a present repository,
                or the decoding errors of decode_message_body.
        """
        if isinstance(raw, dict):
            payload = unwrap_envelope(raw)
        else:
            payload = unwrap_envelope(_loads(raw))

        action = payload.get("action")
        if action is None:
            self._reject("missing 'action' field")
        if action != IssueAction.OPENED.value:
            self._reject(f"unsupported action '{action}'")

        issue_data = payload.get("issue")
        if not isinstance(issue_data, dict):
            self._reject("missing or invalid 'issue' field")

        repo_data = payload.get("repository")
        if not isinstance(repo_data, dict):
            self._reject("missing or invalid 'repository' field")

        state = issue_data.get("state")
        if state != IssueState.OPEN.value:
            self._reject(f"issue state is '{state}', expected 'open'")

        issue_number = issue_data.get("number")
        if not isinstance(issue_number, int) or isinstance(issue_number, bool) or issue_number <= 0:
            self._reject(f"invalid issue number: {issue_number!r}")

        issue_id = issue_data.get("id")
        if not isinstance(issue_id, int) or isinstance(issue_id, bool):
            self._reject(f"invalid issue id: {issue_id!r}")

        title = issue_data.get("title")
        if not isinstance(title, str) or not title.strip():
            self._reject("invalid or empty issue title")

        # Body can be None or empty string
        body = issue_data.get("body")
        if not isinstance(body, str):
            body = ""

        repo_name = repo_data.get("name")
        if not isinstance(repo_name, str) or not repo_name.strip():
            self._reject("invalid or empty repository name")

        owner = self._extract_login(repo_data.get("owner"))
        if owner is None:
            self._reject("invalid or missing repository owner")

        default_branch = repo_data.get("default_branch")
        if not isinstance(default_branch, str) or not default_branch.strip():
            default_branch = "main"

        event = GitHubIssueEvent(
            action=IssueAction.OPENED,
            state=IssueState.OPEN,
            issue_id=issue_id,
            issue_number=issue_number,
            title=title,
            body=body,
            labels=self._extract_labels(issue_data.get("labels", [])),
            repository=repo_name,
            owner=owner,
            default_branch=default_branch,
            author=self._extract_login(issue_data.get("user")) or "",
        )

        logger.info("Parsed issue event: issue=%s", event.display_id)
        return event

    def _reject(self, reason: str) -> None:
        logger.warning("Rejecting webhook payload: %s", reason)
        raise ClassifiedError(
            f"Invalid webhook: {reason}",
            ErrorCode.INVALID_WEBHOOK,
            retryable=False,
        )

    def _extract_labels(self, labels_data: Any) -> List[str]:
        """Extract label names from a GitHub labels array.

        GitHub sends labels as objects with a 'name' field; plain strings
        are accepted as well. Invalid entries are skipped.
        """
        if not isinstance(labels_data, list):
            return []

        labels = []
        for label in labels_data:
            if isinstance(label, dict):
                name = label.get("name")
            else:
                name = label
            if isinstance(name, str) and name.strip():
                labels.append(name)
        return labels

    def _extract_login(self, user_data: Any) -> Optional[str]:
        if not isinstance(user_data, dict):
            return None
        login = user_data.get("login")
        if not isinstance(login, str) or not login.strip():
            return None
        return login
