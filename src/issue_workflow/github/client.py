"""GitHub API client implementing the remote repository operations.

This module provides an async httpx wrapper around the GitHub REST API for:
- Checking repository access
- Creating feature branches from the default branch
- Posting status comments and workflow labels on issues
- Posting analysis comments on issues

The client makes exactly one HTTP call per API operation and does not retry
on its own: retries are owned by the workflow's RetryExecutor, which relies
on the classification done here.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from src.issue_workflow.errors import ErrorCode
from src.issue_workflow.github.base import RemoteRepositoryClient
from src.issue_workflow.github.errors import (
    GitHubAPIError,
    RateLimitError,
    classify_github_error,
)
from src.issue_workflow.github.formatting import (
    format_analysis_comment,
    format_status_comment,
    status_label,
)
from src.issue_workflow.state.models import WorkItem, make_branch_name


logger = logging.getLogger(__name__)


class GitHubRepositoryClient(RemoteRepositoryClient):
    """Async GitHub API client.

    Supports both github.com and GitHub Enterprise Server through
    ``base_url``.

    Attributes:
        token: GitHub API token (PAT or GitHub App token).
        base_url: Base URL for GitHub API (default: https://api.github.com).
        timeout: Request timeout in seconds.

    Example:
        >>> client = GitHubRepositoryClient(token="ghp_xxx")
        >>> async with client:
        ...     await client.post_status(item, "processing")
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            base_url: Base URL for GitHub API.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``
                in tests.
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "IssueWorkflow/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubRepositoryClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _parse_int_header(self, headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    def _rate_limit_error(self, response: httpx.Response) -> RateLimitError:
        """Build a RateLimitError from rate limit headers.

        Args:
            response: The rate-limited response from GitHub.

        Returns:
            RateLimitError with information about when to retry.
        """
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            extra={
                "reset_at": reset_at,
                "retry_after": retry_after,
                "limit": self._parse_int_header(response.headers, "x-ratelimit-limit"),
                "used": self._parse_int_header(response.headers, "x-ratelimit-used"),
            },
        )

        return RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
            request_url=str(response.url),
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH).
            path: API path (e.g., /repos/owner/repo/issues/1/comments).
            json_data: Optional JSON body for the request.

        Returns:
            The HTTP response from GitHub.

        Raises:
            RateLimitError: If the rate limit is exceeded.
            GitHubAPIError: For any other 4xx/5xx response.
            httpx.RequestError: For timeouts and network failures.
        """
        response = await self.client.request(method=method, url=path, json=json_data)

        if response.status_code == 429:
            raise self._rate_limit_error(response)

        if response.status_code == 403:
            remaining = self._parse_int_header(response.headers, "x-ratelimit-remaining")
            if remaining is not None and remaining == 0:
                raise self._rate_limit_error(response)

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "GitHub API error",
                extra={
                    "status_code": response.status_code,
                    "path": path,
                    "method": method,
                    "response_body": error_body[:500],
                },
            )
            raise GitHubAPIError(
                message=f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body,
                request_url=str(response.url),
            )

        return response

    async def validate_access(self, owner: str, repo: str) -> bool:
        """Check that the repository exists and the token can read it."""
        try:
            await self._request("GET", f"/repos/{owner}/{repo}")
            return True
        except Exception as e:
            logger.warning(
                "Repository access check failed for %s/%s: %s",
                owner,
                repo,
                e,
                extra={"owner": owner, "repo": repo},
            )
            return False

    async def create_branch(self, item: WorkItem) -> str:
        """Create ``feature/issue-<number>-<epoch-ms>`` from the default branch.

        Args:
            item: Work item whose repository and issue number are used.

        Returns:
            The created branch name.

        Raises:
            ClassifiedError: REPO_NOT_FOUND (404) and BRANCH_EXISTS (422)
                are not retryable; everything else is BRANCH_CREATION_FAILED.
        """
        owner, repo = item.owner, item.repository
        branch_name = make_branch_name(item.issue_number)

        try:
            response = await self._request(
                "GET", f"/repos/{owner}/{repo}/branches/{item.default_branch}"
            )
            base_sha = response.json()["commit"]["sha"]

            await self._request(
                "POST",
                f"/repos/{owner}/{repo}/git/refs",
                json_data={"ref": f"refs/heads/{branch_name}", "sha": base_sha},
            )
        except Exception as e:
            raise classify_github_error(
                e,
                ErrorCode.BRANCH_CREATION_FAILED,
                "Failed to create branch",
                terminal={
                    422: (
                        ErrorCode.BRANCH_EXISTS,
                        "Branch already exists or invalid branch name",
                    ),
                    404: (
                        ErrorCode.REPO_NOT_FOUND,
                        "Repository not found or insufficient permissions",
                    ),
                },
                context={"owner": owner, "repo": repo, "branch_name": branch_name},
            ) from e

        logger.info(
            "Branch created",
            extra={
                "owner": owner,
                "repo": repo,
                "branch_name": branch_name,
                "base_branch": item.default_branch,
            },
        )
        return branch_name

    async def post_status(
        self,
        item: WorkItem,
        status: str,
        details: Optional[str] = None,
    ) -> None:
        """Post a status comment and add the ``workflow:<status>`` label."""
        path = f"/repos/{item.owner}/{item.repository}/issues/{item.issue_number}"

        try:
            await self._request(
                "POST",
                f"{path}/comments",
                json_data={"body": format_status_comment(status, details)},
            )
            await self._request(
                "POST",
                f"{path}/labels",
                json_data={"labels": [status_label(status)]},
            )
        except Exception as e:
            raise classify_github_error(
                e,
                ErrorCode.STATUS_UPDATE_FAILED,
                "Failed to update issue status",
                terminal={404: (ErrorCode.ISSUE_NOT_FOUND, "Issue not found")},
                context={"issue_number": item.issue_number},
            ) from e

        logger.info(
            "Status updated",
            extra={"issue_id": item.display_id, "status": status},
        )

    async def post_analysis(self, item: WorkItem, text: str) -> None:
        """Post the tech lead analysis comment."""
        path = (
            f"/repos/{item.owner}/{item.repository}/issues/{item.issue_number}/comments"
        )

        try:
            await self._request(
                "POST", path, json_data={"body": format_analysis_comment(text)}
            )
        except Exception as e:
            raise classify_github_error(
                e,
                ErrorCode.ANALYSIS_UPDATE_FAILED,
                "Failed to add tech lead analysis",
            ) from e

        logger.info(
            "Analysis posted",
            extra={"issue_id": item.display_id, "body_length": len(text)},
        )
