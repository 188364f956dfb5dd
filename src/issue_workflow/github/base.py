"""Abstract remote repository client used by the workflow orchestrator."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from src.issue_workflow.errors import describe_error
from src.issue_workflow.state.models import WorkItem


logger = logging.getLogger(__name__)


class RemoteRepositoryClient(ABC):
    """Operations the workflow performs against the hosting service.

    Implementations translate transport failures into ClassifiedError at
    this boundary; callers only ever see classified errors from the
    raising methods.
    """

    @abstractmethod
    async def validate_access(self, owner: str, repo: str) -> bool:
        """Return True if the repository is reachable. Never raises."""

    @abstractmethod
    async def create_branch(self, item: WorkItem) -> str:
        """Create a feature branch for ``item`` and return its name.

        Raises:
            ClassifiedError: REPO_NOT_FOUND and BRANCH_EXISTS are not
                retryable; BRANCH_CREATION_FAILED is.
        """

    @abstractmethod
    async def post_status(
        self,
        item: WorkItem,
        status: str,
        details: Optional[str] = None,
    ) -> None:
        """Post a status comment and apply the ``workflow:<status>`` label.

        Raises:
            ClassifiedError: ISSUE_NOT_FOUND is not retryable;
                STATUS_UPDATE_FAILED is.
        """

    @abstractmethod
    async def post_analysis(self, item: WorkItem, text: str) -> None:
        """Post the analysis comment.

        Raises:
            ClassifiedError: ANALYSIS_UPDATE_FAILED (retryable).
        """

    async def post_status_best_effort(
        self,
        item: WorkItem,
        status: str,
        details: Optional[str] = None,
    ) -> bool:
        """Post a status update, logging instead of raising on failure.

        Returns:
            True if the update was posted.
        """
        try:
            await self.post_status(item, status, details)
            return True
        except Exception as e:
            logger.warning(
                "Best-effort status update '%s' failed for %s: %s",
                status,
                item.display_id,
                describe_error(e),
                extra={"issue_id": item.display_id, "status": status},
            )
            return False

    async def close(self) -> None:
        """Release transport resources. Default does nothing."""
