"""Prompt runner interface used by analysis agents."""

from abc import ABC, abstractmethod


class PromptRunner(ABC):
    """Runs one text prompt against a language model and returns its text.

    Implementations raise ClassifiedError on failure. Callers that need a
    hard deadline enforce it themselves; ``timeout_seconds`` lets the
    runner stop its own work early.
    """

    @abstractmethod
    async def run(self, prompt: str, timeout_seconds: float) -> str:
        """Run ``prompt`` and return the model's text response.

        Args:
            prompt: Prompt text.
            timeout_seconds: Deadline for the underlying call.

        Returns:
            The response text.

        Raises:
            ClassifiedError: PROMPT_TIMEOUT or PROMPT_RUNNER_FAILED.
        """

    async def health_check(self) -> bool:
        """Return True if the runner can reach its model. Default True."""
        return True
