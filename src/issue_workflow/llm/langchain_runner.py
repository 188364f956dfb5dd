"""Prompt runner backed by an OpenAI-compatible chat endpoint.

Uses LangChain's ChatOpenAI client so the same runner works against
OpenAI, vLLM or any other OpenAI-compatible server.
"""

import asyncio
import logging
from typing import Optional

from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from src.issue_workflow.errors import ClassifiedError, ErrorCode, describe_error
from src.issue_workflow.llm.base import PromptRunner


logger = logging.getLogger(__name__)


class LangChainPromptRunner(PromptRunner):
    """Prompt runner using LangChain's ChatOpenAI.

    Attributes:
        llm_url: Base URL of the OpenAI-compatible endpoint.
        model_name: Name of the model to use for inference.
        api_key: API key; self-hosted endpoints usually accept any value.
        temperature: Sampling temperature for the LLM.

    Example:
        >>> runner = LangChainPromptRunner(
        ...     llm_url="http://localhost:8000/v1",
        ...     model_name="Qwen/Qwen2.5-Coder-14B-Instruct-GPTQ-Int4",
        ... )
        >>> text = await runner.run("Summarize this issue", timeout_seconds=30)
    """

    def __init__(
        self,
        llm_url: str,
        model_name: str,
        api_key: str = "not-needed",
        temperature: float = 0.2,
    ):
        self.llm_url = llm_url
        self.model_name = model_name
        self.api_key = api_key
        self.temperature = temperature
        self._llm: Optional[ChatOpenAI] = None

    @property
    def llm(self) -> ChatOpenAI:
        """Get the LLM client, creating it if necessary."""
        if self._llm is None:
            self._llm = ChatOpenAI(
                base_url=self.llm_url,
                model=self.model_name,
                temperature=self.temperature,
                api_key=self.api_key,
            )
        return self._llm

    async def run(self, prompt: str, timeout_seconds: float) -> str:
        try:
            response = await asyncio.wait_for(
                self.llm.ainvoke([HumanMessage(content=prompt)]),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ClassifiedError(
                f"LLM request timed out after {timeout_seconds}s",
                ErrorCode.PROMPT_TIMEOUT,
                retryable=True,
                cause=e,
            ) from e
        except Exception as e:
            raise ClassifiedError(
                f"LLM invocation failed: {describe_error(e)}",
                ErrorCode.PROMPT_RUNNER_FAILED,
                retryable=True,
                cause=e,
            ) from e

        content = response.content
        if not isinstance(content, str):
            raise ClassifiedError(
                f"Unexpected response type: {type(content).__name__}",
                ErrorCode.PROMPT_RUNNER_FAILED,
                retryable=True,
            )
        return content

    async def health_check(self) -> bool:
        """Check if the LLM endpoint is accessible.

        Returns:
            True if healthy, False otherwise.
        """
        try:
            await self.llm.ainvoke([HumanMessage(content="Hello")])
            return True
        except Exception as e:
            logger.warning(
                "LLM health check failed",
                extra={"llm_url": self.llm_url, "error": str(e)},
            )
            return False
