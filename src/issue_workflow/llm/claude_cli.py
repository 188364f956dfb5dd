"""Prompt runner that shells out to the ``claude`` CLI.

Executes ``claude --verbose --output-format stream-json -p`` as an async
subprocess, writes the prompt to stdin, and assembles the assistant's text
from the stream-json lines on stdout.
"""

import asyncio
import logging
import time
from typing import List

from src.issue_workflow.errors import ClassifiedError, ErrorCode
from src.issue_workflow.llm.base import PromptRunner
from src.issue_workflow.llm.stream_json import (
    StreamMessage,
    extract_response,
    parse_stream_line,
)

logger = logging.getLogger(__name__)

CLAUDE_ARGS = ("--verbose", "--output-format", "stream-json", "-p")


class ClaudeCliPromptRunner(PromptRunner):
    """Runs prompts through the ``claude`` CLI subprocess.

    Every failure is retryable: a new process gets a fresh chance. A run
    that times out or is cancelled kills the subprocess before returning.

    Attributes:
        claude_path: Filesystem path or name of the claude executable.
    """

    def __init__(self, claude_path: str = "claude"):
        self.claude_path = claude_path

    async def run(self, prompt: str, timeout_seconds: float) -> str:
        start_time = time.monotonic()

        try:
            process = await self._start_process()
        except OSError as e:
            raise ClassifiedError(
                f"Failed to start Claude process: {e}",
                ErrorCode.PROMPT_RUNNER_FAILED,
                retryable=True,
                cause=e,
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(input=prompt.encode("utf-8")),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            await self._terminate(process)
            logger.error("claude timed out after %ss", timeout_seconds)
            raise ClassifiedError(
                f"Claude process timed out after {timeout_seconds}s",
                ErrorCode.PROMPT_TIMEOUT,
                retryable=True,
                cause=e,
            ) from e
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        duration = time.monotonic() - start_time

        if stderr:
            logger.debug("claude stderr: %s", stderr.decode("utf-8", errors="replace"))

        if process.returncode:
            logger.error(
                "claude exited with code %d",
                process.returncode,
                extra={"exit_code": process.returncode, "duration_seconds": duration},
            )
            raise ClassifiedError(
                f"Claude process exited with code {process.returncode}",
                ErrorCode.PROMPT_RUNNER_FAILED,
                retryable=True,
                context={"exit_code": process.returncode},
            )

        messages = self._parse_output(stdout.decode("utf-8", errors="replace"))

        try:
            response = extract_response(messages)
        except ValueError as e:
            raise ClassifiedError(
                f"Failed to extract response from Claude output: {e}",
                ErrorCode.PROMPT_RUNNER_FAILED,
                retryable=True,
                cause=e,
            ) from e

        logger.info(
            "claude completed",
            extra={"duration_seconds": duration, "messages": len(messages)},
        )
        return response

    async def _start_process(self) -> asyncio.subprocess.Process:
        """Launch the claude subprocess.

        Raises:
            OSError: If the executable cannot be found or started.
        """
        return await asyncio.create_subprocess_exec(
            self.claude_path,
            *CLAUDE_ARGS,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Kill the process if it is still running and reap it."""
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()

    def _parse_output(self, output: str) -> List[StreamMessage]:
        messages = []
        for line in output.splitlines():
            if not line.strip():
                continue
            try:
                messages.append(parse_stream_line(line))
            except ValueError as e:
                logger.warning("Failed to parse claude output line: %s", e)
        return messages
