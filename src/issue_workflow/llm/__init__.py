"""Prompt runners: LangChain chat endpoint and the claude CLI."""

from src.issue_workflow.llm.base import PromptRunner
from src.issue_workflow.llm.claude_cli import ClaudeCliPromptRunner
from src.issue_workflow.llm.langchain_runner import LangChainPromptRunner
from src.issue_workflow.llm.stream_json import (
    StreamMessage,
    extract_response,
    parse_stream_line,
)

__all__ = [
    "PromptRunner",
    "ClaudeCliPromptRunner",
    "LangChainPromptRunner",
    "StreamMessage",
    "extract_response",
    "parse_stream_line",
]
