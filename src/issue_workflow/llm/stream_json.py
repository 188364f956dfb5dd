"""Parser for the ``claude`` CLI ``--output-format stream-json`` output.

Each stdout line is one JSON object. The message types of interest:

    {"type": "system", "subtype": "init", ...}
    {"type": "assistant", "message": {"content": [{"type": "text", "text": "..."}]}}
    {"type": "user", "message": {"content": [{"type": "tool_result", ...}]}}
    {"type": "result", "subtype": "success", "result": "...", ...}

Assistant content items are ``text``, ``tool_use`` or ``tool_result``;
only ``text`` items contribute to the response.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


KNOWN_MESSAGE_TYPES = {"system", "assistant", "user", "result"}


@dataclass
class StreamMessage:
    """One parsed stream-json line.

    Attributes:
        type: Message type (system, assistant, user, result, or unknown).
        content: Content items for assistant/user messages.
        result: Final result text for result messages.
        raw: The decoded JSON object.
    """

    type: str
    content: List[Dict[str, Any]] = field(default_factory=list)
    result: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    def text_parts(self) -> List[str]:
        """Text content items, in order."""
        return [
            item.get("text", "")
            for item in self.content
            if item.get("type") == "text" and isinstance(item.get("text"), str)
        ]


def parse_stream_line(line: str) -> StreamMessage:
    """Parse one stream-json line.

    Raises:
        ValueError: If the line is not a JSON object.
    """
    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError(f"expected JSON object, got {type(data).__name__}")

    message_type = data.get("type")
    if message_type not in KNOWN_MESSAGE_TYPES:
        message_type = "unknown"

    content: List[Dict[str, Any]] = []
    if message_type in ("assistant", "user"):
        message = data.get("message")
        items = message.get("content") if isinstance(message, dict) else None
        if isinstance(items, list):
            content = [item for item in items if isinstance(item, dict)]

    result = data.get("result") if message_type == "result" else None
    if not isinstance(result, str):
        result = None

    return StreamMessage(type=message_type, content=content, result=result, raw=data)


def extract_response(messages: Iterable[StreamMessage]) -> str:
    """Concatenate assistant text and trim it.

    Raises:
        ValueError: If there is no assistant text at all.
    """
    response = "".join(
        part
        for message in messages
        if message.type == "assistant"
        for part in message.text_parts()
    )
    response = response.strip()
    if not response:
        raise ValueError("No text content found in Claude response")
    return response
