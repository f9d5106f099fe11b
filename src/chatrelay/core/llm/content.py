"""Helpers for reading text out of LangChain message content."""

from langchain_core.messages import BaseMessage


def message_text(message: BaseMessage) -> str:
    """Return the plain-text part of *message*.

    ``content`` is either a string or a list of content blocks
    (strings or ``{"type": "text", "text": ...}`` dicts); non-text
    blocks such as images or tool-use fragments are skipped.
    """
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)
