"""Prompt assembly: system text + (augmented) user text + media + tool.

Augmented user text layout::

    <RAG_PREAMBLE>
    [Reference 1]
    <passage text, at most max_passage_chars, then "..." if cut>

    [Reference 2]
    ...

    <RAG_QUESTION_LEAD><original user text>

With no passages the user text is passed through unchanged.
"""

from collections.abc import Sequence

from .models import AssembledPrompt, MediaAttachment, RetrievedPassage, ToolSet

RAG_PREAMBLE = "Answer the user's question using the following reference material:\n\n"
RAG_PASSAGE_LABEL = "[Reference {index}]\n"
RAG_PASSAGE_SEPARATOR = "\n\n"
RAG_TRUNCATION_MARKER = "..."
RAG_QUESTION_LEAD = "Based on the reference material above, answer the user's question:\n"

DEFAULT_MAX_PASSAGE_CHARS = 1000


def truncate_passage(text: str, max_chars: int) -> str:
    """Cap *text* at *max_chars* characters, marking the cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + RAG_TRUNCATION_MARKER


def augment_user_text(
    user_text: str,
    passages: Sequence[RetrievedPassage],
    max_passage_chars: int = DEFAULT_MAX_PASSAGE_CHARS,
) -> str:
    if not passages:
        return user_text
    ranked = sorted(passages, key=lambda p: p.score, reverse=True)
    blocks = "".join(
        RAG_PASSAGE_LABEL.format(index=i)
        + truncate_passage(p.text, max_passage_chars)
        + RAG_PASSAGE_SEPARATOR
        for i, p in enumerate(ranked, start=1)
    )
    return RAG_PREAMBLE + blocks + RAG_QUESTION_LEAD + user_text


class PromptAssembler:
    """Builds the ``AssembledPrompt`` for one request."""

    def __init__(self, max_passage_chars: int = DEFAULT_MAX_PASSAGE_CHARS) -> None:
        self._max_passage_chars = max_passage_chars

    def assemble(
        self,
        system_text: str,
        user_text: str,
        passages: Sequence[RetrievedPassage] = (),
        media: Sequence[MediaAttachment] = (),
        tool: ToolSet | None = None,
    ) -> AssembledPrompt:
        return AssembledPrompt(
            system_text=system_text,
            user_text=augment_user_text(user_text, passages, self._max_passage_chars),
            media=tuple(media),
            tool=tool if tool is not None and tool.tools else None,
        )
