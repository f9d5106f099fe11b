"""Fixed URL tool: fetches one preconfigured URL and returns its text.

HTML pages are reduced to their visible text.  The model only sees
the tool name and description and calls it with no arguments; the URL,
timeout and truncation length come from the tool's ``args`` in config
and are never exposed.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Self

import httpx
from bs4 import BeautifulSoup
from langchain_core.tools import BaseTool
from pydantic import BaseModel, Field

from chatrelay.configs.tools import ToolConfig

TRUNCATION_MARKER = "..."
HTML_MIME_TYPE = "text/html"
_NON_TEXT_TAGS = ["script", "style", "noscript"]


class URLToolArgs(BaseModel):
    """Typed schema for the ``args`` dict of a ``url`` tool."""

    url: str = Field(description="Target URL to fetch.")
    timeout: timedelta = Field(
        default=timedelta(seconds=30),
        description="HTTP request timeout.",
    )
    max_content_length: int = Field(
        default=1000,
        description="Truncate response body beyond this length.",
    )


class NoArgs(BaseModel):
    """The tool takes no arguments from the model."""


def _truncate(content: str, max_length: int) -> str:
    if len(content) > max_length:
        return content[:max_length] + TRUNCATION_MARKER
    return content


def html_to_text(html: str) -> str:
    """Visible text of an HTML page with whitespace collapsed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NON_TEXT_TAGS):
        tag.decompose()
    return " ".join(soup.get_text(" ").split())


def _page_text(response: httpx.Response, max_length: int) -> str:
    content = response.text
    if HTML_MIME_TYPE in response.headers.get("content-type", ""):
        content = html_to_text(content)
    return _truncate(content, max_length)


class FixedURLTool(BaseTool):
    """Fetch the content of one fixed URL."""

    url: str
    timeout: timedelta = timedelta(seconds=30)
    max_content_length: int = 1000

    def _run(self, *args: Any, **kwargs: Any) -> str:
        """Fetch synchronously."""
        with httpx.Client(timeout=self.timeout.total_seconds()) as client:
            response = client.get(self.url)
            response.raise_for_status()
            return _page_text(response, self.max_content_length)

    async def _arun(self, *args: Any, **kwargs: Any) -> str:
        """Fetch asynchronously."""
        async with httpx.AsyncClient(
            timeout=self.timeout.total_seconds()
        ) as client:
            response = await client.get(self.url)
            response.raise_for_status()
            return _page_text(response, self.max_content_length)

    @classmethod
    def from_config(cls, config: ToolConfig) -> Self:
        """Build from a ``tool_type: url`` config entry."""
        args = URLToolArgs.model_validate(config.args)
        return cls(
            name=config.name,
            description=config.description,
            args_schema=NoArgs,
            url=args.url,
            timeout=args.timeout,
            max_content_length=args.max_content_length,
        )


# Set after class definition to avoid Pydantic interference
FixedURLTool.tool_type = "url"
