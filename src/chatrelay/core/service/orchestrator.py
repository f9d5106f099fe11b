"""Conversation orchestrator: the single entry point for a chat turn.

Sequencing for every request:

1. Resolve the backend.  ``UnknownBackend`` propagates; nothing is
   written.
2. Resolve the system prompt (and the tool id it names).
3. Retrieve reference passages for the raw user text.
4. Resolve the tool set.
5. Load recent turns for memory continuity.
6. Assemble the prompt and invoke the backend, streamed or buffered.

Steps 2-5 return ``Resolved`` / ``Degraded`` outcomes and are settled
by one policy (``_settle``): log the degradation once, count it, use
the fallback value.

History is written as one user/assistant batch, only after the
backend finished normally.  A failed or cancelled stream writes
nothing.  A failed history write is logged and does not fail the turn.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing
from itertools import dropwhile
from typing import TypeVar

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    ToolCall,
    ToolMessage,
)
from langchain_core.runnables import Runnable

from chatrelay.configs.system import ChatConfig
from chatrelay.core.errors import BackendInvocationError
from chatrelay.core.llm import BackendHandle, BackendRegistry, message_text
from chatrelay.infra.db.converters import turn_to_message
from chatrelay.infra.db.history import HistoryStore
from chatrelay.infra.telemetry import (
    ATTR_CONVERSATION_ID,
    ATTR_MEDIA_COUNT,
    ATTR_MODEL,
    ATTR_PROVIDER,
    ATTR_STREAM,
    ATTR_TOOL_ID,
    SPAN_BACKEND_INVOKE,
    SPAN_CHAT_TURN,
    SPAN_HISTORY_WRITE,
    tracer,
)

from .metrics import (
    CHAT_TURN_DURATION_SECONDS,
    CHAT_TURNS_TOTAL,
    DEGRADATIONS_TOTAL,
    HISTORY_WRITES_TOTAL,
    TOOL_CALLS_TOTAL,
)
from .models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    STEP_HISTORY,
    STEP_RETRIEVAL,
    STEP_SYSTEM_PROMPT,
    STEP_TOOL,
    AssembledPrompt,
    ChatRequest,
    ChatTurn,
    Degraded,
    Outcome,
    Resolved,
    ToolSet,
)
from .prompt import PromptAssembler
from .prompt_catalog import PromptCatalog
from .retriever import ContextRetriever
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

MODE_STREAM = "stream"
MODE_BUFFERED = "buffered"

STATUS_OK = "ok"
STATUS_ERROR = "error"
STATUS_CANCELLED = "cancelled"


class ConversationOrchestrator:
    """Runs one chat turn end to end.

    All collaborators are passed in explicitly; the orchestrator holds
    no mutable state of its own, so one instance may serve concurrent
    requests.
    """

    def __init__(
        self,
        backends: BackendRegistry,
        prompts: PromptCatalog,
        retriever: ContextRetriever,
        tools: ToolRegistry,
        history: HistoryStore,
        assembler: PromptAssembler,
        config: ChatConfig,
    ) -> None:
        self._backends = backends
        self._prompts = prompts
        self._retriever = retriever
        self._tools = tools
        self._history = history
        self._assembler = assembler
        self._config = config

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def execute(self, request: ChatRequest) -> AsyncIterator[str] | str:
        """Run *request*.

        Returns an async iterator of text chunks when ``request.stream``
        is set, otherwise the complete answer text.

        Raises ``ConfigurationError`` before anything is generated when
        the backend is unknown, and ``BackendInvocationError`` (from the
        call, or from the iterator mid-stream) when generation fails.
        """
        handle, prompt, history = await self.prepare(request)
        messages = prompt.to_messages(history)
        if request.stream:
            return self._stream(request, handle, prompt, messages)
        return await self._complete(request, handle, prompt, messages)

    async def prepare(
        self, request: ChatRequest
    ) -> tuple[BackendHandle, AssembledPrompt, list[BaseMessage]]:
        """Steps 1-5 plus assembly; everything before the backend call."""
        with tracer.start_as_current_span(SPAN_CHAT_TURN) as span:
            span.set_attribute(ATTR_CONVERSATION_ID, request.conversation_id)
            span.set_attribute(ATTR_PROVIDER, request.provider)
            span.set_attribute(ATTR_MODEL, request.model_name)
            span.set_attribute(ATTR_STREAM, request.stream)
            span.set_attribute(ATTR_MEDIA_COUNT, len(request.media))

            handle = self._backends.resolve(request.provider, request.model_name)

            binding = self._settle(
                STEP_SYSTEM_PROMPT,
                self._prompts.resolve(request.system_prompt_id),
                request,
            )
            passages = self._settle(
                STEP_RETRIEVAL,
                await self._retriever.retrieve(request.text, request.conversation_id),
                request,
            )
            tool_set = self._settle(
                STEP_TOOL, self._tools.resolve(binding.tool_id), request
            )
            history = self._settle(
                STEP_HISTORY,
                await self._load_history(request.conversation_id),
                request,
            )
            if tool_set is not None:
                span.set_attribute(ATTR_TOOL_ID, tool_set.tool_id)

            prompt = self._assembler.assemble(
                binding.content,
                request.text,
                passages,
                request.media,
                tool_set,
            )
            return handle, prompt, history

    # ------------------------------------------------------------------
    # Degradation policy
    # ------------------------------------------------------------------

    @staticmethod
    def _settle(step: str, outcome: Outcome[T], request: ChatRequest) -> T:
        if isinstance(outcome, Degraded):
            DEGRADATIONS_TOTAL.labels(step=step).inc()
            logger.warning(
                "Degraded %s for conversation %s: %s",
                step,
                request.conversation_id,
                outcome.reason,
                exc_info=outcome.error,
            )
        return outcome.value

    async def _load_history(self, conversation_id: str) -> Outcome[list[BaseMessage]]:
        """Recent whole user/assistant pairs, oldest first."""
        limit = self._config.max_history_messages // 2 * 2
        if limit <= 0:
            return Resolved([])
        try:
            turns = await self._history.recent_turns(conversation_id, limit)
        except Exception as exc:
            return Degraded([], "history load failed", exc)
        # the window opens on a user turn
        turns = list(dropwhile(lambda t: t.role != ROLE_USER, turns))
        messages = [m for m in map(turn_to_message, turns) if m is not None]
        return Resolved(messages)

    # ------------------------------------------------------------------
    # Streamed mode
    # ------------------------------------------------------------------

    async def _stream(
        self,
        request: ChatRequest,
        handle: BackendHandle,
        prompt: AssembledPrompt,
        messages: list[BaseMessage],
    ) -> AsyncGenerator[str, None]:
        parts: list[str] = []
        span = tracer.start_span(SPAN_BACKEND_INVOKE)
        start = time.monotonic()
        status = STATUS_OK
        try:
            async with aclosing(
                self._generate_stream(handle.model, messages, prompt.tool)
            ) as chunks:
                async for text in chunks:
                    parts.append(text)
                    yield text
        except (asyncio.CancelledError, GeneratorExit):
            status = STATUS_CANCELLED
            logger.info(
                "Stream for conversation %s cancelled after %d chunk(s); "
                "history not written",
                request.conversation_id,
                len(parts),
            )
            raise
        except Exception as exc:
            status = STATUS_ERROR
            span.record_exception(exc)
            logger.error(
                "Backend %s/%s failed mid-stream for conversation %s "
                "after %d chunk(s); history not written",
                handle.provider.value,
                handle.model_name,
                request.conversation_id,
                len(parts),
                exc_info=True,
            )
            raise BackendInvocationError(
                f"{handle.provider.value}/{handle.model_name} failed while streaming"
            ) from exc
        finally:
            span.end()
            CHAT_TURNS_TOTAL.labels(mode=MODE_STREAM, status=status).inc()
            CHAT_TURN_DURATION_SECONDS.labels(mode=MODE_STREAM).observe(
                time.monotonic() - start
            )

        await self._record(request, "".join(parts))

    async def _generate_stream(
        self,
        model: BaseChatModel,
        messages: list[BaseMessage],
        tool_set: ToolSet | None,
    ) -> AsyncGenerator[str, None]:
        """Forward text chunks; run tool calls between rounds."""
        runnable = self._bind(model, tool_set)
        for round_no in range(self._config.max_tool_rounds + 1):
            aggregate: AIMessageChunk | None = None
            async for chunk in runnable.astream(messages):
                text = message_text(chunk)
                if text:
                    yield text
                if isinstance(chunk, AIMessageChunk):
                    aggregate = chunk if aggregate is None else aggregate + chunk

            if tool_set is None or aggregate is None or not aggregate.tool_calls:
                return
            if round_no == self._config.max_tool_rounds:
                logger.warning(
                    "Tool round limit (%d) reached; ending turn",
                    self._config.max_tool_rounds,
                )
                return
            ai = AIMessage(content=aggregate.content, tool_calls=aggregate.tool_calls)
            results = await self._run_tools(tool_set, ai.tool_calls)
            messages = [*messages, ai, *results]

    # ------------------------------------------------------------------
    # Buffered mode
    # ------------------------------------------------------------------

    async def _complete(
        self,
        request: ChatRequest,
        handle: BackendHandle,
        prompt: AssembledPrompt,
        messages: list[BaseMessage],
    ) -> str:
        start = time.monotonic()
        with tracer.start_as_current_span(SPAN_BACKEND_INVOKE) as span:
            try:
                text = await self._generate(handle.model, messages, prompt.tool)
            except Exception as exc:
                CHAT_TURNS_TOTAL.labels(mode=MODE_BUFFERED, status=STATUS_ERROR).inc()
                span.record_exception(exc)
                logger.error(
                    "Backend %s/%s failed for conversation %s; history not written",
                    handle.provider.value,
                    handle.model_name,
                    request.conversation_id,
                    exc_info=True,
                )
                raise BackendInvocationError(
                    f"{handle.provider.value}/{handle.model_name} failed"
                ) from exc
        CHAT_TURNS_TOTAL.labels(mode=MODE_BUFFERED, status=STATUS_OK).inc()
        CHAT_TURN_DURATION_SECONDS.labels(mode=MODE_BUFFERED).observe(
            time.monotonic() - start
        )
        await self._record(request, text)
        return text

    async def _generate(
        self,
        model: BaseChatModel,
        messages: list[BaseMessage],
        tool_set: ToolSet | None,
    ) -> str:
        runnable = self._bind(model, tool_set)
        texts: list[str] = []
        for round_no in range(self._config.max_tool_rounds + 1):
            response = await runnable.ainvoke(messages)
            texts.append(message_text(response))
            tool_calls = getattr(response, "tool_calls", None)
            if tool_set is None or not tool_calls:
                break
            if round_no == self._config.max_tool_rounds:
                logger.warning(
                    "Tool round limit (%d) reached; ending turn",
                    self._config.max_tool_rounds,
                )
                break
            results = await self._run_tools(tool_set, tool_calls)
            messages = [*messages, response, *results]
        return "".join(texts)

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    @staticmethod
    def _bind(
        model: BaseChatModel, tool_set: ToolSet | None
    ) -> Runnable[list[BaseMessage], BaseMessage]:
        if tool_set is None:
            return model
        return model.bind_tools(list(tool_set.tools))

    async def _run_tools(
        self, tool_set: ToolSet, tool_calls: list[ToolCall]
    ) -> list[ToolMessage]:
        results: list[ToolMessage] = []
        for call in tool_calls:
            tool = tool_set.get(call["name"])
            if tool is None:
                TOOL_CALLS_TOTAL.labels(tool_name=call["name"], status="unknown").inc()
                results.append(
                    ToolMessage(
                        content=f"Unknown tool '{call['name']}'. "
                        f"Available: {', '.join(tool_set.tool_names)}",
                        tool_call_id=call["id"] or "",
                        name=call["name"],
                        status="error",
                    )
                )
                continue
            try:
                message = await tool.ainvoke({**call, "type": "tool_call"})
            except Exception as exc:
                TOOL_CALLS_TOTAL.labels(tool_name=tool.name, status="error").inc()
                logger.warning("Tool %s failed", tool.name, exc_info=True)
                message = ToolMessage(
                    content=f"Tool '{tool.name}' failed: {exc}",
                    tool_call_id=call["id"] or "",
                    name=tool.name,
                    status="error",
                )
            else:
                TOOL_CALLS_TOTAL.labels(tool_name=tool.name, status="completed").inc()
            results.append(message)
        return results

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def _record(self, request: ChatRequest, answer: str) -> None:
        """Persist the user/assistant pair; failures are logged only."""
        turns = [
            ChatTurn(request.conversation_id, ROLE_USER, request.text),
            ChatTurn(request.conversation_id, ROLE_ASSISTANT, answer),
        ]
        with tracer.start_as_current_span(SPAN_HISTORY_WRITE) as span:
            span.set_attribute(ATTR_CONVERSATION_ID, request.conversation_id)
            try:
                await self._history.insert_turns(turns)
            except Exception:
                HISTORY_WRITES_TOTAL.labels(status=STATUS_ERROR).inc()
                logger.warning(
                    "Failed to record turn for conversation %s",
                    request.conversation_id,
                    exc_info=True,
                )
                return
        HISTORY_WRITES_TOTAL.labels(status=STATUS_OK).inc()
