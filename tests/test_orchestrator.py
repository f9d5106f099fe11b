"""Unit tests for ConversationOrchestrator."""

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from chatrelay.configs.system import ChatConfig
from chatrelay.core.errors import (
    BackendInvocationError,
    ConfigurationError,
    UnknownBackend,
)
from chatrelay.core.service.models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ChatRequest,
    ChatTurn,
    Degraded,
    MediaAttachment,
    Resolved,
    RetrievedPassage,
)
from chatrelay.core.service.prompt import RAG_PREAMBLE

from fakes import (
    DEFAULT_PROMPT_TEXT,
    RELEASE_PROMPT_ID,
    RELEASE_PROMPT_TEXT,
    FailingStreamChatModel,
    ScriptedChatModel,
    StubRetriever,
    make_orchestrator,
    scripted,
)


def _request(text: str = "What's the weather?", **overrides) -> ChatRequest:
    fields = dict(
        text=text,
        conversation_id="c1",
        stream=False,
        provider="ollama",
        model_name="qwen3:14b",
    )
    fields.update(overrides)
    return ChatRequest(**fields)


async def _drain(stream) -> list[str]:
    return [chunk async for chunk in stream]


# ---------------------------------------------------------------------------
# Backend resolution
# ---------------------------------------------------------------------------


class TestBackendResolution:
    @pytest.mark.asyncio
    async def test_unknown_provider_fails_before_anything_else(self, history, retriever):
        orch = make_orchestrator(scripted("hi"), history=history, retriever=retriever)

        with pytest.raises(ConfigurationError):
            await orch.execute(_request(provider="anthropic"))

        assert history.rows == []
        assert retriever.queries == []

    @pytest.mark.asyncio
    async def test_unknown_model_raises_unknown_backend(self, history):
        orch = make_orchestrator(scripted("hi"), history=history)

        with pytest.raises(UnknownBackend) as exc_info:
            await orch.execute(_request(model_name="llama3:70b", stream=True))

        assert exc_info.value.model_name == "llama3:70b"
        assert history.rows == []

    @pytest.mark.asyncio
    async def test_provider_is_case_insensitive(self, history):
        orch = make_orchestrator(scripted("sunny"), history=history)

        assert await orch.execute(_request(provider="OLLAMA")) == "sunny"


# ---------------------------------------------------------------------------
# Buffered mode
# ---------------------------------------------------------------------------


class TestBuffered:
    @pytest.mark.asyncio
    async def test_answer_returned_and_pair_persisted(self, history):
        model = scripted("It is sunny.")
        orch = make_orchestrator(model, history=history)

        result = await orch.execute(_request())

        assert result == "It is sunny."
        assert len(history.batches) == 1
        assert [(t.role, t.content) for t in history.rows] == [
            (ROLE_USER, "What's the weather?"),
            (ROLE_ASSISTANT, "It is sunny."),
        ]
        assert all(t.conversation_id == "c1" for t in history.rows)

    @pytest.mark.asyncio
    async def test_plain_text_passes_through_without_passages(self, history):
        model = scripted("ok")
        orch = make_orchestrator(model, history=history)

        await orch.execute(_request())

        messages = model.calls[0]
        assert isinstance(messages[0], SystemMessage)
        assert messages[0].content == DEFAULT_PROMPT_TEXT
        assert messages[-1].content == "What's the weather?"

    @pytest.mark.asyncio
    async def test_backend_failure_raises_and_writes_nothing(self, history):
        orch = make_orchestrator(FailingStreamChatModel(chunks=[]), history=history)

        with pytest.raises(BackendInvocationError) as exc_info:
            await orch.execute(_request())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert history.rows == []

    @pytest.mark.asyncio
    async def test_history_write_failure_does_not_fail_turn(self, history):
        history.fail_inserts = True
        orch = make_orchestrator(scripted("still answered"), history=history)

        assert await orch.execute(_request()) == "still answered"


# ---------------------------------------------------------------------------
# Streamed mode
# ---------------------------------------------------------------------------


class TestStreamed:
    @pytest.mark.asyncio
    async def test_persisted_answer_is_concatenation_of_chunks(self, history):
        orch = make_orchestrator(
            scripted("Rain is expected this afternoon."), history=history
        )

        stream = await orch.execute(_request(stream=True))
        assert history.rows == []  # nothing written before the stream ends
        chunks = await _drain(stream)

        assert len(chunks) > 1
        assert history.rows[1].content == "".join(chunks)
        assert history.rows[1].content == "Rain is expected this afternoon."
        assert len(history.batches) == 1

    @pytest.mark.asyncio
    async def test_mid_stream_error_writes_no_history(self, history):
        orch = make_orchestrator(
            FailingStreamChatModel(chunks=["Hello", " wor"]), history=history
        )

        stream = await orch.execute(_request(stream=True))
        received: list[str] = []
        with pytest.raises(BackendInvocationError):
            async for chunk in stream:
                received.append(chunk)

        assert received == ["Hello", " wor"]
        assert await history.query_by_conversation("c1") == []

    @pytest.mark.asyncio
    async def test_cancelled_stream_writes_no_history(self, history):
        orch = make_orchestrator(scripted("one two three four"), history=history)

        stream = await orch.execute(_request(stream=True))
        first = await stream.__anext__()
        await stream.aclose()

        assert first == "one"
        assert history.rows == []

    @pytest.mark.asyncio
    async def test_history_write_failure_still_delivers_all_chunks(self, history):
        history.fail_inserts = True
        orch = make_orchestrator(scripted("a b c"), history=history)

        chunks = await _drain(await orch.execute(_request(stream=True)))

        assert "".join(chunks) == "a b c"


# ---------------------------------------------------------------------------
# Degradable steps
# ---------------------------------------------------------------------------


class TestDegradation:
    @pytest.mark.asyncio
    async def test_unknown_prompt_id_falls_back_to_default(self, history):
        model = scripted("ok")
        orch = make_orchestrator(model, history=history)

        await orch.execute(_request(system_prompt_id="nope"))

        assert model.calls[0][0].content == DEFAULT_PROMPT_TEXT
        assert model.bound_tools == []

    @pytest.mark.asyncio
    async def test_unknown_tool_id_proceeds_without_tool(self, history):
        model = scripted("ok")
        orch = make_orchestrator(model, history=history)

        result = await orch.execute(_request(system_prompt_id="missing_tools"))

        assert result == "ok"
        assert model.calls[0][0].content == "Prompt with a dangling tool id."
        assert model.bound_tools == []

    @pytest.mark.asyncio
    async def test_retrieval_failure_degrades_to_plain_chat(self, history):
        model = scripted("ok")
        retriever = StubRetriever(Degraded([], "index unavailable", TimeoutError()))
        orch = make_orchestrator(model, history=history, retriever=retriever)

        assert await orch.execute(_request()) == "ok"
        assert model.calls[0][-1].content == "What's the weather?"

    @pytest.mark.asyncio
    async def test_history_read_failure_degrades_to_no_memory(self, history):
        history.rows.append(ChatTurn("c1", ROLE_USER, "earlier"))
        history.fail_reads = True
        model = scripted("ok")
        orch = make_orchestrator(model, history=history)

        await orch.execute(_request())

        assert len(model.calls[0]) == 2


# ---------------------------------------------------------------------------
# Prompt content
# ---------------------------------------------------------------------------


class TestPromptContent:
    @pytest.mark.asyncio
    async def test_retrieved_passages_augment_user_text(self, history):
        model = scripted("ok")
        retriever = StubRetriever(
            Resolved([RetrievedPassage("Forecast: rain", 0.8)])
        )
        orch = make_orchestrator(model, history=history, retriever=retriever)

        await orch.execute(_request())

        user_text = model.calls[0][-1].content
        assert user_text.startswith(RAG_PREAMBLE)
        assert "Forecast: rain" in user_text
        assert user_text.endswith("What's the weather?")
        assert retriever.queries == [("What's the weather?", "c1")]
        # history keeps the raw text, not the augmented prompt
        assert history.rows[0].content == "What's the weather?"

    @pytest.mark.asyncio
    async def test_media_travels_in_the_single_user_message(self, history):
        model = scripted("A cat.")
        orch = make_orchestrator(model, history=history)
        image = MediaAttachment(data=b"\x89PNG", mime_type="image/png", filename="a.png")

        await orch.execute(_request("What is this?", media=(image,)))

        messages = model.calls[0]
        humans = [m for m in messages if isinstance(m, HumanMessage)]
        assert len(humans) == 1
        content = humans[0].content
        assert content[0] == {"type": "text", "text": "What is this?"}
        assert len(content) == 2
        assert content[1]["type"] == "image_url"

    @pytest.mark.asyncio
    async def test_prior_turns_sit_between_system_and_user(self, history):
        history.rows.extend(
            [
                ChatTurn("c1", ROLE_USER, "Hi"),
                ChatTurn("c1", ROLE_ASSISTANT, "Hello!"),
                ChatTurn("other", ROLE_USER, "not mine"),
            ]
        )
        model = scripted("ok")
        orch = make_orchestrator(model, history=history)

        await orch.execute(_request())

        messages = model.calls[0]
        assert [type(m) for m in messages] == [
            SystemMessage,
            HumanMessage,
            AIMessage,
            HumanMessage,
        ]
        assert messages[1].content == "Hi"
        assert messages[2].content == "Hello!"

    @pytest.mark.asyncio
    async def test_history_window_is_bounded(self, history):
        history.rows.extend(ChatTurn("c1", ROLE_USER, f"m{i}") for i in range(10))
        model = scripted("ok")
        orch = make_orchestrator(
            model, history=history, chat_config=ChatConfig(max_history_messages=4)
        )

        await orch.execute(_request())

        assert [m.content for m in model.calls[0][1:-1]] == ["m6", "m7", "m8", "m9"]

    @pytest.mark.asyncio
    async def test_odd_window_keeps_whole_pairs(self, history):
        history.rows.extend(
            [
                ChatTurn("c1", ROLE_USER, "u0"),
                ChatTurn("c1", ROLE_ASSISTANT, "a0"),
                ChatTurn("c1", ROLE_USER, "u1"),
                ChatTurn("c1", ROLE_ASSISTANT, "a1"),
            ]
        )
        model = scripted("ok")
        orch = make_orchestrator(
            model, history=history, chat_config=ChatConfig(max_history_messages=3)
        )

        await orch.execute(_request())

        assert [m.content for m in model.calls[0][1:-1]] == ["u1", "a1"]

    @pytest.mark.asyncio
    async def test_window_never_opens_on_an_assistant_turn(self, history):
        history.rows.extend(
            [
                ChatTurn("c1", ROLE_ASSISTANT, "orphan"),
                ChatTurn("c1", ROLE_USER, "u1"),
                ChatTurn("c1", ROLE_ASSISTANT, "a1"),
            ]
        )
        model = scripted("ok")
        orch = make_orchestrator(
            model, history=history, chat_config=ChatConfig(max_history_messages=4)
        )

        await orch.execute(_request())

        assert [m.content for m in model.calls[0][1:-1]] == ["u1", "a1"]


# ---------------------------------------------------------------------------
# Tool execution
# ---------------------------------------------------------------------------


def _tool_call_then(answer: str, tool_name: str = "release_feed") -> ScriptedChatModel:
    return ScriptedChatModel(
        responses=[
            AIMessage(
                content="",
                tool_calls=[{"name": tool_name, "args": {}, "id": "call_1"}],
            ),
            AIMessage(content=answer),
        ]
    )


class TestTools:
    @pytest.mark.asyncio
    async def test_buffered_tool_round_trip(self, history):
        model = _tool_call_then("Latest is v2.0")
        orch = make_orchestrator(model, history=history)

        result = await orch.execute(_request("What changed?", system_prompt_id=RELEASE_PROMPT_ID))

        assert result == "Latest is v2.0"
        assert [t.name for t in model.bound_tools] == ["release_feed"]
        assert model.calls[0][0].content == RELEASE_PROMPT_TEXT
        tool_message = model.calls[1][-1]
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.content == "v2.0: streaming answers"
        assert tool_message.tool_call_id == "call_1"
        assert history.rows[1].content == "Latest is v2.0"

    @pytest.mark.asyncio
    async def test_streamed_tool_round_trip(self, history):
        model = _tool_call_then("Latest is v2.0")
        orch = make_orchestrator(model, history=history)

        stream = await orch.execute(
            _request("What changed?", stream=True, system_prompt_id=RELEASE_PROMPT_ID)
        )
        chunks = await _drain(stream)

        assert "".join(chunks) == "Latest is v2.0"
        assert isinstance(model.calls[1][-1], ToolMessage)
        assert history.rows[1].content == "Latest is v2.0"

    @pytest.mark.asyncio
    async def test_unknown_tool_name_returns_error_message(self, history):
        model = _tool_call_then("Sorry.", tool_name="delete_everything")
        orch = make_orchestrator(model, history=history)

        await orch.execute(_request("What changed?", system_prompt_id=RELEASE_PROMPT_ID))

        tool_message = model.calls[1][-1]
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.status == "error"
        assert "release_feed" in tool_message.content

    @pytest.mark.asyncio
    async def test_tool_rounds_are_capped(self, history):
        model = _tool_call_then("never reached")
        orch = make_orchestrator(
            model, history=history, chat_config=ChatConfig(max_tool_rounds=0)
        )

        result = await orch.execute(_request("What changed?", system_prompt_id=RELEASE_PROMPT_ID))

        assert result == ""
        assert len(model.calls) == 1
