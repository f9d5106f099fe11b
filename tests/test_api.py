"""HTTP API tests through TestClient with dependency overrides.

The lifespan is not entered (no ``with TestClient(...)``), so no
database, model or embedding client is created; every dependency the
routes need is overridden with an in-memory fake.
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from chatrelay.app import get_app
from chatrelay.configs.system import RagConfig
from chatrelay.configs.tools import ToolConfig
from chatrelay.core.errors import ConversationConflict, StorageError
from chatrelay.core.llm import BackendRegistry, Provider, get_backend_registry
from chatrelay.core.service.conversations import ConversationService
from chatrelay.core.service.deps import (
    get_conversation_service,
    get_document_ingestor,
    get_orchestrator,
)
from chatrelay.core.service.ingest import DocumentIngestor
from chatrelay.core.service.models import ROLE_ASSISTANT, ROLE_USER, ChatTurn
from chatrelay.core.service.tools import ToolRegistry, get_tool_registry

from fakes import (
    FailingStreamChatModel,
    FakeDocumentStore,
    FakeEmbedder,
    InMemoryHistoryStore,
    make_orchestrator,
    scripted,
)

CHAT_FORM = {
    "prompt": "What's the weather?",
    "chat_id": "c1",
    "provider": "ollama",
    "model": "qwen3:14b",
}


def _events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


@pytest.fixture
def app():
    app = get_app()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# POST /api/v1/chat
# ---------------------------------------------------------------------------


class TestChat:
    def test_streamed_answer_as_sse(self, app, client, history):
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            scripted("It will rain."), history=history
        )

        response = client.post("/api/v1/chat", data=CHAT_FORM)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _events(response.text)
        content = "".join(e["content"] for e in events if e["type"] == "content")
        assert content == "It will rain."
        assert events[-1] == {"type": "end_of_stream"}
        assert history.rows[1].content == "It will rain."

    def test_buffered_answer_as_json(self, app, client, history):
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            scripted("Sunny."), history=history
        )

        response = client.post("/api/v1/chat", data={**CHAT_FORM, "stream": "false"})

        assert response.status_code == 200
        assert response.json() == {"chat_id": "c1", "content": "Sunny."}
        assert len(history.rows) == 2

    def test_unknown_backend_is_400_before_streaming(self, app, client, history):
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            scripted("x"), history=history
        )

        response = client.post("/api/v1/chat", data={**CHAT_FORM, "provider": "acme"})

        assert response.status_code == 400
        assert response.json()["code"] == "UNKNOWN_BACKEND"
        assert history.rows == []

    def test_mid_stream_failure_ends_with_error_event(self, app, client, history):
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            FailingStreamChatModel(chunks=["Partial"]), history=history
        )

        response = client.post("/api/v1/chat", data=CHAT_FORM)

        events = _events(response.text)
        assert events[0] == {"type": "content", "content": "Partial"}
        assert events[-1]["type"] == "error"
        assert events[-1]["code"] == "BACKEND_ERROR"
        assert history.rows == []

    def test_buffered_backend_failure_is_502(self, app, client, history):
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            FailingStreamChatModel(chunks=[]), history=history
        )

        response = client.post("/api/v1/chat", data={**CHAT_FORM, "stream": "false"})

        assert response.status_code == 502
        assert response.json()["code"] == "BACKEND_ERROR"

    def test_image_upload_reaches_the_model(self, app, client, history):
        model = scripted("A cat.")
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            model, history=history
        )

        response = client.post(
            "/api/v1/chat",
            data={**CHAT_FORM, "stream": "false"},
            files=[("files", ("cat.png", b"\x89PNG", "image/png"))],
        )

        assert response.status_code == 200
        user_content = model.calls[0][-1].content
        assert user_content[0]["text"] == "What's the weather?"
        assert user_content[1]["type"] == "image_url"

    def test_unparseable_mime_type_is_422(self, app, client, history):
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            scripted("x"), history=history
        )

        response = client.post(
            "/api/v1/chat",
            data=CHAT_FORM,
            files=[("files", ("blob", b"\x00", "bogus"))],
        )

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_MEDIA"

    def test_blank_prompt_is_rejected(self, app, client, history):
        app.dependency_overrides[get_orchestrator] = lambda: make_orchestrator(
            scripted("x"), history=history
        )

        response = client.post("/api/v1/chat", data={**CHAT_FORM, "prompt": ""})

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Catalog endpoints
# ---------------------------------------------------------------------------


class TestCatalog:
    def test_models(self, app, client):
        app.dependency_overrides[get_backend_registry] = lambda: BackendRegistry(
            {Provider.OLLAMA: {"qwen3:14b": scripted("x")}, Provider.OPENAI: {}}
        )

        response = client.get("/api/v1/models")

        assert response.json() == [{"provider": "ollama", "model": "qwen3:14b"}]

    def test_tools(self, app, client):
        registry = ToolRegistry(
            {
                "release_tools": [
                    ToolConfig(
                        name="release_feed",
                        description="d",
                        tool_type="url",
                        args={"url": "https://example.com"},
                    )
                ]
            }
        )
        app.dependency_overrides[get_tool_registry] = lambda: registry

        response = client.get("/api/v1/tools")

        assert response.json() == [
            {"tool_id": "release_tools", "tools": ["release_feed"]}
        ]

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


@pytest.fixture
def summaries() -> AsyncMock:
    store = AsyncMock()
    store.create.side_effect = lambda summary: summary
    store.list_all.return_value = []
    store.delete.return_value = True
    return store


@pytest.fixture
def conversations(app, summaries, history, documents) -> InMemoryHistoryStore:
    app.dependency_overrides[get_conversation_service] = lambda: ConversationService(
        summaries, history, documents
    )
    return history


class TestConversations:
    def test_create(self, client, conversations):
        response = client.post(
            "/api/v1/conversations", json={"chat_id": "c1", "title": "Weather"}
        )

        assert response.status_code == 201
        assert response.json()["chat_id"] == "c1"
        assert response.json()["tag"] is None

    def test_create_duplicate_is_409(self, client, conversations, summaries):
        summaries.create.side_effect = ConversationConflict(
            "Conversation c1 already exists"
        )

        response = client.post(
            "/api/v1/conversations", json={"chat_id": "c1", "title": "Weather"}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_create_blank_title_is_422(self, client, conversations, summaries):
        response = client.post(
            "/api/v1/conversations", json={"chat_id": "c1", "title": "  "}
        )

        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"
        summaries.create.assert_not_called()

    def test_update_missing_is_404(self, client, conversations, summaries):
        summaries.update.return_value = False

        response = client.put("/api/v1/conversations/c9", json={"title": "x"})

        assert response.status_code == 404

    def test_delete_then_messages_is_empty(self, client, conversations, documents):
        conversations.rows.extend(
            [ChatTurn("c1", ROLE_USER, "q"), ChatTurn("c1", ROLE_ASSISTANT, "a")]
        )
        documents.chunks.append(("c1", "notes", 0.8))

        deleted = client.delete("/api/v1/conversations/c1")
        messages = client.get("/api/v1/conversations/c1/messages")

        assert deleted.status_code == 200
        assert deleted.json()["turns_deleted"] == 2
        assert deleted.json()["chunks_deleted"] == 1
        assert messages.json() == []

    def test_partial_delete_failure_is_500_with_report(
        self, client, conversations, summaries
    ):
        summaries.delete.side_effect = StorageError("locked")
        conversations.rows.append(ChatTurn("c1", ROLE_USER, "q"))

        response = client.delete("/api/v1/conversations/c1")

        assert response.status_code == 500
        body = response.json()
        assert body["turns_deleted"] == 1
        assert body["summary_deleted"] is False
        assert body["errors"] == ["summary: locked"]

    def test_messages_in_order(self, client, conversations):
        conversations.rows.extend(
            [ChatTurn("c1", ROLE_USER, "q"), ChatTurn("c1", ROLE_ASSISTANT, "a")]
        )

        response = client.get("/api/v1/conversations/c1/messages")

        assert [(m["role"], m["content"]) for m in response.json()] == [
            ("user", "q"),
            ("assistant", "a"),
        ]

    def test_storage_error_on_list_is_500(self, client, conversations, summaries):
        summaries.list_all.side_effect = StorageError("db down")

        response = client.get("/api/v1/conversations")

        assert response.status_code == 500
        assert response.json()["code"] == "STORAGE_ERROR"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocuments:
    @pytest.fixture
    def store(self, app) -> FakeDocumentStore:
        store = FakeDocumentStore()
        app.dependency_overrides[get_document_ingestor] = lambda: DocumentIngestor(
            FakeEmbedder(), store, RagConfig()
        )
        return store

    def test_text_upload_is_indexed(self, client, store):
        response = client.post(
            "/api/v1/conversations/c1/documents",
            files={"file": ("notes.md", b"# Release 2\nStreaming answers.", "text/markdown")},
        )

        assert response.status_code == 201
        assert response.json() == {"chat_id": "c1", "source": "notes.md", "chunks": 1}
        assert store.added[0][0] == "c1"

    def test_binary_upload_is_rejected(self, client, store):
        response = client.post(
            "/api/v1/conversations/c1/documents",
            files={"file": ("cat.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 422
        assert store.added == []
