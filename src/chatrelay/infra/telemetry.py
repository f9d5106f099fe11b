"""OpenTelemetry tracer and span vocabulary.

Only the API package is used here: spans are no-ops unless the
deployment installs and configures an SDK (e.g. via
``opentelemetry-instrument``).

Usage::

    from chatrelay.infra.telemetry import SPAN_CHAT_TURN, tracer

    with tracer.start_as_current_span(SPAN_CHAT_TURN) as span:
        ...
"""

from opentelemetry import trace

tracer = trace.get_tracer("chatrelay")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------

SPAN_CHAT_TURN = "chat.turn"
SPAN_BACKEND_INVOKE = "chat.backend_invoke"
SPAN_RAG_RETRIEVE = "rag.retrieve"
SPAN_RAG_INGEST = "rag.ingest"
SPAN_HISTORY_WRITE = "history.write"

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_CONVERSATION_ID = "chat.conversation_id"
ATTR_PROVIDER = "chat.provider"
ATTR_MODEL = "chat.model"
ATTR_STREAM = "chat.stream"
ATTR_MEDIA_COUNT = "chat.media_count"
ATTR_TOOL_ID = "chat.tool_id"
ATTR_RAG_TOP_K = "rag.top_k"
ATTR_RAG_THRESHOLD = "rag.threshold"
ATTR_RAG_RESULT_COUNT = "rag.result_count"
ATTR_RAG_CHUNK_COUNT = "rag.chunk_count"
