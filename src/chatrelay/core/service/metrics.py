"""Prometheus metrics for chatrelay.

Exposed through the ``/metrics`` ASGI mount in ``chatrelay.app``.
All metrics use the ``chatrelay_`` prefix.
"""

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Chat turn metrics
# ---------------------------------------------------------------------------

CHAT_TURNS_TOTAL = Counter(
    "chatrelay_chat_turns_total",
    "Total chat turns by delivery mode and outcome",
    ["mode", "status"],  # mode: stream | buffered; status: ok | error | cancelled
)

CHAT_TURN_DURATION_SECONDS = Histogram(
    "chatrelay_chat_turn_duration_seconds",
    "Backend generation time of a chat turn",
    ["mode"],
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)

DEGRADATIONS_TOTAL = Counter(
    "chatrelay_degradations_total",
    "Orchestration steps that fell back to their default",
    ["step"],  # system_prompt | retrieval | tool | history
)

HISTORY_WRITES_TOTAL = Counter(
    "chatrelay_history_writes_total",
    "History batch writes by outcome",
    ["status"],  # ok | error
)

# ---------------------------------------------------------------------------
# Tool call metrics
# ---------------------------------------------------------------------------

TOOL_CALLS_TOTAL = Counter(
    "chatrelay_tool_calls_total",
    "Total tool invocations, by tool name and outcome",
    ["tool_name", "status"],  # completed | error | unknown
)

# ---------------------------------------------------------------------------
# Embedding / RAG metrics
# ---------------------------------------------------------------------------

EMBEDDING_LATENCY_SECONDS = Histogram(
    "chatrelay_embedding_latency_seconds",
    "Latency of embedding API calls",
    ["operation"],  # "query" | "ingest"
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

RAG_RETRIEVAL_LATENCY_SECONDS = Histogram(
    "chatrelay_rag_retrieval_latency_seconds",
    "End-to-end RAG retrieval latency (embed + search)",
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10),
)

RAG_PASSAGES_RETURNED = Histogram(
    "chatrelay_rag_passages_returned",
    "Number of passages returned per RAG retrieval",
    buckets=(0, 1, 2, 3, 5, 10),
)

RAG_CHUNKS_INGESTED_TOTAL = Counter(
    "chatrelay_rag_chunks_ingested_total",
    "Total document chunks embedded and stored",
)
