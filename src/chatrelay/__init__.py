"""chatrelay: multi-provider chat orchestration with RAG, media and tools."""

__version__ = "0.1.0"
