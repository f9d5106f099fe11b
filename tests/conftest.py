"""Shared pytest fixtures."""

import pytest

from fakes import FakeDocumentStore, InMemoryHistoryStore, StubRetriever


@pytest.fixture
def history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def retriever() -> StubRetriever:
    return StubRetriever()


@pytest.fixture
def documents() -> FakeDocumentStore:
    return FakeDocumentStore()
