"""Shared test fixtures and configuration."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from docmapper.adapters.base.adapter import FetchedDocument, SearchHits
from docmapper.adapters.base.exceptions import ConnectionError, QueryError
from docmapper.adapters.memory.adapter import InMemoryAdapter
from docmapper.config.settings import Settings
from docmapper.core.manager import DocumentManager


class RecordingAdapter(InMemoryAdapter):
    """In-memory engine that records remote calls and can simulate outages."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.calls: list[tuple[str, str]] = []
        self.bodies: dict[str, list[dict[str, Any]]] = {}
        self.failing_gets = 0
        self.fail_deletes = False
        # Seconds each get/search waits, letting concurrent tasks interleave.
        self.latency = 0.0

    def calls_to(self, method: str) -> int:
        return sum(1 for name, _index in self.calls if name == method)

    def _record(self, method: str, index: str, body: dict[str, Any] | None = None) -> None:
        self.calls.append((method, index))
        if body is not None:
            self.bodies.setdefault(method, []).append(body)

    async def create_index(self, index: str, body: dict[str, Any]) -> None:
        self._record("create_index", index, body)
        await super().create_index(index, body)

    async def delete_index(self, index: str) -> None:
        self._record("delete_index", index)
        await super().delete_index(index)

    async def index_document(self, index: str, doc_id: str, body: dict[str, Any]) -> None:
        self._record("index_document", index, body)
        await super().index_document(index, doc_id, body)

    async def get_document(self, index: str, doc_id: str) -> FetchedDocument:
        self._record("get_document", index)
        if self.latency:
            await asyncio.sleep(self.latency)
        if self.failing_gets:
            self.failing_gets -= 1
            raise ConnectionError("engine unreachable")
        return await super().get_document(index, doc_id)

    async def delete_document(self, index: str, doc_id: str) -> None:
        self._record("delete_document", index)
        if self.fail_deletes:
            raise QueryError("delete rejected")
        await super().delete_document(index, doc_id)

    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        self._record("search", index, body)
        if self.latency:
            await asyncio.sleep(self.latency)
        return await super().search(index, body)

    async def count(self, index: str, body: dict[str, Any]) -> int:
        self._record("count", index, body)
        return await super().count(index, body)


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance backed by the in-memory engine."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        engine={"adapter": "memory", "base_index": "catalog"},
        retry={"max_attempts": 3, "backoff_seconds": 0.0},
    )


@pytest.fixture
async def adapter() -> RecordingAdapter:
    a = RecordingAdapter()
    await a.initialize()
    return a


@pytest.fixture
def manager(adapter: RecordingAdapter) -> DocumentManager:
    return DocumentManager(adapter, "catalog", max_attempts=3, backoff_seconds=0.5)
