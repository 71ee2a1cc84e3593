"""Base engine adapter — Abstract interface for all search engine connectors.

Every engine backend must implement this interface to be driven by the
``DocumentManager``. The adapter is responsible for:
  1. Index lifecycle (create / delete)
  2. Single-document writes, reads and deletes
  3. Search and count requests with an opaque query DSL body
  4. Reporting health status

Adapters translate backend client errors into ``AdapterError`` subclasses so
the manager never depends on a particular client library.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class AdapterHealth(BaseModel):
    """Health status of an engine adapter."""

    status: str = Field(description="Health status: healthy, degraded, unhealthy")
    latency_ms: int = Field(default=0, description="Latency of last health check in ms")
    last_check: str | None = Field(default=None, description="ISO timestamp of last health check")
    message: str | None = Field(default=None, description="Additional health message")


class FetchedDocument(BaseModel):
    """Result of a get-by-id request."""

    id: str = Field(description="Requested document id")
    found: bool = Field(default=False, description="Whether the engine holds the document")
    source: dict[str, Any] = Field(default_factory=dict, description="Stored representation (_source)")


class SearchHits(BaseModel):
    """Raw search hits from an engine before materialization."""

    total: int = Field(default=0, description="Total number of matching documents")
    hits: list[dict[str, Any]] = Field(default_factory=list, description="Raw hits with _id and _source")
    took_ms: int = Field(default=0, description="Request round-trip time in ms")


class EngineAdapter(ABC):
    """Abstract base class for search engine adapters.

    Index names passed to every method are already fully qualified
    (``<base_index>__<kind>``); adapters never derive names themselves.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique adapter name (e.g., 'opensearch', 'memory')."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create the client and verify connectivity."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connections and release resources."""

    @abstractmethod
    async def health_check(self) -> AdapterHealth:
        """Check the health of the engine."""

    # ── Index lifecycle ──────────────────────────────────────────────────

    @abstractmethod
    async def create_index(self, index: str, body: dict[str, Any]) -> None:
        """Create an index.

        Args:
            index: Index name.
            body: Creation body with ``mappings`` and optional ``settings``.
        """

    @abstractmethod
    async def delete_index(self, index: str) -> None:
        """Delete an index."""

    # ── Documents ────────────────────────────────────────────────────────

    @abstractmethod
    async def index_document(self, index: str, doc_id: str, body: dict[str, Any]) -> None:
        """Create or overwrite a document."""

    @abstractmethod
    async def get_document(self, index: str, doc_id: str) -> FetchedDocument:
        """Retrieve a single document by its ID.

        Returns:
            The fetched document; ``found`` is False when the engine
            does not hold it.

        Raises:
            AdapterError: If the engine could not answer.
        """

    @abstractmethod
    async def delete_document(self, index: str, doc_id: str) -> None:
        """Delete a single document by its ID."""

    # ── Queries ──────────────────────────────────────────────────────────

    @abstractmethod
    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        """Execute a search request.

        Args:
            index: Index name.
            body: Search body (``from``, ``size``, optional ``query`` and ``sort``).
        """

    @abstractmethod
    async def count(self, index: str, body: dict[str, Any]) -> int:
        """Count documents matching an optional ``query`` clause."""


def normalize_total(total: Any) -> int:
    """Normalize ``hits.total`` (an int before 7.x, ``{"value": n}`` after)."""
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)
