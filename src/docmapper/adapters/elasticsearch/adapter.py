"""Elasticsearch adapter — Document storage and search on Elasticsearch (v8+).

Uses the official ``elasticsearch`` async client. The v8 client takes request
bodies as keyword arguments, so search and index-creation bodies are unpacked
into ``mappings=`` / ``settings=`` / ``query=`` / ``sort=`` / ``from_=``.

Install the optional dependency::

    pip install docmapper[elasticsearch]
    # or: pip install "elasticsearch>=8"
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

from docmapper.adapters.base.adapter import (
    AdapterHealth,
    EngineAdapter,
    FetchedDocument,
    SearchHits,
    normalize_total,
)
from docmapper.adapters.base.exceptions import ConfigurationError, ConnectionError, QueryError

logger = logging.getLogger(__name__)


class ElasticsearchAdapter(EngineAdapter):
    """Engine adapter for Elasticsearch (v8+).

    Args:
        hosts: List of Elasticsearch node URLs.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        api_key: Optional API key (encoded string).
        verify_certs: Whether to verify TLS certificates.
        **kwargs: Additional keyword arguments forwarded to ``AsyncElasticsearch``.
    """

    def __init__(
        self,
        hosts: list[str] | None = None,
        username: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        verify_certs: bool = True,
        **kwargs: Any,
    ) -> None:
        self._hosts = hosts or ["http://localhost:9200"]
        self._username = username
        self._password = password
        self._api_key = api_key
        self._verify_certs = verify_certs
        self._extra_kwargs = kwargs
        self._client: Any = None

    @property
    def name(self) -> str:
        return "elasticsearch"

    async def initialize(self) -> None:
        """Create and verify the ``AsyncElasticsearch`` client."""
        try:
            from elasticsearch import AsyncElasticsearch
        except ImportError as e:
            raise ConfigurationError(
                "elasticsearch package is required.  Install with: pip install docmapper[elasticsearch]"
            ) from e

        client_kwargs: dict[str, Any] = {
            "hosts": self._hosts,
            "verify_certs": self._verify_certs,
        }
        if self._api_key:
            client_kwargs["api_key"] = self._api_key
        elif self._username and self._password:
            client_kwargs["basic_auth"] = (self._username, self._password)

        client_kwargs.update(self._extra_kwargs)

        try:
            self._client = AsyncElasticsearch(**client_kwargs)
            info = _body(await self._client.info())
            version = info.get("version", {}).get("number", "unknown")
            cluster = info.get("cluster_name", "unknown")
            logger.info("Connected to Elasticsearch cluster: %s (v%s)", cluster, version)
        except Exception as e:
            raise ConnectionError(f"Failed to connect to Elasticsearch: {e}") from e

    async def shutdown(self) -> None:
        """Close the Elasticsearch client."""
        if self._client:
            await self._client.close()
            self._client = None

    def _require_client(self) -> Any:
        if not self._client:
            raise ConnectionError("Elasticsearch client not initialized.")
        return self._client

    # ── Index lifecycle ──────────────────────────────────────────────────

    async def create_index(self, index: str, body: dict[str, Any]) -> None:
        client = self._require_client()
        kwargs: dict[str, Any] = {"mappings": body.get("mappings", {})}
        if body.get("settings"):
            kwargs["settings"] = body["settings"]
        try:
            await client.indices.create(index=index, **kwargs)
        except Exception as e:
            raise QueryError(f"Failed to create index '{index}': {e}") from e

    async def delete_index(self, index: str) -> None:
        client = self._require_client()
        try:
            await client.indices.delete(index=index)
        except Exception as e:
            raise QueryError(f"Failed to delete index '{index}': {e}") from e

    # ── Documents ────────────────────────────────────────────────────────

    async def index_document(self, index: str, doc_id: str, body: dict[str, Any]) -> None:
        client = self._require_client()
        try:
            await client.index(index=index, id=doc_id, document=body)
        except Exception as e:
            raise QueryError(f"Failed to index document '{doc_id}': {e}") from e

    async def get_document(self, index: str, doc_id: str) -> FetchedDocument:
        """Retrieve a single document by ID; a 404 yields ``found=False``."""
        client = self._require_client()
        try:
            response = _body(await client.get(index=index, id=doc_id))
        except Exception as e:
            if "NotFoundError" in type(e).__name__:
                return FetchedDocument(id=doc_id, found=False)
            raise QueryError(f"Failed to fetch document: {e}") from e

        return FetchedDocument(
            id=response.get("_id", doc_id),
            found=bool(response.get("found", False)) and "_source" in response,
            source=response.get("_source") or {},
        )

    async def delete_document(self, index: str, doc_id: str) -> None:
        client = self._require_client()
        try:
            await client.delete(index=index, id=doc_id)
        except Exception as e:
            raise QueryError(f"Failed to delete document '{doc_id}': {e}") from e

    # ── Queries ──────────────────────────────────────────────────────────

    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        """Execute a search body against Elasticsearch."""
        client = self._require_client()
        kwargs: dict[str, Any] = {"from_": body.get("from", 0), "size": body.get("size", 10)}
        for key in ("query", "sort"):
            if key in body:
                kwargs[key] = body[key]

        try:
            start = time.monotonic()
            response = _body(await client.search(index=index, **kwargs))
            took_ms = int((time.monotonic() - start) * 1000)
        except Exception as e:
            raise QueryError(f"Elasticsearch query failed: {e}") from e

        hits = response.get("hits", {})
        return SearchHits(
            total=normalize_total(hits.get("total", 0)),
            hits=list(hits.get("hits", [])),
            took_ms=took_ms,
        )

    async def count(self, index: str, body: dict[str, Any]) -> int:
        client = self._require_client()
        kwargs: dict[str, Any] = {}
        if "query" in body:
            kwargs["query"] = body["query"]
        try:
            response = _body(await client.count(index=index, **kwargs))
        except Exception as e:
            raise QueryError(f"Elasticsearch count failed: {e}") from e
        return int(response["count"])

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> AdapterHealth:
        """Check Elasticsearch cluster health."""
        if not self._client:
            return AdapterHealth(status="unhealthy", message="Client not initialized")

        try:
            start = time.monotonic()
            health = _body(await self._client.cluster.health())
            latency_ms = int((time.monotonic() - start) * 1000)

            status_map = {"green": "healthy", "yellow": "degraded", "red": "unhealthy"}

            return AdapterHealth(
                status=status_map.get(health.get("status", "red"), "unhealthy"),
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Cluster: {health.get('cluster_name')}, Nodes: {health.get('number_of_nodes')}",
            )
        except Exception as e:
            return AdapterHealth(status="unhealthy", message=str(e))


def _body(response: Any) -> dict[str, Any]:
    """Unwrap an ``ObjectApiResponse`` into a plain dict."""
    return dict(getattr(response, "body", response))
