"""OpenSearch adapter — Document storage and search on OpenSearch (v2+).

This adapter uses ``opensearch-py`` (async) and implements index lifecycle,
single-document CRUD, search and count through the standard
``EngineAdapter`` interface.

Install the optional dependency::

    pip install docmapper[opensearch]
    # or: pip install opensearch-py
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


class OpenSearchAdapter(EngineAdapter):
    """Engine adapter for OpenSearch (v2+).

    Args:
        hosts: List of OpenSearch node URLs.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        api_key: Unused by OpenSearch; accepted for configuration symmetry.
        verify_certs: Whether to verify TLS certificates.
        **kwargs: Additional keyword arguments forwarded to ``AsyncOpenSearch``.
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
        self._hosts = hosts or ["https://localhost:9200"]
        self._username = username
        self._password = password
        self._api_key = api_key
        self._verify_certs = verify_certs
        self._extra_kwargs = kwargs
        self._client: Any = None

    @property
    def name(self) -> str:
        return "opensearch"

    async def initialize(self) -> None:
        """Create and verify the ``AsyncOpenSearch`` client."""
        try:
            from opensearchpy import AsyncOpenSearch
        except ImportError as e:
            raise ConfigurationError(
                "opensearch-py package is required.  Install with: pip install docmapper[opensearch]"
            ) from e

        client_kwargs: dict[str, Any] = {
            "hosts": self._hosts,
            "verify_certs": self._verify_certs,
            "ssl_show_warn": False,
        }
        if self._username and self._password:
            client_kwargs["http_auth"] = (self._username, self._password)

        client_kwargs.update(self._extra_kwargs)

        try:
            self._client = AsyncOpenSearch(**client_kwargs)
            info = await self._client.info()
            version = info.get("version", {}).get("number", "unknown")
            cluster = info.get("cluster_name", "unknown")
            logger.info("Connected to OpenSearch cluster: %s (v%s)", cluster, version)
        except Exception as e:
            raise ConnectionError(f"Failed to connect to OpenSearch: {e}") from e

    async def shutdown(self) -> None:
        """Close the OpenSearch client."""
        if self._client:
            await self._client.close()
            self._client = None

    def _require_client(self) -> Any:
        if not self._client:
            raise ConnectionError("OpenSearch client not initialized.")
        return self._client

    # ── Index lifecycle ──────────────────────────────────────────────────

    async def create_index(self, index: str, body: dict[str, Any]) -> None:
        client = self._require_client()
        try:
            await client.indices.create(index=index, body=body)
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
            await client.index(index=index, id=doc_id, body=body)
        except Exception as e:
            raise QueryError(f"Failed to index document '{doc_id}': {e}") from e

    async def get_document(self, index: str, doc_id: str) -> FetchedDocument:
        """Retrieve a single document by ID; a 404 yields ``found=False``."""
        client = self._require_client()
        try:
            response = await client.get(index=index, id=doc_id)
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
        """Execute a search body against OpenSearch."""
        client = self._require_client()
        try:
            start = time.monotonic()
            response = await client.search(index=index, body=body)
            took_ms = int((time.monotonic() - start) * 1000)
        except Exception as e:
            raise QueryError(f"OpenSearch query failed: {e}") from e

        hits = response.get("hits", {})
        return SearchHits(
            total=normalize_total(hits.get("total", 0)),
            hits=list(hits.get("hits", [])),
            took_ms=took_ms,
        )

    async def count(self, index: str, body: dict[str, Any]) -> int:
        client = self._require_client()
        try:
            response = await client.count(index=index, body=body)
        except Exception as e:
            raise QueryError(f"OpenSearch count failed: {e}") from e
        return int(response["count"])

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> AdapterHealth:
        """Check OpenSearch cluster health."""
        if not self._client:
            return AdapterHealth(status="unhealthy", message="Client not initialized")

        try:
            start = time.monotonic()
            health = await self._client.cluster.health()
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

