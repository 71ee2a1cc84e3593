"""Integration test fixtures — Docker-based search engines.

Expects engines to be running, for example::

    docker run -d -p 9200:9200 -e discovery.type=single-node \
        -e xpack.security.enabled=false elasticsearch:8.15.0
    docker run -d -p 9201:9200 -e discovery.type=single-node \
        -e DISABLE_SECURITY_PLUGIN=true opensearchproject/opensearch:2.17.0

Every test gets its own base index, dropped again on teardown.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx
import pytest

from docmapper.adapters.base.adapter import EngineAdapter
from docmapper.core.manager import DocumentManager

ITEM_MAPPINGS: dict[str, Any] = {
    "properties": {
        "title": {"type": "text"},
        "price": {"type": "float"},
        "tags": {"type": "keyword"},
    }
}


def _wait_for_service(url: str, timeout: float = 60.0) -> bool:
    """Block until *url* returns HTTP 200, or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            r = httpx.get(url, timeout=10)
            if r.status_code == 200:
                return True
        except httpx.HTTPError:
            pass
        time.sleep(2)
    return False


async def _managed(adapter: EngineAdapter) -> AsyncIterator[DocumentManager]:
    manager = DocumentManager(adapter, f"it{uuid.uuid4().hex[:10]}", max_attempts=2, backoff_seconds=0.1)
    await manager.initialize()
    manager.register_mapping("item", ITEM_MAPPINGS)
    await manager.create_index()
    try:
        yield manager
    finally:
        await manager.drop_index()
        await manager.shutdown()


def _refresher(host: str) -> Callable[[str], Awaitable[None]]:
    async def refresh(index: str) -> None:
        async with httpx.AsyncClient(base_url=host, timeout=30) as client:
            resp = await client.post(f"/{index}/_refresh")
            resp.raise_for_status()

    return refresh


# ── Elasticsearch ───────────────────────────────────────────────


@pytest.fixture(scope="session")
def elasticsearch_ready() -> str:
    """Ensure Elasticsearch is running."""
    host = "http://localhost:9200"
    if not _wait_for_service(host):
        pytest.skip("Elasticsearch not available at localhost:9200")
    return host


@pytest.fixture
async def elasticsearch_manager(elasticsearch_ready: str) -> AsyncIterator[DocumentManager]:
    pytest.importorskip("elasticsearch")
    from docmapper.adapters.elasticsearch.adapter import ElasticsearchAdapter

    async for manager in _managed(ElasticsearchAdapter(hosts=[elasticsearch_ready])):
        yield manager


@pytest.fixture
def elasticsearch_refresh(elasticsearch_ready: str) -> Callable[[str], Awaitable[None]]:
    return _refresher(elasticsearch_ready)


# ── OpenSearch ──────────────────────────────────────────────────


@pytest.fixture(scope="session")
def opensearch_ready() -> str:
    """Ensure OpenSearch is running."""
    host = "http://localhost:9201"
    if not _wait_for_service(host):
        pytest.skip("OpenSearch not available at localhost:9201")
    return host


@pytest.fixture
async def opensearch_manager(opensearch_ready: str) -> AsyncIterator[DocumentManager]:
    pytest.importorskip("opensearchpy")
    from docmapper.adapters.opensearch.adapter import OpenSearchAdapter

    async for manager in _managed(OpenSearchAdapter(hosts=[opensearch_ready], verify_certs=False)):
        yield manager


@pytest.fixture
def opensearch_refresh(opensearch_ready: str) -> Callable[[str], Awaitable[None]]:
    return _refresher(opensearch_ready)
