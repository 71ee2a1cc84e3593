"""Document Manager — Orchestrates documents against the search engine.

The manager owns four pieces of state:
  1. Identity Registry: one live instance per (kind, id)
  2. Query Result Cache: ordered ids per search fingerprint
  3. Index Schema Registry: mappings/settings used to create indices
  4. Document factories: how to construct an empty document of a kind

Reads consult the registries first and fall back to the engine; fetched
documents are materialized into the identity registry before being returned.
Writes go to the engine and then update the registry.

Every coroutine that touches the registries runs under one ``asyncio.Lock``,
so a manager can be shared by several tasks without breaking the
single-instance and populate-once guarantees. Remote calls are the only
suspension points; callers wanting a deadline wrap calls in
``asyncio.timeout``.
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from docmapper.adapters.base.adapter import AdapterHealth, EngineAdapter, FetchedDocument
from docmapper.adapters.base.exceptions import AdapterError
from docmapper.adapters.base.registry import AdapterRegistry, default_registry
from docmapper.core.exceptions import (
    DocumentNotFoundError,
    DocumentUnavailableError,
    ManagerConsistencyError,
)
from docmapper.core.factory import DocumentFactory, DocumentFactoryTable
from docmapper.core.identity import IdentityRegistry
from docmapper.core.result_cache import QueryResultCache
from docmapper.core.schema_registry import IndexSchemaRegistry
from docmapper.models.document import Document
from docmapper.models.search import SearchDescriptor

if TYPE_CHECKING:
    from docmapper.config.settings import Settings

logger = logging.getLogger(__name__)

KindLike = str | type[Document]
"""A kind discriminator, or a ``Document`` subclass standing for its kind."""


class DocumentManager:
    """Object-document mapper for one engine and one base index.

    Index names follow ``<base_index>__<lowercased kind>``.

    Args:
        adapter: Engine adapter performing the remote calls.
        base_index: Prefix shared by every index this manager touches.
        max_attempts: Get-by-id attempts before ``DocumentUnavailableError``.
        backoff_seconds: Backoff unit; after failed attempt ``i`` (0-based)
            the manager waits ``backoff_seconds * i * (i + 1)``.

    Example::

        async with DocumentManager(OpenSearchAdapter(hosts=[...]), "catalog") as dm:
            dm.register_kind(Item)
            await dm.save(Item(id="sku-1", title="Lamp"))
            items = await dm.documents(Item, SearchDescriptor(query={"term": {"title": "lamp"}}))
    """

    def __init__(
        self,
        adapter: EngineAdapter,
        base_index: str,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.adapter = adapter
        self.base_index = base_index
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

        self._identity = IdentityRegistry()
        self._results = QueryResultCache()
        self._schemas = IndexSchemaRegistry()
        self._factories = DocumentFactoryTable()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, registry: AdapterRegistry | None = None) -> DocumentManager:
        """Build a manager (adapter not yet initialized) from configuration.

        Every schema in ``settings.schemas`` is registered for index creation.
        """
        registry = registry or default_registry()
        adapter = registry.create(settings.engine.adapter, **settings.engine.adapter_kwargs())
        manager = cls(
            adapter,
            settings.engine.base_index,
            max_attempts=settings.retry.max_attempts,
            backoff_seconds=settings.retry.backoff_seconds,
        )
        for kind, schema in settings.schemas.items():
            manager.register_mapping(kind, schema.mappings)
            if schema.settings is not None:
                manager.register_settings(kind, schema.settings)
        return manager

    # ──────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Initialize the engine adapter."""
        await self.adapter.initialize()
        logger.info("Document manager ready (adapter=%s, base_index=%s)", self.adapter.name, self.base_index)

    async def shutdown(self) -> None:
        """Shut down the engine adapter. Registries are left untouched."""
        await self.adapter.shutdown()

    async def __aenter__(self) -> DocumentManager:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    async def health_check(self) -> AdapterHealth:
        return await self.adapter.health_check()

    # ──────────────────────────────────────────────────────────────────────
    # Kinds and index names
    # ──────────────────────────────────────────────────────────────────────

    def index_name(self, kind: KindLike) -> str:
        """Return ``<base_index>__<lowercased kind>``."""
        return f"{self.base_index}__{self._resolve_kind(kind).lower()}"

    def register_kind(self, document_class: type[Document]) -> None:
        """Make documents of ``document_class.kind`` constructible by the manager."""
        self._factories.register_kind(document_class)

    def register_factory(self, kind: str, factory: DocumentFactory) -> None:
        """Register a custom constructor for a kind."""
        self._factories.register(kind, factory)

    def _resolve_kind(self, kind: KindLike) -> str:
        """Return the kind string, registering a class on first use.

        Raises:
            ManagerConsistencyError: If another class is already registered
                under the same ``kind``.
        """
        if isinstance(kind, type):
            if kind.kind not in self._factories:
                self._factories.register_kind(kind)
            else:
                registered = self._factories.document_class(kind.kind)
                if registered is not None and registered is not kind:
                    raise ManagerConsistencyError(
                        f"Kind '{kind.kind}' is registered to {registered.__qualname__}, "
                        f"not {kind.__qualname__}."
                    )
            return kind.kind
        return kind

    # ──────────────────────────────────────────────────────────────────────
    # Index schemas
    # ──────────────────────────────────────────────────────────────────────

    def register_mapping(self, kind: KindLike, mappings: dict[str, Any]) -> None:
        self._schemas.register_mapping(self._resolve_kind(kind), mappings)

    def register_settings(self, kind: KindLike, settings: dict[str, Any]) -> None:
        self._schemas.register_settings(self._resolve_kind(kind), settings)

    async def create_index(self) -> list[str]:
        """Create one index per kind with a registered mapping.

        A failure for one kind is logged and does not stop the others.

        Returns:
            Names of the indices that were created.
        """
        created: list[str] = []
        for kind, schema in self._schemas.mapped():
            index = self.index_name(kind)
            try:
                await self.adapter.create_index(index, schema.creation_body())
            except Exception:
                logger.warning("Failed to create index %s, continuing", index, exc_info=True)
                continue
            logger.info("Created index %s", index)
            created.append(index)
        return created

    async def drop_index(self) -> list[str]:
        """Delete the index of every kind with a registered mapping.

        Unlike ``create_index``, the first failure propagates.

        Returns:
            Names of the deleted indices.
        """
        dropped: list[str] = []
        for kind, _schema in self._schemas.mapped():
            index = self.index_name(kind)
            await self.adapter.delete_index(index)
            logger.info("Dropped index %s", index)
            dropped.append(index)
        return dropped

    # ──────────────────────────────────────────────────────────────────────
    # Identity registry
    # ──────────────────────────────────────────────────────────────────────

    def register(self, document: Document) -> None:
        """Attach a document to the identity registry.

        Registering the already-registered instance again is a no-op.

        Raises:
            ManagerConsistencyError: If a different instance is registered
                under the same ``(kind, id)``.
        """
        existing = self._identity.get(document.kind, document.id)
        if existing is not None and existing is not document:
            raise ManagerConsistencyError(
                f"Another instance of {document.kind} {document.id} is already registered."
            )
        self._resolve_kind(type(document))
        self._identity.register(document)

    def detach(self, kind: KindLike | None = None, doc_id: str | None = None) -> None:
        """Forget documents locally: all, all of a kind, or one."""
        self._identity.detach(None if kind is None else self._resolve_kind(kind), doc_id)

    # ──────────────────────────────────────────────────────────────────────
    # Writes
    # ──────────────────────────────────────────────────────────────────────

    async def save(self, document: Document) -> None:
        """Register the document and index it in the engine.

        If another instance already holds the identity, that registered
        instance is the one persisted. Engine errors propagate unchanged.
        """
        async with self._lock:
            await self._save(document)

    async def save_all(self) -> None:
        """Save every registered document."""
        async with self._lock:
            for document in list(self._identity):
                await self._save(document)

    async def _save(self, document: Document) -> None:
        self._resolve_kind(type(document))
        canonical = self._identity.register(document)
        await self.adapter.index_document(
            self.index_name(canonical.kind),
            canonical.id,
            canonical.to_storable(),
        )
        logger.debug("Saved %s %s", canonical.kind, canonical.id)

    async def delete(self, kind: KindLike, doc_id: str) -> None:
        """Delete a document remotely (best effort) and locally.

        A failing remote delete is logged and ignored; the document is removed
        from the identity registry and from every cached result list either way.
        """
        kind = self._resolve_kind(kind)
        async with self._lock:
            try:
                await self.adapter.delete_document(self.index_name(kind), doc_id)
            except Exception:
                logger.warning("Remote delete of %s %s failed, removing locally", kind, doc_id, exc_info=True)
            self._identity.delete(kind, doc_id)
            self._results.discard(doc_id)

    # ──────────────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────────────

    async def document(self, kind: KindLike, doc_id: str, max_attempts: int | None = None) -> Document:
        """Return the live instance of a document, fetching it if needed.

        Raises:
            DocumentNotFoundError: If the engine does not hold the document or
                its stored source does not fit the document class.
            DocumentUnavailableError: If the engine could not be reached. It
                subclasses ``DocumentNotFoundError``.
        """
        kind = self._resolve_kind(kind)
        async with self._lock:
            existing = self._identity.get(kind, doc_id)
            if existing is not None:
                return existing

            fetched = await self._fetch_with_retry(kind, doc_id, max_attempts)
            if not fetched.found:
                raise DocumentNotFoundError(f"{kind} {doc_id} not found.")
            try:
                return self._materialize(kind, doc_id, fetched.source)
            except ValidationError as e:
                raise DocumentNotFoundError(f"{kind} {doc_id} not found.") from e

    async def refresh_document(self, document: Document, max_attempts: int | None = None) -> None:
        """Overwrite a document's content in place with the engine's copy.

        Raises:
            DocumentNotFoundError: If the engine does not hold the document or
                its stored source does not fit the document class.
            DocumentUnavailableError: If the engine could not be reached. It
                subclasses ``DocumentNotFoundError``.
        """
        async with self._lock:
            fetched = await self._fetch_with_retry(document.kind, document.id, max_attempts)
            if not fetched.found:
                raise DocumentNotFoundError(f"{document.kind} {document.id} not found.")
            try:
                document.build_from_source(fetched.source)
            except ValidationError as e:
                raise DocumentNotFoundError(f"{document.kind} {document.id} not found.") from e

    async def documents(self, kind: KindLike, descriptor: SearchDescriptor) -> list[Document]:
        """Return the documents matching a search, in engine order.

        The engine is searched once per distinct ``(kind, descriptor)``;
        later calls replay the cached ids through the identity registry.
        Ids deleted or detached since are skipped. Hits whose source does
        not fit the document class are left out.
        """
        kind = self._resolve_kind(kind)

        async def populate() -> list[str]:
            result = await self.adapter.search(self.index_name(kind), descriptor.search_body())
            ids: list[str] = []
            for hit in result.hits:
                try:
                    document = self._materialize(kind, str(hit["_id"]), hit.get("_source") or {})
                except (KeyError, ValidationError):
                    logger.debug("Skipping unparseable %s hit %s", kind, hit.get("_id"), exc_info=True)
                    continue
                ids.append(document.id)
            logger.debug("Search on %s materialized %d of %d hits", kind, len(ids), len(result.hits))
            return ids

        async with self._lock:
            ids = await self._results.lookup_or_populate(kind, descriptor, populate)
            documents: list[Document] = []
            for doc_id in ids:
                document = self._identity.get(kind, doc_id)
                if document is not None:
                    documents.append(document)
            return documents

    async def count(self, kind: KindLike, descriptor: SearchDescriptor) -> int:
        """Return the engine's count for the descriptor's query (uncached)."""
        return await self.adapter.count(self.index_name(kind), descriptor.count_body())

    async def fetch_document(self, kind: KindLike, doc_id: str, max_attempts: int | None = None) -> FetchedDocument:
        """Get a document from the engine with retry, bypassing the registries.

        Raises:
            DocumentUnavailableError: If every attempt failed.
        """
        kind = self._resolve_kind(kind)
        async with self._lock:
            return await self._fetch_with_retry(kind, doc_id, max_attempts)

    # ──────────────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────────────

    async def _fetch_with_retry(self, kind: str, doc_id: str, max_attempts: int | None) -> FetchedDocument:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        index = self.index_name(kind)
        last_error: AdapterError | None = None
        for attempt in range(attempts):
            try:
                return await self.adapter.get_document(index, doc_id)
            except AdapterError as e:
                last_error = e
                if attempt + 1 < attempts:
                    delay = self.backoff_seconds * attempt * (attempt + 1)
                    logger.warning(
                        "Fetching %s %s failed (attempt %d/%d), retrying in %.1fs: %s",
                        kind,
                        doc_id,
                        attempt + 1,
                        attempts,
                        delay,
                        e,
                    )
                    await asyncio.sleep(delay)

        raise DocumentUnavailableError(
            f"{kind} {doc_id} unavailable after {attempts} attempts."
        ) from last_error

    def _materialize(self, kind: str, doc_id: str, source: dict[str, Any]) -> Document:
        """Build a document from its source and resolve it to the live instance.

        A document already registered under the identity is updated in place
        with the new source and returned instead of the fresh one.
        """
        candidate = self._factories.create(kind, doc_id)
        if candidate.kind != kind or candidate.id != doc_id:
            raise ManagerConsistencyError(
                f"Factory for {kind} built {candidate.kind} {candidate.id} instead of {kind} {doc_id}."
            )
        candidate.build_from_source(source)
        document = self._identity.register(candidate)
        if document is not candidate:
            document.build_from_source(source)
        return document
