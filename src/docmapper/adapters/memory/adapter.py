"""In-memory adapter — A process-local engine for development and tests.

Stores documents in plain dicts keyed by index and id. Only a small subset of
the query DSL is understood:

  - ``match_all``
  - ``term`` / ``terms`` (exact match; list fields match on membership)
  - ``match`` (case-insensitive, every token must occur in the field)
  - ``bool`` with ``must`` / ``filter`` / ``should`` / ``must_not``

Sorting accepts ``"field"``, ``{"field": "desc"}`` and
``{"field": {"order": "desc"}}`` clauses. Anything else raises ``QueryError``.
"""

from __future__ import annotations

import copy
import logging
from datetime import UTC, datetime
from typing import Any

from docmapper.adapters.base.adapter import AdapterHealth, EngineAdapter, FetchedDocument, SearchHits
from docmapper.adapters.base.exceptions import ConnectionError, QueryError

logger = logging.getLogger(__name__)


class InMemoryAdapter(EngineAdapter):
    """Engine adapter backed by process memory.

    Accepts (and ignores) the connection keyword arguments of the network
    adapters so it can be selected purely through configuration.
    """

    def __init__(self, **kwargs: Any) -> None:
        self._indices: dict[str, dict[str, dict[str, Any]]] = {}
        self._definitions: dict[str, dict[str, Any]] = {}
        self._initialized = False

    @property
    def name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        self._initialized = True
        logger.info("Using in-memory engine backend")

    async def shutdown(self) -> None:
        self._initialized = False

    async def health_check(self) -> AdapterHealth:
        if not self._initialized:
            return AdapterHealth(status="unhealthy", message="Adapter not initialized")
        return AdapterHealth(
            status="healthy",
            last_check=datetime.now(UTC).isoformat(),
            message=f"Indices: {len(self._indices)}",
        )

    def definition(self, index: str) -> dict[str, Any] | None:
        """Return the body an index was created with, if any."""
        return self._definitions.get(index)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ConnectionError("In-memory adapter not initialized.")

    def _require_index(self, index: str) -> dict[str, dict[str, Any]]:
        if index not in self._indices:
            raise QueryError(f"index_not_found_exception: no such index [{index}]")
        return self._indices[index]

    # ── Index lifecycle ──────────────────────────────────────────────────

    async def create_index(self, index: str, body: dict[str, Any]) -> None:
        self._require_initialized()
        if index in self._indices:
            raise QueryError(f"resource_already_exists_exception: index [{index}] already exists")
        self._indices[index] = {}
        self._definitions[index] = copy.deepcopy(body)

    async def delete_index(self, index: str) -> None:
        self._require_initialized()
        self._require_index(index)
        del self._indices[index]
        self._definitions.pop(index, None)

    # ── Documents ────────────────────────────────────────────────────────

    async def index_document(self, index: str, doc_id: str, body: dict[str, Any]) -> None:
        self._require_initialized()
        # Engines create missing indices on first write.
        self._indices.setdefault(index, {})[doc_id] = copy.deepcopy(body)

    async def get_document(self, index: str, doc_id: str) -> FetchedDocument:
        self._require_initialized()
        source = self._indices.get(index, {}).get(doc_id)
        if source is None:
            return FetchedDocument(id=doc_id, found=False)
        return FetchedDocument(id=doc_id, found=True, source=copy.deepcopy(source))

    async def delete_document(self, index: str, doc_id: str) -> None:
        self._require_initialized()
        documents = self._require_index(index)
        if doc_id not in documents:
            raise QueryError(f"Document '{doc_id}' not found in [{index}]")
        del documents[doc_id]

    # ── Queries ──────────────────────────────────────────────────────────

    async def search(self, index: str, body: dict[str, Any]) -> SearchHits:
        self._require_initialized()
        matched = self._filter(index, body.get("query"))
        for clause in reversed(body.get("sort", [])):
            field, descending = _parse_sort_clause(clause)
            matched.sort(key=lambda item, f=field: _sort_key(item, f), reverse=descending)

        start = int(body.get("from", 0))
        size = int(body.get("size", 10))
        hits = [
            {"_index": index, "_id": doc_id, "_score": 1.0, "_source": copy.deepcopy(source)}
            for doc_id, source in matched[start : start + size]
        ]
        return SearchHits(total=len(matched), hits=hits)

    async def count(self, index: str, body: dict[str, Any]) -> int:
        self._require_initialized()
        return len(self._filter(index, body.get("query")))

    def _filter(self, index: str, query: dict[str, Any] | None) -> list[tuple[str, dict[str, Any]]]:
        documents = self._require_index(index)
        return [(doc_id, source) for doc_id, source in documents.items() if _matches(source, query)]


# ── Query evaluation ─────────────────────────────────────────────────────


def _lookup(source: dict[str, Any], field: str) -> Any:
    value: Any = source
    for part in field.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _term_matches(actual: Any, expected: Any) -> bool:
    if isinstance(actual, list):
        return expected in actual
    return bool(actual == expected)


def _as_clauses(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    return list(value)


def _single(args: Any, clause: str) -> tuple[str, Any]:
    if not isinstance(args, dict) or len(args) != 1:
        raise QueryError(f"[{clause}] query requires exactly one field")
    return next(iter(args.items()))


def _matches(source: dict[str, Any], query: dict[str, Any] | None) -> bool:
    if not query:
        return True
    if len(query) != 1:
        raise QueryError(f"Query must contain exactly one clause, got {sorted(query)}")

    clause, args = next(iter(query.items()))
    if clause == "match_all":
        return True
    if clause == "term":
        field, expected = _single(args, clause)
        if isinstance(expected, dict):
            expected = expected.get("value")
        return _term_matches(_lookup(source, field), expected)
    if clause == "terms":
        field, candidates = _single(args, clause)
        actual = _lookup(source, field)
        return any(_term_matches(actual, candidate) for candidate in candidates)
    if clause == "match":
        field, text = _single(args, clause)
        if isinstance(text, dict):
            text = text.get("query", "")
        haystack = str(_lookup(source, field) or "").lower()
        return all(token in haystack for token in str(text).lower().split())
    if clause == "bool":
        must = _as_clauses(args.get("must", [])) + _as_clauses(args.get("filter", []))
        should = _as_clauses(args.get("should", []))
        must_not = _as_clauses(args.get("must_not", []))
        if not all(_matches(source, sub) for sub in must):
            return False
        if any(_matches(source, sub) for sub in must_not):
            return False
        return not should or any(_matches(source, sub) for sub in should)

    raise QueryError(f"Unsupported query clause for in-memory engine: {clause}")


def _parse_sort_clause(clause: Any) -> tuple[str, bool]:
    if isinstance(clause, str):
        return clause, False
    field, order = _single(clause, "sort")
    if isinstance(order, dict):
        order = order.get("order", "asc")
    if order not in ("asc", "desc"):
        raise QueryError(f"Unsupported sort order: {order}")
    return field, order == "desc"


def _sort_key(item: tuple[str, dict[str, Any]], field: str) -> tuple[bool, Any]:
    doc_id, source = item
    value = doc_id if field == "_id" else _lookup(source, field)
    # Missing values sort last in ascending order.
    return (value is None, value if value is not None else 0)
