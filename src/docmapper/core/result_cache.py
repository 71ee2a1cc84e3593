"""Query Result Cache — Ordered id lists keyed by search fingerprint.

A result set is fetched from the engine once per fingerprint and replayed
from the cached id list afterwards. Entries never expire and are not
invalidated when a document is updated; deleting a document strips its id
from every cached list without re-fetching to fill the gap.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Awaitable, Callable

from docmapper.models.search import SearchDescriptor

logger = logging.getLogger(__name__)


def fingerprint(kind: str, descriptor: SearchDescriptor) -> str:
    """Return a deterministic digest of ``kind`` and every descriptor field."""
    payload = json.dumps(
        descriptor.model_dump(by_alias=True),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha1(f"{kind}::{payload}".encode()).hexdigest()


class QueryResultCache:
    """Maps search fingerprints to the ordered ids they produced."""

    def __init__(self) -> None:
        self._results: dict[str, list[str]] = {}

    async def lookup_or_populate(
        self,
        kind: str,
        descriptor: SearchDescriptor,
        populate: Callable[[], Awaitable[list[str]]],
    ) -> list[str]:
        """Return the cached ids for the search, populating them on first use.

        Args:
            kind: Document kind searched.
            descriptor: The search descriptor.
            populate: Coroutine function executing the remote search and
                returning the ids it materialized.

        Returns:
            A copy of the cached id list. If ``populate`` raises, nothing is
            stored and the error propagates.
        """
        key = fingerprint(kind, descriptor)
        if key not in self._results:
            logger.debug("Result cache miss for %s (%s)", kind, key)
            self._results[key] = list(await populate())
        return list(self._results[key])

    def discard(self, doc_id: str) -> None:
        """Strip ``doc_id`` from every cached id list."""
        for key, ids in self._results.items():
            if doc_id in ids:
                self._results[key] = [cached for cached in ids if cached != doc_id]

    def clear(self) -> None:
        self._results.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._results

    def __len__(self) -> int:
        return len(self._results)
