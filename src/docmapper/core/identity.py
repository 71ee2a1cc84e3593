"""Identity Registry — One live instance per (kind, id).

Every document handed out by the manager passes through this registry, so
all readers of the same identity observe the same object.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from docmapper.core.exceptions import DocumentNotFoundError
from docmapper.models.document import Document

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """In-memory map from ``(kind, id)`` to the canonical document instance."""

    def __init__(self) -> None:
        self._documents: dict[str, dict[str, Document]] = {}

    def register(self, document: Document) -> Document:
        """Insert the document unless its identity is already present.

        Returns:
            The canonical instance: ``document`` itself when newly inserted,
            otherwise the instance registered earlier (the argument is
            discarded, nothing is overwritten).
        """
        documents = self._documents.setdefault(document.kind, {})
        canonical = documents.setdefault(document.id, document)
        if canonical is not document:
            logger.debug("Identity hit for %s/%s, keeping registered instance", document.kind, document.id)
        return canonical

    def get(self, kind: str, doc_id: str) -> Document | None:
        """Return the registered instance or None."""
        return self._documents.get(kind, {}).get(doc_id)

    def retrieve(self, kind: str, doc_id: str) -> Document:
        """Return the registered instance.

        Raises:
            DocumentNotFoundError: If no instance is registered for the identity.
        """
        document = self.get(kind, doc_id)
        if document is None:
            raise DocumentNotFoundError(f"{kind} {doc_id} not found.")
        return document

    def contains(self, kind: str, doc_id: str) -> bool:
        return doc_id in self._documents.get(kind, {})

    def detach(self, kind: str | None = None, doc_id: str | None = None) -> None:
        """Forget documents locally without touching the engine.

        ``detach()`` forgets everything, ``detach(kind)`` every document of a
        kind and ``detach(kind, doc_id)`` a single document.
        """
        if kind is None:
            if doc_id is not None:
                raise ValueError("Detaching by id requires a kind.")
            self._documents.clear()
        elif doc_id is None:
            self._documents.pop(kind, None)
        else:
            self.delete(kind, doc_id)

    def delete(self, kind: str, doc_id: str) -> None:
        """Remove a single entry; absent entries are ignored."""
        documents = self._documents.get(kind)
        if documents is not None:
            documents.pop(doc_id, None)

    def __iter__(self) -> Iterator[Document]:
        for documents in list(self._documents.values()):
            yield from list(documents.values())

    def __len__(self) -> int:
        return sum(len(documents) for documents in self._documents.values())
