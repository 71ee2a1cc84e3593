"""Document factories — Construct empty documents of a kind from an id."""

from __future__ import annotations

import logging
from collections.abc import Callable

from docmapper.core.exceptions import UnknownKindError
from docmapper.models.document import Document

logger = logging.getLogger(__name__)

DocumentFactory = Callable[[str], Document]
"""Builds a new, unpopulated document from its id."""


class DocumentFactoryTable:
    """Lookup table from kind discriminator to document constructor.

    Example:
        >>> table = DocumentFactoryTable()
        >>> table.register_kind(Item)
        >>> table.create("item", "sku-1")
        Item(id='sku-1', ...)
    """

    def __init__(self) -> None:
        self._factories: dict[str, DocumentFactory] = {}
        self._classes: dict[str, type[Document]] = {}

    def register(self, kind: str, factory: DocumentFactory) -> None:
        if kind in self._factories:
            logger.warning("Overwriting existing document factory: %s", kind)
        self._factories[kind] = factory
        self._classes.pop(kind, None)

    def register_kind(self, document_class: type[Document]) -> None:
        """Register a document class under its own ``kind``."""
        self.register(document_class.kind, lambda doc_id: document_class(id=doc_id))
        self._classes[document_class.kind] = document_class

    def document_class(self, kind: str) -> type[Document] | None:
        """Return the class registered for ``kind``, if it was registered as a class."""
        return self._classes.get(kind)

    def create(self, kind: str, doc_id: str) -> Document:
        """Construct an empty document of ``kind``.

        Raises:
            UnknownKindError: If no factory is registered for the kind.
        """
        try:
            factory = self._factories[kind]
        except KeyError:
            raise UnknownKindError(
                f"No document factory registered for kind '{kind}'. "
                f"Registered kinds: {list(self._factories.keys())}"
            ) from None
        return factory(doc_id)

    def __contains__(self, kind: object) -> bool:
        return kind in self._factories
