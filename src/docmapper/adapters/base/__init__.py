"""Base adapter interface — Abstract classes for search engine connectors."""

from docmapper.adapters.base.adapter import AdapterHealth, EngineAdapter, FetchedDocument, SearchHits
from docmapper.adapters.base.registry import AdapterRegistry, default_registry

__all__ = ["AdapterHealth", "AdapterRegistry", "EngineAdapter", "FetchedDocument", "SearchHits", "default_registry"]
