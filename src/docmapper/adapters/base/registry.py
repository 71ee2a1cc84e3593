"""Adapter Registry — Maps adapter names to engine adapter classes.

The registry is the single place where engine backends are looked up by the
name used in configuration (``DOCMAPPER_ENGINE__ADAPTER``).
"""

from __future__ import annotations

import logging
from typing import Any

from docmapper.adapters.base.adapter import EngineAdapter

logger = logging.getLogger(__name__)


class AdapterNotFoundError(Exception):
    """Raised when a requested adapter is not registered."""


class AdapterRegistry:
    """Registry of engine adapter classes.

    Example:
        >>> registry = AdapterRegistry()
        >>> registry.register("opensearch", OpenSearchAdapter)
        >>> adapter = registry.create("opensearch", hosts=["https://localhost:9200"])
        >>> await adapter.initialize()
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[EngineAdapter]] = {}

    def register(self, name: str, adapter_class: type[EngineAdapter]) -> None:
        """Register an adapter class.

        Args:
            name: Unique name for this adapter type.
            adapter_class: The adapter class to register.
        """
        if name in self._classes:
            logger.warning("Overwriting existing adapter registration: %s", name)
        self._classes[name] = adapter_class
        logger.debug("Registered adapter: %s", name)

    def create(self, name: str, **kwargs: Any) -> EngineAdapter:
        """Instantiate a registered adapter (not yet initialized).

        Args:
            name: The registered adapter name.
            **kwargs: Configuration parameters passed to the adapter constructor.

        Raises:
            AdapterNotFoundError: If no adapter is registered under this name.
        """
        if name not in self._classes:
            raise AdapterNotFoundError(
                f"No adapter registered with name '{name}'. "
                f"Available adapters: {list(self._classes.keys())}"
            )
        return self._classes[name](**kwargs)

    @property
    def registered_adapters(self) -> list[str]:
        """List all registered adapter names."""
        return list(self._classes.keys())


def default_registry() -> AdapterRegistry:
    """Return a registry holding the built-in adapters."""
    from docmapper.adapters.elasticsearch.adapter import ElasticsearchAdapter
    from docmapper.adapters.memory.adapter import InMemoryAdapter
    from docmapper.adapters.opensearch.adapter import OpenSearchAdapter

    registry = AdapterRegistry()
    registry.register("opensearch", OpenSearchAdapter)
    registry.register("elasticsearch", ElasticsearchAdapter)
    registry.register("memory", InMemoryAdapter)
    return registry
