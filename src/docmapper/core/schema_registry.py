"""Index Schema Registry — Mapping and settings declarations per kind."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import BaseModel, Field


class IndexSchema(BaseModel):
    """Index creation declarations for one document kind."""

    mappings: dict[str, Any] | None = Field(default=None, description="Index mapping definition")
    settings: dict[str, Any] | None = Field(default=None, description="Optional index settings")

    def creation_body(self) -> dict[str, Any]:
        """Build a create-index body; ``settings`` only when registered."""
        body: dict[str, Any] = {"mappings": self.mappings or {}}
        if self.settings is not None:
            body["settings"] = self.settings
        return body


class IndexSchemaRegistry:
    """Holds the mapping/settings declarations used to create indices.

    Registration is last-write-wins per kind. Only kinds with a mapping take
    part in index creation and deletion.
    """

    def __init__(self) -> None:
        self._schemas: dict[str, IndexSchema] = {}

    def register_mapping(self, kind: str, mappings: dict[str, Any]) -> None:
        self._schemas.setdefault(kind, IndexSchema()).mappings = mappings

    def register_settings(self, kind: str, settings: dict[str, Any]) -> None:
        self._schemas.setdefault(kind, IndexSchema()).settings = settings

    def get(self, kind: str) -> IndexSchema | None:
        return self._schemas.get(kind)

    def mapped(self) -> Iterator[tuple[str, IndexSchema]]:
        """Yield ``(kind, schema)`` for every kind with a registered mapping."""
        for kind, schema in self._schemas.items():
            if schema.mappings is not None:
                yield kind, schema
