"""Search descriptor — Immutable description of a document search."""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SearchDescriptor(BaseModel):
    """What to search for and which window of results to return.

    The query and sort clauses are passed to the engine untouched. Two
    descriptors with equal field values are interchangeable: they produce
    the same request bodies and the same result-cache fingerprint.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    query: dict[str, Any] = Field(default_factory=dict, description="Query DSL clause; empty means no filter")
    sort: list[Any] = Field(default_factory=list, description="Sort clauses; empty means engine default order")
    from_: int = Field(default=0, ge=0, alias="from", description="Offset of the first hit")
    size: int = Field(default=10, ge=0, description="Maximum number of hits")

    @field_validator("query", "sort", mode="after")
    @classmethod
    def _own_clauses(cls, v: Any) -> Any:
        """Detach nested clauses from the caller so later edits cannot leak in."""
        return copy.deepcopy(v)

    def search_body(self) -> dict[str, Any]:
        """Build a search request body; ``query``/``sort`` only when non-empty."""
        body: dict[str, Any] = {"from": self.from_, "size": self.size}
        if self.query:
            body["query"] = copy.deepcopy(self.query)
        if self.sort:
            body["sort"] = copy.deepcopy(self.sort)
        return body

    def count_body(self) -> dict[str, Any]:
        """Build a count request body carrying only the query clause."""
        if self.query:
            return {"query": copy.deepcopy(self.query)}
        return {}
