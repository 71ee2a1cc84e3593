"""Document model — Base class for every mapped document kind.

A document is a pydantic model with an ``id`` and a class-level ``kind``
discriminator. Subclasses declare their stored fields with defaults so a
document can always be constructed from its id alone::

    class Item(Document):
        kind = "item"

        title: str = ""
        price: float = 0.0

    item = Item(id="sku-1", title="Lamp")
    item.to_storable()   # {"title": "Lamp", "price": 0.0}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, Field


class Document(BaseModel):
    """Base class for documents stored in the search engine.

    Attributes:
        kind: Stable type discriminator. Defaults to the class name with a
            lower-cased first letter (``ProductReview`` -> ``productReview``).
        id: Identifier, unique within the kind.
    """

    kind: ClassVar[str] = "document"

    id: str = Field(description="Document identifier, unique within its kind")

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        if "kind" not in cls.__dict__:
            cls.kind = cls.__name__[:1].lower() + cls.__name__[1:]

    def build_from_source(self, source: Mapping[str, Any]) -> None:
        """Populate this instance in place from the engine's stored representation.

        The source is validated as a whole before any field is touched, so a
        source that fails validation leaves the instance unchanged.

        Raises:
            pydantic.ValidationError: If the source does not fit the model.
        """
        built = type(self).model_validate({**source, "id": self.id})
        for name in type(self).model_fields:
            setattr(self, name, getattr(built, name))

    def to_storable(self) -> dict[str, Any]:
        """Return the JSON-compatible map persisted as the engine's ``_source``."""
        return self.model_dump(mode="json", exclude={"id"})
