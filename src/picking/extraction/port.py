"""Document extraction port (abstract interface).

An extractor turns an uploaded document (raw bytes plus MIME type) into an
``OrderDraft``: the shape of an order without any lifecycle fields. Drafts
travel as camelCase JSON on the wire, which is what the extraction models
produce, and are exposed with snake_case attributes to the domain.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ExtractionError(Exception):
    """The uploaded document could not be turned into an order draft."""


class ExtractionQuotaExceeded(ExtractionError):
    """The extraction backend refused the request because of quota or rate limits."""


class DraftItem(BaseModel):
    """A single line item as read from the document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    item_no: str = Field(min_length=1)
    code: str = ""
    description: str = ""
    location: str = ""
    quantity_ordered: float = Field(gt=0)
    unit: str = ""

    @field_validator("item_no", mode="before")
    @classmethod
    def _coerce_item_no(cls, value):
        # Extraction models sometimes answer item numbers as integers
        if isinstance(value, int | float):
            return str(value)
        return value


class OrderDraft(BaseModel):
    """A structured order read from a document, before it enters the lifecycle."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    order_id: str = Field(min_length=1)
    requester: str = ""
    destination_sector: str = ""
    items: tuple[DraftItem, ...] = ()

    @field_validator("order_id", mode="before")
    @classmethod
    def _strip_order_id(cls, value):
        if isinstance(value, int):
            value = str(value)
        return value.strip() if isinstance(value, str) else value

    @field_validator("items")
    @classmethod
    def _unique_item_numbers(cls, items):
        seen = set()
        for item in items:
            if item.item_no in seen:
                raise ValueError(f"Duplicate item number {item.item_no!r} in draft")
            seen.add(item.item_no)
        return items


class DocumentExtractor(ABC):
    """Abstract interface for document extraction adapters."""

    @abstractmethod
    def extract(self, content: bytes, mime_type: str) -> OrderDraft:
        """Extract an order draft from a document.

        Raises:
            ExtractionQuotaExceeded: the backend is rate limited or out of quota.
            ExtractionError: the document could not be read or parsed.
        """
        ...
