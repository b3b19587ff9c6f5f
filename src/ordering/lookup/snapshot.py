"""Wire contracts exchanged with the catalogue service over the bus.

``LookupRequest`` is what we publish; ``ServiceSnapshot`` is what comes back,
either as the answer to one of our requests (``requestId`` set) or as an
unsolicited broadcast when a catalogue item changes. Field aliases match the
catalogue service's camelCase payloads.
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceSnapshot(BaseModel):
    """Point-in-time copy of a catalogue item. Immutable once received."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    external_id: str | None = Field(default=None, alias="id")
    correlation_id: str | None = Field(default=None, alias="requestId")
    error_message: str | None = Field(default=None, alias="errorMessage")
    title: str | None = None
    description: str | None = None
    price: float | None = None
    rating: float | None = Field(default=None, alias="averageRating")
    category: str | None = Field(default=None, alias="categoryName")
    is_active: bool | None = Field(default=None, alias="isActive")
    image_url: str | None = Field(default=None, alias="primaryImageUrl")
    country_name: str | None = Field(default=None, alias="countryName")
    country_code: str | None = Field(default=None, alias="countryCode")

    def is_available(self) -> bool:
        return self.is_active is True

    def is_valid_for_cart(self) -> bool:
        """Enough data to price and label a cart line."""
        return (
            bool(self.external_id)
            and bool(self.title and self.title.strip())
            and self.price is not None
            and self.price >= 0
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class LookupRequest:
    """Envelope asking the catalogue service for one item."""

    external_id: str
    correlation_id: str
    requester_tag: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "serviceId": self.external_id,
            "requestId": self.correlation_id,
            "requesterService": self.requester_tag,
        }
