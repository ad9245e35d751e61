"""
Domain: Purchase offers (bids) placed by wholesalers on sell requests.

Rules implemented here:
- price must be strictly positive.
- An offer is resolved exactly once: PENDING -> WON | LOST | WITHDRAWN.
- is_selected is true iff the offer WON.

The "one PENDING offer per (sell_request_id, wholesaler_id)" rule spans rows,
so it is enforced by the store at write time, not by this entity.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from .errors import AlreadyResolvedError, InvalidPriceError
from .time import require_optional_utc_timestamp, require_utc_timestamp


class OfferStatus(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"
    WITHDRAWN = "withdrawn"


def validate_price(price: Any) -> Decimal:
    """
    Normalize a price to Decimal and reject anything that is not a positive amount.

    Raises:
        InvalidPriceError: price is missing, not numeric, not finite or <= 0
    """

    if isinstance(price, bool) or price is None:
        raise InvalidPriceError(f"Offer price must be a positive number, got {price!r}")
    try:
        value = price if isinstance(price, Decimal) else Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise InvalidPriceError(f"Offer price must be a positive number, got {price!r}") from None

    if not value.is_finite() or value <= 0:
        raise InvalidPriceError(f"Offer price must be a positive number, got {price!r}")
    return value


# Fields each kind of offer write owns. Conditional writes send only these,
# so a resolution never undoes a concurrent reprice and vice versa.
RESOLUTION_FIELDS = ("status", "is_selected", "updated_at")
PRICE_FIELDS = ("price", "updated_at")


@dataclass(frozen=True, slots=True)
class Offer:
    """Immutable snapshot of a wholesaler's offer."""

    offer_id: UUID
    sell_request_id: UUID
    wholesaler_id: UUID
    price: Decimal
    status: OfferStatus
    created_at: datetime
    is_selected: bool = False
    updated_at: Optional[datetime] = None
    wholesaler_name: Optional[str] = None
    message: Optional[str] = None

    def __post_init__(self) -> None:
        validate_price(self.price)
        require_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)
        if self.is_selected != (self.status is OfferStatus.WON):
            raise ValueError("is_selected must be true iff the offer status is WON")

    @property
    def is_pending(self) -> bool:
        return self.status is OfferStatus.PENDING

    def is_owned_by(self, requester_id: UUID) -> bool:
        return self.wholesaler_id == requester_id

    def _require_pending(self, target: OfferStatus) -> None:
        if not self.is_pending:
            raise AlreadyResolvedError(
                f"Offer {self.offer_id} is already {self.status.value}; cannot mark it {target.value}"
            )

    def won(self, at: datetime) -> "Offer":
        self._require_pending(OfferStatus.WON)
        return replace(self, status=OfferStatus.WON, is_selected=True, updated_at=at)

    def lost(self, at: datetime) -> "Offer":
        self._require_pending(OfferStatus.LOST)
        return replace(self, status=OfferStatus.LOST, updated_at=at)

    def withdrawn(self, at: datetime) -> "Offer":
        self._require_pending(OfferStatus.WITHDRAWN)
        return replace(self, status=OfferStatus.WITHDRAWN, updated_at=at)

    def repriced(self, price: Any, at: datetime) -> "Offer":
        new_price = validate_price(price)
        self._require_pending(OfferStatus.PENDING)
        return replace(self, price=new_price, updated_at=at)

    def reverted_to_pending(self, at: datetime) -> "Offer":
        """Undo a resolution. Used only to compensate a failed award."""

        return replace(self, status=OfferStatus.PENDING, is_selected=False, updated_at=at)


__all__ = [
    "OfferStatus",
    "Offer",
    "validate_price",
    "RESOLUTION_FIELDS",
    "PRICE_FIELDS",
]
