"""
Domain: Sell request entity and its lifecycle.

A sell request is an individual seller's listing that wholesalers bid on
(reverse auction).

Lifecycle:
- OPEN is the initial state; offers are accepted only while OPEN.
- OPEN -> CLOSED either with a winner (award) or without one (no acceptable offer).
- OPEN -> CANCELLED by the owning seller.
- CLOSED and CANCELLED are terminal. No transition leaves them.

Invariants:
- selected_wholesaler_id is set only when status is CLOSED.
- closed_at is set iff status is not OPEN.

This module contains only pure domain entities: no I/O, no database, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from .errors import InvalidTransitionError
from .time import require_optional_utc_timestamp, require_utc_timestamp


class SellRequestCategory(str, Enum):
    COMPUTER = "computer"
    SMARTPHONE = "smartphone"


class SellRequestStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not SellRequestStatus.OPEN


# Fields each kind of sell request write owns; conditional writes send only these.
CLOSE_FIELDS = ("status", "selected_wholesaler_id", "closed_at", "updated_at")
DESIRED_PRICE_FIELDS = ("desired_price", "updated_at")


@dataclass(frozen=True, slots=True)
class SellRequest:
    """
    Immutable snapshot of a sell request.

    Transitions return a new instance; persisting it is the store's job.
    """

    sell_request_id: UUID
    seller_id: UUID
    category: SellRequestCategory
    status: SellRequestStatus
    created_at: datetime
    desired_price: Optional[str] = None
    selected_wholesaler_id: Optional[UUID] = None
    closed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Listing details shown to wholesalers
    title: str = ""
    description: str = ""
    image_urls: Tuple[str, ...] = ()
    seller_name: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("closed_at", self.closed_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

        if self.selected_wholesaler_id is not None and self.status is not SellRequestStatus.CLOSED:
            raise ValueError("selected_wholesaler_id may only be set on a CLOSED sell request")
        if (self.closed_at is None) != (self.status is SellRequestStatus.OPEN):
            raise ValueError("closed_at must be set iff the sell request has left OPEN")

    @property
    def is_open(self) -> bool:
        return self.status is SellRequestStatus.OPEN

    @property
    def has_winner(self) -> bool:
        return self.selected_wholesaler_id is not None

    def is_owned_by(self, requester_id: UUID) -> bool:
        return self.seller_id == requester_id

    def _require_open(self, target: str) -> None:
        if not self.is_open:
            raise InvalidTransitionError(
                f"Sell request {self.sell_request_id} cannot move from "
                f"{self.status.value} to {target}"
            )

    def closed_without_winner(self, at: datetime) -> "SellRequest":
        """OPEN -> CLOSED with no winner ("no acceptable offers")."""

        self._require_open(SellRequestStatus.CLOSED.value)
        return replace(self, status=SellRequestStatus.CLOSED, closed_at=at, updated_at=at)

    def awarded_to(self, wholesaler_id: UUID, at: datetime) -> "SellRequest":
        """OPEN -> CLOSED with a winner. Only the award coordinator calls this."""

        self._require_open(SellRequestStatus.CLOSED.value)
        return replace(
            self,
            status=SellRequestStatus.CLOSED,
            selected_wholesaler_id=wholesaler_id,
            closed_at=at,
            updated_at=at,
        )

    def cancelled(self, at: datetime) -> "SellRequest":
        """OPEN -> CANCELLED."""

        self._require_open(SellRequestStatus.CANCELLED.value)
        return replace(self, status=SellRequestStatus.CANCELLED, closed_at=at, updated_at=at)

    def with_desired_price(self, desired_price: Optional[str], at: datetime) -> "SellRequest":
        """The desired price hint is mutable only while OPEN."""

        if not self.is_open:
            raise InvalidTransitionError(
                f"Desired price of sell request {self.sell_request_id} is frozen "
                f"once it is {self.status.value}"
            )
        return replace(self, desired_price=desired_price, updated_at=at)

    def reverted_to_open(self, at: datetime) -> "SellRequest":
        """
        Undo an award claim that never completed.

        Used only by the award coordinator's compensation path, for a claim it
        made itself within the same unit of work.
        """

        return replace(
            self,
            status=SellRequestStatus.OPEN,
            selected_wholesaler_id=None,
            closed_at=None,
            updated_at=at,
        )


__all__ = [
    "SellRequestCategory",
    "SellRequestStatus",
    "SellRequest",
    "CLOSE_FIELDS",
    "DESIRED_PRICE_FIELDS",
]
