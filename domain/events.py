"""
Domain: Events emitted after state transitions.

Events describe something that already happened. Downstream consumers (email,
UI refresh) receive them fire-and-forget; a delivery failure never undoes the
transition that produced the event.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple
from uuid import UUID

from .transaction import TransactionStatus


class CloseOutcome(str, Enum):
    AWARDED = "awarded"
    NO_WINNER = "no_winner"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class OfferSubmitted:
    offer_id: UUID
    sell_request_id: UUID
    wholesaler_id: UUID
    price: Decimal
    occurred_at: datetime


@dataclass(frozen=True, slots=True)
class OfferWithdrawn:
    offer_id: UUID
    sell_request_id: UUID
    wholesaler_id: UUID
    occurred_at: datetime


@dataclass(frozen=True, slots=True)
class SellRequestClosed:
    sell_request_id: UUID
    seller_id: UUID
    outcome: CloseOutcome
    occurred_at: datetime
    selected_wholesaler_id: Optional[UUID] = None
    # Offers invalidated (withdrawn or lost) by the close
    affected_offer_ids: Tuple[UUID, ...] = ()


@dataclass(frozen=True, slots=True)
class TransactionCreated:
    transaction_id: UUID
    sell_request_id: UUID
    purchase_offer_id: UUID
    wholesaler_id: UUID
    seller_id: UUID
    occurred_at: datetime


@dataclass(frozen=True, slots=True)
class TransactionStatusChanged:
    transaction_id: UUID
    status: TransactionStatus
    changed_by: UUID
    occurred_at: datetime


DomainEvent = (
    OfferSubmitted
    | OfferWithdrawn
    | SellRequestClosed
    | TransactionCreated
    | TransactionStatusChanged
)


__all__ = [
    "CloseOutcome",
    "OfferSubmitted",
    "OfferWithdrawn",
    "SellRequestClosed",
    "TransactionCreated",
    "TransactionStatusChanged",
    "DomainEvent",
]
