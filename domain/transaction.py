"""
Domain: Transactions created when a sell request is awarded.

A transaction tracks the physical exchange between the seller and the winning
wholesaler after the auction is over.

Rules implemented here:
- Created IN_PROGRESS, exactly once per awarded sell request.
- IN_PROGRESS -> COMPLETED (completed_at set) or IN_PROGRESS -> CANCELLED
  (cancelled_at set). Both targets are terminal.
- completed_at and cancelled_at are mutually exclusive and match status.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .errors import InvalidTransitionError
from .time import require_optional_utc_timestamp, require_utc_timestamp


class TransactionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Transaction:
    """Immutable snapshot of a post-award transaction."""

    transaction_id: UUID
    sell_request_id: UUID
    purchase_offer_id: UUID
    wholesaler_id: UUID
    seller_id: UUID
    status: TransactionStatus
    created_at: datetime
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("completed_at", self.completed_at)
        require_optional_utc_timestamp("cancelled_at", self.cancelled_at)
        require_optional_utc_timestamp("updated_at", self.updated_at)

        if (self.completed_at is not None) != (self.status is TransactionStatus.COMPLETED):
            raise ValueError("completed_at must be set iff the transaction is COMPLETED")
        if (self.cancelled_at is not None) != (self.status is TransactionStatus.CANCELLED):
            raise ValueError("cancelled_at must be set iff the transaction is CANCELLED")

    def involves(self, party_id: UUID) -> bool:
        """True for the seller or the wholesaler of this transaction."""

        return party_id in (self.seller_id, self.wholesaler_id)

    def _require_in_progress(self, target: TransactionStatus) -> None:
        if self.status is not TransactionStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Transaction {self.transaction_id} cannot move from "
                f"{self.status.value} to {target.value}"
            )

    def completed(self, at: datetime, notes: Optional[str] = None) -> "Transaction":
        self._require_in_progress(TransactionStatus.COMPLETED)
        return replace(
            self,
            status=TransactionStatus.COMPLETED,
            completed_at=at,
            updated_at=at,
            notes=notes if notes is not None else self.notes,
        )

    def cancelled(self, at: datetime, notes: Optional[str] = None) -> "Transaction":
        self._require_in_progress(TransactionStatus.CANCELLED)
        return replace(
            self,
            status=TransactionStatus.CANCELLED,
            cancelled_at=at,
            updated_at=at,
            notes=notes if notes is not None else self.notes,
        )


__all__ = [
    "TransactionStatus",
    "Transaction",
]
