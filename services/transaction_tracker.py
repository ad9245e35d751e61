"""
Transaction tracker service.

Post-award fulfilment bookkeeping between the seller and the winning
wholesaler. Transactions are created only by the award coordinator; this
service moves them IN_PROGRESS -> COMPLETED | CANCELLED and answers queries.

Either party of a transaction may complete or cancel it. Which role is
allowed to do what beyond that is business policy for the calling layer.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from domain.errors import InvalidTransitionError, NotFoundError, NotOwnerError
from domain.events import TransactionStatusChanged
from domain.time import utc_now
from domain.transaction import Transaction, TransactionStatus
from repositories.store import AuctionStore
from services.notifications import EventPublisher, LoggingEventPublisher, publish_safely
from services.results import returns_result

logger = logging.getLogger(__name__)


class TransactionTracker:
    def __init__(
        self,
        store: AuctionStore,
        publisher: Optional[EventPublisher] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._publisher = publisher or LoggingEventPublisher()
        self._clock = clock

    def _require_transaction(self, transaction_id: UUID) -> Transaction:
        transaction = self._store.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)
        return transaction

    def _transition(
        self,
        transaction_id: UUID,
        requester_id: UUID,
        target: TransactionStatus,
        notes: Optional[str],
    ) -> Transaction:
        transaction = self._require_transaction(transaction_id)
        if not transaction.involves(requester_id):
            raise NotOwnerError(f"Transaction {transaction_id} does not involve {requester_id}")

        now = self._clock()
        if target is TransactionStatus.COMPLETED:
            updated = transaction.completed(now, notes)
        else:
            updated = transaction.cancelled(now, notes)

        stored = self._store.replace_transaction_if(updated, TransactionStatus.IN_PROGRESS)
        if stored is None:
            raise InvalidTransitionError(
                f"Transaction {transaction_id} left IN_PROGRESS before it could be {target.value}"
            )

        logger.info(
            f"Transaction {target.value}",
            extra={
                "transaction_id": str(transaction_id),
                "status": target.value,
                "changed_by": str(requester_id),
            },
        )
        publish_safely(
            self._publisher,
            [
                TransactionStatusChanged(
                    transaction_id=transaction_id,
                    status=target,
                    changed_by=requester_id,
                    occurred_at=now,
                )
            ],
        )
        return stored

    @returns_result
    def complete(self, transaction_id: UUID, requester_id: UUID, notes: Optional[str] = None) -> Transaction:
        """IN_PROGRESS -> COMPLETED. InvalidTransitionError from any other state."""

        return self._transition(transaction_id, requester_id, TransactionStatus.COMPLETED, notes)

    @returns_result
    def cancel(self, transaction_id: UUID, requester_id: UUID, notes: Optional[str] = None) -> Transaction:
        """IN_PROGRESS -> CANCELLED. InvalidTransitionError from any other state."""

        return self._transition(transaction_id, requester_id, TransactionStatus.CANCELLED, notes)

    @returns_result
    def get(self, transaction_id: UUID) -> Transaction:
        return self._require_transaction(transaction_id)

    @returns_result
    def get_by_offer(self, offer_id: UUID) -> Optional[Transaction]:
        """The transaction created for an offer, or None if it never won."""

        return self._store.get_transaction_by_offer(offer_id)

    @returns_result
    def list_for_wholesaler(
        self, wholesaler_id: UUID, status: Optional[TransactionStatus] = None
    ) -> List[Transaction]:
        return self._store.list_transactions(wholesaler_id=wholesaler_id, status=status)

    @returns_result
    def list_for_seller(
        self, seller_id: UUID, status: Optional[TransactionStatus] = None
    ) -> List[Transaction]:
        return self._store.list_transactions(seller_id=seller_id, status=status)


__all__ = ["TransactionTracker"]
