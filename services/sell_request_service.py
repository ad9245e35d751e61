"""
Sell request service (lifecycle state machine).

States: OPEN (initial) -> CLOSED | CANCELLED (both terminal).

Exposed transitions:
- open: create a new OPEN sell request
- cancel: OPEN -> CANCELLED by the owning seller; every PENDING offer is
  withdrawn in the same unit of work
- close_without_winner: OPEN -> CLOSED by the owning seller when no offer is
  acceptable; every PENDING offer is marked LOST

There is no "close with winner" transition here. Awarding goes through
AwardCoordinator.award_offer, which also resolves the offers and records the
transaction.

Each transition is a conditional write on status = OPEN; a second cancel
fails with InvalidTransitionError and cascades nothing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence
from uuid import UUID, uuid4

from domain.errors import InvalidTransitionError, NotFoundError, NotOwnerError
from domain.events import CloseOutcome, SellRequestClosed
from domain.offer import RESOLUTION_FIELDS, Offer, OfferStatus
from domain.sell_request import (
    CLOSE_FIELDS,
    DESIRED_PRICE_FIELDS,
    SellRequest,
    SellRequestCategory,
    SellRequestStatus,
)
from domain.time import utc_now
from repositories.store import AuctionStore
from services.notifications import EventPublisher, LoggingEventPublisher, publish_safely
from services.results import returns_result

logger = logging.getLogger(__name__)


class SellRequestStateMachine:
    def __init__(
        self,
        store: AuctionStore,
        publisher: Optional[EventPublisher] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._publisher = publisher or LoggingEventPublisher()
        self._clock = clock

    def _require_owned(self, sell_request_id: UUID, requester_id: UUID) -> SellRequest:
        sell_request = self._store.get_sell_request(sell_request_id)
        if sell_request is None:
            raise NotFoundError("Sell request", sell_request_id)
        if not sell_request.is_owned_by(requester_id):
            raise NotOwnerError(f"Sell request {sell_request_id} does not belong to {requester_id}")
        return sell_request

    def _commit_close(self, updated: SellRequest) -> SellRequest:
        stored = self._store.replace_sell_request_if(
            updated, SellRequestStatus.OPEN, fields=CLOSE_FIELDS
        )
        if stored is None:
            raise InvalidTransitionError(
                f"Sell request {updated.sell_request_id} left OPEN before it could be "
                f"moved to {updated.status.value}"
            )
        return stored

    def _resolve_pending_offers(
        self, offers: Sequence[Offer], resolve: Callable[[Offer], Offer]
    ) -> List[UUID]:
        resolved: List[UUID] = []
        for offer in offers:
            if not offer.is_pending:
                continue
            # A miss means the wholesaler withdrew it concurrently; nothing left to do.
            stored = self._store.replace_offer_if(
                resolve(offer), OfferStatus.PENDING, fields=RESOLUTION_FIELDS
            )
            if stored is not None:
                resolved.append(offer.offer_id)
        return resolved

    @returns_result
    def open(
        self,
        seller_id: UUID,
        category: SellRequestCategory,
        desired_price: Optional[str] = None,
        *,
        title: str = "",
        description: str = "",
        image_urls: Sequence[str] = (),
        seller_name: Optional[str] = None,
    ) -> SellRequest:
        sell_request = SellRequest(
            sell_request_id=uuid4(),
            seller_id=seller_id,
            category=SellRequestCategory(category),
            status=SellRequestStatus.OPEN,
            created_at=self._clock(),
            desired_price=desired_price,
            title=title,
            description=description,
            image_urls=tuple(image_urls),
            seller_name=seller_name,
        )
        stored = self._store.insert_sell_request(sell_request)
        logger.info(
            "Sell request opened",
            extra={
                "sell_request_id": str(stored.sell_request_id),
                "seller_id": str(seller_id),
                "category": stored.category.value,
            },
        )
        return stored

    @returns_result
    def cancel(self, sell_request_id: UUID, requester_id: UUID) -> SellRequest:
        """
        Cancel an OPEN sell request and withdraw all of its PENDING offers.

        Errors:
            NotFoundError, NotOwnerError,
            InvalidTransitionError: already CLOSED or CANCELLED
        """

        with self._store.unit_of_work():
            sell_request = self._require_owned(sell_request_id, requester_id)
            now = self._clock()
            stored = self._commit_close(sell_request.cancelled(now))
            withdrawn = self._resolve_pending_offers(
                self._store.list_offers(sell_request_id), lambda o: o.withdrawn(now)
            )

        logger.info(
            "Sell request cancelled",
            extra={"sell_request_id": str(sell_request_id), "withdrawn_offers": len(withdrawn)},
        )
        publish_safely(
            self._publisher,
            [
                SellRequestClosed(
                    sell_request_id=sell_request_id,
                    seller_id=stored.seller_id,
                    outcome=CloseOutcome.CANCELLED,
                    occurred_at=now,
                    affected_offer_ids=tuple(withdrawn),
                )
            ],
        )
        return stored

    @returns_result
    def close_without_winner(self, sell_request_id: UUID, requester_id: UUID) -> SellRequest:
        """
        Close an OPEN sell request because no offer was acceptable.

        PENDING offers are marked LOST; selected_wholesaler_id stays empty.
        """

        with self._store.unit_of_work():
            sell_request = self._require_owned(sell_request_id, requester_id)
            now = self._clock()
            stored = self._commit_close(sell_request.closed_without_winner(now))
            lost = self._resolve_pending_offers(
                self._store.list_offers(sell_request_id), lambda o: o.lost(now)
            )

        logger.info(
            "Sell request closed without a winner",
            extra={"sell_request_id": str(sell_request_id), "lost_offers": len(lost)},
        )
        publish_safely(
            self._publisher,
            [
                SellRequestClosed(
                    sell_request_id=sell_request_id,
                    seller_id=stored.seller_id,
                    outcome=CloseOutcome.NO_WINNER,
                    occurred_at=now,
                    affected_offer_ids=tuple(lost),
                )
            ],
        )
        return stored

    @returns_result
    def update_desired_price(
        self, sell_request_id: UUID, requester_id: UUID, desired_price: Optional[str]
    ) -> SellRequest:
        sell_request = self._require_owned(sell_request_id, requester_id)
        updated = sell_request.with_desired_price(desired_price, self._clock())
        stored = self._store.replace_sell_request_if(
            updated, SellRequestStatus.OPEN, fields=DESIRED_PRICE_FIELDS
        )
        if stored is None:
            raise InvalidTransitionError(
                f"Sell request {sell_request_id} left OPEN before its desired price could change"
            )
        return stored

    @returns_result
    def get(self, sell_request_id: UUID) -> SellRequest:
        sell_request = self._store.get_sell_request(sell_request_id)
        if sell_request is None:
            raise NotFoundError("Sell request", sell_request_id)
        return sell_request

    @returns_result
    def list_open(self) -> List[SellRequest]:
        """OPEN sell requests, newest first (the wholesaler market view)."""

        return self._store.list_sell_requests(status=SellRequestStatus.OPEN)

    @returns_result
    def list_by_seller(
        self, seller_id: UUID, status: Optional[SellRequestStatus] = None
    ) -> List[SellRequest]:
        return self._store.list_sell_requests(seller_id=seller_id, status=status)

    @returns_result
    def count_open(self) -> int:
        return self._store.count_sell_requests(status=SellRequestStatus.OPEN)


__all__ = ["SellRequestStateMachine"]
