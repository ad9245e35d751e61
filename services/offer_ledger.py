"""
Offer ledger service.

Owns wholesaler offers on sell requests:
- submit, re-price and withdraw offers
- list offers for a sell request (submission order)
- a wholesaler's won offers, paired with the sell requests they won

Rules enforced here:
- Price must be positive; checked before anything is read or written.
- Offers are accepted only while the parent sell request is OPEN. The parent
  status is re-checked after the insert, so an offer racing a cancellation is
  withdrawn again instead of slipping past the cancellation cascade.
- One PENDING offer per (sell_request_id, wholesaler_id); the store rejects a
  second one at write time.
- Only the owning wholesaler may withdraw or re-price an offer, and only while
  it is PENDING (conditional write on the current status).

The ledger never touches sell request or transaction state. Awarding is the
award coordinator's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from domain.errors import (
    AlreadyResolvedError,
    NotFoundError,
    NotOwnerError,
    RequestNotOpenError,
)
from domain.events import OfferSubmitted, OfferWithdrawn
from domain.offer import PRICE_FIELDS, RESOLUTION_FIELDS, Offer, OfferStatus, validate_price
from domain.sell_request import SellRequest
from domain.time import utc_now
from domain.transaction import TransactionStatus
from repositories.store import AuctionStore
from services.notifications import EventPublisher, LoggingEventPublisher, publish_safely
from services.results import returns_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WonOffer:
    """A won offer together with the sell request it won."""

    offer: Offer
    sell_request: SellRequest


class OfferLedger:
    def __init__(
        self,
        store: AuctionStore,
        publisher: Optional[EventPublisher] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._publisher = publisher or LoggingEventPublisher()
        self._clock = clock

    def _require_sell_request(self, sell_request_id: UUID) -> SellRequest:
        sell_request = self._store.get_sell_request(sell_request_id)
        if sell_request is None:
            raise NotFoundError("Sell request", sell_request_id)
        return sell_request

    def _require_offer(self, offer_id: UUID) -> Offer:
        offer = self._store.get_offer(offer_id)
        if offer is None:
            raise NotFoundError("Offer", offer_id)
        return offer

    @staticmethod
    def _require_open(sell_request: SellRequest) -> None:
        if not sell_request.is_open:
            raise RequestNotOpenError(
                f"Sell request {sell_request.sell_request_id} is {sell_request.status.value} "
                f"and no longer accepts offers"
            )

    @staticmethod
    def _require_owned_pending(offer: Offer, requester_id: UUID) -> None:
        if not offer.is_owned_by(requester_id):
            raise NotOwnerError(f"Offer {offer.offer_id} does not belong to {requester_id}")
        if not offer.is_pending:
            raise AlreadyResolvedError(f"Offer {offer.offer_id} is already {offer.status.value}")

    @returns_result
    def submit_offer(
        self,
        sell_request_id: UUID,
        wholesaler_id: UUID,
        price: Decimal,
        *,
        wholesaler_name: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Offer:
        """
        Place a PENDING offer on an OPEN sell request.

        Errors:
            InvalidPriceError: price <= 0 (nothing written)
            NotFoundError: unknown sell request
            RequestNotOpenError: sell request is CLOSED or CANCELLED
            DuplicateOfferError: wholesaler already has a pending offer on it
        """

        amount = validate_price(price)

        with self._store.unit_of_work():
            self._require_open(self._require_sell_request(sell_request_id))

            offer = Offer(
                offer_id=uuid4(),
                sell_request_id=sell_request_id,
                wholesaler_id=wholesaler_id,
                price=amount,
                status=OfferStatus.PENDING,
                created_at=self._clock(),
                wholesaler_name=wholesaler_name,
                message=message,
            )
            stored = self._store.insert_offer(offer)

            # Re-check at write time: a cancel or award may have landed in between.
            current = self._store.get_sell_request(sell_request_id)
            if current is None or not current.is_open:
                self._store.replace_offer_if(
                    stored.withdrawn(self._clock()), OfferStatus.PENDING, fields=RESOLUTION_FIELDS
                )
                logger.warning(
                    "Offer withdrawn again: sell request closed while it was being submitted",
                    extra={"offer_id": str(stored.offer_id), "sell_request_id": str(sell_request_id)},
                )
                raise RequestNotOpenError(
                    f"Sell request {sell_request_id} closed while the offer was being submitted"
                )

        logger.info(
            "Offer submitted",
            extra={
                "offer_id": str(stored.offer_id),
                "sell_request_id": str(sell_request_id),
                "wholesaler_id": str(wholesaler_id),
                "price": str(amount),
            },
        )
        publish_safely(
            self._publisher,
            [
                OfferSubmitted(
                    offer_id=stored.offer_id,
                    sell_request_id=sell_request_id,
                    wholesaler_id=wholesaler_id,
                    price=amount,
                    occurred_at=stored.created_at,
                )
            ],
        )
        return stored

    @returns_result
    def withdraw_offer(self, offer_id: UUID, requester_id: UUID) -> Offer:
        """
        Withdraw the requester's own PENDING offer.

        Errors:
            NotFoundError: unknown offer
            NotOwnerError: requester is not the offer's wholesaler
            AlreadyResolvedError: offer is WON, LOST or WITHDRAWN (also when a
                concurrent award or cancellation resolved it first)
        """

        offer = self._require_offer(offer_id)
        self._require_owned_pending(offer, requester_id)

        now = self._clock()
        updated = self._store.replace_offer_if(
            offer.withdrawn(now), OfferStatus.PENDING, fields=RESOLUTION_FIELDS
        )
        if updated is None:
            raise AlreadyResolvedError(f"Offer {offer_id} was resolved before it could be withdrawn")

        logger.info(
            "Offer withdrawn",
            extra={"offer_id": str(offer_id), "sell_request_id": str(offer.sell_request_id)},
        )
        publish_safely(
            self._publisher,
            [
                OfferWithdrawn(
                    offer_id=offer_id,
                    sell_request_id=offer.sell_request_id,
                    wholesaler_id=offer.wholesaler_id,
                    occurred_at=now,
                )
            ],
        )
        return updated

    @returns_result
    def update_offer_price(self, offer_id: UUID, requester_id: UUID, price: Decimal) -> Offer:
        """
        Re-price the requester's own PENDING offer while the sell request is OPEN.

        Errors:
            InvalidPriceError, NotFoundError, NotOwnerError, AlreadyResolvedError,
            RequestNotOpenError
        """

        amount = validate_price(price)
        offer = self._require_offer(offer_id)
        self._require_owned_pending(offer, requester_id)
        self._require_open(self._require_sell_request(offer.sell_request_id))

        updated = self._store.replace_offer_if(
            offer.repriced(amount, self._clock()), OfferStatus.PENDING, fields=PRICE_FIELDS
        )
        if updated is None:
            raise AlreadyResolvedError(f"Offer {offer_id} was resolved before it could be updated")

        logger.info(
            "Offer re-priced",
            extra={"offer_id": str(offer_id), "old_price": str(offer.price), "price": str(amount)},
        )
        return updated

    @returns_result
    def list_offers(self, sell_request_id: UUID) -> List[Offer]:
        """All non-withdrawn offers on a sell request, oldest submission first."""

        self._require_sell_request(sell_request_id)
        return self._store.list_offers(sell_request_id)

    @returns_result
    def get_offer(self, offer_id: UUID) -> Offer:
        return self._require_offer(offer_id)

    @returns_result
    def count_offers(self, sell_request_id: UUID) -> int:
        self._require_sell_request(sell_request_id)
        return self._store.count_offers(sell_request_id)

    @returns_result
    def list_won_offers(self, wholesaler_id: UUID) -> List[WonOffer]:
        """Offers this wholesaler won, newest first, each with its sell request."""

        won = self._store.list_offers_by_wholesaler(wholesaler_id, selected_only=True)
        sell_requests = {
            r.sell_request_id: r
            for r in self._store.list_sell_requests_by_ids([o.sell_request_id for o in won])
        }
        return [
            WonOffer(offer=offer, sell_request=sell_requests[offer.sell_request_id])
            for offer in won
            if offer.sell_request_id in sell_requests
        ]

    @returns_result
    def count_active_won_offers(self, wholesaler_id: UUID) -> int:
        """Won offers whose fulfilment is not finished yet (no COMPLETED transaction)."""

        won = self._store.list_offers_by_wholesaler(wholesaler_id, selected_only=True)
        completed = {
            tx.purchase_offer_id
            for tx in self._store.list_transactions(
                wholesaler_id=wholesaler_id, status=TransactionStatus.COMPLETED
            )
        }
        return sum(1 for offer in won if offer.offer_id not in completed)


__all__ = ["OfferLedger", "WonOffer"]
