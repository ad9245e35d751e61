"""
Award coordinator service.

Selects the winning offer on a sell request. This is the only operation that
changes several entities at once, and the only path that sets
selected_wholesaler_id or is_selected.

Process:
1. Check preconditions without writing anything:
   - sell request exists, requester is its seller, it is OPEN
   - offer exists, belongs to the sell request and is PENDING
2. Claim the sell request: conditional write OPEN -> CLOSED with the winner.
   This is the serialization point. Of two concurrent awards (or a double
   submit of the same one) only the first claim succeeds; the other sees
   RequestNotOpenError, exactly as if it had arrived afterwards.
3. Mark the chosen offer WON / is_selected (conditional on PENDING).
4. Mark every other PENDING offer LOST (each conditional on PENDING).
5. Create the IN_PROGRESS transaction.

Writes 2-4 carry only the fields the step owns (CLOSE_FIELDS and
RESOLUTION_FIELDS), so a reprice or desired-price change that commits while
an award is running is kept.

Steps 2-5 run inside one store unit of work. On an atomic store nobody else
can observe the intermediate states. On a non-atomic store, a failure after
the claim triggers compensation of the completed steps in reverse order and
the caller receives PartialAwardError (rolled_back tells whether every
compensation succeeded). Events are published only after a full success.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from uuid import UUID, uuid4

from domain.errors import (
    InvalidOfferError,
    NotFoundError,
    NotOwnerError,
    PartialAwardError,
    RequestNotOpenError,
)
from domain.events import CloseOutcome, SellRequestClosed, TransactionCreated
from domain.offer import RESOLUTION_FIELDS, Offer, OfferStatus
from domain.sell_request import CLOSE_FIELDS, SellRequest, SellRequestStatus
from domain.time import utc_now
from domain.transaction import Transaction, TransactionStatus
from repositories.store import AuctionStore
from services.notifications import EventPublisher, LoggingEventPublisher, publish_safely
from services.results import returns_result

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AwardOutcome:
    """Everything an award changed."""

    sell_request: SellRequest
    winning_offer: Offer
    losing_offers: List[Offer]
    transaction: Transaction


class _ConditionMissed(RuntimeError):
    """A conditional write inside the award found the row in an unexpected state."""


# (step name, compensation returning True when it was applied)
_Compensation = Tuple[str, Callable[[], bool]]


class AwardCoordinator:
    def __init__(
        self,
        store: AuctionStore,
        publisher: Optional[EventPublisher] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._publisher = publisher or LoggingEventPublisher()
        self._clock = clock

    def _check_preconditions(
        self, sell_request_id: UUID, offer_id: UUID, requester_id: UUID
    ) -> Tuple[SellRequest, Offer]:
        sell_request = self._store.get_sell_request(sell_request_id)
        if sell_request is None:
            raise NotFoundError("Sell request", sell_request_id)
        if not sell_request.is_owned_by(requester_id):
            raise NotOwnerError(f"Sell request {sell_request_id} does not belong to {requester_id}")
        if not sell_request.is_open:
            raise RequestNotOpenError(
                f"Sell request {sell_request_id} is already {sell_request.status.value}"
            )

        offer = self._store.get_offer(offer_id)
        if offer is None or offer.sell_request_id != sell_request_id:
            raise InvalidOfferError(f"Offer {offer_id} is not an offer on sell request {sell_request_id}")
        if not offer.is_pending:
            # Resolved by an award or close that committed after the read above
            current = self._store.get_sell_request(sell_request_id)
            if current is not None and not current.is_open:
                raise RequestNotOpenError(
                    f"Sell request {sell_request_id} is already {current.status.value}"
                )
            raise InvalidOfferError(f"Offer {offer_id} is {offer.status.value}, not pending")
        return sell_request, offer

    @returns_result
    def award_offer(self, sell_request_id: UUID, offer_id: UUID, requester_id: UUID) -> AwardOutcome:
        """
        Award the sell request to one of its offers.

        Errors:
            NotFoundError: unknown sell request
            NotOwnerError: requester is not the seller
            RequestNotOpenError: sell request already CLOSED/CANCELLED, including
                losing a race against another award or a cancellation
            InvalidOfferError: offer unknown, on another sell request, or not PENDING
            PartialAwardError: a step after the claim failed; see rolled_back
        """

        with self._store.unit_of_work():
            sell_request, offer = self._check_preconditions(sell_request_id, offer_id, requester_id)

            now = self._clock()
            claimed = self._store.replace_sell_request_if(
                sell_request.awarded_to(offer.wholesaler_id, now),
                SellRequestStatus.OPEN,
                fields=CLOSE_FIELDS,
            )
            if claimed is None:
                raise RequestNotOpenError(
                    f"Sell request {sell_request_id} was closed by another request"
                )

            outcome = self._apply_award(claimed, offer, now)

        logger.info(
            "Sell request awarded",
            extra={
                "sell_request_id": str(sell_request_id),
                "offer_id": str(offer_id),
                "wholesaler_id": str(offer.wholesaler_id),
                "transaction_id": str(outcome.transaction.transaction_id),
                "losing_offers": len(outcome.losing_offers),
            },
        )
        publish_safely(
            self._publisher,
            [
                SellRequestClosed(
                    sell_request_id=sell_request_id,
                    seller_id=claimed.seller_id,
                    outcome=CloseOutcome.AWARDED,
                    occurred_at=now,
                    selected_wholesaler_id=offer.wholesaler_id,
                    affected_offer_ids=tuple(o.offer_id for o in outcome.losing_offers),
                ),
                TransactionCreated(
                    transaction_id=outcome.transaction.transaction_id,
                    sell_request_id=sell_request_id,
                    purchase_offer_id=offer_id,
                    wholesaler_id=offer.wholesaler_id,
                    seller_id=claimed.seller_id,
                    occurred_at=now,
                ),
            ],
        )
        return outcome

    def _apply_award(self, claimed: SellRequest, offer: Offer, now: datetime) -> AwardOutcome:
        """Steps 3-5. The sell request is already claimed by the caller."""

        store = self._store
        sell_request_id = claimed.sell_request_id
        completed: List[_Compensation] = [
            (
                "claim sell request",
                lambda: store.replace_sell_request_if(
                    claimed.reverted_to_open(self._clock()),
                    SellRequestStatus.CLOSED,
                    fields=CLOSE_FIELDS,
                ) is not None,
            )
        ]

        step = "mark winning offer"
        try:
            winner = store.replace_offer_if(
                offer.won(now), OfferStatus.PENDING, fields=RESOLUTION_FIELDS
            )
            if winner is None:
                raise _ConditionMissed(f"offer {offer.offer_id} stopped being pending")
            completed.append(
                (
                    step,
                    lambda: store.replace_offer_if(
                        winner.reverted_to_pending(self._clock()),
                        OfferStatus.WON,
                        fields=RESOLUTION_FIELDS,
                    ) is not None,
                )
            )

            step = "mark losing offers"
            losers: List[Offer] = []
            for other in store.list_offers(sell_request_id):
                if other.offer_id == offer.offer_id or not other.is_pending:
                    continue
                lost = store.replace_offer_if(
                    other.lost(now), OfferStatus.PENDING, fields=RESOLUTION_FIELDS
                )
                if lost is None:
                    # Withdrawn concurrently; it is out of the auction either way.
                    continue
                losers.append(lost)
                completed.append(
                    (
                        f"mark offer {lost.offer_id} lost",
                        lambda lost=lost: store.replace_offer_if(
                            lost.reverted_to_pending(self._clock()),
                            OfferStatus.LOST,
                            fields=RESOLUTION_FIELDS,
                        ) is not None,
                    )
                )

            step = "create transaction"
            transaction = store.insert_transaction(
                Transaction(
                    transaction_id=uuid4(),
                    sell_request_id=sell_request_id,
                    purchase_offer_id=winner.offer_id,
                    wholesaler_id=winner.wholesaler_id,
                    seller_id=claimed.seller_id,
                    status=TransactionStatus.IN_PROGRESS,
                    created_at=now,
                )
            )
        except Exception as e:
            logger.warning(
                f"Award failed at step '{step}', compensating",
                extra={
                    "sell_request_id": str(sell_request_id),
                    "failed_step": step,
                    "error": str(e),
                    "atomic_store": store.atomic,
                },
            )
            rolled_back = self._compensate(sell_request_id, completed)
            raise PartialAwardError(sell_request_id, step, rolled_back=rolled_back, cause=e) from e

        return AwardOutcome(
            sell_request=claimed,
            winning_offer=winner,
            losing_offers=losers,
            transaction=transaction,
        )

    def _compensate(self, sell_request_id: UUID, completed: List[_Compensation]) -> bool:
        """Undo completed steps newest first. Returns True if every undo was applied."""

        rolled_back = True
        for step, undo in reversed(completed):
            try:
                applied = undo()
            except Exception:
                logger.exception(
                    f"Compensation for '{step}' raised",
                    extra={"sell_request_id": str(sell_request_id), "step": step},
                )
                applied = False
            if not applied:
                rolled_back = False
                logger.error(
                    f"Compensation for '{step}' was not applied; sell request needs repair",
                    extra={"sell_request_id": str(sell_request_id), "step": step},
                )
        return rolled_back


__all__ = [
    "AwardOutcome",
    "AwardCoordinator",
]
