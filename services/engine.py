"""
Auction engine wiring.

Bundles the four services over one store and one event publisher.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from repositories.memory_store import InMemoryAuctionStore
from repositories.store import AuctionStore
from services.award_coordinator import AwardCoordinator
from services.notifications import EventPublisher, LoggingEventPublisher
from services.offer_ledger import OfferLedger
from services.sell_request_service import SellRequestStateMachine
from services.transaction_tracker import TransactionTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuctionEngine:
    store: AuctionStore
    sell_requests: SellRequestStateMachine
    offers: OfferLedger
    awards: AwardCoordinator
    transactions: TransactionTracker

    @staticmethod
    def create(
        store: Optional[AuctionStore] = None,
        publisher: Optional[EventPublisher] = None,
    ) -> "AuctionEngine":
        store = store if store is not None else InMemoryAuctionStore()
        publisher = publisher or LoggingEventPublisher()
        return AuctionEngine(
            store=store,
            sell_requests=SellRequestStateMachine(store, publisher),
            offers=OfferLedger(store, publisher),
            awards=AwardCoordinator(store, publisher),
            transactions=TransactionTracker(store, publisher),
        )


def store_from_env() -> AuctionStore:
    """
    Select the store from AUCTION_STORE ("memory" or "supabase", default memory).

    Raises:
        RuntimeError: unknown backend, or Supabase credentials missing
    """

    backend = os.getenv("AUCTION_STORE", "memory").strip().lower()
    if backend == "memory":
        logger.warning("Using the in-memory auction store; data is lost on restart")
        return InMemoryAuctionStore()
    if backend == "supabase":
        from repositories.supabase_store import SupabaseAuctionStore

        return SupabaseAuctionStore()
    raise RuntimeError(f"Unknown AUCTION_STORE backend: {backend!r} (expected 'memory' or 'supabase')")


__all__ = [
    "AuctionEngine",
    "store_from_env",
]
