"""
In-memory auction store.

Dict-backed implementation of AuctionStore guarded by a single re-entrant
lock. Every call takes the lock, and unit_of_work() holds it for the whole
block, so a unit of work is atomic with respect to all other callers.

A conditional write with fields copies only those fields onto the stored
row, matching the column-scoped updates of the Supabase store.

Used by the test suite, the demo script and the API when no Supabase
backend is configured. State is lost when the process exits.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from threading import RLock
from typing import Dict, Iterator, List, Optional, Sequence, TypeVar
from uuid import UUID

from domain.errors import DuplicateOfferError
from domain.offer import Offer, OfferStatus
from domain.sell_request import SellRequest, SellRequestStatus
from domain.transaction import Transaction, TransactionStatus

_T = TypeVar("_T")


def _merge(current: _T, updated: _T, fields: Optional[Sequence[str]]) -> _T:
    if fields is None:
        return updated
    return replace(current, **{name: getattr(updated, name) for name in fields})


class InMemoryAuctionStore:
    atomic = True

    def __init__(self) -> None:
        self._lock = RLock()
        self._sell_requests: Dict[UUID, SellRequest] = {}
        self._offers: Dict[UUID, Offer] = {}
        self._transactions: Dict[UUID, Transaction] = {}

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        with self._lock:
            yield

    # ------------------------------------------------------------------
    # Sell requests
    # ------------------------------------------------------------------

    def insert_sell_request(self, sell_request: SellRequest) -> SellRequest:
        with self._lock:
            if sell_request.sell_request_id in self._sell_requests:
                raise ValueError(f"Sell request already exists: {sell_request.sell_request_id}")
            self._sell_requests[sell_request.sell_request_id] = sell_request
            return sell_request

    def get_sell_request(self, sell_request_id: UUID) -> Optional[SellRequest]:
        with self._lock:
            return self._sell_requests.get(sell_request_id)

    def list_sell_requests(
        self,
        seller_id: Optional[UUID] = None,
        status: Optional[SellRequestStatus] = None,
    ) -> List[SellRequest]:
        with self._lock:
            rows = [
                r for r in self._sell_requests.values()
                if (seller_id is None or r.seller_id == seller_id)
                and (status is None or r.status is status)
            ]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def count_sell_requests(self, status: Optional[SellRequestStatus] = None) -> int:
        return len(self.list_sell_requests(status=status))

    def list_sell_requests_by_ids(self, sell_request_ids: Sequence[UUID]) -> List[SellRequest]:
        with self._lock:
            return [
                self._sell_requests[i]
                for i in dict.fromkeys(sell_request_ids)
                if i in self._sell_requests
            ]

    def replace_sell_request_if(
        self,
        updated: SellRequest,
        expected_status: SellRequestStatus,
        *,
        fields: Optional[Sequence[str]] = None,
    ) -> Optional[SellRequest]:
        with self._lock:
            current = self._sell_requests.get(updated.sell_request_id)
            if current is None or current.status is not expected_status:
                return None
            stored = _merge(current, updated, fields)
            self._sell_requests[updated.sell_request_id] = stored
            return stored

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    def insert_offer(self, offer: Offer) -> Offer:
        with self._lock:
            if offer.offer_id in self._offers:
                raise ValueError(f"Offer already exists: {offer.offer_id}")
            if offer.is_pending and any(
                o.is_pending
                and o.sell_request_id == offer.sell_request_id
                and o.wholesaler_id == offer.wholesaler_id
                for o in self._offers.values()
            ):
                raise DuplicateOfferError(
                    f"Wholesaler {offer.wholesaler_id} already has a pending offer "
                    f"on sell request {offer.sell_request_id}"
                )
            self._offers[offer.offer_id] = offer
            return offer

    def get_offer(self, offer_id: UUID) -> Optional[Offer]:
        with self._lock:
            return self._offers.get(offer_id)

    def list_offers(self, sell_request_id: UUID, include_withdrawn: bool = False) -> List[Offer]:
        with self._lock:
            rows = [
                o for o in self._offers.values()
                if o.sell_request_id == sell_request_id
                and (include_withdrawn or o.status is not OfferStatus.WITHDRAWN)
            ]
        return sorted(rows, key=lambda o: o.created_at)

    def list_offers_by_wholesaler(self, wholesaler_id: UUID, selected_only: bool = False) -> List[Offer]:
        with self._lock:
            rows = [
                o for o in self._offers.values()
                if o.wholesaler_id == wholesaler_id and (not selected_only or o.is_selected)
            ]
        return sorted(rows, key=lambda o: o.created_at, reverse=True)

    def count_offers(self, sell_request_id: UUID) -> int:
        return len(self.list_offers(sell_request_id))

    def replace_offer_if(
        self,
        updated: Offer,
        expected_status: OfferStatus,
        *,
        fields: Optional[Sequence[str]] = None,
    ) -> Optional[Offer]:
        with self._lock:
            current = self._offers.get(updated.offer_id)
            if current is None or current.status is not expected_status:
                return None
            stored = _merge(current, updated, fields)
            self._offers[updated.offer_id] = stored
            return stored

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def insert_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock:
            for existing in self._transactions.values():
                if existing.sell_request_id == transaction.sell_request_id:
                    raise ValueError(
                        f"Transaction already exists for sell request {transaction.sell_request_id}"
                    )
                if existing.purchase_offer_id == transaction.purchase_offer_id:
                    raise ValueError(
                        f"Transaction already exists for offer {transaction.purchase_offer_id}"
                    )
            self._transactions[transaction.transaction_id] = transaction
            return transaction

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        with self._lock:
            return self._transactions.get(transaction_id)

    def get_transaction_by_offer(self, offer_id: UUID) -> Optional[Transaction]:
        with self._lock:
            for tx in self._transactions.values():
                if tx.purchase_offer_id == offer_id:
                    return tx
        return None

    def list_transactions(
        self,
        wholesaler_id: Optional[UUID] = None,
        seller_id: Optional[UUID] = None,
        status: Optional[TransactionStatus] = None,
    ) -> List[Transaction]:
        with self._lock:
            rows = [
                t for t in self._transactions.values()
                if (wholesaler_id is None or t.wholesaler_id == wholesaler_id)
                and (seller_id is None or t.seller_id == seller_id)
                and (status is None or t.status is status)
            ]
        return sorted(rows, key=lambda t: t.created_at, reverse=True)

    def replace_transaction_if(
        self, updated: Transaction, expected_status: TransactionStatus
    ) -> Optional[Transaction]:
        with self._lock:
            current = self._transactions.get(updated.transaction_id)
            if current is None or current.status is not expected_status:
                return None
            self._transactions[updated.transaction_id] = updated
            return updated


__all__ = ["InMemoryAuctionStore"]
