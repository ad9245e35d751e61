"""
Auction store contract (persistence).

The engine talks to storage only through this protocol. Implementations
provide plain persistence plus two guarantees the engine relies on:

- Conditional writes: every replace_*_if call writes only if the stored row's
  status still equals expected_status, and reports a miss by returning None.
  There are no blind updates. When fields is given, only those fields of the
  updated snapshot are written and the rest of the stored row is kept; the
  call returns the row as stored after the write.
- Uniqueness at write time: insert_offer rejects a second PENDING offer for
  the same (sell_request_id, wholesaler_id) with DuplicateOfferError.

unit_of_work() groups several calls. Stores with atomic = True run the block
in isolation from every other store call; stores with atomic = False give no
isolation, and callers must compensate on failure.
"""

from __future__ import annotations

from typing import ContextManager, List, Optional, Protocol, Sequence
from uuid import UUID

from domain.offer import Offer, OfferStatus
from domain.sell_request import SellRequest, SellRequestStatus
from domain.transaction import Transaction, TransactionStatus


class AuctionStore(Protocol):
    atomic: bool

    def unit_of_work(self) -> ContextManager[None]: ...

    # Sell requests

    def insert_sell_request(self, sell_request: SellRequest) -> SellRequest: ...

    def get_sell_request(self, sell_request_id: UUID) -> Optional[SellRequest]: ...

    def list_sell_requests(
        self,
        seller_id: Optional[UUID] = None,
        status: Optional[SellRequestStatus] = None,
    ) -> List[SellRequest]: ...

    def count_sell_requests(self, status: Optional[SellRequestStatus] = None) -> int: ...

    def list_sell_requests_by_ids(self, sell_request_ids: Sequence[UUID]) -> List[SellRequest]: ...

    def replace_sell_request_if(
        self,
        updated: SellRequest,
        expected_status: SellRequestStatus,
        *,
        fields: Optional[Sequence[str]] = None,
    ) -> Optional[SellRequest]: ...

    # Offers

    def insert_offer(self, offer: Offer) -> Offer: ...

    def get_offer(self, offer_id: UUID) -> Optional[Offer]: ...

    def list_offers(self, sell_request_id: UUID, include_withdrawn: bool = False) -> List[Offer]: ...

    def list_offers_by_wholesaler(self, wholesaler_id: UUID, selected_only: bool = False) -> List[Offer]: ...

    def count_offers(self, sell_request_id: UUID) -> int: ...

    def replace_offer_if(
        self,
        updated: Offer,
        expected_status: OfferStatus,
        *,
        fields: Optional[Sequence[str]] = None,
    ) -> Optional[Offer]: ...

    # Transactions

    def insert_transaction(self, transaction: Transaction) -> Transaction: ...

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]: ...

    def get_transaction_by_offer(self, offer_id: UUID) -> Optional[Transaction]: ...

    def list_transactions(
        self,
        wholesaler_id: Optional[UUID] = None,
        seller_id: Optional[UUID] = None,
        status: Optional[TransactionStatus] = None,
    ) -> List[Transaction]: ...

    def replace_transaction_if(
        self, updated: Transaction, expected_status: TransactionStatus
    ) -> Optional[Transaction]: ...


__all__ = ["AuctionStore"]
