"""
Supabase-backed auction store (persistence).

Implements AuctionStore on top of PostgREST via supabase-py. It contains no
business rules; it only provides the persistence guarantees the engine needs:

- Conditional writes: updates carry an extra `status = expected` filter, and
  an empty result set means the condition no longer held. With fields, the
  UPDATE sets only those columns, so writers of other columns are not undone.
- Uniqueness: a pending-offer duplicate is detected up front for a clean error
  and, if two inserts race, by the partial unique index (Postgres code 23505).

PostgREST calls are independent HTTP requests, so this store is not atomic
across rows (atomic = False); the award coordinator compensates instead.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence
from uuid import UUID

from postgrest.exceptions import APIError

from domain.errors import DuplicateOfferError
from domain.offer import Offer, OfferStatus
from domain.sell_request import SellRequest, SellRequestStatus
from domain.transaction import Transaction, TransactionStatus
from repositories.rows import (
    OFFER_COLUMNS,
    SELL_REQUEST_COLUMNS,
    offer_to_row,
    row_to_offer,
    row_to_sell_request,
    row_to_transaction,
    sell_request_to_row,
    transaction_to_row,
    update_payload,
)

logger = logging.getLogger(__name__)

# Supabase table names.
# Keep these aligned with sql/schema.sql.
_SELL_REQUESTS_TABLE: str = "sell_requests"
_OFFERS_TABLE: str = "purchase_offers"
_TRANSACTIONS_TABLE: str = "transactions"

_UNIQUE_VIOLATION = "23505"


def _execute(query: Any, action: str) -> Any:
    """
    Run a PostgREST query and raise RuntimeError on any storage failure.

    supabase-py raises APIError for failed requests; some builders instead
    return a response carrying an `error` attribute. Both are handled.
    """

    try:
        response = query.execute()
    except APIError as e:
        code = str(getattr(e, "code", ""))
        if code == _UNIQUE_VIOLATION:
            logger.info(
                f"Unique violation on {action}",
                extra={"action": action, "code": code},
            )
            raise
        logger.error(
            f"Supabase request failed: {action}",
            extra={"action": action, "code": code, "error": str(e)},
        )
        raise RuntimeError(f"Failed to {action}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        logger.error(
            f"Supabase request failed: {action}",
            extra={"action": action, "error": str(error)},
        )
        raise RuntimeError(f"Failed to {action}: {error}")
    return response


def _rows(response: Any) -> List[dict[str, Any]]:
    return getattr(response, "data", None) or []


class SupabaseAuctionStore:
    atomic = False

    def __init__(self, client: Any = None) -> None:
        if client is None:
            from repositories.client import get_supabase

            client = get_supabase()
        self._client = client

    def _table(self, name: str) -> Any:
        return self._client.table(name)

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        # PostgREST has no multi-request transactions; callers compensate.
        yield

    # ------------------------------------------------------------------
    # Sell requests
    # ------------------------------------------------------------------

    def insert_sell_request(self, sell_request: SellRequest) -> SellRequest:
        response = _execute(
            self._table(_SELL_REQUESTS_TABLE).insert(sell_request_to_row(sell_request)),
            "create sell request",
        )
        rows = _rows(response)
        return row_to_sell_request(rows[0]) if rows else sell_request

    def get_sell_request(self, sell_request_id: UUID) -> Optional[SellRequest]:
        response = _execute(
            self._table(_SELL_REQUESTS_TABLE).select("*").eq("id", str(sell_request_id)).limit(1),
            "get sell request",
        )
        rows = _rows(response)
        return row_to_sell_request(rows[0]) if rows else None

    def list_sell_requests(
        self,
        seller_id: Optional[UUID] = None,
        status: Optional[SellRequestStatus] = None,
    ) -> List[SellRequest]:
        query = self._table(_SELL_REQUESTS_TABLE).select("*")
        if seller_id is not None:
            query = query.eq("seller_id", str(seller_id))
        if status is not None:
            query = query.eq("status", status.value)
        response = _execute(query.order("created_at", desc=True), "list sell requests")
        return [row_to_sell_request(row) for row in _rows(response)]

    def count_sell_requests(self, status: Optional[SellRequestStatus] = None) -> int:
        query = self._table(_SELL_REQUESTS_TABLE).select("id", count="exact")
        if status is not None:
            query = query.eq("status", status.value)
        response = _execute(query, "count sell requests")
        return int(getattr(response, "count", None) or 0)

    def list_sell_requests_by_ids(self, sell_request_ids: Sequence[UUID]) -> List[SellRequest]:
        ids = list(dict.fromkeys(str(i) for i in sell_request_ids))
        if not ids:
            return []
        response = _execute(
            self._table(_SELL_REQUESTS_TABLE).select("*").in_("id", ids),
            "list sell requests by id",
        )
        return [row_to_sell_request(row) for row in _rows(response)]

    def replace_sell_request_if(
        self,
        updated: SellRequest,
        expected_status: SellRequestStatus,
        *,
        fields: Optional[Sequence[str]] = None,
    ) -> Optional[SellRequest]:
        response = _execute(
            self._table(_SELL_REQUESTS_TABLE)
            .update(update_payload(sell_request_to_row(updated), fields, SELL_REQUEST_COLUMNS))
            .eq("id", str(updated.sell_request_id))
            .eq("status", expected_status.value),
            "update sell request",
        )
        rows = _rows(response)
        return row_to_sell_request(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    def insert_offer(self, offer: Offer) -> Offer:
        if offer.is_pending:
            existing = _execute(
                self._table(_OFFERS_TABLE)
                .select("id")
                .eq("sell_request_id", str(offer.sell_request_id))
                .eq("wholesaler_id", str(offer.wholesaler_id))
                .eq("status", OfferStatus.PENDING.value)
                .limit(1),
                "check offer uniqueness",
            )
            if _rows(existing):
                raise DuplicateOfferError(
                    f"Wholesaler {offer.wholesaler_id} already has a pending offer "
                    f"on sell request {offer.sell_request_id}"
                )

        try:
            response = _execute(self._table(_OFFERS_TABLE).insert(offer_to_row(offer)), "create offer")
        except APIError:
            # Only unique violations reach here; the partial index caught a racing insert.
            raise DuplicateOfferError(
                f"Wholesaler {offer.wholesaler_id} already has a pending offer "
                f"on sell request {offer.sell_request_id}"
            ) from None
        rows = _rows(response)
        return row_to_offer(rows[0]) if rows else offer

    def get_offer(self, offer_id: UUID) -> Optional[Offer]:
        response = _execute(
            self._table(_OFFERS_TABLE).select("*").eq("id", str(offer_id)).limit(1),
            "get offer",
        )
        rows = _rows(response)
        return row_to_offer(rows[0]) if rows else None

    def list_offers(self, sell_request_id: UUID, include_withdrawn: bool = False) -> List[Offer]:
        query = self._table(_OFFERS_TABLE).select("*").eq("sell_request_id", str(sell_request_id))
        if not include_withdrawn:
            query = query.neq("status", OfferStatus.WITHDRAWN.value)
        response = _execute(query.order("created_at"), "list offers")
        return [row_to_offer(row) for row in _rows(response)]

    def list_offers_by_wholesaler(self, wholesaler_id: UUID, selected_only: bool = False) -> List[Offer]:
        query = self._table(_OFFERS_TABLE).select("*").eq("wholesaler_id", str(wholesaler_id))
        if selected_only:
            query = query.eq("is_selected", True)
        response = _execute(query.order("created_at", desc=True), "list wholesaler offers")
        return [row_to_offer(row) for row in _rows(response)]

    def count_offers(self, sell_request_id: UUID) -> int:
        response = _execute(
            self._table(_OFFERS_TABLE)
            .select("id", count="exact")
            .eq("sell_request_id", str(sell_request_id))
            .neq("status", OfferStatus.WITHDRAWN.value),
            "count offers",
        )
        return int(getattr(response, "count", None) or 0)

    def replace_offer_if(
        self,
        updated: Offer,
        expected_status: OfferStatus,
        *,
        fields: Optional[Sequence[str]] = None,
    ) -> Optional[Offer]:
        response = _execute(
            self._table(_OFFERS_TABLE)
            .update(update_payload(offer_to_row(updated), fields, OFFER_COLUMNS))
            .eq("id", str(updated.offer_id))
            .eq("status", expected_status.value),
            "update offer",
        )
        rows = _rows(response)
        return row_to_offer(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def insert_transaction(self, transaction: Transaction) -> Transaction:
        try:
            response = _execute(
                self._table(_TRANSACTIONS_TABLE).insert(transaction_to_row(transaction)),
                "create transaction",
            )
        except APIError as e:
            raise RuntimeError(
                f"Transaction already exists for sell request {transaction.sell_request_id}"
            ) from e
        rows = _rows(response)
        return row_to_transaction(rows[0]) if rows else transaction

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        response = _execute(
            self._table(_TRANSACTIONS_TABLE).select("*").eq("id", str(transaction_id)).limit(1),
            "get transaction",
        )
        rows = _rows(response)
        return row_to_transaction(rows[0]) if rows else None

    def get_transaction_by_offer(self, offer_id: UUID) -> Optional[Transaction]:
        response = _execute(
            self._table(_TRANSACTIONS_TABLE).select("*").eq("purchase_offer_id", str(offer_id)).limit(1),
            "get transaction by offer",
        )
        rows = _rows(response)
        return row_to_transaction(rows[0]) if rows else None

    def list_transactions(
        self,
        wholesaler_id: Optional[UUID] = None,
        seller_id: Optional[UUID] = None,
        status: Optional[TransactionStatus] = None,
    ) -> List[Transaction]:
        query = self._table(_TRANSACTIONS_TABLE).select("*")
        if wholesaler_id is not None:
            query = query.eq("wholesaler_id", str(wholesaler_id))
        if seller_id is not None:
            query = query.eq("seller_id", str(seller_id))
        if status is not None:
            query = query.eq("status", status.value)
        response = _execute(query.order("created_at", desc=True), "list transactions")
        return [row_to_transaction(row) for row in _rows(response)]

    def replace_transaction_if(
        self, updated: Transaction, expected_status: TransactionStatus
    ) -> Optional[Transaction]:
        response = _execute(
            self._table(_TRANSACTIONS_TABLE)
            .update(update_payload(transaction_to_row(updated)))
            .eq("id", str(updated.transaction_id))
            .eq("status", expected_status.value),
            "update transaction",
        )
        rows = _rows(response)
        return row_to_transaction(rows[0]) if rows else None


__all__ = ["SupabaseAuctionStore"]
