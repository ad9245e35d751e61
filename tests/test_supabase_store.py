"""
Tests for `repositories/supabase_store.py` and `repositories/rows.py`.

No network: a fake client records the PostgREST builder chain and replays
canned responses, so these check the queries the store sends and how it
reads the results back.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import pytest
from postgrest.exceptions import APIError

from domain.errors import DuplicateOfferError
from domain.offer import PRICE_FIELDS, RESOLUTION_FIELDS, Offer, OfferStatus
from domain.sell_request import CLOSE_FIELDS, SellRequest, SellRequestCategory, SellRequestStatus
from repositories.rows import offer_to_row, row_to_offer, row_to_sell_request, sell_request_to_row
from repositories.supabase_store import SupabaseAuctionStore

CREATED = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)
REQUEST_ID = UUID("00000000-0000-0000-0000-000000000100")
OFFER_ID = UUID("00000000-0000-0000-0000-000000000200")
SELLER = UUID("00000000-0000-0000-0000-000000000001")
WHOLESALER = UUID("00000000-0000-0000-0000-000000000002")


class FakeQuery:
    def __init__(self, client: "FakeClient", table: str) -> None:
        self.client = client
        self.calls = [("table", table)]

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs) if kwargs else (name, args))
            return self

        return record

    def execute(self):
        self.client.executed.append(self.calls)
        outcome = self.client.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClient:
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.executed = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


def _response(data=None, count=None, error=None):
    return SimpleNamespace(data=data, count=count, error=error)


def _api_error(code: str) -> APIError:
    return APIError({"message": "request failed", "code": code, "hint": None, "details": None})


def _pending_offer() -> Offer:
    return Offer(
        offer_id=OFFER_ID,
        sell_request_id=REQUEST_ID,
        wholesaler_id=WHOLESALER,
        price=Decimal("450000"),
        status=OfferStatus.PENDING,
        created_at=CREATED,
    )


def _open_request() -> SellRequest:
    return SellRequest(
        sell_request_id=REQUEST_ID,
        seller_id=SELLER,
        category=SellRequestCategory.COMPUTER,
        status=SellRequestStatus.OPEN,
        created_at=CREATED,
        desired_price="500,000원",
        title="ThinkPad X1",
    )


def test_get_sell_request_queries_by_id() -> None:
    client = FakeClient(_response(data=[sell_request_to_row(_open_request())]))
    store = SupabaseAuctionStore(client)

    request = store.get_sell_request(REQUEST_ID)

    assert request == _open_request()
    calls = client.executed[0]
    assert calls[0] == ("table", "sell_requests")
    assert ("eq", ("id", str(REQUEST_ID))) in calls


def test_get_missing_sell_request_returns_none() -> None:
    store = SupabaseAuctionStore(FakeClient(_response(data=[])))

    assert store.get_sell_request(REQUEST_ID) is None


def test_conditional_update_filters_on_expected_status() -> None:
    closed = _open_request().closed_without_winner(CREATED)
    client = FakeClient(_response(data=[sell_request_to_row(closed)]))
    store = SupabaseAuctionStore(client)

    stored = store.replace_sell_request_if(closed, SellRequestStatus.OPEN)

    assert stored.status is SellRequestStatus.CLOSED
    calls = client.executed[0]
    assert ("eq", ("status", "open")) in calls
    update_payload = next(c[1][0] for c in calls if c[0] == "update")
    assert "id" not in update_payload
    assert "created_at" not in update_payload
    assert update_payload["status"] == "closed"


def test_conditional_update_miss_returns_none() -> None:
    store = SupabaseAuctionStore(FakeClient(_response(data=[])))

    assert store.replace_offer_if(_pending_offer().withdrawn(CREATED), OfferStatus.PENDING) is None


def test_resolution_update_sends_only_status_columns() -> None:
    lost = _pending_offer().lost(CREATED)
    client = FakeClient(_response(data=[offer_to_row(lost)]))
    store = SupabaseAuctionStore(client)

    store.replace_offer_if(lost, OfferStatus.PENDING, fields=RESOLUTION_FIELDS)

    calls = client.executed[0]
    update_payload = next(c[1][0] for c in calls if c[0] == "update")
    assert update_payload == {"status": "lost", "is_selected": False, "updated_at": CREATED.isoformat()}
    assert ("eq", ("status", "pending")) in calls


def test_reprice_update_sends_only_price_columns() -> None:
    repriced = _pending_offer().repriced(Decimal("500000"), CREATED)
    client = FakeClient(_response(data=[offer_to_row(repriced)]))
    store = SupabaseAuctionStore(client)

    stored = store.replace_offer_if(repriced, OfferStatus.PENDING, fields=PRICE_FIELDS)

    assert stored.price == Decimal("500000")
    update_payload = next(c[1][0] for c in client.executed[0] if c[0] == "update")
    assert set(update_payload) == {"offer_price", "updated_at"}
    assert update_payload["offer_price"] == "500000"


def test_close_update_leaves_desired_price_alone() -> None:
    awarded = _open_request().awarded_to(WHOLESALER, CREATED)
    client = FakeClient(_response(data=[sell_request_to_row(awarded)]))
    store = SupabaseAuctionStore(client)

    store.replace_sell_request_if(awarded, SellRequestStatus.OPEN, fields=CLOSE_FIELDS)

    update_payload = next(c[1][0] for c in client.executed[0] if c[0] == "update")
    assert set(update_payload) == {"status", "selected_wholesaler_id", "closed_at", "updated_at"}
    assert update_payload["selected_wholesaler_id"] == str(WHOLESALER)


def test_list_sell_requests_by_ids_uses_in_filter() -> None:
    client = FakeClient(_response(data=[sell_request_to_row(_open_request())]))
    store = SupabaseAuctionStore(client)

    requests = store.list_sell_requests_by_ids([REQUEST_ID, REQUEST_ID])

    assert [r.sell_request_id for r in requests] == [REQUEST_ID]
    assert ("in_", ("id", [str(REQUEST_ID)])) in client.executed[0]


def test_list_sell_requests_by_ids_skips_empty_lookup() -> None:
    client = FakeClient()

    assert SupabaseAuctionStore(client).list_sell_requests_by_ids([]) == []
    assert client.executed == []


def test_insert_offer_rejects_existing_pending_offer() -> None:
    client = FakeClient(_response(data=[{"id": "other"}]))
    store = SupabaseAuctionStore(client)

    with pytest.raises(DuplicateOfferError):
        store.insert_offer(_pending_offer())
    assert len(client.executed) == 1


def test_insert_offer_maps_unique_violation_to_duplicate() -> None:
    store = SupabaseAuctionStore(FakeClient(_response(data=[]), _api_error("23505")))

    with pytest.raises(DuplicateOfferError):
        store.insert_offer(_pending_offer())


def test_other_api_errors_become_runtime_errors(caplog) -> None:
    store = SupabaseAuctionStore(FakeClient(_api_error("08006")))

    with caplog.at_level(logging.ERROR, logger="repositories.supabase_store"):
        with pytest.raises(RuntimeError):
            store.get_offer(OFFER_ID)

    (record,) = caplog.records
    assert record.action == "get offer"
    assert record.code == "08006"


def test_response_error_becomes_runtime_error(caplog) -> None:
    store = SupabaseAuctionStore(FakeClient(_response(error="permission denied")))

    with caplog.at_level(logging.ERROR, logger="repositories.supabase_store"):
        with pytest.raises(RuntimeError, match="permission denied"):
            store.list_sell_requests()

    assert "Supabase request failed: list sell requests" in caplog.text


def test_list_offers_excludes_withdrawn_in_submission_order() -> None:
    client = FakeClient(_response(data=[offer_to_row(_pending_offer())]))
    store = SupabaseAuctionStore(client)

    offers = store.list_offers(REQUEST_ID)

    assert [o.offer_id for o in offers] == [OFFER_ID]
    calls = client.executed[0]
    assert calls[0] == ("table", "purchase_offers")
    assert ("neq", ("status", "withdrawn")) in calls
    assert ("order", ("created_at",)) in calls


def test_count_offers_uses_exact_count() -> None:
    store = SupabaseAuctionStore(FakeClient(_response(data=[], count=3)))

    assert store.count_offers(REQUEST_ID) == 3


def test_rows_accept_supabase_timestamp_formats() -> None:
    row = offer_to_row(_pending_offer())
    row["created_at"] = "2025-03-01T09:00:00Z"
    row["offer_price"] = 450000

    offer = row_to_offer(row)

    assert offer.created_at == CREATED
    assert offer.price == Decimal("450000")

    request_row = sell_request_to_row(_open_request())
    request_row["created_at"] = "2025-03-01T09:00:00"
    request_row["category"] = None
    request = row_to_sell_request(request_row)

    assert request.created_at == CREATED
    assert request.category is SellRequestCategory.COMPUTER
