"""
Tests for `services/sell_request_service.py`.

Covers:
- Opening, cancelling and closing without a winner.
- Cancel withdraws every pending offer; a second cancel cascades nothing.
- Ownership and state errors, checked in that order.
- Seller and market listings.
- Closing writes leave a concurrently committed price or desired price alone.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from uuid import uuid4

import pytest

from domain.events import CloseOutcome, SellRequestClosed
from domain.offer import PRICE_FIELDS, OfferStatus
from domain.sell_request import SellRequestCategory, SellRequestStatus
from domain.time import utc_now
from repositories.memory_store import InMemoryAuctionStore
from services.engine import AuctionEngine


class InterleavingStore(InMemoryAuctionStore):
    """
    Non-atomic store that runs a hook once before the next conditional write,
    standing in for another request committing in between.
    """

    atomic = False

    def __init__(self) -> None:
        super().__init__()
        self.before_offer_write = None
        self.before_request_write = None

    @contextmanager
    def unit_of_work(self):
        yield

    def replace_offer_if(self, updated, expected_status, **kwargs):
        hook, self.before_offer_write = self.before_offer_write, None
        if hook is not None:
            hook()
        return super().replace_offer_if(updated, expected_status, **kwargs)

    def replace_sell_request_if(self, updated, expected_status, **kwargs):
        hook, self.before_request_write = self.before_request_write, None
        if hook is not None:
            hook()
        return super().replace_sell_request_if(updated, expected_status, **kwargs)


def test_open_creates_open_request(engine, seller_id) -> None:
    result = engine.sell_requests.open(
        seller_id,
        SellRequestCategory.SMARTPHONE,
        "300,000원",
        title="Galaxy S21",
        image_urls=["https://img.example/1.jpg"],
    )

    request = result.unwrap()
    assert request.status is SellRequestStatus.OPEN
    assert request.category is SellRequestCategory.SMARTPHONE
    assert request.selected_wholesaler_id is None
    assert request.closed_at is None
    assert request.image_urls == ("https://img.example/1.jpg",)
    assert engine.sell_requests.get(request.sell_request_id).value == request


def test_open_accepts_category_string(engine, seller_id) -> None:
    request = engine.sell_requests.open(seller_id, "computer").unwrap()

    assert request.category is SellRequestCategory.COMPUTER


def test_cancel_withdraws_all_pending_offers(engine, open_request, seller_id, publisher) -> None:
    offers = [
        engine.offers.submit_offer(open_request.sell_request_id, uuid4(), price).unwrap()
        for price in (100, 200, 300)
    ]

    cancelled = engine.sell_requests.cancel(open_request.sell_request_id, seller_id).unwrap()

    assert cancelled.status is SellRequestStatus.CANCELLED
    assert cancelled.closed_at is not None
    for offer in offers:
        assert engine.offers.get_offer(offer.offer_id).value.status is OfferStatus.WITHDRAWN

    events = publisher.of_type(SellRequestClosed)
    assert len(events) == 1
    assert events[0].outcome is CloseOutcome.CANCELLED
    assert set(events[0].affected_offer_ids) == {o.offer_id for o in offers}


def test_second_cancel_fails_and_cascades_nothing(engine, open_request, seller_id, publisher) -> None:
    engine.offers.submit_offer(open_request.sell_request_id, uuid4(), 100).unwrap()
    engine.sell_requests.cancel(open_request.sell_request_id, seller_id).unwrap()

    again = engine.sell_requests.cancel(open_request.sell_request_id, seller_id)

    assert again.success is False
    assert again.error_code == "INVALID_TRANSITION"
    assert len(publisher.of_type(SellRequestClosed)) == 1


def test_cancel_by_non_owner(engine, open_request) -> None:
    result = engine.sell_requests.cancel(open_request.sell_request_id, uuid4())

    assert result.error_code == "NOT_OWNER"
    assert engine.sell_requests.get(open_request.sell_request_id).value.is_open


def test_non_owner_reported_before_state(engine, open_request, seller_id) -> None:
    engine.sell_requests.cancel(open_request.sell_request_id, seller_id).unwrap()

    assert engine.sell_requests.cancel(open_request.sell_request_id, uuid4()).error_code == "NOT_OWNER"


def test_cancel_unknown_request(engine) -> None:
    assert engine.sell_requests.cancel(uuid4(), uuid4()).error_code == "NOT_FOUND"


def test_close_without_winner_marks_pending_offers_lost(engine, open_request, seller_id, publisher) -> None:
    wholesaler = uuid4()
    pending = engine.offers.submit_offer(open_request.sell_request_id, wholesaler, 100).unwrap()
    withdrawn_by = uuid4()
    withdrawn = engine.offers.submit_offer(open_request.sell_request_id, withdrawn_by, 50).unwrap()
    engine.offers.withdraw_offer(withdrawn.offer_id, withdrawn_by).unwrap()

    closed = engine.sell_requests.close_without_winner(open_request.sell_request_id, seller_id).unwrap()

    assert closed.status is SellRequestStatus.CLOSED
    assert closed.selected_wholesaler_id is None
    assert engine.offers.get_offer(pending.offer_id).value.status is OfferStatus.LOST
    assert engine.offers.get_offer(withdrawn.offer_id).value.status is OfferStatus.WITHDRAWN

    event = publisher.of_type(SellRequestClosed)[0]
    assert event.outcome is CloseOutcome.NO_WINNER
    assert event.affected_offer_ids == (pending.offer_id,)


@pytest.mark.parametrize("first", ["cancel", "close_without_winner"])
@pytest.mark.parametrize("second", ["cancel", "close_without_winner"])
def test_terminal_request_rejects_further_close(engine, open_request, seller_id, first, second) -> None:
    getattr(engine.sell_requests, first)(open_request.sell_request_id, seller_id).unwrap()

    result = getattr(engine.sell_requests, second)(open_request.sell_request_id, seller_id)

    assert result.error_code == "INVALID_TRANSITION"


def test_update_desired_price_only_while_open(engine, open_request, seller_id) -> None:
    updated = engine.sell_requests.update_desired_price(
        open_request.sell_request_id, seller_id, "450,000원"
    ).unwrap()
    assert updated.desired_price == "450,000원"

    engine.sell_requests.cancel(open_request.sell_request_id, seller_id).unwrap()
    result = engine.sell_requests.update_desired_price(open_request.sell_request_id, seller_id, "1")

    assert result.error_code == "INVALID_TRANSITION"


def test_listings(engine, seller_id) -> None:
    other_seller = uuid4()
    first = engine.sell_requests.open(seller_id, SellRequestCategory.COMPUTER).unwrap()
    second = engine.sell_requests.open(seller_id, SellRequestCategory.SMARTPHONE).unwrap()
    foreign = engine.sell_requests.open(other_seller, SellRequestCategory.COMPUTER).unwrap()
    engine.sell_requests.cancel(first.sell_request_id, seller_id).unwrap()

    mine = engine.sell_requests.list_by_seller(seller_id).unwrap()
    assert {r.sell_request_id for r in mine} == {first.sell_request_id, second.sell_request_id}

    mine_open = engine.sell_requests.list_by_seller(seller_id, SellRequestStatus.OPEN).unwrap()
    assert [r.sell_request_id for r in mine_open] == [second.sell_request_id]

    market = engine.sell_requests.list_open().unwrap()
    assert {r.sell_request_id for r in market} == {second.sell_request_id, foreign.sell_request_id}
    assert engine.sell_requests.count_open().value == 2


def test_get_unknown_request(engine) -> None:
    assert engine.sell_requests.get(uuid4()).error_code == "NOT_FOUND"


@pytest.mark.parametrize(
    "operation, resolved_status",
    [("cancel", OfferStatus.WITHDRAWN), ("close_without_winner", OfferStatus.LOST)],
)
def test_closing_keeps_price_from_inflight_reprice(seller_id, operation, resolved_status) -> None:
    store = InterleavingStore()
    engine = AuctionEngine.create(store=store)
    request = engine.sell_requests.open(seller_id, SellRequestCategory.COMPUTER).unwrap()
    offer = engine.offers.submit_offer(request.sell_request_id, uuid4(), 450000).unwrap()

    # The reprice passed its checks while the request was OPEN; its write lands
    # after the close has read the offers.
    store.before_offer_write = lambda: store.replace_offer_if(
        offer.repriced(Decimal("500000"), utc_now()), OfferStatus.PENDING, fields=PRICE_FIELDS
    )

    getattr(engine.sell_requests, operation)(request.sell_request_id, seller_id).unwrap()

    stored = store.get_offer(offer.offer_id)
    assert stored.status is resolved_status
    assert stored.price == Decimal("500000")


def test_cancel_keeps_desired_price_committed_first(seller_id) -> None:
    store = InterleavingStore()
    engine = AuctionEngine.create(store=store)
    request = engine.sell_requests.open(seller_id, SellRequestCategory.COMPUTER, "500,000원").unwrap()
    store.before_request_write = lambda: engine.sell_requests.update_desired_price(
        request.sell_request_id, seller_id, "450,000원"
    ).unwrap()

    cancelled = engine.sell_requests.cancel(request.sell_request_id, seller_id).unwrap()

    assert cancelled.status is SellRequestStatus.CANCELLED
    assert cancelled.desired_price == "450,000원"
    assert store.get_sell_request(request.sell_request_id).desired_price == "450,000원"
