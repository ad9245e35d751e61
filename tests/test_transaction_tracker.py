"""
Tests for `services/transaction_tracker.py`.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from domain.events import TransactionStatusChanged
from domain.sell_request import SellRequestCategory
from domain.transaction import TransactionStatus


@pytest.fixture
def awarded(engine, seller_id):
    request = engine.sell_requests.open(seller_id, SellRequestCategory.COMPUTER).unwrap()
    offer = engine.offers.submit_offer(request.sell_request_id, uuid4(), 450000).unwrap()
    return engine.awards.award_offer(request.sell_request_id, offer.offer_id, seller_id).unwrap()


def test_wholesaler_completes_transaction(engine, awarded, publisher) -> None:
    wholesaler = awarded.winning_offer.wholesaler_id

    done = engine.transactions.complete(awarded.transaction.transaction_id, wholesaler, "paid in cash").unwrap()

    assert done.status is TransactionStatus.COMPLETED
    assert done.completed_at is not None
    assert done.notes == "paid in cash"

    event = publisher.of_type(TransactionStatusChanged)[0]
    assert event.status is TransactionStatus.COMPLETED
    assert event.changed_by == wholesaler


def test_seller_cancels_transaction(engine, awarded, seller_id) -> None:
    cancelled = engine.transactions.cancel(awarded.transaction.transaction_id, seller_id).unwrap()

    assert cancelled.status is TransactionStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert cancelled.completed_at is None


def test_outsider_cannot_change_transaction(engine, awarded) -> None:
    result = engine.transactions.complete(awarded.transaction.transaction_id, uuid4())

    assert result.error_code == "NOT_OWNER"
    assert engine.transactions.get(awarded.transaction.transaction_id).value.status is TransactionStatus.IN_PROGRESS


@pytest.mark.parametrize("first", ["complete", "cancel"])
@pytest.mark.parametrize("second", ["complete", "cancel"])
def test_terminal_transaction_rejects_changes(engine, awarded, seller_id, first, second) -> None:
    transaction_id = awarded.transaction.transaction_id
    getattr(engine.transactions, first)(transaction_id, seller_id).unwrap()

    result = getattr(engine.transactions, second)(transaction_id, seller_id)

    assert result.error_code == "INVALID_TRANSITION"


def test_unknown_transaction(engine) -> None:
    assert engine.transactions.complete(uuid4(), uuid4()).error_code == "NOT_FOUND"
    assert engine.transactions.get(uuid4()).error_code == "NOT_FOUND"


def test_lookup_by_offer(engine, awarded) -> None:
    found = engine.transactions.get_by_offer(awarded.winning_offer.offer_id).unwrap()

    assert found.transaction_id == awarded.transaction.transaction_id
    assert engine.transactions.get_by_offer(uuid4()).unwrap() is None


def test_listing_by_party_and_status(engine, awarded, seller_id) -> None:
    wholesaler = awarded.winning_offer.wholesaler_id

    assert len(engine.transactions.list_for_wholesaler(wholesaler).unwrap()) == 1
    assert len(engine.transactions.list_for_seller(seller_id).unwrap()) == 1
    assert engine.transactions.list_for_seller(uuid4()).unwrap() == []

    engine.transactions.complete(awarded.transaction.transaction_id, wholesaler).unwrap()

    assert engine.transactions.list_for_wholesaler(wholesaler, TransactionStatus.IN_PROGRESS).unwrap() == []
    completed = engine.transactions.list_for_seller(seller_id, TransactionStatus.COMPLETED).unwrap()
    assert [t.transaction_id for t in completed] == [awarded.transaction.transaction_id]
