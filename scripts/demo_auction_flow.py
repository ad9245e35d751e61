#!/usr/bin/env python3
"""
Walk through the reverse-auction flow end to end.

Demonstrates:
1. A seller opening a sell request
2. Two wholesalers bidding on it
3. The seller awarding one offer (the other loses)
4. A late offer being rejected
5. The winning wholesaler completing the transaction
6. Cancellation withdrawing pending offers

Runs against the store selected by AUCTION_STORE (in-memory by default).
Usage:
    python scripts/demo_auction_flow.py
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from uuid import uuid4

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.sell_request import SellRequestCategory
from services.engine import AuctionEngine, store_from_env
from services.notifications import RecordingEventPublisher


def print_section(title: str) -> None:
    """Print a section header."""
    print()
    print("=" * 80)
    print(title)
    print("=" * 80)


def run_demo(engine: AuctionEngine, publisher: RecordingEventPublisher) -> None:
    seller = uuid4()
    wholesaler_a = uuid4()
    wholesaler_b = uuid4()

    print_section("1. Seller opens a sell request")
    request = engine.sell_requests.open(
        seller,
        SellRequestCategory.COMPUTER,
        "500,000원",
        title="MacBook Pro 2020",
        description="M1, 8GB RAM, 256GB SSD",
    ).unwrap()
    print(f"   Sell request: {request.sell_request_id} ({request.status.value})")

    print_section("2. Wholesalers bid")
    offer_a = engine.offers.submit_offer(request.sell_request_id, wholesaler_a, 450000).unwrap()
    offer_b = engine.offers.submit_offer(request.sell_request_id, wholesaler_b, 480000).unwrap()
    for offer in engine.offers.list_offers(request.sell_request_id).unwrap():
        print(f"   Offer {offer.offer_id}: {offer.price} ({offer.status.value})")

    print_section("3. Seller awards wholesaler B")
    outcome = engine.awards.award_offer(request.sell_request_id, offer_b.offer_id, seller).unwrap()
    print(f"   Sell request status: {outcome.sell_request.status.value}")
    print(f"   Winner: {outcome.winning_offer.wholesaler_id} at {outcome.winning_offer.price}")
    print(f"   Losing offers: {[str(o.offer_id) for o in outcome.losing_offers]}")
    print(f"   Transaction: {outcome.transaction.transaction_id} ({outcome.transaction.status.value})")

    print_section("4. Late offer is rejected")
    late = engine.offers.submit_offer(request.sell_request_id, wholesaler_a, 500000)
    print(f"   success={late.success} error={late.error_code}")
    print(f"   Offer A is now: {engine.offers.get_offer(offer_a.offer_id).unwrap().status.value}")

    print_section("5. Wholesaler B completes the transaction")
    completed = engine.transactions.complete(outcome.transaction.transaction_id, wholesaler_b).unwrap()
    print(f"   Transaction status: {completed.status.value} at {completed.completed_at}")

    print_section("6. Cancelling a request withdraws its pending offers")
    second = engine.sell_requests.open(seller, SellRequestCategory.SMARTPHONE).unwrap()
    offer_c = engine.offers.submit_offer(second.sell_request_id, wholesaler_a, 300000).unwrap()
    engine.sell_requests.cancel(second.sell_request_id, seller).unwrap()
    print(f"   Offer C is now: {engine.offers.get_offer(offer_c.offer_id).unwrap().status.value}")
    retry = engine.awards.award_offer(second.sell_request_id, offer_c.offer_id, seller)
    print(f"   Award after cancel: success={retry.success} error={retry.error_code}")

    print_section("Events published")
    for event in publisher.events:
        print(f"   {type(event).__name__}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the reverse-auction demo flow")
    parser.add_argument("--verbose", action="store_true", help="Show engine log output")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    publisher = RecordingEventPublisher()
    engine = AuctionEngine.create(store=store_from_env(), publisher=publisher)
    run_demo(engine, publisher)


if __name__ == "__main__":
    main()
