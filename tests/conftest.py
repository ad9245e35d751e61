"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and provides an engine over a fresh
in-memory store for every test.
"""

import sys
from pathlib import Path
from uuid import UUID, uuid4

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.sell_request import SellRequestCategory  # noqa: E402
from repositories.memory_store import InMemoryAuctionStore  # noqa: E402
from services.engine import AuctionEngine  # noqa: E402
from services.notifications import RecordingEventPublisher  # noqa: E402


@pytest.fixture
def store() -> InMemoryAuctionStore:
    return InMemoryAuctionStore()


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def engine(store: InMemoryAuctionStore, publisher: RecordingEventPublisher) -> AuctionEngine:
    return AuctionEngine.create(store=store, publisher=publisher)


@pytest.fixture
def seller_id() -> UUID:
    return uuid4()


@pytest.fixture
def open_request(engine: AuctionEngine, seller_id: UUID):
    """An OPEN computer sell request owned by seller_id."""

    return engine.sell_requests.open(seller_id, SellRequestCategory.COMPUTER, "500,000원").unwrap()
