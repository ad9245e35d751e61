"""
FastAPI dependencies.

The engine is built once per process from the environment. Authentication is
handled upstream; the caller's already-authenticated user id arrives in the
X-User-Id header and is used only for ownership checks.
"""

from __future__ import annotations

from functools import lru_cache
from uuid import UUID

from fastapi import Header

from services.engine import AuctionEngine, store_from_env


@lru_cache(maxsize=1)
def get_engine() -> AuctionEngine:
    return AuctionEngine.create(store=store_from_env())


def get_requester_id(
    x_user_id: UUID = Header(..., alias="X-User-Id", description="Authenticated user id"),
) -> UUID:
    return x_user_id
