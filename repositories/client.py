"""
Supabase client for the auction store.

Only SupabaseAuctionStore uses this. The client is built on first use and
shared for the life of the process, so running on the in-memory store (the
test suite, the demo script, a local API) never needs credentials.

Environment (read from the project-root .env when present):
- SUPABASE_URL: project URL, e.g. https://xyz.supabase.co
- SUPABASE_KEY: server-side API key for the marketplace tables
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from supabase import Client, create_client

_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


def _require_env(name: str, hint: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing environment variable: {name}. {hint}")
    return value


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Return the shared Supabase client.

    Raises:
        RuntimeError: SUPABASE_URL or SUPABASE_KEY is not set
    """

    load_dotenv(dotenv_path=_ENV_FILE)
    url = _require_env("SUPABASE_URL", "Set it to the marketplace's Supabase project URL.")
    key = _require_env("SUPABASE_KEY", "Set it to a server-side key with access to the auction tables.")
    return create_client(url, key)


__all__ = ["get_supabase"]
