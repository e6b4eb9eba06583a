"""
Supabase client initialization.

This module contains *only* the database connection setup. The client is
created on first use so that the in-memory backend never needs credentials.

Environment variables required (Supabase backend only):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import os
from typing import Optional

from supabase import Client, create_client  # type: ignore[import-not-found]

_client: Optional[Client] = None


def get_supabase(url: str | None = None, key: str | None = None) -> Client:
    """Return the process-wide Supabase client, creating it on first call."""

    global _client
    if _client is not None:
        return _client

    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_KEY")

    if not url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    _client = create_client(url, key)
    return _client


__all__ = ["get_supabase"]
