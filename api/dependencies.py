"""
Request dependencies.

Settings, the ledger store and the clock are resolved here so that tests can
swap them through `app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Callable

from fastapi import Depends, HTTPException

from api.models import parse_hex
from config.settings import ContributorSettings, load_settings
from domain.time import utc_now_seconds
from repositories.store import LedgerStore, open_store


@lru_cache(maxsize=1)
def get_settings() -> ContributorSettings:
    return load_settings()


_stores: dict[str, LedgerStore] = {}


def get_store(settings: ContributorSettings = Depends(get_settings)) -> LedgerStore:
    """One store per backend for the lifetime of the process."""

    store = _stores.get(settings.ledger_backend)
    if store is None:
        store = _stores[settings.ledger_backend] = open_store(settings)
    return store


def get_clock() -> Callable[[], int]:
    return utc_now_seconds


def path_bytes32(name: str, value: str) -> bytes:
    """Decode a 32-byte hex path parameter or answer 422."""

    try:
        return parse_hex(value, 32)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid {name}: {e}") from e
