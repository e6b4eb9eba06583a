"""
Ledger store contract (persistence).

A store holds one Sale per sale id and one Buyer per (sale id, owner). Reads
return `Versioned` snapshots; `commit` writes the given units atomically and
only if each expected version still matches what is stored. The domain
entities are immutable, so a snapshot can never be changed behind a caller's
back.

Rules:
- A missing unit reads as its empty (uninitialized) entity at version 0.
- `commit` bumps the version of every unit it writes by one.
- A version mismatch on any unit rejects the whole commit with StaleWriteError
  and writes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Optional, Protocol, TypeVar

from domain.buyer import Buyer
from domain.sale import Sale

if TYPE_CHECKING:
    from config.settings import ContributorSettings

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Versioned(Generic[T]):
    """
    A unit of ledger state and the version it was read at.

    Passed back to `commit` with the new value and the version it was derived
    from.
    """

    value: T
    version: int = 0

    def advance(self, value: T) -> "Versioned[T]":
        """The write that replaces this snapshot with `value`."""

        return Versioned(value=value, version=self.version)


class StaleWriteError(RuntimeError):
    """A commit lost the race: a unit changed since it was read."""


class LedgerStore(Protocol):
    def get_sale(self, sale_id: bytes) -> Versioned[Sale]:
        ...

    def get_buyer(self, sale_id: bytes, owner: bytes) -> Versioned[Buyer]:
        ...

    def commit(
        self,
        *,
        sale: Optional[Versioned[Sale]] = None,
        buyer: Optional[Versioned[Buyer]] = None,
    ) -> None:
        ...


def open_store(settings: "ContributorSettings") -> LedgerStore:
    """Build the store selected by LEDGER_BACKEND."""

    if settings.ledger_backend == "supabase":
        from repositories.client import get_supabase
        from repositories.supabase_store import SupabaseLedgerStore

        return SupabaseLedgerStore(get_supabase(settings.supabase_url, settings.supabase_key))

    from repositories.memory_store import InMemoryLedgerStore

    return InMemoryLedgerStore()


__all__ = ["LedgerStore", "StaleWriteError", "Versioned", "open_store"]
