"""
In-memory ledger store.

Default backend for local runs, scripts and tests. A single lock serializes
version checks and writes, so `commit` is atomic across the sale and buyer
units it touches.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional, Tuple

from domain.buyer import Buyer
from domain.sale import Sale
from repositories.store import StaleWriteError, Versioned


class InMemoryLedgerStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sales: Dict[bytes, Versioned[Sale]] = {}
        self._buyers: Dict[Tuple[bytes, bytes], Versioned[Buyer]] = {}

    def get_sale(self, sale_id: bytes) -> Versioned[Sale]:
        with self._lock:
            stored = self._sales.get(sale_id)
        return stored if stored is not None else Versioned(Sale.empty(sale_id), 0)

    def get_buyer(self, sale_id: bytes, owner: bytes) -> Versioned[Buyer]:
        with self._lock:
            stored = self._buyers.get((sale_id, owner))
        return stored if stored is not None else Versioned(Buyer.empty(sale_id, owner), 0)

    def commit(
        self,
        *,
        sale: Optional[Versioned[Sale]] = None,
        buyer: Optional[Versioned[Buyer]] = None,
    ) -> None:
        with self._lock:
            if sale is not None:
                current = self._sales.get(sale.value.id)
                if (current.version if current else 0) != sale.version:
                    raise StaleWriteError(f"sale {sale.value.id.hex()} changed since read")
            if buyer is not None:
                key = (buyer.value.sale_id, buyer.value.owner)
                current = self._buyers.get(key)
                if (current.version if current else 0) != buyer.version:
                    raise StaleWriteError(f"buyer {buyer.value.owner.hex()} changed since read")

            if sale is not None:
                self._sales[sale.value.id] = Versioned(sale.value, sale.version + 1)
            if buyer is not None:
                key = (buyer.value.sale_id, buyer.value.owner)
                self._buyers[key] = Versioned(buyer.value, buyer.version + 1)


__all__ = ["InMemoryLedgerStore"]
