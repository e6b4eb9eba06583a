"""
Supabase-backed ledger store.

Reads go straight to the sale and buyer tables. Writes go through a single
PostgreSQL function, `commit_ledger_writes()`, which in one transaction:
- Locks the sale row and/or buyer row (FOR UPDATE)
- Compares each stored version with the expected version (missing row = 0)
- Upserts the new values with version + 1
- Returns {"success": false, "error": "STALE_WRITE"} on any mismatch,
  writing nothing
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from postgrest.exceptions import APIError

from domain.buyer import Buyer
from domain.sale import Sale
from repositories.buyer_repository import buyer_to_row, fetch_buyer
from repositories.sale_repository import fetch_sale, sale_to_row
from repositories.store import StaleWriteError, Versioned

logger = logging.getLogger(__name__)

COMMIT_FUNCTION = "commit_ledger_writes"
STALE_WRITE = "STALE_WRITE"


class SupabaseLedgerStore:
    def __init__(self, client: Any) -> None:
        self._client = client

    def get_sale(self, sale_id: bytes) -> Versioned[Sale]:
        stored = fetch_sale(self._client, sale_id)
        return stored if stored is not None else Versioned(Sale.empty(sale_id), 0)

    def get_buyer(self, sale_id: bytes, owner: bytes) -> Versioned[Buyer]:
        stored = fetch_buyer(self._client, sale_id, owner)
        return stored if stored is not None else Versioned(Buyer.empty(sale_id, owner), 0)

    def commit(
        self,
        *,
        sale: Optional[Versioned[Sale]] = None,
        buyer: Optional[Versioned[Buyer]] = None,
    ) -> None:
        if sale is None and buyer is None:
            return

        params = {
            "p_sale": sale_to_row(sale.value) if sale is not None else None,
            "p_sale_version": sale.version if sale is not None else None,
            "p_buyer": buyer_to_row(buyer.value) if buyer is not None else None,
            "p_buyer_version": buyer.version if buyer is not None else None,
        }

        try:
            response = self._client.rpc(COMMIT_FUNCTION, params).execute()
        except APIError as e:
            # supabase-py raises APIError for JSON bodies returned by the function,
            # successful ones included
            result = e.json() if callable(getattr(e, "json", None)) else {}
            if not isinstance(result, Mapping) or "success" not in result:
                raise RuntimeError(f"Failed to commit ledger writes: {e}") from e
            self._check_result(result)
            return

        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to commit ledger writes: {error}")
        self._check_result(response.data or {})

    @staticmethod
    def _check_result(result: Mapping[str, Any]) -> None:
        if result.get("success"):
            return
        if result.get("error") == STALE_WRITE:
            logger.debug("Ledger commit rejected: %s", result.get("message"))
            raise StaleWriteError(result.get("message") or "ledger unit changed since read")
        raise RuntimeError(f"Failed to commit ledger writes: {result.get('error')}: {result.get('message')}")


__all__ = ["COMMIT_FUNCTION", "STALE_WRITE", "SupabaseLedgerStore"]
