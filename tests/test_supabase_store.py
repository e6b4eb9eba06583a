"""
Tests for `repositories/supabase_store.py` and the row mappings in
`repositories/sale_repository.py` / `repositories/buyer_repository.py`.

Runs against an in-process fake of the supabase client: table reads with
`eq` filters and the `commit_ledger_writes` function with version checks.

Covers contract rules:
- Sale and Buyer rows round trip, u64 amounts included.
- Commits go through one RPC carrying expected versions.
- STALE_WRITE results raise StaleWriteError; other failures raise RuntimeError.
- JSON results delivered through APIError are interpreted like normal results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest
from postgrest.exceptions import APIError

from domain.buyer import Buyer
from domain.messages import SaleSealedMessage, SealedAllocation
from domain.sale import Sale
from repositories.buyer_repository import BUYERS_TABLE, buyer_to_row, row_to_buyer
from repositories.sale_repository import SALES_TABLE, row_to_sale, sale_to_row
from repositories.store import StaleWriteError
from repositories.supabase_store import COMMIT_FUNCTION, SupabaseLedgerStore

SALE_ID = bytes(31) + b"\x07"
OWNER = b"\x22" * 32


@dataclass
class FakeResponse:
    data: Any
    error: Optional[str] = None


class FakeQuery:
    def __init__(self, rows: List[Dict[str, Any]]) -> None:
        self._rows = rows
        self._filters: Dict[str, Any] = {}
        self._limit: Optional[int] = None

    def select(self, _columns: str) -> "FakeQuery":
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters[column] = value
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def execute(self) -> FakeResponse:
        rows = [r for r in self._rows if all(r.get(k) == v for k, v in self._filters.items())]
        return FakeResponse(data=rows[: self._limit] if self._limit else rows)


class FakeRpc:
    def __init__(self, client: "FakeSupabase", name: str, params: Dict[str, Any]) -> None:
        self._client = client
        self._name = name
        self._params = params

    def execute(self) -> FakeResponse:
        self._client.rpc_calls.append((self._name, self._params))
        if self._client.rpc_override is not None:
            return self._client.rpc_override()
        return FakeResponse(data=self._client.commit(self._params))


class FakeSupabase:
    """Just enough of the supabase client for the ledger store."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {SALES_TABLE: [], BUYERS_TABLE: []}
        self.rpc_calls: List[Any] = []
        self.rpc_override = None

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self.tables[name])

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def _find(self, table: str, row: Dict[str, Any], keys: tuple) -> Optional[Dict[str, Any]]:
        for existing in self.tables[table]:
            if all(existing[k] == row[k] for k in keys):
                return existing
        return None

    def commit(self, params: Dict[str, Any]) -> Dict[str, Any]:
        units = [
            (SALES_TABLE, params["p_sale"], params["p_sale_version"], ("sale_id",)),
            (BUYERS_TABLE, params["p_buyer"], params["p_buyer_version"], ("sale_id", "owner")),
        ]
        for table, row, expected, keys in units:
            if row is None:
                continue
            current = self._find(table, row, keys)
            if (current["version"] if current else 0) != expected:
                return {"success": False, "error": "STALE_WRITE", "message": f"{table} changed"}
        for table, row, expected, keys in units:
            if row is None:
                continue
            current = self._find(table, row, keys)
            if current is not None:
                self.tables[table].remove(current)
            self.tables[table].append(dict(row, version=expected + 1))
        return {"success": True}


def _sealed_sale(make_sale_init) -> Sale:
    sale = Sale.empty(SALE_ID).initialize(make_sale_init(), native_decimals=18)
    sale, _ = sale.record_contribution(0, (1 << 64) - 1, 1_000)
    return sale.seal(
        SaleSealedMessage(
            sale_id=SALE_ID,
            allocations=(
                SealedAllocation(token_index=0, allocation=(1 << 64) - 2, excess_contribution=9),
                SealedAllocation(token_index=3, allocation=0, excess_contribution=0),
            ),
        )
    )


def test_sale_row_round_trip(make_sale_init) -> None:
    """Verify every Sale field survives the row mapping, u64 amounts included."""

    sale = _sealed_sale(make_sale_init)
    row = dict(sale_to_row(sale), version=4)

    restored = row_to_sale(row)

    assert restored.version == 4
    assert restored.value == sale
    assert row["totals"][0]["contributions"] == str((1 << 64) - 1)


def test_buyer_row_round_trip() -> None:
    buyer = Buyer.empty(SALE_ID, OWNER).initialize(2)
    buyer, _ = buyer.contribute(1, 77)
    buyer, _ = buyer.claim_refund(1)

    restored = row_to_buyer(dict(buyer_to_row(buyer), version=2))

    assert restored.version == 2
    assert restored.value == buyer


def test_store_reads_empty_then_commits_through_rpc(make_sale_init) -> None:
    client = FakeSupabase()
    store = SupabaseLedgerStore(client)

    snapshot = store.get_sale(SALE_ID)
    assert snapshot.version == 0 and snapshot.value.initialized is False

    store.commit(sale=snapshot.advance(snapshot.value.initialize(make_sale_init())))

    assert client.rpc_calls[0][0] == COMMIT_FUNCTION
    assert client.rpc_calls[0][1]["p_sale_version"] == 0
    assert client.rpc_calls[0][1]["p_buyer"] is None

    stored = store.get_sale(SALE_ID)
    assert stored.version == 1
    assert stored.value.initialized is True


def test_store_commits_sale_and_buyer_together(make_sale_init) -> None:
    client = FakeSupabase()
    store = SupabaseLedgerStore(client)
    sale_snapshot = store.get_sale(SALE_ID)
    buyer_snapshot = store.get_buyer(SALE_ID, OWNER)

    store.commit(
        sale=sale_snapshot.advance(sale_snapshot.value.initialize(make_sale_init())),
        buyer=buyer_snapshot.advance(buyer_snapshot.value.initialize(2)),
    )

    assert len(client.rpc_calls) == 1
    assert store.get_buyer(SALE_ID, OWNER).version == 1
    assert store.get_buyer(SALE_ID, OWNER).value.initialized is True


def test_stale_version_raises_stale_write(make_sale_init) -> None:
    client = FakeSupabase()
    store = SupabaseLedgerStore(client)
    snapshot = store.get_sale(SALE_ID)
    store.commit(sale=snapshot.advance(snapshot.value.initialize(make_sale_init())))

    with pytest.raises(StaleWriteError):
        store.commit(sale=snapshot.advance(snapshot.value.initialize(make_sale_init())))


def test_rpc_errors_raise_runtime_error(make_sale_init) -> None:
    client = FakeSupabase()
    store = SupabaseLedgerStore(client)
    snapshot = store.get_sale(SALE_ID)
    write = snapshot.advance(snapshot.value.initialize(make_sale_init()))

    client.rpc_override = lambda: FakeResponse(data=None, error="connection reset")
    with pytest.raises(RuntimeError, match="connection reset"):
        store.commit(sale=write)

    client.rpc_override = lambda: FakeResponse(data={"success": False, "error": "LOCK_TIMEOUT"})
    with pytest.raises(RuntimeError, match="LOCK_TIMEOUT"):
        store.commit(sale=write)


def test_json_results_wrapped_in_api_error(make_sale_init) -> None:
    client = FakeSupabase()
    store = SupabaseLedgerStore(client)
    snapshot = store.get_sale(SALE_ID)
    write = snapshot.advance(snapshot.value.initialize(make_sale_init()))

    def _raise(payload: Dict[str, Any]):
        def _inner() -> FakeResponse:
            raise APIError(payload)

        return _inner

    client.rpc_override = _raise({"success": True})
    store.commit(sale=write)

    client.rpc_override = _raise({"success": False, "error": "STALE_WRITE", "message": "changed"})
    with pytest.raises(StaleWriteError):
        store.commit(sale=write)

    client.rpc_override = _raise({"message": "permission denied", "code": "42501"})
    with pytest.raises(RuntimeError):
        store.commit(sale=write)
