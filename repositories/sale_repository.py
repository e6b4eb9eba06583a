"""
Sale repository (persistence).

This module provides *only* the mapping between Sale domain entities and
Supabase rows, plus reads. It does not enforce lifecycle rules; writes go
through the `commit_ledger_writes` function used by SupabaseLedgerStore.

Row layout (`contributor_sales`):
- sale_id: hex text, primary key
- version: integer, bumped on every committed write
- initialized: boolean
- asset_address / recipient / kyc_authority: hex text
- asset_chain / asset_decimals / native_decimals: integer
- start_time / end_time / unlock_time: text (u64 seconds)
- status: SaleStatus value
- totals: jsonb list, one object per accepted asset in sale order

Amounts and times are stored as decimal strings because u64 values do not fit
a Postgres bigint.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from domain.sale import AssetStatus, AssetTotal, Sale, SaleStatus, SaleTimes
from repositories.store import Versioned

# Supabase table name for sale records.
# Keep this aligned with your database schema.
SALES_TABLE: str = "contributor_sales"


def _total_to_json(total: AssetTotal) -> dict[str, Any]:
    return {
        "token_index": total.token_index,
        "asset_id": total.asset_id.hex(),
        "contributions": str(total.contributions),
        "allocations": str(total.allocations),
        "excess_contributions": str(total.excess_contributions),
        "status": total.status.value,
    }


def _json_to_total(item: Mapping[str, Any]) -> AssetTotal:
    return AssetTotal(
        token_index=int(item["token_index"]),
        asset_id=bytes.fromhex(str(item["asset_id"])),
        contributions=int(item["contributions"]),
        allocations=int(item["allocations"]),
        excess_contributions=int(item["excess_contributions"]),
        status=AssetStatus(str(item["status"])),
    )


def sale_to_row(sale: Sale) -> dict[str, Any]:
    """Serialize a Sale into a Supabase row (without version)."""

    return {
        "sale_id": sale.id.hex(),
        "initialized": sale.initialized,
        "asset_address": sale.asset_address.hex(),
        "asset_chain": sale.asset_chain,
        "asset_decimals": sale.asset_decimals,
        "native_decimals": sale.native_decimals,
        "start_time": str(sale.times.start),
        "end_time": str(sale.times.end),
        "unlock_time": str(sale.times.unlock),
        "recipient": sale.recipient.hex(),
        "kyc_authority": sale.kyc_authority.hex(),
        "status": sale.status.value,
        "totals": [_total_to_json(total) for total in sale.totals],
    }


def row_to_sale(row: Mapping[str, Any]) -> Versioned[Sale]:
    """Convert a Supabase row into a versioned Sale."""

    native = row.get("native_decimals")
    sale = Sale(
        id=bytes.fromhex(str(row["sale_id"])),
        asset_address=bytes.fromhex(str(row["asset_address"])),
        asset_chain=int(row["asset_chain"]),
        asset_decimals=int(row["asset_decimals"]),
        native_decimals=int(native) if native is not None else None,
        times=SaleTimes(
            start=int(row["start_time"]),
            end=int(row["end_time"]),
            unlock=int(row["unlock_time"]),
        ),
        recipient=bytes.fromhex(str(row["recipient"])),
        kyc_authority=bytes.fromhex(str(row["kyc_authority"])),
        status=SaleStatus(str(row["status"])),
        totals=tuple(_json_to_total(item) for item in row.get("totals") or []),
        initialized=bool(row["initialized"]),
    )
    return Versioned(value=sale, version=int(row["version"]))


def fetch_sale(client: Any, sale_id: bytes) -> Optional[Versioned[Sale]]:
    """
    Retrieve a single sale by id.

    Returns:
        Versioned[Sale] or None if not found
    """

    response = (
        client.table(SALES_TABLE)
        .select("*")
        .eq("sale_id", sale_id.hex())
        .limit(1)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to get sale: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return row_to_sale(rows[0])


__all__ = [
    "SALES_TABLE",
    "fetch_sale",
    "row_to_sale",
    "sale_to_row",
]
