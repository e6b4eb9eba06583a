"""
Buyer repository (persistence).

Mapping between Buyer domain entities and `contributor_buyers` rows, keyed by
(sale_id, owner). Contributions are a jsonb list aligned with the sale's
accepted assets.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from domain.buyer import Buyer, BuyerAllocation, BuyerContribution, ContributionStatus
from repositories.store import Versioned

BUYERS_TABLE: str = "contributor_buyers"


def buyer_to_row(buyer: Buyer) -> dict[str, Any]:
    return {
        "sale_id": buyer.sale_id.hex(),
        "owner": buyer.owner.hex(),
        "initialized": buyer.initialized,
        "contributions": [
            {
                "amount": str(record.amount),
                "excess": str(record.excess),
                "status": record.status.value,
            }
            for record in buyer.contributions
        ],
        "allocation_amount": str(buyer.allocation.amount),
        "allocation_claimed": buyer.allocation.claimed,
    }


def row_to_buyer(row: Mapping[str, Any]) -> Versioned[Buyer]:
    buyer = Buyer(
        sale_id=bytes.fromhex(str(row["sale_id"])),
        owner=bytes.fromhex(str(row["owner"])),
        contributions=tuple(
            BuyerContribution(
                amount=int(item["amount"]),
                excess=int(item["excess"]),
                status=ContributionStatus(str(item["status"])),
            )
            for item in row.get("contributions") or []
        ),
        allocation=BuyerAllocation(
            amount=int(row.get("allocation_amount") or 0),
            claimed=bool(row.get("allocation_claimed")),
        ),
        initialized=bool(row["initialized"]),
    )
    return Versioned(value=buyer, version=int(row["version"]))


def fetch_buyer(client: Any, sale_id: bytes, owner: bytes) -> Optional[Versioned[Buyer]]:
    """
    Retrieve one buyer of a sale.

    Returns:
        Versioned[Buyer] or None if the owner never contributed
    """

    response = (
        client.table(BUYERS_TABLE)
        .select("*")
        .eq("sale_id", sale_id.hex())
        .eq("owner", owner.hex())
        .limit(1)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to get buyer: {error}")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return row_to_buyer(rows[0])


__all__ = [
    "BUYERS_TABLE",
    "buyer_to_row",
    "fetch_buyer",
    "row_to_buyer",
]
