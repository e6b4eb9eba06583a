"""
Claim service.

Handles:
- Allocation claims on sealed sales (sale asset plus every excess share)
- Refund claims on aborted sales

Each claim is one buyer commit. Two concurrent claims for the same buyer race
on the buyer's version: one commits, the other re-reads a claimed buyer and
fails with AlreadyClaimed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from domain.errors import ContributorError, require
from domain.sale import Sale
from repositories.store import LedgerStore
from services.retry import run_with_retries
from services.transfers import TransferInstruction

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClaimResult:
    """
    allocation: sale-asset amount paid out (zero for refunds)
    transfers: instructions for the transfer mechanism, zero amounts omitted
    """

    sale_id: bytes
    owner: bytes
    allocation: int
    transfers: Tuple[TransferInstruction, ...]


def _require_initialized(sale: Sale) -> None:
    require(sale.initialized, ContributorError.INVALID_SALE, "sale is not initialized")


def claim_allocation(store: LedgerStore, sale_id: bytes, owner: bytes, *, local_chain_id: int) -> ClaimResult:
    """
    Pay out the buyer's allocation and excess for a sealed sale.

    Rules:
    - Sale must be Sealed (SaleNotSealed otherwise)
    - A zero allocation is NothingToClaim; nothing is recorded
    - Excess is claimed for every accepted asset in the same commit
    """

    def _apply() -> ClaimResult:
        sale = store.get_sale(sale_id).value
        _require_initialized(sale)
        require(sale.is_sealed(), ContributorError.SALE_NOT_SEALED)

        snapshot = store.get_buyer(sale_id, owner)
        buyer = snapshot.value
        require(buyer.initialized, ContributorError.INVALID_ACCOUNT, "buyer has no contributions")

        buyer, allocation = buyer.claim_allocation(sale.totals)
        require(allocation > 0, ContributorError.NOTHING_TO_CLAIM)

        transfers: List[TransferInstruction] = [
            TransferInstruction(
                asset=sale.asset_address,
                amount=allocation,
                destination=owner,
                destination_chain=local_chain_id,
            )
        ]
        for idx, total in enumerate(sale.totals):
            buyer, excess = buyer.claim_excess(idx, total)
            if excess > 0:
                transfers.append(
                    TransferInstruction(
                        asset=total.asset_id,
                        amount=excess,
                        destination=owner,
                        destination_chain=local_chain_id,
                    )
                )

        store.commit(buyer=snapshot.advance(buyer))
        return ClaimResult(sale_id=sale_id, owner=owner, allocation=allocation, transfers=tuple(transfers))

    result = run_with_retries(_apply, label="claim_allocation")
    logger.info(
        "Allocation of %d claimed from sale %s by %s",
        result.allocation,
        sale_id.hex(),
        owner.hex(),
        extra={"sale_id": sale_id, "owner": owner},
    )
    return result


def claim_refunds(store: LedgerStore, sale_id: bytes, owner: bytes, *, local_chain_id: int) -> ClaimResult:
    """Return every contribution of the buyer for an aborted sale."""

    def _apply() -> ClaimResult:
        sale = store.get_sale(sale_id).value
        _require_initialized(sale)
        require(sale.is_aborted(), ContributorError.SALE_NOT_ABORTED)

        snapshot = store.get_buyer(sale_id, owner)
        buyer = snapshot.value
        require(buyer.initialized, ContributorError.INVALID_ACCOUNT, "buyer has no contributions")

        transfers: List[TransferInstruction] = []
        for idx, total in enumerate(sale.totals):
            buyer, refund = buyer.claim_refund(idx)
            if refund > 0:
                transfers.append(
                    TransferInstruction(
                        asset=total.asset_id,
                        amount=refund,
                        destination=owner,
                        destination_chain=local_chain_id,
                    )
                )

        store.commit(buyer=snapshot.advance(buyer))
        return ClaimResult(sale_id=sale_id, owner=owner, allocation=0, transfers=tuple(transfers))

    result = run_with_retries(_apply, label="claim_refunds")
    logger.info(
        "Refunds claimed from sale %s by %s (%d transfers)",
        sale_id.hex(),
        owner.hex(),
        len(result.transfers),
        extra={"sale_id": sale_id, "owner": owner},
    )
    return result


__all__ = ["ClaimResult", "claim_allocation", "claim_refunds"]
