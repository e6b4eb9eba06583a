"""
Contribution service.

Handles:
- Buyer creation on first contribution
- KYC verification against the buyer's running total for the asset
- Recording the amount in both the Sale and Buyer ledgers
- A single atomic commit of sale and buyer, retried on stale writes
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from domain.errors import ContributorError, ContributorException
from repositories.store import LedgerStore
from services.retry import run_with_retries

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContributionRequest:
    """
    A buyer's contribution of `amount` of the accepted asset `token_index`.

    signature: 65-byte KYC authority signature over the intent, including the
        buyer's total for this asset before this contribution.
    now: current time in unix seconds.
    """

    sale_id: bytes
    owner: bytes
    token_index: int
    amount: int
    signature: bytes
    now: int


@dataclass(frozen=True, slots=True)
class ContributionResult:
    """
    buyer_total: buyer's cumulative contribution for the asset
    sale_total: sale's cumulative contributions for the asset
    """

    sale_id: bytes
    owner: bytes
    token_index: int
    amount: int
    buyer_total: int
    sale_total: int


def contribute(store: LedgerStore, request: ContributionRequest, *, kyc_source: bytes) -> ContributionResult:
    """
    Record a KYC-approved contribution.

    Args:
        store: ledger store
        request: the contribution
        kyc_source: leading 32-byte slot of the signed intent

    Raises:
        ContributorException: InvalidSale, SaleEnded, ContributionTooEarly,
            AmountTooLarge, InvalidTokenIndex, InvalidKycSignature,
            EcdsaRecoverFailure, ContributeDeactivated
    """

    def _apply() -> ContributionResult:
        sale_snapshot = store.get_sale(request.sale_id)
        buyer_snapshot = store.get_buyer(request.sale_id, request.owner)

        sale, idx = sale_snapshot.value.record_contribution(request.token_index, request.amount, request.now)

        buyer = buyer_snapshot.value
        if not buyer.initialized:
            buyer = buyer.initialize(len(sale.totals))

        previous = buyer.contribution(idx).amount
        try:
            sale.verify_kyc_authority(
                source_address=kyc_source,
                token_index=request.token_index,
                amount=request.amount,
                buyer=request.owner,
                previous_contribution=previous,
                signature=request.signature,
            )
        except ContributorException as e:
            if e.code in (ContributorError.INVALID_KYC_SIGNATURE, ContributorError.ECDSA_RECOVER_FAILURE):
                logger.warning(
                    "Rejected KYC signature for sale %s buyer %s: %s",
                    request.sale_id.hex(),
                    request.owner.hex(),
                    e,
                    extra={"sale_id": request.sale_id, "owner": request.owner, "code": e.code},
                )
            raise

        buyer, buyer_total = buyer.contribute(idx, request.amount)
        store.commit(sale=sale_snapshot.advance(sale), buyer=buyer_snapshot.advance(buyer))

        return ContributionResult(
            sale_id=request.sale_id,
            owner=request.owner,
            token_index=request.token_index,
            amount=request.amount,
            buyer_total=buyer_total,
            sale_total=sale.totals[idx].contributions,
        )

    result = run_with_retries(_apply, label="contribute")
    logger.info(
        "Contribution of %d to sale %s asset %d by %s",
        result.amount,
        result.sale_id.hex(),
        result.token_index,
        result.owner.hex(),
        extra={"sale_id": result.sale_id, "owner": result.owner, "token_index": result.token_index},
    )
    return result


__all__ = ["ContributionRequest", "ContributionResult", "contribute"]
