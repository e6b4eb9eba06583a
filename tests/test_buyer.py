"""
Tests for `domain/buyer.py`.

Covers contract rules:
- A buyer is initialized once with one Inactive record per accepted asset.
- Contributions accumulate per asset and activate the record.
- Allocation is floor(contribution * allocations / contributions) summed over
  assets; zero collected yields zero.
- The allocation sum must stay below u64::MAX; on overflow nothing is claimed.
- Allocation, excess and refund claims succeed at most once.
"""

from __future__ import annotations

import pytest

from domain.buyer import Buyer, ContributionStatus
from domain.errors import ContributorError, ContributorException
from domain.sale import AssetTotal

SALE_ID = b"\x07" * 32
OWNER = b"\x22" * 32


def _buyer(*amounts: int) -> Buyer:
    buyer = Buyer.empty(SALE_ID, OWNER).initialize(len(amounts))
    for idx, amount in enumerate(amounts):
        if amount:
            buyer, _ = buyer.contribute(idx, amount)
    return buyer


def _total(token_index: int, contributions: int, allocations: int, excess: int = 0) -> AssetTotal:
    return AssetTotal(
        token_index=token_index,
        asset_id=bytes([token_index]) * 32,
        contributions=contributions,
        allocations=allocations,
        excess_contributions=excess,
    )


def test_initialize_creates_inactive_records_once() -> None:
    buyer = Buyer.empty(SALE_ID, OWNER).initialize(3)

    assert buyer.initialized is True
    assert len(buyer.contributions) == 3
    assert all(c.status == ContributionStatus.INACTIVE and c.amount == 0 for c in buyer.contributions)

    with pytest.raises(ContributorException) as exc_info:
        buyer.initialize(3)
    assert exc_info.value.code == ContributorError.INVALID_ACCOUNT


def test_contribute_accumulates_and_activates() -> None:
    buyer = Buyer.empty(SALE_ID, OWNER).initialize(2)

    buyer, total = buyer.contribute(1, 40)
    buyer, total = buyer.contribute(1, 2)

    assert total == 42
    assert buyer.contributions[1].amount == 42
    assert buyer.contributions[1].status == ContributionStatus.ACTIVE
    assert buyer.contributions[0].status == ContributionStatus.INACTIVE


def test_contribute_rejects_bad_index_and_overflow() -> None:
    buyer = Buyer.empty(SALE_ID, OWNER).initialize(1)

    with pytest.raises(ContributorException) as exc_info:
        buyer.contribute(1, 1)
    assert exc_info.value.code == ContributorError.INVALID_TOKEN_INDEX

    buyer, _ = buyer.contribute(0, (1 << 64) - 1)
    with pytest.raises(ContributorException) as exc_info:
        buyer.contribute(0, 1)
    assert exc_info.value.code == ContributorError.AMOUNT_TOO_LARGE


def test_claim_allocation_is_pro_rata() -> None:
    """Verify 25 contributed of 100 collected, with 40 allocated, yields 10."""

    buyer, amount = _buyer(25).claim_allocation([_total(0, 100, 40)])

    assert amount == 10
    assert buyer.allocation.amount == 10
    assert buyer.allocation.claimed is True


def test_claim_allocation_sums_assets_and_floors_each_share() -> None:
    buyer = _buyer(1, 3, 0)
    totals = [_total(0, 3, 10), _total(1, 7, 10), _total(2, 0, 10)]

    _, amount = buyer.claim_allocation(totals)

    # floor(10/3) + floor(30/7) + 0
    assert amount == 3 + 4


def test_claim_allocation_overflow_leaves_buyer_unclaimed() -> None:
    buyer = _buyer(5, 5)
    half = 1 << 63
    totals = [_total(0, 5, half), _total(1, 5, half)]

    with pytest.raises(ContributorException) as exc_info:
        buyer.claim_allocation(totals)

    assert exc_info.value.code == ContributorError.AMOUNT_TOO_LARGE
    assert buyer.allocation.claimed is False
    assert buyer.allocation.amount == 0


def test_claim_allocation_only_once() -> None:
    claimed, _ = _buyer(25).claim_allocation([_total(0, 100, 40)])

    with pytest.raises(ContributorException) as exc_info:
        claimed.claim_allocation([_total(0, 100, 40)])
    assert exc_info.value.code == ContributorError.ALREADY_CLAIMED


def test_claim_allocation_requires_aligned_totals() -> None:
    with pytest.raises(ContributorException) as exc_info:
        _buyer(25, 0).claim_allocation([_total(0, 100, 40)])
    assert exc_info.value.code == ContributorError.INVALID_TOKEN_INDEX


def test_claim_excess_is_pro_rata_and_single_use() -> None:
    buyer = _buyer(30)
    total = _total(0, 100, 40, excess=50)

    buyer, excess = buyer.claim_excess(0, total)

    assert excess == 15
    assert buyer.contributions[0].excess == 15
    assert buyer.contributions[0].status == ContributionStatus.EXCESS_CLAIMED

    with pytest.raises(ContributorException) as exc_info:
        buyer.claim_excess(0, total)
    assert exc_info.value.code == ContributorError.ALREADY_CLAIMED


def test_claim_refund_returns_full_amount_once() -> None:
    buyer, refund = _buyer(30, 0).claim_refund(0)

    assert refund == 30
    assert buyer.contributions[0].excess == 30
    assert buyer.contributions[0].status == ContributionStatus.REFUND_CLAIMED

    buyer, zero = buyer.claim_refund(1)
    assert zero == 0

    with pytest.raises(ContributorException) as exc_info:
        buyer.claim_refund(0)
    assert exc_info.value.code == ContributorError.ALREADY_CLAIMED


def test_terminal_record_rejects_contributions() -> None:
    buyer, _ = _buyer(30).claim_refund(0)

    with pytest.raises(ContributorException) as exc_info:
        buyer.contribute(0, 1)
    assert exc_info.value.code == ContributorError.CONTRIBUTE_DEACTIVATED
