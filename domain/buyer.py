"""
Domain: Buyer Ledger.

One Buyer per (sale, owner). A Buyer holds one BuyerContribution per accepted
asset, index-aligned with `Sale.totals`, plus one aggregate allocation: the
sale pays out in a single asset however many assets the buyer contributed.

Contribution status transitions:

    Inactive -> Active                       (first recorded contribution)
    Inactive | Active -> ExcessClaimed       (after seal, once)
    Inactive | Active -> RefundClaimed       (after abort, once)

Terminal statuses are never re-entered: a second claim fails with
AlreadyClaimed instead of silently succeeding.

The Buyer reads the Sale's published totals but never changes them; which
claim is legal for the sale's status is checked by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Sequence, Tuple

from .amounts import checked_add, pro_rata, require_below_u64_max, require_u64
from .errors import ContributorError, require
from .sale import AssetTotal


class ContributionStatus(str, Enum):
    INACTIVE = "Inactive"
    ACTIVE = "Active"
    EXCESS_CLAIMED = "ExcessClaimed"
    REFUND_CLAIMED = "RefundClaimed"

    @property
    def is_terminal(self) -> bool:
        return self in (ContributionStatus.EXCESS_CLAIMED, ContributionStatus.REFUND_CLAIMED)


@dataclass(frozen=True, slots=True)
class BuyerContribution:
    amount: int = 0
    excess: int = 0
    status: ContributionStatus = ContributionStatus.INACTIVE


@dataclass(frozen=True, slots=True)
class BuyerAllocation:
    amount: int = 0
    claimed: bool = False


@dataclass(frozen=True, slots=True)
class Buyer:
    sale_id: bytes
    owner: bytes
    contributions: Tuple[BuyerContribution, ...] = ()
    allocation: BuyerAllocation = BuyerAllocation()
    initialized: bool = False

    @staticmethod
    def empty(sale_id: bytes, owner: bytes) -> "Buyer":
        if len(sale_id) != 32 or len(owner) != 32:
            raise ValueError("sale id and owner must be 32 bytes")
        return Buyer(sale_id=sale_id, owner=owner)

    def initialize(self, n_assets: int) -> "Buyer":
        """
        Allocate one Inactive record per accepted asset.

        Single call only: initializing an initialized buyer is InvalidAccount.
        """

        require(not self.initialized, ContributorError.INVALID_ACCOUNT, "buyer already initialized")
        return replace(
            self,
            contributions=tuple(BuyerContribution() for _ in range(n_assets)),
            allocation=BuyerAllocation(),
            initialized=True,
        )

    def contribution(self, idx: int) -> BuyerContribution:
        require(
            self.initialized and 0 <= idx < len(self.contributions),
            ContributorError.INVALID_TOKEN_INDEX,
            f"contribution index {idx}",
        )
        return self.contributions[idx]

    def contribute(self, idx: int, amount: int) -> Tuple["Buyer", int]:
        """
        Add `amount` to the record at `idx`.

        Returns the new Buyer and the new cumulative amount for that index; the
        caller forwards it into the sale total and the next KYC intent.
        """

        record = self.contribution(idx)
        require(not record.status.is_terminal, ContributorError.CONTRIBUTE_DEACTIVATED)
        require_u64("amount", amount)
        total = checked_add("buyer contribution", record.amount, amount)
        updated = replace(record, amount=total, status=ContributionStatus.ACTIVE)
        return self._with_contribution(idx, updated), total

    def claim_allocation(self, totals: Sequence[AssetTotal]) -> Tuple["Buyer", int]:
        """
        Compute and claim this buyer's share of the sale asset.

        For every asset i: contribution_i * allocations_i // contributions_i
        (zero when nothing was collected), summed over all assets. The sum must
        stay below u64::MAX; on overflow nothing is claimed.
        """

        require(self.initialized, ContributorError.INVALID_ACCOUNT, "buyer is not initialized")
        require(not self.allocation.claimed, ContributorError.ALREADY_CLAIMED, "allocation already claimed")
        require(
            len(totals) == len(self.contributions),
            ContributorError.INVALID_TOKEN_INDEX,
            "sale totals are not aligned with buyer contributions",
        )

        amount = sum(
            pro_rata(record.amount, total.allocations, total.contributions)
            for record, total in zip(self.contributions, totals)
        )
        require_below_u64_max("allocation", amount)
        return replace(self, allocation=BuyerAllocation(amount=amount, claimed=True)), amount

    def claim_excess(self, idx: int, total: AssetTotal) -> Tuple["Buyer", int]:
        """Claim the unused share of the contribution at `idx` after a seal."""

        record = self.contribution(idx)
        require(not record.status.is_terminal, ContributorError.ALREADY_CLAIMED, "excess already claimed")
        excess = require_below_u64_max(
            "excess", pro_rata(record.amount, total.excess_contributions, total.contributions)
        )
        updated = replace(record, excess=excess, status=ContributionStatus.EXCESS_CLAIMED)
        return self._with_contribution(idx, updated), excess

    def claim_refund(self, idx: int) -> Tuple["Buyer", int]:
        """Claim back the full contribution at `idx` after an abort."""

        record = self.contribution(idx)
        require(not record.status.is_terminal, ContributorError.ALREADY_CLAIMED, "refund already claimed")
        updated = replace(record, excess=record.amount, status=ContributionStatus.REFUND_CLAIMED)
        return self._with_contribution(idx, updated), record.amount

    def _with_contribution(self, idx: int, record: BuyerContribution) -> "Buyer":
        contributions = list(self.contributions)
        contributions[idx] = record
        return replace(self, contributions=tuple(contributions))


__all__ = [
    "Buyer",
    "BuyerAllocation",
    "BuyerContribution",
    "ContributionStatus",
]
