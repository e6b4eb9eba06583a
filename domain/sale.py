"""
Domain: Sale Ledger.

One Sale per sale id. The Sale owns the sale metadata announced by the
conductor, one AssetTotal per accepted contribution asset, and the lifecycle
state machine:

    Active -> Sealed    (terminal)
    Active -> Aborted   (terminal)

Rules implemented here:
- A Sale is populated exactly once from a SaleInit message.
- `totals` is fixed at init: same length, same order, same token indices.
- The time window [start, end] gates contributions; the status gates lifecycle
  messages. A sale past its end time but not yet sealed or aborted still
  accepts its sealing or aborting message.
- Seal/abort of a sale that already ended is a hard SaleEnded, never a no-op.

Sale is immutable: each transition returns a new instance and leaves the
receiver untouched, so a rejected message cannot half-apply.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from .amounts import U64_MAX, checked_add, require_below_u64_max, require_u64, scale_down
from .errors import ContributorError, ContributorException, require
from .kyc import verify_contribution
from .messages import (
    ACCEPTED_TOKENS_MAX,
    AttestContributionsMessage,
    AttestedContribution,
    SaleAbortedMessage,
    SaleInitMessage,
    SaleSealedMessage,
)


class SaleStatus(str, Enum):
    ACTIVE = "Active"
    SEALED = "Sealed"
    ABORTED = "Aborted"


class AssetStatus(str, Enum):
    """Outbound settlement of the funds collected for one accepted asset."""

    ACTIVE = "Active"
    NOTHING_TO_TRANSFER = "NothingToTransfer"
    READY_FOR_TRANSFER = "ReadyForTransfer"
    TRANSFERRED_TO_CONDUCTOR = "TransferredToConductor"


@dataclass(frozen=True, slots=True)
class SaleTimes:
    start: int
    end: int
    unlock: int


@dataclass(frozen=True, slots=True)
class AssetTotal:
    token_index: int
    asset_id: bytes
    contributions: int = 0
    allocations: int = 0
    excess_contributions: int = 0
    status: AssetStatus = AssetStatus.ACTIVE

    @property
    def transferable(self) -> int:
        """Collected funds owed to the conductor once the sale is sealed."""

        return self.contributions - self.excess_contributions


@dataclass(frozen=True, slots=True)
class Sale:
    id: bytes
    asset_address: bytes = bytes(32)
    asset_chain: int = 0
    asset_decimals: int = 0
    native_decimals: Optional[int] = None
    times: SaleTimes = SaleTimes(start=0, end=0, unlock=0)
    recipient: bytes = bytes(32)
    kyc_authority: bytes = bytes(20)
    status: SaleStatus = SaleStatus.ACTIVE
    totals: Tuple[AssetTotal, ...] = ()
    initialized: bool = False

    @staticmethod
    def empty(sale_id: bytes) -> "Sale":
        """An uninitialized Sale, as left by account provisioning."""

        if len(sale_id) != 32:
            raise ValueError("sale id must be 32 bytes")
        return Sale(id=sale_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_active(self, now: int) -> bool:
        return self.initialized and self.status == SaleStatus.ACTIVE and now <= self.times.end

    def is_attestable(self, now: int) -> bool:
        return self.initialized and self.status == SaleStatus.ACTIVE and now > self.times.end

    def has_ended(self) -> bool:
        return self.initialized and self.status != SaleStatus.ACTIVE

    def is_sealed(self) -> bool:
        return self.initialized and self.status == SaleStatus.SEALED

    def is_aborted(self) -> bool:
        return self.initialized and self.status == SaleStatus.ABORTED

    @property
    def total_allocations(self) -> int:
        return sum(total.allocations for total in self.totals)

    def index_of(self, token_index: int) -> int:
        """Position in `totals` of the asset with this token index."""

        for i, total in enumerate(self.totals):
            if total.token_index == token_index:
                return i
        raise ContributorException(ContributorError.INVALID_TOKEN_INDEX, f"token index {token_index}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def initialize(
        self,
        message: SaleInitMessage,
        *,
        native_decimals: Optional[int] = None,
        accepted_tokens_max: int = ACCEPTED_TOKENS_MAX,
    ) -> "Sale":
        """
        Populate this Sale from a decoded SaleInit message.

        Raises:
            ContributorException(SaleAlreadyInitialized): already populated.
            ContributorException(InvalidSale): message is for another sale id.
            ContributorException(TooManyAcceptedTokens): too many accepted assets.
            ContributorException(InvalidKycAuthority): zero KYC authority.
            ContributorException(InvalidTokenDecimals): native decimals exceed asset decimals.
        """

        require(not self.initialized, ContributorError.SALE_ALREADY_INITIALIZED)
        require(message.sale_id == self.id, ContributorError.INVALID_SALE, "sale id mismatch")
        require(
            len(message.accepted_assets) <= accepted_tokens_max,
            ContributorError.TOO_MANY_ACCEPTED_TOKENS,
        )
        require(
            message.kyc_authority != bytes(20),
            ContributorError.INVALID_KYC_AUTHORITY,
            "kyc authority is the zero address",
        )

        sale = Sale(
            id=self.id,
            asset_address=message.asset_address,
            asset_chain=message.asset_chain,
            asset_decimals=message.asset_decimals,
            times=SaleTimes(start=message.start, end=message.end, unlock=message.unlock),
            recipient=message.recipient,
            kyc_authority=message.kyc_authority,
            status=SaleStatus.ACTIVE,
            totals=tuple(
                AssetTotal(token_index=asset.token_index, asset_id=asset.asset_id)
                for asset in message.accepted_assets
            ),
            initialized=True,
        )
        if native_decimals is not None:
            sale = sale.bind_native_decimals(native_decimals)
        return sale

    def bind_native_decimals(self, decimals: int) -> "Sale":
        """
        Record the decimals of the local representation of the sale asset.

        A local asset can never carry more decimals than its origin.
        """

        require(self.initialized, ContributorError.INVALID_SALE, "sale is not initialized")
        require(
            0 <= decimals <= self.asset_decimals,
            ContributorError.INVALID_TOKEN_DECIMALS,
            f"native decimals {decimals} exceed asset decimals {self.asset_decimals}",
        )
        return replace(self, native_decimals=decimals)

    def record_contribution(self, token_index: int, amount: int, now: int) -> Tuple["Sale", int]:
        """
        Add `amount` to the total of the asset with `token_index`.

        Returns the new Sale and the position of the asset in `totals`.
        """

        require(self.initialized, ContributorError.INVALID_SALE, "sale is not initialized")
        require(self.is_active(now), ContributorError.SALE_ENDED)
        require(now >= self.times.start, ContributorError.CONTRIBUTION_TOO_EARLY)
        require_u64("amount", amount)

        idx = self.index_of(token_index)
        total = self.totals[idx]
        updated = replace(total, contributions=checked_add("total contributions", total.contributions, amount))
        return self._with_total(idx, updated), idx

    def attest(self, now: int, chain_id: int) -> AttestContributionsMessage:
        """
        Build the attestation of collected totals. Does not change status.

        Only allowed once the contribution window has closed.
        """

        require(self.is_attestable(now), ContributorError.SALE_NOT_ATTESTABLE)
        return AttestContributionsMessage(
            sale_id=self.id,
            chain_id=chain_id,
            contributions=tuple(
                AttestedContribution(token_index=total.token_index, contribution=total.contributions)
                for total in self.totals
            ),
        )

    def seal(self, message: SaleSealedMessage) -> "Sale":
        """
        Apply the conductor's allocations and move to Sealed.

        The allocation list must match `totals` exactly: same count, same token
        index at every position. Allocations are down-scaled from the sale
        asset's origin decimals to its native decimals before the u64 check.
        """

        require(self.initialized, ContributorError.INVALID_SALE, "sale is not initialized")
        require(not self.has_ended(), ContributorError.SALE_ENDED)
        require(message.sale_id == self.id, ContributorError.INVALID_SALE, "sale id mismatch")
        require(
            len(message.allocations) == len(self.totals),
            ContributorError.INVALID_VAA_PAYLOAD,
            f"{len(message.allocations)} allocations for {len(self.totals)} accepted assets",
        )
        require(
            self.native_decimals is not None,
            ContributorError.INVALID_TOKEN_DECIMALS,
            "native decimals are not bound",
        )

        totals = []
        for total, item in zip(self.totals, message.allocations):
            require(
                item.token_index == total.token_index,
                ContributorError.INVALID_VAA_PAYLOAD,
                f"allocation for token index {item.token_index} where {total.token_index} expected",
            )
            allocation = require_below_u64_max(
                "allocation", scale_down(item.allocation, self.asset_decimals, self.native_decimals)
            )
            require(
                item.excess_contribution <= U64_MAX,
                ContributorError.AMOUNT_TOO_LARGE,
                "excess contribution exceeds u64",
            )
            require(
                item.excess_contribution <= total.contributions,
                ContributorError.INVALID_VAA_PAYLOAD,
                "excess contribution exceeds collected contributions",
            )
            status = (
                AssetStatus.NOTHING_TO_TRANSFER
                if total.contributions == item.excess_contribution
                else AssetStatus.READY_FOR_TRANSFER
            )
            totals.append(
                replace(
                    total,
                    allocations=allocation,
                    excess_contributions=item.excess_contribution,
                    status=status,
                )
            )

        return replace(self, totals=tuple(totals), status=SaleStatus.SEALED)

    def abort(self, message: SaleAbortedMessage) -> "Sale":
        require(self.initialized, ContributorError.INVALID_SALE, "sale is not initialized")
        require(not self.has_ended(), ContributorError.SALE_ENDED)
        require(message.sale_id == self.id, ContributorError.INVALID_SALE, "sale id mismatch")
        return replace(self, status=SaleStatus.ABORTED)

    def mark_transferred(self, token_index: int) -> Tuple["Sale", AssetTotal]:
        """
        Settle one asset's collected funds towards the conductor.

        Returns the new Sale and the asset total as it was before the transfer,
        so the caller can read the amount to move.
        """

        require(self.is_sealed(), ContributorError.SALE_NOT_SEALED)
        idx = self.index_of(token_index)
        total = self.totals[idx]
        require(
            total.status != AssetStatus.TRANSFERRED_TO_CONDUCTOR,
            ContributorError.ALREADY_CLAIMED,
            "contributions already transferred",
        )
        require(total.status == AssetStatus.READY_FOR_TRANSFER, ContributorError.NOTHING_TO_CLAIM)
        updated = replace(total, status=AssetStatus.TRANSFERRED_TO_CONDUCTOR)
        return self._with_total(idx, updated), total

    # ------------------------------------------------------------------
    # KYC
    # ------------------------------------------------------------------

    def verify_kyc_authority(
        self,
        *,
        source_address: bytes,
        token_index: int,
        amount: int,
        buyer: bytes,
        previous_contribution: int,
        signature: bytes,
    ) -> None:
        """Fail with InvalidKycSignature unless this sale's KYC authority signed the intent."""

        signer = verify_contribution(
            source_address=source_address,
            sale_id=self.id,
            token_index=token_index,
            amount=amount,
            buyer=buyer,
            previous_contribution=previous_contribution,
            signature=signature,
        )
        require(
            signer == self.kyc_authority,
            ContributorError.INVALID_KYC_SIGNATURE,
            "signer is not the sale's kyc authority",
        )

    def _with_total(self, idx: int, total: AssetTotal) -> "Sale":
        totals = list(self.totals)
        totals[idx] = total
        return replace(self, totals=tuple(totals))


__all__ = [
    "AssetStatus",
    "AssetTotal",
    "Sale",
    "SaleStatus",
    "SaleTimes",
]
