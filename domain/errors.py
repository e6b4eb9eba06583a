"""
Domain: Contributor error kinds.

Every operation either succeeds or fails with exactly one named kind. Kinds are
grouped by cause so that callers (services, the HTTP layer) can decide how to
surface them without inspecting messages.

Categories:
- Decoding: a conductor payload could not be parsed. Terminal for that message.
- Lifecycle: the sale is in the wrong state or time window for the request.
- Accounting: an index, amount or claim status rejects the request.
- Cryptography: a KYC signature could not be recovered or does not match.
- Identity: a message or account does not belong to the expected sale/conductor.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    DECODING = "decoding"
    LIFECYCLE = "lifecycle"
    ACCOUNTING = "accounting"
    CRYPTOGRAPHY = "cryptography"
    IDENTITY = "identity"


class ContributorError(str, Enum):
    # decoding
    INVALID_VAA_PAYLOAD = "InvalidVaaPayload"
    INVALID_ACCEPTED_TOKEN_PAYLOAD = "InvalidAcceptedTokenPayload"
    TOO_MANY_ACCEPTED_TOKENS = "TooManyAcceptedTokens"
    INVALID_TOKEN_DECIMALS = "InvalidTokenDecimals"

    # lifecycle
    SALE_ALREADY_INITIALIZED = "SaleAlreadyInitialized"
    SALE_ENDED = "SaleEnded"
    SALE_NOT_ATTESTABLE = "SaleNotAttestable"
    SALE_NOT_SEALED = "SaleNotSealed"
    SALE_NOT_ABORTED = "SaleNotAborted"

    # accounting
    INVALID_TOKEN_INDEX = "InvalidTokenIndex"
    AMOUNT_TOO_LARGE = "AmountTooLarge"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    ALREADY_CLAIMED = "AlreadyClaimed"
    NOTHING_TO_CLAIM = "NothingToClaim"
    CONTRIBUTE_DEACTIVATED = "ContributeDeactivated"
    CONTRIBUTION_TOO_EARLY = "ContributionTooEarly"

    # cryptography
    ECDSA_RECOVER_FAILURE = "EcdsaRecoverFailure"
    INVALID_KYC_SIGNATURE = "InvalidKycSignature"
    INVALID_KYC_AUTHORITY = "InvalidKycAuthority"

    # identity
    INVALID_CONDUCTOR_CHAIN = "InvalidConductorChain"
    INVALID_CONDUCTOR_ADDRESS = "InvalidConductorAddress"
    INVALID_SALE = "InvalidSale"
    INVALID_ACCOUNT = "InvalidAccount"

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self]


_CATEGORIES: dict[ContributorError, ErrorCategory] = {
    ContributorError.INVALID_VAA_PAYLOAD: ErrorCategory.DECODING,
    ContributorError.INVALID_ACCEPTED_TOKEN_PAYLOAD: ErrorCategory.DECODING,
    ContributorError.TOO_MANY_ACCEPTED_TOKENS: ErrorCategory.DECODING,
    ContributorError.INVALID_TOKEN_DECIMALS: ErrorCategory.DECODING,
    ContributorError.SALE_ALREADY_INITIALIZED: ErrorCategory.LIFECYCLE,
    ContributorError.SALE_ENDED: ErrorCategory.LIFECYCLE,
    ContributorError.SALE_NOT_ATTESTABLE: ErrorCategory.LIFECYCLE,
    ContributorError.SALE_NOT_SEALED: ErrorCategory.LIFECYCLE,
    ContributorError.SALE_NOT_ABORTED: ErrorCategory.LIFECYCLE,
    ContributorError.INVALID_TOKEN_INDEX: ErrorCategory.ACCOUNTING,
    ContributorError.AMOUNT_TOO_LARGE: ErrorCategory.ACCOUNTING,
    ContributorError.INSUFFICIENT_FUNDS: ErrorCategory.ACCOUNTING,
    ContributorError.ALREADY_CLAIMED: ErrorCategory.ACCOUNTING,
    ContributorError.NOTHING_TO_CLAIM: ErrorCategory.ACCOUNTING,
    ContributorError.CONTRIBUTE_DEACTIVATED: ErrorCategory.ACCOUNTING,
    ContributorError.CONTRIBUTION_TOO_EARLY: ErrorCategory.ACCOUNTING,
    ContributorError.ECDSA_RECOVER_FAILURE: ErrorCategory.CRYPTOGRAPHY,
    ContributorError.INVALID_KYC_SIGNATURE: ErrorCategory.CRYPTOGRAPHY,
    ContributorError.INVALID_KYC_AUTHORITY: ErrorCategory.CRYPTOGRAPHY,
    ContributorError.INVALID_CONDUCTOR_CHAIN: ErrorCategory.IDENTITY,
    ContributorError.INVALID_CONDUCTOR_ADDRESS: ErrorCategory.IDENTITY,
    ContributorError.INVALID_SALE: ErrorCategory.IDENTITY,
    ContributorError.INVALID_ACCOUNT: ErrorCategory.IDENTITY,
}


class ContributorException(Exception):
    """Raised by the domain and services with exactly one ContributorError kind."""

    def __init__(self, code: ContributorError, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(f"{code.value}: {detail}" if detail else code.value)


def require(condition: bool, code: ContributorError, detail: str | None = None) -> None:
    """Raise ContributorException(code) unless condition holds."""

    if not condition:
        raise ContributorException(code, detail)


__all__ = [
    "ContributorError",
    "ContributorException",
    "ErrorCategory",
    "require",
]
