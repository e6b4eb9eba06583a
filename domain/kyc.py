"""
Domain: KYC signature verification (pure).

Each contribution must carry a signature from the sale's off-chain KYC
authority over a canonical encoding of the contribution intent:

    source_address(32) || sale_id(32) || token_index(32) || amount(32)
        || buyer(32) || previous_contribution(32)

Integers are left-padded to 32-byte slots. The concatenation is hashed with
keccak-256 and the signer is recovered Ethereum-style from a 65-byte
`r || s || v` signature (v in {0, 1}, last). The recovered public key is hashed
again and its low 20 bytes form the signer address.

`previous_contribution` is the buyer's running total for that asset at signing
time, so an old signature can never authorize a later contribution.
"""

from __future__ import annotations

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import keccak

from .amounts import to_uint256_bytes
from .errors import ContributorError, ContributorException, require

SIGNATURE_LEN = 65
ADDRESS_LEN = 20


def _require_bytes32(name: str, value: bytes) -> bytes:
    if len(value) != 32:
        raise ValueError(f"{name} must be 32 bytes")
    return value


def contribution_message(
    source_address: bytes,
    sale_id: bytes,
    token_index: int,
    amount: int,
    buyer: bytes,
    previous_contribution: int,
) -> bytes:
    """Canonical 192-byte encoding of a contribution intent."""

    return b"".join(
        (
            _require_bytes32("source_address", source_address),
            _require_bytes32("sale_id", sale_id),
            to_uint256_bytes(token_index),
            to_uint256_bytes(amount),
            _require_bytes32("buyer", buyer),
            to_uint256_bytes(previous_contribution),
        )
    )


def contribution_digest(
    source_address: bytes,
    sale_id: bytes,
    token_index: int,
    amount: int,
    buyer: bytes,
    previous_contribution: int,
) -> bytes:
    return keccak(
        contribution_message(source_address, sale_id, token_index, amount, buyer, previous_contribution)
    )


def recover_signer(digest: bytes, signature: bytes) -> bytes:
    """
    Recover the 20-byte Ethereum-style address that signed `digest`.

    Raises:
        ContributorException(InvalidKycSignature): signature is not 65 bytes.
        ContributorException(EcdsaRecoverFailure): r, s or v cannot be recovered.
    """

    require(
        len(signature) == SIGNATURE_LEN,
        ContributorError.INVALID_KYC_SIGNATURE,
        f"signature must be {SIGNATURE_LEN} bytes, got {len(signature)}",
    )
    try:
        recovered = keys.Signature(signature_bytes=bytes(signature)).recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError) as e:
        raise ContributorException(ContributorError.ECDSA_RECOVER_FAILURE, str(e)) from e
    return recovered.to_canonical_address()


def verify_contribution(
    *,
    source_address: bytes,
    sale_id: bytes,
    token_index: int,
    amount: int,
    buyer: bytes,
    previous_contribution: int,
    signature: bytes,
) -> bytes:
    """Recover the signer of a contribution intent. Comparison is the caller's job."""

    require(
        len(signature) == SIGNATURE_LEN,
        ContributorError.INVALID_KYC_SIGNATURE,
        f"signature must be {SIGNATURE_LEN} bytes, got {len(signature)}",
    )
    digest = contribution_digest(source_address, sale_id, token_index, amount, buyer, previous_contribution)
    return recover_signer(digest, signature)


def sign_contribution(
    private_key: bytes,
    *,
    source_address: bytes,
    sale_id: bytes,
    token_index: int,
    amount: int,
    buyer: bytes,
    previous_contribution: int,
) -> bytes:
    """KYC-provider side: produce the 65-byte `r || s || v` signature."""

    digest = contribution_digest(source_address, sale_id, token_index, amount, buyer, previous_contribution)
    return keys.PrivateKey(private_key).sign_msg_hash(digest).to_bytes()


def address_of(private_key: bytes) -> bytes:
    """20-byte address for a KYC signing key."""

    return keys.PrivateKey(private_key).public_key.to_canonical_address()


__all__ = [
    "ADDRESS_LEN",
    "SIGNATURE_LEN",
    "address_of",
    "contribution_digest",
    "contribution_message",
    "recover_signer",
    "sign_contribution",
    "verify_contribution",
]
