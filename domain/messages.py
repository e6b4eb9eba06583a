"""
Domain: Cross-chain payload codec (pure).

Conductor and contributor exchange four payload kinds, each identified by its
leading byte:

- SaleInit (1): conductor -> contributor, creates the local sale.
- AttestContributions (2): contributor -> conductor, reports collected totals.
- SaleSealed (3): conductor -> contributor, carries allocations and excess.
- SaleAborted (4): conductor -> contributor, cancels the sale.

All integers are big-endian. Conductor amounts and times are uint256 slots.
Decoders either return a fully parsed message or raise a decoding error; they
never touch ledger state. Encoders exist for every kind so that the conductor
side of an exchange can be reproduced (fixtures, local simulation).

Sale-init layout: the accepted-asset block is variable-length and sits before
the recipient, so every later offset depends on the asset count N. Offsets are
computed once into a SaleInitLayout table and bounds checked there.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Dict, Tuple, Union

from .amounts import U8_MAX, U16_MAX, U64_MAX, to_uint256_bytes
from .errors import ContributorError, ContributorException, require


class MessageKind(IntEnum):
    SALE_INIT = 1
    ATTEST_CONTRIBUTIONS = 2
    SALE_SEALED = 3
    SALE_ABORTED = 4


# universal
HEADER_LEN = 33  # kind + sale id
INDEX_SALE_ID = 1
UINT256_LEN = 32

# sale init
INDEX_SALE_INIT_ASSET_ADDRESS = 33
INDEX_SALE_INIT_ASSET_CHAIN = 65
INDEX_SALE_INIT_ASSET_DECIMALS = 67
INDEX_SALE_INIT_START = 68
INDEX_SALE_INIT_END = 100
INDEX_SALE_INIT_ACCEPTED_COUNT = 132
ACCEPTED_ASSET_LEN = 33  # token index + asset id
RECIPIENT_LEN = 32
KYC_AUTHORITY_LEN = 20
ACCEPTED_TOKENS_MAX = 256

# attest contributions
INDEX_ATTEST_CHAIN = 33
INDEX_ATTEST_COUNT = 35
ATTEST_ELEMENT_LEN = 33  # token index + uint256 contribution

# sale sealed
INDEX_SEALED_COUNT = 33
ALLOCATION_LEN = 65  # token index + uint256 allocation + uint256 excess


@dataclass(frozen=True, slots=True)
class AcceptedAsset:
    token_index: int
    asset_id: bytes


@dataclass(frozen=True, slots=True)
class SaleInitMessage:
    sale_id: bytes
    asset_address: bytes
    asset_chain: int
    asset_decimals: int
    start: int
    end: int
    accepted_assets: Tuple[AcceptedAsset, ...]
    recipient: bytes
    kyc_authority: bytes
    unlock: int

    @property
    def kind(self) -> MessageKind:
        return MessageKind.SALE_INIT


@dataclass(frozen=True, slots=True)
class AttestedContribution:
    token_index: int
    contribution: int


@dataclass(frozen=True, slots=True)
class AttestContributionsMessage:
    sale_id: bytes
    chain_id: int
    contributions: Tuple[AttestedContribution, ...]

    @property
    def kind(self) -> MessageKind:
        return MessageKind.ATTEST_CONTRIBUTIONS


@dataclass(frozen=True, slots=True)
class SealedAllocation:
    """
    One allocation record as sent by the conductor.

    Both amounts are raw uint256 values: the allocation is still expressed in
    the sale asset's origin-chain decimals and is rescaled by the Sale Ledger.
    """

    token_index: int
    allocation: int
    excess_contribution: int


@dataclass(frozen=True, slots=True)
class SaleSealedMessage:
    sale_id: bytes
    allocations: Tuple[SealedAllocation, ...]

    @property
    def kind(self) -> MessageKind:
        return MessageKind.SALE_SEALED


@dataclass(frozen=True, slots=True)
class SaleAbortedMessage:
    sale_id: bytes

    @property
    def kind(self) -> MessageKind:
        return MessageKind.SALE_ABORTED


ConductorMessage = Union[
    SaleInitMessage,
    AttestContributionsMessage,
    SaleSealedMessage,
    SaleAbortedMessage,
]


@dataclass(frozen=True, slots=True)
class SaleInitLayout:
    """
    Offset table for a sale-init payload carrying `count` accepted assets.

    Every field after the accepted-asset block moves by ACCEPTED_ASSET_LEN per
    asset; the table is the single place that arithmetic happens.
    """

    count: int
    assets_start: int
    recipient: int
    kyc_authority: int
    unlock: int
    end: int

    @staticmethod
    def for_count(count: int) -> "SaleInitLayout":
        assets_start = INDEX_SALE_INIT_ACCEPTED_COUNT + 1
        recipient = assets_start + ACCEPTED_ASSET_LEN * count
        kyc_authority = recipient + RECIPIENT_LEN
        unlock = kyc_authority + KYC_AUTHORITY_LEN
        return SaleInitLayout(
            count=count,
            assets_start=assets_start,
            recipient=recipient,
            kyc_authority=kyc_authority,
            unlock=unlock,
            end=unlock + UINT256_LEN,
        )

    def asset_record(self, i: int) -> int:
        if not 0 <= i < self.count:
            raise IndexError("accepted asset index out of range")
        return self.assets_start + ACCEPTED_ASSET_LEN * i

    def require_fits(self, payload: bytes) -> None:
        require(
            len(payload) >= self.end,
            ContributorError.INVALID_VAA_PAYLOAD,
            f"sale init needs {self.end} bytes for {self.count} assets, got {len(payload)}",
        )


# ---------------------------------------------------------------------------
# Byte helpers
# ---------------------------------------------------------------------------


def _require_len(name: str, value: bytes, length: int) -> None:
    if len(value) != length:
        raise ValueError(f"{name} must be {length} bytes")


def _require_kind(payload: bytes, kind: MessageKind) -> None:
    require(len(payload) > 0, ContributorError.INVALID_VAA_PAYLOAD, "empty payload")
    require(
        payload[0] == kind,
        ContributorError.INVALID_VAA_PAYLOAD,
        f"expected payload kind {int(kind)}, got {payload[0]}",
    )


def _read_u16(payload: bytes, index: int) -> int:
    return int.from_bytes(payload[index : index + 2], "big")


def _read_uint256(payload: bytes, index: int) -> int:
    return int.from_bytes(payload[index : index + UINT256_LEN], "big")


def _read_low_u64(payload: bytes, index: int) -> int:
    # times are uint256 on the conductor; only the low 8 bytes carry the value
    return int.from_bytes(payload[index + 24 : index + UINT256_LEN], "big")


def _read_bytes32(payload: bytes, index: int) -> bytes:
    return bytes(payload[index : index + 32])


# ---------------------------------------------------------------------------
# SaleInit
# ---------------------------------------------------------------------------


def decode_sale_init(payload: bytes, *, accepted_tokens_max: int = ACCEPTED_TOKENS_MAX) -> SaleInitMessage:
    """
    Parse a sale-init payload.

    Pass 1 reads N and builds the offset table; pass 2 extracts fields from it.

    Raises:
        ContributorException(InvalidVaaPayload): wrong kind, short buffer, start > end.
        ContributorException(TooManyAcceptedTokens): N above accepted_tokens_max.
        ContributorException(InvalidAcceptedTokenPayload): duplicate token index.
    """

    _require_kind(payload, MessageKind.SALE_INIT)
    require(
        len(payload) > INDEX_SALE_INIT_ACCEPTED_COUNT,
        ContributorError.INVALID_VAA_PAYLOAD,
        "sale init too short to hold the accepted asset count",
    )

    count = payload[INDEX_SALE_INIT_ACCEPTED_COUNT]
    require(
        count <= accepted_tokens_max,
        ContributorError.TOO_MANY_ACCEPTED_TOKENS,
        f"{count} accepted assets (max {accepted_tokens_max})",
    )

    layout = SaleInitLayout.for_count(count)
    layout.require_fits(payload)

    assets = []
    seen = set()
    for i in range(count):
        start = layout.asset_record(i)
        token_index = payload[start]
        require(
            token_index not in seen,
            ContributorError.INVALID_ACCEPTED_TOKEN_PAYLOAD,
            f"duplicate token index {token_index}",
        )
        seen.add(token_index)
        assets.append(
            AcceptedAsset(
                token_index=token_index,
                asset_id=bytes(payload[start + 1 : start + ACCEPTED_ASSET_LEN]),
            )
        )

    sale_start = _read_low_u64(payload, INDEX_SALE_INIT_START)
    sale_end = _read_low_u64(payload, INDEX_SALE_INIT_END)
    require(
        sale_start <= sale_end,
        ContributorError.INVALID_VAA_PAYLOAD,
        "sale start is after sale end",
    )

    return SaleInitMessage(
        sale_id=_read_bytes32(payload, INDEX_SALE_ID),
        asset_address=_read_bytes32(payload, INDEX_SALE_INIT_ASSET_ADDRESS),
        asset_chain=_read_u16(payload, INDEX_SALE_INIT_ASSET_CHAIN),
        asset_decimals=payload[INDEX_SALE_INIT_ASSET_DECIMALS],
        start=sale_start,
        end=sale_end,
        accepted_assets=tuple(assets),
        recipient=_read_bytes32(payload, layout.recipient),
        kyc_authority=bytes(payload[layout.kyc_authority : layout.kyc_authority + KYC_AUTHORITY_LEN]),
        unlock=_read_low_u64(payload, layout.unlock),
    )


def encode_sale_init(message: SaleInitMessage) -> bytes:
    """Conductor-side encoder for SaleInit."""

    _require_len("sale_id", message.sale_id, 32)
    _require_len("asset_address", message.asset_address, 32)
    _require_len("recipient", message.recipient, RECIPIENT_LEN)
    _require_len("kyc_authority", message.kyc_authority, KYC_AUTHORITY_LEN)
    if len(message.accepted_assets) > U8_MAX:
        raise ValueError("at most 255 accepted assets fit in the count byte")

    out = bytearray()
    out.append(MessageKind.SALE_INIT)
    out += message.sale_id
    out += message.asset_address
    out += message.asset_chain.to_bytes(2, "big")
    out.append(message.asset_decimals)
    out += to_uint256_bytes(message.start)
    out += to_uint256_bytes(message.end)
    out.append(len(message.accepted_assets))
    for asset in message.accepted_assets:
        _require_len("asset_id", asset.asset_id, 32)
        out.append(asset.token_index)
        out += asset.asset_id
    out += message.recipient
    out += message.kyc_authority
    out += to_uint256_bytes(message.unlock)
    return bytes(out)


# ---------------------------------------------------------------------------
# AttestContributions
# ---------------------------------------------------------------------------


def encode_attest_contributions(message: AttestContributionsMessage) -> bytes:
    """
    Encode the contributor's attestation of collected totals.

    Every accepted asset is included in sale order, zero totals included.
    """

    _require_len("sale_id", message.sale_id, 32)
    if not 0 <= message.chain_id <= U16_MAX:
        raise ValueError("chain_id must be a u16")

    out = bytearray()
    out.append(MessageKind.ATTEST_CONTRIBUTIONS)
    out += message.sale_id
    out += message.chain_id.to_bytes(2, "big")
    out.append(len(message.contributions))
    for item in message.contributions:
        out.append(item.token_index)
        out += to_uint256_bytes(item.contribution)
    return bytes(out)


def decode_attest_contributions(payload: bytes) -> AttestContributionsMessage:
    _require_kind(payload, MessageKind.ATTEST_CONTRIBUTIONS)
    require(
        len(payload) > INDEX_ATTEST_COUNT,
        ContributorError.INVALID_VAA_PAYLOAD,
        "attestation too short",
    )
    count = payload[INDEX_ATTEST_COUNT]
    require(
        len(payload) == INDEX_ATTEST_COUNT + 1 + ATTEST_ELEMENT_LEN * count,
        ContributorError.INVALID_VAA_PAYLOAD,
        "attestation length does not match its count",
    )

    contributions = []
    for i in range(count):
        start = INDEX_ATTEST_COUNT + 1 + ATTEST_ELEMENT_LEN * i
        value = _read_uint256(payload, start + 1)
        require(value <= U64_MAX, ContributorError.AMOUNT_TOO_LARGE, "attested contribution exceeds u64")
        contributions.append(AttestedContribution(token_index=payload[start], contribution=value))

    return AttestContributionsMessage(
        sale_id=_read_bytes32(payload, INDEX_SALE_ID),
        chain_id=_read_u16(payload, INDEX_ATTEST_CHAIN),
        contributions=tuple(contributions),
    )


# ---------------------------------------------------------------------------
# SaleSealed
# ---------------------------------------------------------------------------


def decode_sale_sealed(payload: bytes) -> SaleSealedMessage:
    """
    Parse a sale-sealed payload into raw allocation records.

    The count and ordering are checked against the sale by the Sale Ledger;
    here only the buffer length is validated.
    """

    _require_kind(payload, MessageKind.SALE_SEALED)
    require(
        len(payload) > INDEX_SEALED_COUNT,
        ContributorError.INVALID_VAA_PAYLOAD,
        "sale sealed too short to hold the allocation count",
    )
    count = payload[INDEX_SEALED_COUNT]
    require(
        len(payload) >= INDEX_SEALED_COUNT + 1 + ALLOCATION_LEN * count,
        ContributorError.INVALID_VAA_PAYLOAD,
        f"sale sealed too short for {count} allocations",
    )

    allocations = []
    for i in range(count):
        start = INDEX_SEALED_COUNT + 1 + ALLOCATION_LEN * i
        allocations.append(
            SealedAllocation(
                token_index=payload[start],
                allocation=_read_uint256(payload, start + 1),
                excess_contribution=_read_uint256(payload, start + 1 + UINT256_LEN),
            )
        )

    return SaleSealedMessage(
        sale_id=_read_bytes32(payload, INDEX_SALE_ID),
        allocations=tuple(allocations),
    )


def encode_sale_sealed(message: SaleSealedMessage) -> bytes:
    """Conductor-side encoder for SaleSealed."""

    _require_len("sale_id", message.sale_id, 32)
    out = bytearray()
    out.append(MessageKind.SALE_SEALED)
    out += message.sale_id
    out.append(len(message.allocations))
    for item in message.allocations:
        out.append(item.token_index)
        out += to_uint256_bytes(item.allocation)
        out += to_uint256_bytes(item.excess_contribution)
    return bytes(out)


# ---------------------------------------------------------------------------
# SaleAborted
# ---------------------------------------------------------------------------


def decode_sale_aborted(payload: bytes) -> SaleAbortedMessage:
    _require_kind(payload, MessageKind.SALE_ABORTED)
    require(
        len(payload) == HEADER_LEN,
        ContributorError.INVALID_VAA_PAYLOAD,
        f"sale aborted must be exactly {HEADER_LEN} bytes",
    )
    return SaleAbortedMessage(sale_id=_read_bytes32(payload, INDEX_SALE_ID))


def encode_sale_aborted(message: SaleAbortedMessage) -> bytes:
    _require_len("sale_id", message.sale_id, 32)
    return bytes([MessageKind.SALE_ABORTED]) + message.sale_id


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def decode_message(payload: bytes, *, accepted_tokens_max: int = ACCEPTED_TOKENS_MAX) -> ConductorMessage:
    """Decode any payload kind once, by its leading byte."""

    require(len(payload) > 0, ContributorError.INVALID_VAA_PAYLOAD, "empty payload")

    decoders: Dict[int, Callable[[bytes], ConductorMessage]] = {
        MessageKind.SALE_INIT: lambda p: decode_sale_init(p, accepted_tokens_max=accepted_tokens_max),
        MessageKind.ATTEST_CONTRIBUTIONS: decode_attest_contributions,
        MessageKind.SALE_SEALED: decode_sale_sealed,
        MessageKind.SALE_ABORTED: decode_sale_aborted,
    }
    decoder = decoders.get(payload[0])
    if decoder is None:
        raise ContributorException(
            ContributorError.INVALID_VAA_PAYLOAD, f"unknown payload kind {payload[0]}"
        )
    return decoder(payload)


__all__ = [
    "ACCEPTED_TOKENS_MAX",
    "AcceptedAsset",
    "AttestContributionsMessage",
    "AttestedContribution",
    "ConductorMessage",
    "MessageKind",
    "SaleAbortedMessage",
    "SaleInitLayout",
    "SaleInitMessage",
    "SaleSealedMessage",
    "SealedAllocation",
    "decode_attest_contributions",
    "decode_message",
    "decode_sale_aborted",
    "decode_sale_init",
    "decode_sale_sealed",
    "encode_attest_contributions",
    "encode_sale_aborted",
    "encode_sale_init",
    "encode_sale_sealed",
]
