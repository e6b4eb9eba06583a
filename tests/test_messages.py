"""
Tests for `domain/messages.py`.

Covers contract rules:
- Sale-init offsets move with the accepted-asset count N; the payload ends at
  217 + 33 * N and later bytes are ignored.
- Short buffers, wrong kinds and unknown kinds are InvalidVaaPayload.
- N above the configured cap is TooManyAcceptedTokens; duplicate token
  indices are InvalidAcceptedTokenPayload.
- Times are uint256 slots read through their low 64 bits.
- Attestations list every accepted asset in order, zero totals included.
- SaleAborted is exactly 33 bytes.
"""

from __future__ import annotations

import pytest

from domain.errors import ContributorError, ContributorException
from domain.messages import (
    AcceptedAsset,
    AttestContributionsMessage,
    AttestedContribution,
    MessageKind,
    SaleAbortedMessage,
    SaleInitLayout,
    SaleSealedMessage,
    SealedAllocation,
    decode_attest_contributions,
    decode_message,
    decode_sale_aborted,
    decode_sale_init,
    decode_sale_sealed,
    encode_attest_contributions,
    encode_sale_aborted,
    encode_sale_init,
    encode_sale_sealed,
)

SALE_ID = bytes(31) + b"\x07"


def _assert_code(exc_info: pytest.ExceptionInfo, code: ContributorError) -> None:
    assert exc_info.value.code == code


def test_sale_init_layout_offsets_follow_asset_count() -> None:
    """Verify every offset after the asset block moves by 33 bytes per asset."""

    layout = SaleInitLayout.for_count(2)
    assert layout.assets_start == 133
    assert layout.asset_record(0) == 133
    assert layout.asset_record(1) == 166
    assert layout.recipient == 199
    assert layout.kyc_authority == 231
    assert layout.unlock == 251
    assert layout.end == 217 + 33 * 2

    assert SaleInitLayout.for_count(0).end == 217

    with pytest.raises(IndexError):
        layout.asset_record(2)


def test_sale_init_round_trip_places_fields_at_fixed_offsets(make_sale_init) -> None:
    """Verify encoding places each field where the decoder reads it back."""

    message = make_sale_init()
    payload = encode_sale_init(message)

    assert len(payload) == 217 + 33 * 2
    assert payload[0] == MessageKind.SALE_INIT
    assert payload[1:33] == message.sale_id
    assert payload[65:67] == (2).to_bytes(2, "big")
    assert payload[67] == 18
    assert payload[132] == 2
    assert payload[133] == 0 and payload[166] == 3
    assert payload[199:231] == message.recipient
    assert payload[231:251] == message.kyc_authority

    assert decode_sale_init(payload) == message


def test_sale_init_ignores_trailing_bytes(make_sale_init) -> None:
    """Verify bytes past the unlock slot do not affect decoding."""

    message = make_sale_init()
    payload = encode_sale_init(message) + b"\x99" * 40

    assert decode_sale_init(payload) == message


def test_sale_init_with_no_accepted_assets(make_sale_init) -> None:
    message = make_sale_init(accepted_assets=())
    decoded = decode_sale_init(encode_sale_init(message))

    assert decoded.accepted_assets == ()
    assert decoded.recipient == message.recipient


def test_sale_init_short_buffer_is_invalid_payload(make_sale_init) -> None:
    """Verify a payload cut anywhere before its end is rejected."""

    payload = encode_sale_init(make_sale_init())

    for cut in (0, 1, 100, 132, 133, 200, len(payload) - 1):
        with pytest.raises(ContributorException) as exc_info:
            decode_sale_init(payload[:cut])
        _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)


def test_sale_init_count_above_cap_is_rejected(make_sale_init) -> None:
    assets = tuple(AcceptedAsset(token_index=i, asset_id=bytes([i]) * 32) for i in range(5))
    payload = encode_sale_init(make_sale_init(accepted_assets=assets))

    assert len(decode_sale_init(payload, accepted_tokens_max=5).accepted_assets) == 5

    with pytest.raises(ContributorException) as exc_info:
        decode_sale_init(payload, accepted_tokens_max=4)
    _assert_code(exc_info, ContributorError.TOO_MANY_ACCEPTED_TOKENS)


def test_sale_init_duplicate_token_index_is_rejected(make_sale_init) -> None:
    assets = (
        AcceptedAsset(token_index=1, asset_id=b"\x01" * 32),
        AcceptedAsset(token_index=1, asset_id=b"\x02" * 32),
    )
    payload = encode_sale_init(make_sale_init(accepted_assets=assets))

    with pytest.raises(ContributorException) as exc_info:
        decode_sale_init(payload)
    _assert_code(exc_info, ContributorError.INVALID_ACCEPTED_TOKEN_PAYLOAD)


def test_sale_init_times_use_low_64_bits(make_sale_init) -> None:
    """Verify high bytes of a uint256 time slot are not part of the value."""

    payload = bytearray(encode_sale_init(make_sale_init(start=10, end=20)))
    payload[68] = 0xFF  # high byte of start
    payload[100] = 0xFF  # high byte of end

    decoded = decode_sale_init(bytes(payload))

    assert decoded.start == 10
    assert decoded.end == 20


def test_sale_init_start_after_end_is_rejected(make_sale_init) -> None:
    payload = encode_sale_init(make_sale_init(start=30, end=20))

    with pytest.raises(ContributorException) as exc_info:
        decode_sale_init(payload)
    _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)


def test_decoders_reject_wrong_kind(make_sale_init) -> None:
    init = encode_sale_init(make_sale_init())
    aborted = encode_sale_aborted(SaleAbortedMessage(sale_id=SALE_ID))

    with pytest.raises(ContributorException) as exc_info:
        decode_sale_init(aborted)
    _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)

    with pytest.raises(ContributorException) as exc_info:
        decode_sale_aborted(init[:33])
    _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)


def test_attest_encoding_includes_every_asset_in_order() -> None:
    """Verify layout: kind, sale id, chain u16, count, then index + uint256 per asset."""

    message = AttestContributionsMessage(
        sale_id=SALE_ID,
        chain_id=1,
        contributions=(
            AttestedContribution(token_index=0, contribution=1_000),
            AttestedContribution(token_index=3, contribution=0),
        ),
    )
    payload = encode_attest_contributions(message)

    assert len(payload) == 36 + 33 * 2
    assert payload[0] == MessageKind.ATTEST_CONTRIBUTIONS
    assert payload[33:35] == b"\x00\x01"
    assert payload[35] == 2
    assert payload[36] == 0
    assert int.from_bytes(payload[37:69], "big") == 1_000
    assert payload[69] == 3
    assert payload[70:102] == bytes(32)

    assert decode_attest_contributions(payload) == message


def test_attest_decode_requires_exact_length() -> None:
    message = AttestContributionsMessage(
        sale_id=SALE_ID,
        chain_id=1,
        contributions=(AttestedContribution(token_index=0, contribution=5),),
    )
    payload = encode_attest_contributions(message)

    for bad in (payload[:-1], payload + b"\x00"):
        with pytest.raises(ContributorException) as exc_info:
            decode_attest_contributions(bad)
        _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)


def test_attest_decode_rejects_totals_above_u64() -> None:
    message = AttestContributionsMessage(
        sale_id=SALE_ID,
        chain_id=1,
        contributions=(AttestedContribution(token_index=0, contribution=1 << 64),),
    )

    with pytest.raises(ContributorException) as exc_info:
        decode_attest_contributions(encode_attest_contributions(message))
    _assert_code(exc_info, ContributorError.AMOUNT_TOO_LARGE)


def test_sale_sealed_decodes_raw_uint256_records() -> None:
    """Verify allocations and excess stay raw uint256 values after decoding."""

    big = (1 << 200) + 5
    message = SaleSealedMessage(
        sale_id=SALE_ID,
        allocations=(
            SealedAllocation(token_index=0, allocation=big, excess_contribution=7),
            SealedAllocation(token_index=3, allocation=0, excess_contribution=0),
        ),
    )
    payload = encode_sale_sealed(message)

    assert len(payload) == 34 + 65 * 2
    decoded = decode_sale_sealed(payload)
    assert decoded.allocations[0].allocation == big
    assert decoded == message


def test_sale_sealed_short_buffer_is_invalid_payload() -> None:
    message = SaleSealedMessage(
        sale_id=SALE_ID,
        allocations=(SealedAllocation(token_index=0, allocation=1, excess_contribution=0),),
    )
    payload = encode_sale_sealed(message)

    with pytest.raises(ContributorException) as exc_info:
        decode_sale_sealed(payload[:-1])
    _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)


def test_sale_aborted_is_exactly_33_bytes() -> None:
    payload = encode_sale_aborted(SaleAbortedMessage(sale_id=SALE_ID))

    assert len(payload) == 33
    assert decode_sale_aborted(payload).sale_id == SALE_ID

    with pytest.raises(ContributorException) as exc_info:
        decode_sale_aborted(payload + b"\x00")
    _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)


def test_decode_message_dispatches_by_kind(make_sale_init) -> None:
    assert decode_message(encode_sale_init(make_sale_init())).kind == MessageKind.SALE_INIT
    assert decode_message(encode_sale_aborted(SaleAbortedMessage(sale_id=SALE_ID))).kind == MessageKind.SALE_ABORTED
    sealed = encode_sale_sealed(SaleSealedMessage(sale_id=SALE_ID, allocations=()))
    assert isinstance(decode_message(sealed), SaleSealedMessage)


def test_decode_message_rejects_empty_and_unknown_kinds() -> None:
    for payload in (b"", b"\x00" + SALE_ID, b"\x09" + SALE_ID):
        with pytest.raises(ContributorException) as exc_info:
            decode_message(payload)
        _assert_code(exc_info, ContributorError.INVALID_VAA_PAYLOAD)
