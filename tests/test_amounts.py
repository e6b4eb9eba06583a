"""
Tests for `domain/amounts.py` and `domain/time.py`.

Covers contract rules:
- u64 arithmetic fails instead of wrapping.
- Pro-rata shares floor and treat an empty pool as zero.
- Down-scaling divides by a power of ten and never adds decimals.
- Timestamps entering the domain are UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from domain.amounts import (
    U64_MAX,
    checked_add,
    pro_rata,
    require_below_u64_max,
    require_u64,
    scale_down,
    to_uint256_bytes,
)
from domain.errors import ContributorError, ContributorException
from domain.time import from_unix_seconds, to_unix_seconds


def test_require_u64_bounds() -> None:
    assert require_u64("x", U64_MAX) == U64_MAX

    with pytest.raises(ContributorException) as exc_info:
        require_u64("x", U64_MAX + 1)
    assert exc_info.value.code == ContributorError.AMOUNT_TOO_LARGE

    with pytest.raises(ValueError):
        require_u64("x", -1)


def test_checked_add_does_not_wrap() -> None:
    assert checked_add("x", U64_MAX - 1, 1) == U64_MAX

    with pytest.raises(ContributorException):
        checked_add("x", U64_MAX, 1)


def test_require_below_u64_max_is_strict() -> None:
    assert require_below_u64_max("x", U64_MAX - 1) == U64_MAX - 1

    with pytest.raises(ContributorException):
        require_below_u64_max("x", U64_MAX)


def test_pro_rata() -> None:
    assert pro_rata(25, 40, 100) == 10
    assert pro_rata(1, 10, 3) == 3
    assert pro_rata(5, 10, 0) == 0
    # intermediate product above u64 is fine
    assert pro_rata(U64_MAX, U64_MAX, U64_MAX) == U64_MAX


def test_scale_down() -> None:
    assert scale_down(123_456_789, 9, 6) == 123_456
    assert scale_down(5, 8, 8) == 5

    with pytest.raises(ContributorException) as exc_info:
        scale_down(5, 6, 8)
    assert exc_info.value.code == ContributorError.INVALID_TOKEN_DECIMALS


def test_to_uint256_bytes() -> None:
    assert to_uint256_bytes(1) == bytes(31) + b"\x01"

    with pytest.raises(ValueError):
        to_uint256_bytes(1 << 256)


def test_unix_seconds_require_utc() -> None:
    dt = datetime(2025, 1, 1, tzinfo=timezone.utc)

    assert to_unix_seconds("now", dt) == 1_735_689_600
    assert from_unix_seconds(1_735_689_600) == dt

    with pytest.raises(ValueError):
        to_unix_seconds("now", datetime(2025, 1, 1))

    with pytest.raises(ValueError):
        to_unix_seconds("now", datetime(2025, 1, 1, tzinfo=timezone(timedelta(hours=2))))
