"""
Domain: Fixed-width amount helpers (pure).

Local balances are u64. Conductor-side amounts are uint256 and must be range
checked before they become local state; nothing here ever wraps.

Python integers are arbitrary precision, so products such as
`contribution * allocations` never overflow before the division. Range checks
happen on the final value only.
"""

from __future__ import annotations

from .errors import ContributorError, ContributorException, require

U8_MAX = (1 << 8) - 1
U16_MAX = (1 << 16) - 1
U64_MAX = (1 << 64) - 1
U256_MAX = (1 << 256) - 1


def require_u64(name: str, value: int) -> int:
    """Return value if it fits in u64, else fail with AmountTooLarge."""

    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    require(value <= U64_MAX, ContributorError.AMOUNT_TOO_LARGE, f"{name} exceeds u64")
    return value


def checked_add(name: str, a: int, b: int) -> int:
    """u64 addition that fails instead of wrapping."""

    return require_u64(name, a + b)


def pro_rata(part: int, pool: int, whole: int) -> int:
    """
    Share of `pool` owed to `part` out of `whole`: floor(part * pool / whole).

    A zero `whole` yields zero. The result is not range checked here; callers
    sum shares first and check the total.
    """

    if whole == 0:
        return 0
    return part * pool // whole


def require_below_u64_max(name: str, value: int) -> int:
    """
    Accept values strictly below u64::MAX.

    Allocation results are compared with `<` rather than `<=`, matching the
    conductor's own bound on sealed allocations.
    """

    require(value < U64_MAX, ContributorError.AMOUNT_TOO_LARGE, f"{name} exceeds u64")
    return value


def scale_down(value: int, from_decimals: int, to_decimals: int) -> int:
    """
    Re-express a conductor-chain amount in local decimals.

    Integer division by 10^(from - to); never floating point. A local asset
    with more decimals than its origin cannot be represented and is rejected.
    """

    if to_decimals > from_decimals:
        raise ContributorException(
            ContributorError.INVALID_TOKEN_DECIMALS,
            f"native decimals {to_decimals} exceed asset decimals {from_decimals}",
        )
    return value // (10 ** (from_decimals - to_decimals))


def to_uint256_bytes(value: int) -> bytes:
    """Left-pad an unsigned integer into a 32-byte big-endian slot."""

    if value < 0 or value > U256_MAX:
        raise ValueError("value does not fit in uint256")
    return value.to_bytes(32, "big")


__all__ = [
    "U8_MAX",
    "U16_MAX",
    "U64_MAX",
    "U256_MAX",
    "checked_add",
    "pro_rata",
    "require_below_u64_max",
    "require_u64",
    "scale_down",
    "to_uint256_bytes",
]
