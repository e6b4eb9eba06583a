"""
Pytest configuration for contributor tests.

This file adds the parent directory to the Python path so that tests
can import from the domain, repositories, services and api modules, and
provides shared fixtures: conductor identity, a KYC signing key and
payload builders.
"""

import sys
from pathlib import Path
from typing import Callable

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.conductor import ConductorIdentity, InboundMessage  # noqa: E402
from domain.kyc import address_of, sign_contribution  # noqa: E402
from domain.messages import AcceptedAsset, SaleInitMessage  # noqa: E402
from repositories.memory_store import InMemoryLedgerStore  # noqa: E402

KYC_PRIVATE_KEY = bytes.fromhex("4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")
SALE_ID = bytes(31) + b"\x07"
CONDUCTOR_ADDRESS = bytes(12) + bytes.fromhex("ab" * 20)
START, END, UNLOCK = 1_000, 2_000, 3_000


@pytest.fixture
def conductor() -> ConductorIdentity:
    return ConductorIdentity(chain=2, address=CONDUCTOR_ADDRESS)


@pytest.fixture
def kyc_key() -> bytes:
    return KYC_PRIVATE_KEY


@pytest.fixture
def kyc_authority() -> bytes:
    return address_of(KYC_PRIVATE_KEY)


@pytest.fixture
def sale_id() -> bytes:
    return SALE_ID


@pytest.fixture
def store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore()


@pytest.fixture
def make_sale_init(kyc_authority: bytes) -> Callable[..., SaleInitMessage]:
    """Build a SaleInit message; keyword arguments override the defaults."""

    def _build(**overrides) -> SaleInitMessage:
        fields = dict(
            sale_id=SALE_ID,
            asset_address=bytes.fromhex("5a" * 32),
            asset_chain=2,
            asset_decimals=18,
            start=START,
            end=END,
            accepted_assets=(
                AcceptedAsset(token_index=0, asset_id=bytes.fromhex("aa" * 32)),
                AcceptedAsset(token_index=3, asset_id=bytes.fromhex("bb" * 32)),
            ),
            recipient=bytes.fromhex("7e" * 32),
            kyc_authority=kyc_authority,
            unlock=UNLOCK,
        )
        fields.update(overrides)
        return SaleInitMessage(**fields)

    return _build


@pytest.fixture
def sign(kyc_key: bytes) -> Callable[..., bytes]:
    """Sign a contribution intent for SALE_ID with the test KYC key."""

    def _sign(owner: bytes, token_index: int, amount: int, previous: int = 0, *, sale: bytes = SALE_ID) -> bytes:
        return sign_contribution(
            kyc_key,
            source_address=CONDUCTOR_ADDRESS,
            sale_id=sale,
            token_index=token_index,
            amount=amount,
            buyer=owner,
            previous_contribution=previous,
        )

    return _sign


@pytest.fixture
def inbound(conductor: ConductorIdentity) -> Callable[[bytes], InboundMessage]:
    def _wrap(payload: bytes) -> InboundMessage:
        return InboundMessage(emitter_chain=conductor.chain, emitter_address=conductor.address, payload=payload)

    return _wrap
