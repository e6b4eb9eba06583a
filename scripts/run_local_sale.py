#!/usr/bin/env python3
"""
Local Sale Simulation

Runs one sale end to end against the in-memory ledger store, playing the
conductor and the KYC provider locally:

    SaleInit -> contributions -> attestation -> SaleSealed
        -> bridge -> allocation claims

or, with --abort, SaleInit -> contributions -> SaleAborted -> refunds.

Usage:
    python run_local_sale.py
    python run_local_sale.py --abort
    python run_local_sale.py --log-format json
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logging import configure_logging
from domain.conductor import ConductorIdentity, InboundMessage
from domain.kyc import address_of, sign_contribution
from domain.messages import (
    AcceptedAsset,
    SaleAbortedMessage,
    SaleInitMessage,
    SaleSealedMessage,
    SealedAllocation,
    decode_attest_contributions,
    encode_sale_aborted,
    encode_sale_init,
    encode_sale_sealed,
)
from repositories.memory_store import InMemoryLedgerStore
from services.claim_service import claim_allocation, claim_refunds
from services.contribution_service import ContributionRequest, contribute
from services.lifecycle_service import (
    attest_contributions,
    bridge_sealed_contributions,
    handle_conductor_message,
)

CONDUCTOR = ConductorIdentity(chain=2, address=bytes(12) + bytes.fromhex("11" * 20))
LOCAL_CHAIN_ID = 1
KYC_PRIVATE_KEY = bytes.fromhex("b0057716d5917badaf911b193b12b910811c1497b5bada8d7711f758981c3773")

SALE_ID = bytes(31) + b"\x01"
START, END, UNLOCK = 1_000, 2_000, 3_000
ASSETS = (
    AcceptedAsset(token_index=0, asset_id=bytes.fromhex("aa" * 32)),
    AcceptedAsset(token_index=1, asset_id=bytes.fromhex("bb" * 32)),
)
BUYERS = (bytes.fromhex("c1" * 32), bytes.fromhex("c2" * 32))


def _deliver(store: InMemoryLedgerStore, payload: bytes, **kwargs):
    inbound = InboundMessage(emitter_chain=CONDUCTOR.chain, emitter_address=CONDUCTOR.address, payload=payload)
    return handle_conductor_message(store, CONDUCTOR, inbound, **kwargs)


def _contribute(store: InMemoryLedgerStore, owner: bytes, token_index: int, amount: int, previous: int) -> None:
    signature = sign_contribution(
        KYC_PRIVATE_KEY,
        source_address=CONDUCTOR.address,
        sale_id=SALE_ID,
        token_index=token_index,
        amount=amount,
        buyer=owner,
        previous_contribution=previous,
    )
    result = contribute(
        store,
        ContributionRequest(
            sale_id=SALE_ID,
            owner=owner,
            token_index=token_index,
            amount=amount,
            signature=signature,
            now=START + 10,
        ),
        kyc_source=CONDUCTOR.address,
    )
    print(f"  {owner.hex()[:8]}.. contributed {amount} of asset {token_index} (sale total {result.sale_total})")


def run(abort: bool) -> None:
    store = InMemoryLedgerStore()

    print("Initializing sale...")
    init = SaleInitMessage(
        sale_id=SALE_ID,
        asset_address=bytes.fromhex("5a" * 32),
        asset_chain=CONDUCTOR.chain,
        asset_decimals=18,
        start=START,
        end=END,
        accepted_assets=ASSETS,
        recipient=bytes.fromhex("7e" * 32),
        kyc_authority=address_of(KYC_PRIVATE_KEY),
        unlock=UNLOCK,
    )
    _deliver(store, encode_sale_init(init), native_decimals=9)

    print("Contributing...")
    _contribute(store, BUYERS[0], 0, 400, previous=0)
    _contribute(store, BUYERS[0], 0, 100, previous=400)
    _contribute(store, BUYERS[1], 0, 500, previous=0)
    _contribute(store, BUYERS[1], 1, 250, previous=0)

    if abort:
        print("Aborting sale...")
        _deliver(store, encode_sale_aborted(SaleAbortedMessage(sale_id=SALE_ID)))
        for owner in BUYERS:
            result = claim_refunds(store, SALE_ID, owner, local_chain_id=LOCAL_CHAIN_ID)
            for transfer in result.transfers:
                print(f"  refund {transfer.amount} of {transfer.asset.hex()[:8]}.. to {owner.hex()[:8]}..")
        return

    print("Attesting...")
    attestation = decode_attest_contributions(
        attest_contributions(store, SALE_ID, now=END + 1, chain_id=LOCAL_CHAIN_ID)
    )
    for item in attestation.contributions:
        print(f"  asset {item.token_index}: {item.contribution}")

    print("Sealing sale...")
    sealed = SaleSealedMessage(
        sale_id=SALE_ID,
        allocations=(
            SealedAllocation(token_index=0, allocation=6_000 * 10**9, excess_contribution=100),
            SealedAllocation(token_index=1, allocation=2_000 * 10**9, excess_contribution=0),
        ),
    )
    _deliver(store, encode_sale_sealed(sealed), custodian_balance=8_000)

    for total in store.get_sale(SALE_ID).value.totals:
        transfer = bridge_sealed_contributions(store, SALE_ID, total.token_index)
        print(f"  bridged {transfer.amount} of asset {total.token_index} to chain {transfer.destination_chain}")

    print("Claiming allocations...")
    for owner in BUYERS:
        result = claim_allocation(store, SALE_ID, owner, local_chain_id=LOCAL_CHAIN_ID)
        excess = sum(t.amount for t in result.transfers[1:])
        print(f"  {owner.hex()[:8]}.. allocation {result.allocation}, excess {excess}")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Run one sale end to end against the in-memory ledger")
    parser.add_argument("--abort", action="store_true", help="Abort the sale instead of sealing it")
    parser.add_argument("--log-format", choices=["text", "json"], default="text", help="Log output format")
    args = parser.parse_args()

    configure_logging(args.log_format)

    try:
        run(args.abort)
        return 0

    except KeyboardInterrupt:
        print("\n\nSimulation interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
