#!/usr/bin/env python3
"""
KYC Contribution Signing Script

Signs a contribution intent the way the off-chain KYC provider does, so that
operators can produce signatures for local sales and fixtures.

Usage:
    python sign_contribution.py --private-key 0x... --sale-id 0x... \\
        --token-index 2 --amount 1000000 --buyer 0x... --previous 0
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import parse_hex_bytes
from domain.kyc import address_of, contribution_digest, sign_contribution


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Sign a sale contribution intent with a KYC authority key",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # First contribution of 1000000 units of token index 2
  python sign_contribution.py --private-key 0x<32 bytes> --sale-id 0x<32 bytes> \\
      --token-index 2 --amount 1000000 --buyer 0x<32 bytes>

  # Second contribution: --previous is the buyer's running total
  python sign_contribution.py ... --amount 500 --previous 1000000
        """
    )

    parser.add_argument("--private-key", required=True, help="KYC authority secp256k1 key (32-byte hex)")
    parser.add_argument("--sale-id", required=True, help="Sale id (32-byte hex)")
    parser.add_argument("--token-index", type=int, required=True, help="Accepted asset token index")
    parser.add_argument("--amount", type=int, required=True, help="Contribution amount (u64)")
    parser.add_argument("--buyer", required=True, help="Buyer address (32-byte hex)")
    parser.add_argument("--previous", type=int, default=0, help="Buyer's total before this contribution")
    parser.add_argument(
        "--source-address",
        help="Leading 32-byte slot of the intent (default: CONDUCTOR_ADDRESS from the environment)",
    )

    args = parser.parse_args()

    try:
        if args.source_address:
            source = parse_hex_bytes("--source-address", args.source_address, 32)
        else:
            from config.settings import load_settings

            source = load_settings().kyc_source

        private_key = parse_hex_bytes("--private-key", args.private_key, 32)
        fields = dict(
            source_address=source,
            sale_id=parse_hex_bytes("--sale-id", args.sale_id, 32),
            token_index=args.token_index,
            amount=args.amount,
            buyer=parse_hex_bytes("--buyer", args.buyer, 32),
            previous_contribution=args.previous,
        )

        signature = sign_contribution(private_key, **fields)

        print(f"Signer:    0x{address_of(private_key).hex()}")
        print(f"Digest:    0x{contribution_digest(**fields).hex()}")
        print(f"Signature: 0x{signature.hex()}")
        return 0

    except KeyboardInterrupt:
        print("\n\nSigning interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
