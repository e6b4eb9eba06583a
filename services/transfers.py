"""
Outbound value movements.

The contributor never moves tokens itself. Claims and bridging return
TransferInstructions for the external transfer mechanism (token program,
token bridge) to execute.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TransferInstruction:
    """
    asset: 32-byte id of the asset to move
    amount: u64 amount in the asset's local decimals
    destination: 32-byte recipient address
    destination_chain: chain id the recipient lives on
    """

    asset: bytes
    amount: int
    destination: bytes
    destination_chain: int


__all__ = ["TransferInstruction"]
