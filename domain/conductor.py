"""
Domain: Conductor identity and inbound messages.

An inbound message reaches the contributor already authenticated by the
messaging layer: guardian signatures are checked before this code sees it. What
remains is to confirm the message was emitted by the conductor this deployment
trusts. The identity is an explicit value handed to every operation that needs
it; there is no process-wide conductor state.
"""

from __future__ import annotations

from dataclasses import dataclass

from .amounts import U16_MAX
from .errors import ContributorError, require


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """An authenticated cross-chain message: emitter plus opaque payload."""

    emitter_chain: int
    emitter_address: bytes
    payload: bytes


@dataclass(frozen=True, slots=True)
class ConductorIdentity:
    """
    The conductor this contributor accepts lifecycle messages from.

    chain: wormhole-style u16 chain id of the conductor deployment.
    address: 32-byte emitter address of the conductor.
    """

    chain: int
    address: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.chain <= U16_MAX:
            raise ValueError("conductor chain must be a u16")
        if len(self.address) != 32:
            raise ValueError("conductor address must be 32 bytes")

    def verify(self, message: InboundMessage) -> InboundMessage:
        """Reject messages not emitted by this conductor."""

        require(
            message.emitter_chain == self.chain,
            ContributorError.INVALID_CONDUCTOR_CHAIN,
            f"emitter chain {message.emitter_chain} != {self.chain}",
        )
        require(
            message.emitter_address == self.address,
            ContributorError.INVALID_CONDUCTOR_ADDRESS,
        )
        return message


__all__ = ["ConductorIdentity", "InboundMessage"]
