"""
Sale lifecycle service.

Handles:
- Inbound conductor messages: identity check, decode once, route by kind
- SaleInit / SaleSealed / SaleAborted application to the Sale Ledger
- Attestation of collected totals once the contribution window has closed
- Bridging sealed contributions to the sale recipient

Every write is a read-transition-commit cycle on the ledger store, retried on
stale writes. A message rejected by the Sale Ledger leaves the stored sale as
it was.
"""

from __future__ import annotations

import logging
from typing import Optional

from domain.conductor import ConductorIdentity, InboundMessage
from domain.errors import ContributorError, ContributorException, require
from domain.messages import (
    ACCEPTED_TOKENS_MAX,
    INDEX_SALE_ID,
    MessageKind,
    SaleAbortedMessage,
    SaleInitMessage,
    SaleSealedMessage,
    decode_message,
    encode_attest_contributions,
)
from domain.sale import Sale
from repositories.store import LedgerStore
from services.retry import run_with_retries
from services.transfers import TransferInstruction

logger = logging.getLogger(__name__)


def init_sale(
    store: LedgerStore,
    message: SaleInitMessage,
    *,
    native_decimals: Optional[int] = None,
    accepted_tokens_max: int = ACCEPTED_TOKENS_MAX,
) -> Sale:
    """Create the local sale from a decoded SaleInit message."""

    def _apply() -> Sale:
        current = store.get_sale(message.sale_id)
        sale = current.value.initialize(
            message,
            native_decimals=native_decimals,
            accepted_tokens_max=accepted_tokens_max,
        )
        store.commit(sale=current.advance(sale))
        return sale

    sale = run_with_retries(_apply, label="init_sale")
    logger.info(
        "Sale %s initialized: %d accepted assets, window [%d, %d]",
        sale.id.hex(),
        len(sale.totals),
        sale.times.start,
        sale.times.end,
        extra={"sale_id": sale.id},
    )
    return sale


def bind_native_decimals(store: LedgerStore, sale_id: bytes, decimals: int) -> Sale:
    """Record the local decimals of the sale asset (required before sealing)."""

    def _apply() -> Sale:
        current = store.get_sale(sale_id)
        sale = current.value.bind_native_decimals(decimals)
        store.commit(sale=current.advance(sale))
        return sale

    sale = run_with_retries(_apply, label="bind_native_decimals")
    logger.info("Sale %s native decimals bound to %d", sale_id.hex(), decimals, extra={"sale_id": sale_id})
    return sale


def seal_sale(
    store: LedgerStore,
    message: SaleSealedMessage,
    *,
    custodian_balance: Optional[int] = None,
) -> Sale:
    """
    Apply the conductor's allocations and seal the sale.

    Args:
        store: ledger store
        message: decoded SaleSealed message
        custodian_balance: sale-asset balance held for this sale, in native
            decimals. When given, the scaled allocations must fit in it.

    Raises:
        ContributorException(InsufficientFunds): allocations exceed the balance.
    """

    def _apply() -> Sale:
        current = store.get_sale(message.sale_id)
        sale = current.value.seal(message)
        if custodian_balance is not None:
            require(
                sale.total_allocations <= custodian_balance,
                ContributorError.INSUFFICIENT_FUNDS,
                f"allocations {sale.total_allocations} exceed custodian balance {custodian_balance}",
            )
        store.commit(sale=current.advance(sale))
        return sale

    sale = run_with_retries(_apply, label="seal_sale")
    logger.info(
        "Sale %s sealed: total allocations %d",
        sale.id.hex(),
        sale.total_allocations,
        extra={"sale_id": sale.id},
    )
    return sale


def abort_sale(store: LedgerStore, message: SaleAbortedMessage) -> Sale:
    def _apply() -> Sale:
        current = store.get_sale(message.sale_id)
        sale = current.value.abort(message)
        store.commit(sale=current.advance(sale))
        return sale

    sale = run_with_retries(_apply, label="abort_sale")
    logger.info("Sale %s aborted", sale.id.hex(), extra={"sale_id": sale.id})
    return sale


def attest_contributions(store: LedgerStore, sale_id: bytes, *, now: int, chain_id: int) -> bytes:
    """
    Encode the attestation of this sale's collected totals.

    Read-only: the sale status does not change. The caller publishes the
    returned payload to the conductor.
    """

    sale = store.get_sale(sale_id).value
    require(sale.initialized, ContributorError.INVALID_SALE, "sale is not initialized")
    payload = encode_attest_contributions(sale.attest(now, chain_id))
    logger.info("Sale %s attested on chain %d", sale_id.hex(), chain_id, extra={"sale_id": sale_id})
    return payload


def _require_new_sale(store: LedgerStore, payload: bytes) -> None:
    # a payload too short to carry a sale id is left to the decoder
    sale_id = payload[INDEX_SALE_ID:INDEX_SALE_ID + 32]
    if len(sale_id) == 32:
        require(
            not store.get_sale(sale_id).value.initialized,
            ContributorError.SALE_ALREADY_INITIALIZED,
            f"sale {sale_id.hex()} already exists",
        )


def handle_conductor_message(
    store: LedgerStore,
    conductor: ConductorIdentity,
    inbound: InboundMessage,
    *,
    accepted_tokens_max: int = ACCEPTED_TOKENS_MAX,
    native_decimals: Optional[int] = None,
    custodian_balance: Optional[int] = None,
) -> Sale:
    """
    Entry point for authenticated cross-chain messages.

    Process:
    1. Verify the emitter is the trusted conductor
    2. For a SaleInit, reject a sale that already exists before decoding
    3. Decode the payload once into a typed message
    4. Route it to init, seal or abort

    AttestContributions flows contributor -> conductor only; receiving one is
    an InvalidVaaPayload.
    """

    conductor.verify(inbound)
    if inbound.payload[:1] == bytes([MessageKind.SALE_INIT]):
        _require_new_sale(store, inbound.payload)
    message = decode_message(inbound.payload, accepted_tokens_max=accepted_tokens_max)

    if isinstance(message, SaleInitMessage):
        return init_sale(
            store,
            message,
            native_decimals=native_decimals,
            accepted_tokens_max=accepted_tokens_max,
        )
    if isinstance(message, SaleSealedMessage):
        return seal_sale(store, message, custodian_balance=custodian_balance)
    if isinstance(message, SaleAbortedMessage):
        return abort_sale(store, message)

    raise ContributorException(
        ContributorError.INVALID_VAA_PAYLOAD,
        f"payload kind {int(message.kind)} is not accepted from the conductor",
    )


def bridge_sealed_contributions(store: LedgerStore, sale_id: bytes, token_index: int) -> TransferInstruction:
    """
    Settle one accepted asset of a sealed sale towards the sale recipient.

    Moves contributions minus excess to the recipient on the sale asset's
    origin chain. Each asset settles at most once.
    """

    def _apply() -> TransferInstruction:
        current = store.get_sale(sale_id)
        require(current.value.initialized, ContributorError.INVALID_SALE, "sale is not initialized")
        sale, total = current.value.mark_transferred(token_index)
        store.commit(sale=current.advance(sale))
        return TransferInstruction(
            asset=total.asset_id,
            amount=total.transferable,
            destination=sale.recipient,
            destination_chain=sale.asset_chain,
        )

    transfer = run_with_retries(_apply, label="bridge_sealed_contributions")
    logger.info(
        "Sale %s asset %d bridged: %d to chain %d",
        sale_id.hex(),
        token_index,
        transfer.amount,
        transfer.destination_chain,
        extra={"sale_id": sale_id, "token_index": token_index},
    )
    return transfer


__all__ = [
    "abort_sale",
    "attest_contributions",
    "bind_native_decimals",
    "bridge_sealed_contributions",
    "handle_conductor_message",
    "init_sale",
    "seal_sale",
]
