"""
Conductor Messages API Endpoint.

Entry point for authenticated cross-chain messages from the conductor.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_settings, get_store
from api.models import InboundMessageRequest, SaleResponse, parse_hex
from config.settings import ContributorSettings
from domain.conductor import InboundMessage
from repositories.store import LedgerStore
from services.lifecycle_service import handle_conductor_message

router = APIRouter()


@router.post(
    "/messages",
    response_model=SaleResponse,
    summary="Handle Conductor Message",
    description="Apply a SaleInit, SaleSealed or SaleAborted message emitted by the conductor."
)
def post_conductor_message(
    request: InboundMessageRequest,
    store: LedgerStore = Depends(get_store),
    settings: ContributorSettings = Depends(get_settings),
):
    """
    Apply one conductor message to the Sale Ledger.

    **Process:**
    1. Verifies the emitter chain and address belong to the configured conductor
    2. Decodes the payload by its leading kind byte
    3. Initializes, seals or aborts the sale

    Returns the sale as stored after the message was applied.
    """
    inbound = InboundMessage(
        emitter_chain=request.emitter_chain,
        emitter_address=parse_hex(request.emitter_address, 32),
        payload=parse_hex(request.payload),
    )
    sale = handle_conductor_message(
        store,
        settings.conductor,
        inbound,
        accepted_tokens_max=settings.accepted_tokens_max,
        native_decimals=request.native_decimals,
        custodian_balance=request.custodian_balance,
    )
    return SaleResponse.from_sale(sale)
