"""
Sales API Endpoints.

Endpoints for reading sale state, binding native decimals, contributing,
attesting totals and bridging sealed contributions.
"""

from typing import Callable

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_clock, get_settings, get_store, path_bytes32
from api.models import (
    AttestResponse,
    ContributionRequest as APIContributionRequest,
    ContributionResponse,
    NativeDecimalsRequest,
    SaleResponse,
    TransferResponse,
    parse_hex,
    to_hex,
)
from config.settings import ContributorSettings
from repositories.store import LedgerStore
from services.contribution_service import ContributionRequest, contribute
from services.lifecycle_service import (
    attest_contributions,
    bind_native_decimals,
    bridge_sealed_contributions,
)

router = APIRouter()


@router.get(
    "/sales/{sale_id}",
    response_model=SaleResponse,
    summary="Get Sale",
)
def get_sale(sale_id: str, store: LedgerStore = Depends(get_store)):
    """Current status, window and per-asset totals of one sale."""
    sale = store.get_sale(path_bytes32("sale_id", sale_id)).value
    if not sale.initialized:
        raise HTTPException(status_code=404, detail="Sale not found")
    return SaleResponse.from_sale(sale)


@router.post(
    "/sales/{sale_id}/native-decimals",
    response_model=SaleResponse,
    summary="Bind Native Decimals",
    description="Record the local decimals of the sale asset. A sale cannot be sealed until they are bound."
)
def post_native_decimals(
    sale_id: str,
    request: NativeDecimalsRequest,
    store: LedgerStore = Depends(get_store),
):
    sale = bind_native_decimals(store, path_bytes32("sale_id", sale_id), request.decimals)
    return SaleResponse.from_sale(sale)


@router.post(
    "/sales/{sale_id}/attest",
    response_model=AttestResponse,
    summary="Attest Contributions",
    description="Encode the collected totals for the conductor once the sale window has closed."
)
def post_attest(
    sale_id: str,
    store: LedgerStore = Depends(get_store),
    settings: ContributorSettings = Depends(get_settings),
    clock: Callable[[], int] = Depends(get_clock),
):
    payload = attest_contributions(
        store,
        path_bytes32("sale_id", sale_id),
        now=clock(),
        chain_id=settings.local_chain_id,
    )
    return AttestResponse(sale_id=sale_id, chain_id=settings.local_chain_id, payload=to_hex(payload))


@router.post(
    "/sales/{sale_id}/contributions",
    response_model=ContributionResponse,
    summary="Contribute",
    description="Record a KYC-signed contribution of one accepted asset."
)
def post_contribution(
    sale_id: str,
    request: APIContributionRequest,
    store: LedgerStore = Depends(get_store),
    settings: ContributorSettings = Depends(get_settings),
    clock: Callable[[], int] = Depends(get_clock),
):
    """
    Contribute to an active sale.

    The signature must come from the sale's KYC authority and cover the
    buyer's total for this asset *before* this contribution.
    """
    result = contribute(
        store,
        ContributionRequest(
            sale_id=path_bytes32("sale_id", sale_id),
            owner=parse_hex(request.owner, 32),
            token_index=request.token_index,
            amount=request.amount,
            signature=parse_hex(request.signature),
            now=clock(),
        ),
        kyc_source=settings.kyc_source,
    )
    return ContributionResponse.from_result(result)


@router.post(
    "/sales/{sale_id}/assets/{token_index}/bridge",
    response_model=TransferResponse,
    summary="Bridge Sealed Contributions",
)
def post_bridge(sale_id: str, token_index: int, store: LedgerStore = Depends(get_store)):
    """Settle one asset's collected funds (minus excess) to the sale recipient."""
    transfer = bridge_sealed_contributions(store, path_bytes32("sale_id", sale_id), token_index)
    return TransferResponse.from_instruction(transfer)
