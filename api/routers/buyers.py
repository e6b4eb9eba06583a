"""
Buyers API Endpoints.

Endpoints for reading a buyer's ledger and claiming allocations or refunds.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_settings, get_store, path_bytes32
from api.models import BuyerResponse, ClaimResponse
from config.settings import ContributorSettings
from repositories.store import LedgerStore
from services.claim_service import claim_allocation, claim_refunds

router = APIRouter()


@router.get(
    "/sales/{sale_id}/buyers/{owner}",
    response_model=BuyerResponse,
    summary="Get Buyer",
)
def get_buyer(sale_id: str, owner: str, store: LedgerStore = Depends(get_store)):
    sale_key = path_bytes32("sale_id", sale_id)
    buyer = store.get_buyer(sale_key, path_bytes32("owner", owner)).value
    if not buyer.initialized:
        raise HTTPException(status_code=404, detail="Buyer not found")
    return BuyerResponse.from_buyer(buyer, store.get_sale(sale_key).value)


@router.post(
    "/sales/{sale_id}/buyers/{owner}/claim-allocation",
    response_model=ClaimResponse,
    summary="Claim Allocation",
    description="Claim the pro-rata sale allocation and excess contributions of a sealed sale."
)
def post_claim_allocation(
    sale_id: str,
    owner: str,
    store: LedgerStore = Depends(get_store),
    settings: ContributorSettings = Depends(get_settings),
):
    result = claim_allocation(
        store,
        path_bytes32("sale_id", sale_id),
        path_bytes32("owner", owner),
        local_chain_id=settings.local_chain_id,
    )
    return ClaimResponse.from_result(result)


@router.post(
    "/sales/{sale_id}/buyers/{owner}/claim-refunds",
    response_model=ClaimResponse,
    summary="Claim Refunds",
    description="Claim back every contribution of an aborted sale."
)
def post_claim_refunds(
    sale_id: str,
    owner: str,
    store: LedgerStore = Depends(get_store),
    settings: ContributorSettings = Depends(get_settings),
):
    result = claim_refunds(
        store,
        path_bytes32("sale_id", sale_id),
        path_bytes32("owner", owner),
        local_chain_id=settings.local_chain_id,
    )
    return ClaimResponse.from_result(result)
