"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Byte fields travel as 0x-prefixed hex strings; amounts as JSON integers.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from domain.buyer import Buyer
from domain.sale import Sale
from services.claim_service import ClaimResult
from services.contribution_service import ContributionResult
from services.transfers import TransferInstruction


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def parse_hex(value: str, length: Optional[int] = None) -> bytes:
    """Decode 0x-prefixed (or bare) hex, optionally of an exact byte length."""

    text = value[2:] if value[:2].lower() == "0x" else value
    raw = bytes.fromhex(text)
    if length is not None and len(raw) != length:
        raise ValueError(f"expected {length} bytes, got {len(raw)}")
    return raw


# ============================================================================
# Conductor Message Models
# ============================================================================

class InboundMessageRequest(BaseModel):
    """An authenticated conductor message delivered to the contributor."""
    emitter_chain: int = Field(..., ge=0, le=65535)
    emitter_address: str = Field(..., description="32-byte emitter address (hex)")
    payload: str = Field(..., min_length=2, description="Message payload (hex)")
    native_decimals: Optional[int] = Field(
        None, ge=0, le=255, description="Local decimals of the sale asset (SaleInit only)"
    )
    custodian_balance: Optional[int] = Field(
        None, ge=0, description="Sale-asset balance held for the sale (SaleSealed only)"
    )

    @field_validator("emitter_address")
    @classmethod
    def _check_emitter(cls, value: str) -> str:
        parse_hex(value, 32)
        return value

    @field_validator("payload")
    @classmethod
    def _check_payload(cls, value: str) -> str:
        parse_hex(value)
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "emitter_chain": 2,
                "emitter_address": "0x" + "00" * 12 + "11" * 20,
                "payload": "0x04" + "ab" * 32,
            }
        }


# ============================================================================
# Sale Models
# ============================================================================

class AssetTotalResponse(BaseModel):
    token_index: int
    asset_id: str
    contributions: int
    allocations: int
    excess_contributions: int
    status: str


class SaleResponse(BaseModel):
    """Current state of one sale."""
    sale_id: str
    status: str
    asset_address: str
    asset_chain: int
    asset_decimals: int
    native_decimals: Optional[int] = None
    start: int
    end: int
    unlock: int
    recipient: str
    kyc_authority: str
    totals: List[AssetTotalResponse]

    @classmethod
    def from_sale(cls, sale: Sale) -> "SaleResponse":
        return cls(
            sale_id=to_hex(sale.id),
            status=sale.status.value,
            asset_address=to_hex(sale.asset_address),
            asset_chain=sale.asset_chain,
            asset_decimals=sale.asset_decimals,
            native_decimals=sale.native_decimals,
            start=sale.times.start,
            end=sale.times.end,
            unlock=sale.times.unlock,
            recipient=to_hex(sale.recipient),
            kyc_authority=to_hex(sale.kyc_authority),
            totals=[
                AssetTotalResponse(
                    token_index=total.token_index,
                    asset_id=to_hex(total.asset_id),
                    contributions=total.contributions,
                    allocations=total.allocations,
                    excess_contributions=total.excess_contributions,
                    status=total.status.value,
                )
                for total in sale.totals
            ],
        )


class NativeDecimalsRequest(BaseModel):
    """Local decimals of the sale asset, bound once its local token exists."""
    decimals: int = Field(..., ge=0, le=255, description="Must not exceed the asset's origin decimals")

    class Config:
        json_schema_extra = {
            "example": {
                "decimals": 9,
            }
        }


class AttestResponse(BaseModel):
    """Encoded AttestContributions payload for the conductor."""
    sale_id: str
    chain_id: int
    payload: str


# ============================================================================
# Contribution Models
# ============================================================================

class ContributionRequest(BaseModel):
    """A KYC-signed contribution."""
    owner: str = Field(..., description="32-byte buyer address (hex)")
    token_index: int = Field(..., ge=0, le=255)
    amount: int = Field(..., ge=0)
    signature: str = Field(..., description="65-byte r || s || v KYC signature (hex)")

    @field_validator("owner")
    @classmethod
    def _check_owner(cls, value: str) -> str:
        parse_hex(value, 32)
        return value

    @field_validator("signature")
    @classmethod
    def _check_signature(cls, value: str) -> str:
        parse_hex(value)
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "owner": "0x" + "22" * 32,
                "token_index": 2,
                "amount": 1000000,
                "signature": "0x" + "00" * 65,
            }
        }


class ContributionResponse(BaseModel):
    sale_id: str
    owner: str
    token_index: int
    amount: int
    buyer_total: int
    sale_total: int

    @classmethod
    def from_result(cls, result: ContributionResult) -> "ContributionResponse":
        return cls(
            sale_id=to_hex(result.sale_id),
            owner=to_hex(result.owner),
            token_index=result.token_index,
            amount=result.amount,
            buyer_total=result.buyer_total,
            sale_total=result.sale_total,
        )


# ============================================================================
# Buyer and Claim Models
# ============================================================================

class BuyerContributionResponse(BaseModel):
    token_index: int
    amount: int
    excess: int
    status: str


class BuyerResponse(BaseModel):
    sale_id: str
    owner: str
    contributions: List[BuyerContributionResponse]
    allocation: int
    allocation_claimed: bool

    @classmethod
    def from_buyer(cls, buyer: Buyer, sale: Sale) -> "BuyerResponse":
        return cls(
            sale_id=to_hex(buyer.sale_id),
            owner=to_hex(buyer.owner),
            contributions=[
                BuyerContributionResponse(
                    token_index=total.token_index,
                    amount=record.amount,
                    excess=record.excess,
                    status=record.status.value,
                )
                for total, record in zip(sale.totals, buyer.contributions)
            ],
            allocation=buyer.allocation.amount,
            allocation_claimed=buyer.allocation.claimed,
        )


class TransferResponse(BaseModel):
    asset: str
    amount: int
    destination: str
    destination_chain: int

    @classmethod
    def from_instruction(cls, transfer: TransferInstruction) -> "TransferResponse":
        return cls(
            asset=to_hex(transfer.asset),
            amount=transfer.amount,
            destination=to_hex(transfer.destination),
            destination_chain=transfer.destination_chain,
        )


class ClaimResponse(BaseModel):
    sale_id: str
    owner: str
    allocation: int
    transfers: List[TransferResponse]

    @classmethod
    def from_result(cls, result: ClaimResult) -> "ClaimResponse":
        return cls(
            sale_id=to_hex(result.sale_id),
            owner=to_hex(result.owner),
            allocation=result.allocation,
            transfers=[TransferResponse.from_instruction(t) for t in result.transfers],
        )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    category: Optional[str] = None
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "SaleNotSealed",
                "category": "lifecycle",
                "detail": None,
                "status_code": 409
            }
        }
