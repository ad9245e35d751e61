"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.offer import Offer, OfferStatus
from domain.sell_request import SellRequest, SellRequestCategory, SellRequestStatus
from domain.transaction import Transaction, TransactionStatus
from services.award_coordinator import AwardOutcome
from services.offer_ledger import WonOffer


# ============================================================================
# Sell Request Models
# ============================================================================

class OpenSellRequest(BaseModel):
    """Request to open a new sell request."""
    category: SellRequestCategory
    desired_price: Optional[str] = Field(None, max_length=100, description="Free-text price hint")
    title: str = Field("", max_length=200)
    description: str = Field("", max_length=5000)
    image_urls: List[str] = Field(default_factory=list)
    seller_name: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "category": "computer",
                "desired_price": "500,000원",
                "title": "MacBook Pro 2020",
                "description": "M1, 8GB RAM, 256GB SSD. Charger included.",
                "image_urls": [],
                "seller_name": "Hong Gil-dong"
            }
        }


class UpdateDesiredPrice(BaseModel):
    desired_price: Optional[str] = Field(None, max_length=100)


class SellRequestResponse(BaseModel):
    """A sell request as returned by the API."""
    sell_request_id: UUID
    seller_id: UUID
    category: SellRequestCategory
    status: SellRequestStatus
    desired_price: Optional[str] = None
    selected_wholesaler_id: Optional[UUID] = None
    title: str
    description: str
    image_urls: List[str]
    seller_name: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, sell_request: SellRequest) -> "SellRequestResponse":
        return cls(
            sell_request_id=sell_request.sell_request_id,
            seller_id=sell_request.seller_id,
            category=sell_request.category,
            status=sell_request.status,
            desired_price=sell_request.desired_price,
            selected_wholesaler_id=sell_request.selected_wholesaler_id,
            title=sell_request.title,
            description=sell_request.description,
            image_urls=list(sell_request.image_urls),
            seller_name=sell_request.seller_name,
            created_at=sell_request.created_at,
            updated_at=sell_request.updated_at,
            closed_at=sell_request.closed_at,
        )


class SellRequestListResponse(BaseModel):
    items: List[SellRequestResponse]
    total_count: int


# ============================================================================
# Offer Models
# ============================================================================

class SubmitOfferRequest(BaseModel):
    """Request to place an offer on a sell request."""
    # Positivity is checked by the engine so it reports INVALID_PRICE
    price: Decimal
    wholesaler_name: Optional[str] = None
    message: Optional[str] = Field(None, max_length=2000)

    class Config:
        json_schema_extra = {
            "example": {
                "price": "480000",
                "wholesaler_name": "Yongsan PC Trading",
                "message": "Pickup available this week."
            }
        }


class UpdateOfferPriceRequest(BaseModel):
    price: Decimal


class OfferResponse(BaseModel):
    offer_id: UUID
    sell_request_id: UUID
    wholesaler_id: UUID
    price: Decimal
    status: OfferStatus
    is_selected: bool
    wholesaler_name: Optional[str] = None
    message: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, offer: Offer) -> "OfferResponse":
        return cls(
            offer_id=offer.offer_id,
            sell_request_id=offer.sell_request_id,
            wholesaler_id=offer.wholesaler_id,
            price=offer.price,
            status=offer.status,
            is_selected=offer.is_selected,
            wholesaler_name=offer.wholesaler_name,
            message=offer.message,
            created_at=offer.created_at,
            updated_at=offer.updated_at,
        )


class OfferListResponse(BaseModel):
    items: List[OfferResponse]
    total_count: int


class WonOfferResponse(BaseModel):
    """A won offer with the sell request it won."""
    offer: OfferResponse
    sell_request: SellRequestResponse

    @classmethod
    def from_domain(cls, won: WonOffer) -> "WonOfferResponse":
        return cls(
            offer=OfferResponse.from_domain(won.offer),
            sell_request=SellRequestResponse.from_domain(won.sell_request),
        )


class WonOfferListResponse(BaseModel):
    items: List[WonOfferResponse]
    total_count: int


# ============================================================================
# Award / Transaction Models
# ============================================================================

class AwardRequest(BaseModel):
    """Seller's choice of the winning offer."""
    offer_id: UUID


class TransactionNotesRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class TransactionResponse(BaseModel):
    transaction_id: UUID
    sell_request_id: UUID
    purchase_offer_id: UUID
    wholesaler_id: UUID
    seller_id: UUID
    status: TransactionStatus
    notes: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            transaction_id=transaction.transaction_id,
            sell_request_id=transaction.sell_request_id,
            purchase_offer_id=transaction.purchase_offer_id,
            wholesaler_id=transaction.wholesaler_id,
            seller_id=transaction.seller_id,
            status=transaction.status,
            notes=transaction.notes,
            created_at=transaction.created_at,
            completed_at=transaction.completed_at,
            cancelled_at=transaction.cancelled_at,
            updated_at=transaction.updated_at,
        )


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    total_count: int


class AwardResponse(BaseModel):
    """Response after a successful award."""
    sell_request: SellRequestResponse
    winning_offer: OfferResponse
    losing_offers: List[OfferResponse]
    transaction: TransactionResponse

    @classmethod
    def from_domain(cls, outcome: AwardOutcome) -> "AwardResponse":
        return cls(
            sell_request=SellRequestResponse.from_domain(outcome.sell_request),
            winning_offer=OfferResponse.from_domain(outcome.winning_offer),
            losing_offers=[OfferResponse.from_domain(o) for o in outcome.losing_offers],
            transaction=TransactionResponse.from_domain(outcome.transaction),
        )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "REQUEST_NOT_OPEN",
                "detail": "This action is no longer available: the sell request has already been awarded or closed. Please refresh.",
                "status_code": 409
            }
        }
