"""
Offers API Endpoints.

Endpoints for wholesalers to place, re-price and withdraw offers.
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from api.dependencies import get_engine, get_requester_id
from api.models import (
    OfferListResponse,
    OfferResponse,
    SubmitOfferRequest,
    UpdateOfferPriceRequest,
    WonOfferListResponse,
    WonOfferResponse,
)
from services.engine import AuctionEngine

router = APIRouter()


@router.post(
    "/sell-requests/{sell_request_id}/offers",
    response_model=OfferResponse,
    status_code=201,
    summary="Submit Offer",
    description="Place an offer on an open sell request. One active offer per wholesaler per request."
)
def submit_offer(
    sell_request_id: UUID,
    request: SubmitOfferRequest,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    result = engine.offers.submit_offer(
        sell_request_id,
        requester_id,
        request.price,
        wholesaler_name=request.wholesaler_name,
        message=request.message,
    )
    return OfferResponse.from_domain(result.unwrap())


@router.get(
    "/sell-requests/{sell_request_id}/offers",
    response_model=OfferListResponse,
    summary="List Offers",
    description="All non-withdrawn offers on a sell request, oldest first."
)
def list_offers(sell_request_id: UUID, engine: AuctionEngine = Depends(get_engine)):
    items = [OfferResponse.from_domain(o) for o in engine.offers.list_offers(sell_request_id).unwrap()]
    return OfferListResponse(items=items, total_count=len(items))


@router.get("/offers/{offer_id}", response_model=OfferResponse, summary="Get Offer")
def get_offer(offer_id: UUID, engine: AuctionEngine = Depends(get_engine)):
    return OfferResponse.from_domain(engine.offers.get_offer(offer_id).unwrap())


@router.patch(
    "/offers/{offer_id}",
    response_model=OfferResponse,
    summary="Update Offer Price",
    description="Re-price your own pending offer while the sell request is open."
)
def update_offer_price(
    offer_id: UUID,
    request: UpdateOfferPriceRequest,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    result = engine.offers.update_offer_price(offer_id, requester_id, request.price)
    return OfferResponse.from_domain(result.unwrap())


@router.post(
    "/offers/{offer_id}/withdraw",
    response_model=OfferResponse,
    summary="Withdraw Offer",
    description="Withdraw your own pending offer."
)
def withdraw_offer(
    offer_id: UUID,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    return OfferResponse.from_domain(engine.offers.withdraw_offer(offer_id, requester_id).unwrap())


@router.get(
    "/wholesalers/{wholesaler_id}/won-offers",
    response_model=WonOfferListResponse,
    summary="List Won Offers",
    description="Offers this wholesaler won, newest first, each with the sell request it won."
)
def list_won_offers(wholesaler_id: UUID, engine: AuctionEngine = Depends(get_engine)):
    items = [WonOfferResponse.from_domain(w) for w in engine.offers.list_won_offers(wholesaler_id).unwrap()]
    return WonOfferListResponse(items=items, total_count=len(items))
