"""
Sell Requests API Endpoints.

Endpoints for sellers to open, close, cancel and award sell requests, and for
wholesalers to browse open requests.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_engine, get_requester_id
from api.models import (
    AwardRequest,
    AwardResponse,
    OpenSellRequest,
    SellRequestListResponse,
    SellRequestResponse,
    UpdateDesiredPrice,
)
from domain.sell_request import SellRequestStatus
from services.engine import AuctionEngine

router = APIRouter()


@router.post(
    "/sell-requests",
    response_model=SellRequestResponse,
    status_code=201,
    summary="Open Sell Request",
    description="Open a new sell request that wholesalers can bid on."
)
def open_sell_request(
    request: OpenSellRequest,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    result = engine.sell_requests.open(
        requester_id,
        request.category,
        request.desired_price,
        title=request.title,
        description=request.description,
        image_urls=request.image_urls,
        seller_name=request.seller_name,
    )
    return SellRequestResponse.from_domain(result.unwrap())


@router.get(
    "/sell-requests",
    response_model=SellRequestListResponse,
    summary="List Sell Requests",
    description="Open sell requests (market view), or one seller's own requests when seller_id is given."
)
def list_sell_requests(
    seller_id: Optional[UUID] = Query(None, description="Only this seller's requests"),
    status: Optional[SellRequestStatus] = Query(None, description="Status filter (seller view only)"),
    engine: AuctionEngine = Depends(get_engine),
):
    """
    **Example usage:**
    - Market view for wholesalers: `GET /api/v1/sell-requests`
    - A seller's own requests: `GET /api/v1/sell-requests?seller_id=...&status=closed`
    """
    if seller_id is not None:
        result = engine.sell_requests.list_by_seller(seller_id, status)
    else:
        result = engine.sell_requests.list_open()
    items = [SellRequestResponse.from_domain(r) for r in result.unwrap()]
    return SellRequestListResponse(items=items, total_count=len(items))


@router.get("/sell-requests/{sell_request_id}", response_model=SellRequestResponse, summary="Get Sell Request")
def get_sell_request(sell_request_id: UUID, engine: AuctionEngine = Depends(get_engine)):
    return SellRequestResponse.from_domain(engine.sell_requests.get(sell_request_id).unwrap())


@router.patch(
    "/sell-requests/{sell_request_id}/desired-price",
    response_model=SellRequestResponse,
    summary="Update Desired Price",
    description="Change the desired price hint. Only the seller, only while the request is open."
)
def update_desired_price(
    sell_request_id: UUID,
    request: UpdateDesiredPrice,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    result = engine.sell_requests.update_desired_price(sell_request_id, requester_id, request.desired_price)
    return SellRequestResponse.from_domain(result.unwrap())


@router.post(
    "/sell-requests/{sell_request_id}/cancel",
    response_model=SellRequestResponse,
    summary="Cancel Sell Request",
    description="Cancel an open sell request. All pending offers are withdrawn."
)
def cancel_sell_request(
    sell_request_id: UUID,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    result = engine.sell_requests.cancel(sell_request_id, requester_id)
    return SellRequestResponse.from_domain(result.unwrap())


@router.post(
    "/sell-requests/{sell_request_id}/close",
    response_model=SellRequestResponse,
    summary="Close Without Winner",
    description="Close an open sell request because no offer was acceptable. Pending offers lose."
)
def close_sell_request(
    sell_request_id: UUID,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    result = engine.sell_requests.close_without_winner(sell_request_id, requester_id)
    return SellRequestResponse.from_domain(result.unwrap())


@router.post(
    "/sell-requests/{sell_request_id}/award",
    response_model=AwardResponse,
    summary="Award Offer",
    description="Select the winning offer. Closes the request, resolves all offers and starts a transaction."
)
def award_offer(
    sell_request_id: UUID,
    request: AwardRequest,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    """
    Award a sell request to one of its pending offers.

    **Process:**
    1. Checks the requester owns the sell request and it is still open
    2. Checks the offer is a pending offer on this sell request
    3. Closes the request with the offer's wholesaler as winner
    4. Marks the offer WON and every other pending offer LOST
    5. Creates an in-progress transaction

    A second award on the same request (double submit, or a race) returns
    409 `REQUEST_NOT_OPEN`.
    """
    result = engine.awards.award_offer(sell_request_id, request.offer_id, requester_id)
    return AwardResponse.from_domain(result.unwrap())
