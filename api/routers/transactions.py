"""
Transactions API Endpoints.

Endpoints for tracking fulfilment after a sell request is awarded.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_engine, get_requester_id
from api.models import TransactionListResponse, TransactionNotesRequest, TransactionResponse
from domain.transaction import TransactionStatus
from services.engine import AuctionEngine

router = APIRouter()


@router.get(
    "/transactions",
    response_model=TransactionListResponse,
    summary="List Transactions",
    description="Transactions of a wholesaler or a seller, newest first."
)
def list_transactions(
    wholesaler_id: Optional[UUID] = Query(None),
    seller_id: Optional[UUID] = Query(None),
    status: Optional[TransactionStatus] = Query(None),
    engine: AuctionEngine = Depends(get_engine),
):
    if (wholesaler_id is None) == (seller_id is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of wholesaler_id or seller_id")

    if wholesaler_id is not None:
        result = engine.transactions.list_for_wholesaler(wholesaler_id, status)
    else:
        result = engine.transactions.list_for_seller(seller_id, status)
    items = [TransactionResponse.from_domain(t) for t in result.unwrap()]
    return TransactionListResponse(items=items, total_count=len(items))


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse, summary="Get Transaction")
def get_transaction(transaction_id: UUID, engine: AuctionEngine = Depends(get_engine)):
    return TransactionResponse.from_domain(engine.transactions.get(transaction_id).unwrap())


@router.get(
    "/offers/{offer_id}/transaction",
    response_model=TransactionResponse,
    summary="Get Transaction By Offer"
)
def get_transaction_by_offer(offer_id: UUID, engine: AuctionEngine = Depends(get_engine)):
    transaction = engine.transactions.get_by_offer(offer_id).unwrap()
    if transaction is None:
        raise HTTPException(status_code=404, detail=f"No transaction for offer: {offer_id}")
    return TransactionResponse.from_domain(transaction)


@router.post(
    "/transactions/{transaction_id}/complete",
    response_model=TransactionResponse,
    summary="Complete Transaction"
)
def complete_transaction(
    transaction_id: UUID,
    request: Optional[TransactionNotesRequest] = None,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    notes = request.notes if request is not None else None
    result = engine.transactions.complete(transaction_id, requester_id, notes)
    return TransactionResponse.from_domain(result.unwrap())


@router.post(
    "/transactions/{transaction_id}/cancel",
    response_model=TransactionResponse,
    summary="Cancel Transaction"
)
def cancel_transaction(
    transaction_id: UUID,
    request: Optional[TransactionNotesRequest] = None,
    requester_id: UUID = Depends(get_requester_id),
    engine: AuctionEngine = Depends(get_engine),
):
    notes = request.notes if request is not None else None
    result = engine.transactions.cancel(transaction_id, requester_id, notes)
    return TransactionResponse.from_domain(result.unwrap())
