"""
Mapping of engine errors to HTTP responses.

The engine reports failures as error kinds; only this module decides how a
user sees them. State conflicts are normal in a multi-bidder market (another
actor got there first), so they are presented as "no longer available,
please refresh" rather than as a generic failure.
"""

from __future__ import annotations

import logging
from typing import Dict, Type

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models import ErrorResponse
from domain.errors import (
    AlreadyResolvedError,
    AuctionError,
    DuplicateOfferError,
    ErrorKind,
    InvalidOfferError,
    InvalidPriceError,
    InvalidTransitionError,
    NotFoundError,
    NotOwnerError,
    PartialAwardError,
    RequestNotOpenError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: Dict[Type[AuctionError], int] = {
    NotFoundError: 404,
    NotOwnerError: 403,
    InvalidPriceError: 400,
    InvalidOfferError: 400,
    RequestNotOpenError: 409,
    DuplicateOfferError: 409,
    AlreadyResolvedError: 409,
    InvalidTransitionError: 409,
    PartialAwardError: 500,
}

_CONFLICT_MESSAGES: Dict[Type[AuctionError], str] = {
    RequestNotOpenError: "This sell request has already been awarded, closed or cancelled.",
    DuplicateOfferError: "You already have an active offer on this sell request. Update or withdraw it instead.",
    AlreadyResolvedError: "This offer has already been accepted, rejected or withdrawn.",
    InvalidTransitionError: "This item has already moved on to another state.",
}


def status_for(error: AuctionError) -> int:
    return STATUS_BY_ERROR.get(type(error), 400)


def user_message(error: AuctionError) -> str:
    if error.kind is ErrorKind.STATE_CONFLICT:
        reason = _CONFLICT_MESSAGES.get(type(error), error.message)
        return f"This action is no longer available. {reason} Please refresh."
    return error.message


def error_response(error: AuctionError) -> JSONResponse:
    status_code = status_for(error)
    body = ErrorResponse(error=error.code, detail=user_message(error), status_code=status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def auction_error_handler(request: Request, exc: AuctionError) -> JSONResponse:
    if isinstance(exc, PartialAwardError):
        logger.error(
            f"Partial award surfaced to client: {exc.message}",
            extra={"path": request.url.path, "rolled_back": exc.rolled_back},
        )
    return error_response(exc)


__all__ = [
    "STATUS_BY_ERROR",
    "status_for",
    "user_message",
    "error_response",
    "auction_error_handler",
]
