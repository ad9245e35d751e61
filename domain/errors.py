"""
Domain: Error taxonomy for the reverse-auction engine.

Every error the engine can report belongs to exactly one kind:

- VALIDATION: the caller supplied malformed input. Nothing was touched; retry
  after correcting the input.
- AUTHORIZATION: the requester has no rights over the entity. Not retryable
  with the same identity.
- STATE_CONFLICT: the input is valid but the entity's current state forbids
  the operation (usually another actor got there first). Re-fetch, then decide.
- NOT_FOUND: the referenced entity does not exist. Not retryable.
- CONSISTENCY: the multi-row award could not be fully applied.

Errors carry no presentation concerns; the API layer maps them to HTTP.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional
from uuid import UUID


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    STATE_CONFLICT = "state_conflict"
    NOT_FOUND = "not_found"
    CONSISTENCY = "consistency"

    @property
    def retryable(self) -> bool:
        """True when a retry can succeed without changing the requester identity."""

        return self in (ErrorKind.VALIDATION, ErrorKind.STATE_CONFLICT)


class AuctionError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind = ErrorKind.VALIDATION
    code: str = "AUCTION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidPriceError(AuctionError):
    kind = ErrorKind.VALIDATION
    code = "INVALID_PRICE"


class InvalidOfferError(AuctionError):
    kind = ErrorKind.VALIDATION
    code = "INVALID_OFFER"


class NotOwnerError(AuctionError):
    kind = ErrorKind.AUTHORIZATION
    code = "NOT_OWNER"


class RequestNotOpenError(AuctionError):
    kind = ErrorKind.STATE_CONFLICT
    code = "REQUEST_NOT_OPEN"


class DuplicateOfferError(AuctionError):
    kind = ErrorKind.STATE_CONFLICT
    code = "DUPLICATE_OFFER"


class AlreadyResolvedError(AuctionError):
    kind = ErrorKind.STATE_CONFLICT
    code = "ALREADY_RESOLVED"


class InvalidTransitionError(AuctionError):
    kind = ErrorKind.STATE_CONFLICT
    code = "INVALID_TRANSITION"


class NotFoundError(AuctionError):
    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: UUID) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class PartialAwardError(AuctionError):
    """
    Raised when an award could not be applied as a whole.

    rolled_back is True when every completed step was compensated and the
    sell request, its offers and the transaction table are back to their
    pre-award state. False means manual repair is needed.
    """

    kind = ErrorKind.CONSISTENCY
    code = "PARTIAL_AWARD"

    def __init__(
        self,
        sell_request_id: UUID,
        failed_step: str,
        *,
        rolled_back: bool,
        cause: Optional[BaseException] = None,
    ) -> None:
        state = "rolled back" if rolled_back else "NOT rolled back"
        super().__init__(
            f"Award on sell request {sell_request_id} failed at step '{failed_step}' ({state})"
        )
        self.sell_request_id = sell_request_id
        self.failed_step = failed_step
        self.rolled_back = rolled_back
        self.cause = cause


__all__ = [
    "ErrorKind",
    "AuctionError",
    "InvalidPriceError",
    "InvalidOfferError",
    "NotOwnerError",
    "RequestNotOpenError",
    "DuplicateOfferError",
    "AlreadyResolvedError",
    "InvalidTransitionError",
    "NotFoundError",
    "PartialAwardError",
]
