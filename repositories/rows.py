"""
Row mapping between Supabase tables and domain entities.

Column names follow the marketplace's existing tables:
- sell_requests
- purchase_offers
- transactions

Timestamps are stored as ISO-8601 strings; Supabase sometimes returns them
with a trailing 'Z', sometimes without an offset at all (treated as UTC).
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence
from uuid import UUID

from domain.offer import Offer, OfferStatus
from domain.sell_request import SellRequest, SellRequestCategory, SellRequestStatus
from domain.time import require_utc_timestamp
from domain.transaction import Transaction, TransactionStatus


def _to_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    if dt is None:
        return None
    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> Optional[datetime]:
    """Parse a Supabase timestamp into a timezone-aware UTC datetime."""

    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _optional_uuid(value: Any) -> Optional[UUID]:
    return UUID(str(value)) if value else None


def sell_request_to_row(sell_request: SellRequest) -> dict[str, Any]:
    return {
        "id": str(sell_request.sell_request_id),
        "seller_id": str(sell_request.seller_id),
        "seller_name": sell_request.seller_name,
        "title": sell_request.title,
        "description": sell_request.description,
        "image_urls": list(sell_request.image_urls),
        "desired_price": sell_request.desired_price,
        "category": sell_request.category.value,
        "status": sell_request.status.value,
        "selected_wholesaler_id": (
            str(sell_request.selected_wholesaler_id) if sell_request.selected_wholesaler_id else None
        ),
        "created_at": _to_iso_utc(sell_request.created_at, name="created_at"),
        "updated_at": _to_iso_utc(sell_request.updated_at, name="updated_at"),
        "closed_at": _to_iso_utc(sell_request.closed_at, name="closed_at"),
    }


def row_to_sell_request(row: Mapping[str, Any]) -> SellRequest:
    return SellRequest(
        sell_request_id=UUID(str(row["id"])),
        seller_id=UUID(str(row["seller_id"])),
        # Older rows predate the category column
        category=SellRequestCategory(row.get("category") or SellRequestCategory.COMPUTER.value),
        status=SellRequestStatus(str(row["status"])),
        created_at=_parse_utc_datetime(row["created_at"]),
        desired_price=row.get("desired_price"),
        selected_wholesaler_id=_optional_uuid(row.get("selected_wholesaler_id")),
        closed_at=_parse_utc_datetime(row.get("closed_at")),
        updated_at=_parse_utc_datetime(row.get("updated_at")),
        title=str(row.get("title") or ""),
        description=str(row.get("description") or ""),
        image_urls=tuple(row.get("image_urls") or ()),
        seller_name=row.get("seller_name"),
    )


# Entity field -> column, where the names differ
OFFER_COLUMNS = {"offer_id": "id", "price": "offer_price"}
SELL_REQUEST_COLUMNS = {"sell_request_id": "id"}


def update_payload(
    row: Mapping[str, Any],
    fields: Optional[Sequence[str]] = None,
    columns: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """
    Columns to send in an UPDATE.

    Without fields, every mutable column (all but id and created_at). With
    fields, only the columns those entity fields map to.
    """

    if fields is None:
        return {k: v for k, v in row.items() if k not in ("id", "created_at")}
    columns = columns or {}
    names = [columns.get(name, name) for name in fields]
    return {name: row[name] for name in names}


def offer_to_row(offer: Offer) -> dict[str, Any]:
    return {
        "id": str(offer.offer_id),
        "sell_request_id": str(offer.sell_request_id),
        "wholesaler_id": str(offer.wholesaler_id),
        "wholesaler_name": offer.wholesaler_name,
        "offer_price": str(offer.price),
        "message": offer.message,
        "is_selected": offer.is_selected,
        "status": offer.status.value,
        "created_at": _to_iso_utc(offer.created_at, name="created_at"),
        "updated_at": _to_iso_utc(offer.updated_at, name="updated_at"),
    }


def row_to_offer(row: Mapping[str, Any]) -> Offer:
    return Offer(
        offer_id=UUID(str(row["id"])),
        sell_request_id=UUID(str(row["sell_request_id"])),
        wholesaler_id=UUID(str(row["wholesaler_id"])),
        price=Decimal(str(row["offer_price"])),
        status=OfferStatus(str(row["status"])),
        created_at=_parse_utc_datetime(row["created_at"]),
        is_selected=bool(row.get("is_selected", False)),
        updated_at=_parse_utc_datetime(row.get("updated_at")),
        wholesaler_name=row.get("wholesaler_name"),
        message=row.get("message"),
    )


def transaction_to_row(transaction: Transaction) -> dict[str, Any]:
    return {
        "id": str(transaction.transaction_id),
        "sell_request_id": str(transaction.sell_request_id),
        "purchase_offer_id": str(transaction.purchase_offer_id),
        "wholesaler_id": str(transaction.wholesaler_id),
        "seller_id": str(transaction.seller_id),
        "status": transaction.status.value,
        "notes": transaction.notes,
        "created_at": _to_iso_utc(transaction.created_at, name="created_at"),
        "completed_at": _to_iso_utc(transaction.completed_at, name="completed_at"),
        "cancelled_at": _to_iso_utc(transaction.cancelled_at, name="cancelled_at"),
        "updated_at": _to_iso_utc(transaction.updated_at, name="updated_at"),
    }


def row_to_transaction(row: Mapping[str, Any]) -> Transaction:
    return Transaction(
        transaction_id=UUID(str(row["id"])),
        sell_request_id=UUID(str(row["sell_request_id"])),
        purchase_offer_id=UUID(str(row["purchase_offer_id"])),
        wholesaler_id=UUID(str(row["wholesaler_id"])),
        seller_id=UUID(str(row["seller_id"])),
        status=TransactionStatus(str(row["status"])),
        created_at=_parse_utc_datetime(row["created_at"]),
        notes=row.get("notes"),
        completed_at=_parse_utc_datetime(row.get("completed_at")),
        cancelled_at=_parse_utc_datetime(row.get("cancelled_at")),
        updated_at=_parse_utc_datetime(row.get("updated_at")),
    )


__all__ = [
    "OFFER_COLUMNS",
    "SELL_REQUEST_COLUMNS",
    "update_payload",
    "sell_request_to_row",
    "row_to_sell_request",
    "offer_to_row",
    "row_to_offer",
    "transaction_to_row",
    "row_to_transaction",
]
