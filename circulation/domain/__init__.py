"""Circulation domain records and the per-item request queue."""

from .models import (
    CheckOutContext,
    Item,
    ItemStatus,
    Loan,
    Request,
    RequestContext,
    RequestStatus,
    RequestType,
    User,
)
from .request_queue import RequestQueue
from .validation import AwaitingPickupValidator, awaiting_pickup_error

__all__ = [
    "AwaitingPickupValidator",
    "CheckOutContext",
    "Item",
    "ItemStatus",
    "Loan",
    "Request",
    "RequestContext",
    "RequestQueue",
    "RequestStatus",
    "RequestType",
    "User",
    "awaiting_pickup_error",
]
