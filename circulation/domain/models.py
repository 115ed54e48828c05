"""Domain records for loans, requests, items and users.

Records are frozen dataclasses. Operations that change a record return a
new value built with :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from circulation.support.dates import ensure_aware

if TYPE_CHECKING:
    from circulation.domain.request_queue import RequestQueue
    from circulation.policy.loan_policy import LoanPolicy
    from circulation.policy.request_policy import RequestPolicy


class ItemStatus(str, Enum):
    AVAILABLE = "Available"
    CHECKED_OUT = "Checked out"
    CHECKED_OUT_HELD = "Checked out - Held"
    CHECKED_OUT_RECALLED = "Checked out - Recalled"
    AWAITING_PICKUP = "Awaiting pickup"
    IN_TRANSIT = "In transit"
    PAGED = "Paged"
    MISSING = "Missing"

    def is_checked_out(self) -> bool:
        return self in {
            ItemStatus.CHECKED_OUT,
            ItemStatus.CHECKED_OUT_HELD,
            ItemStatus.CHECKED_OUT_RECALLED,
        }


_HOLD_OR_RECALL_STATUSES = frozenset(
    {
        ItemStatus.CHECKED_OUT,
        ItemStatus.CHECKED_OUT_HELD,
        ItemStatus.CHECKED_OUT_RECALLED,
        ItemStatus.AWAITING_PICKUP,
        ItemStatus.IN_TRANSIT,
        ItemStatus.PAGED,
    }
)


class RequestType(str, Enum):
    HOLD = "Hold"
    RECALL = "Recall"
    PAGE = "Page"

    @classmethod
    def from_value(cls, value: Optional[str]) -> Optional["RequestType"]:
        text = (value or "").strip().lower()
        for request_type in cls:
            if request_type.value.lower() == text:
                return request_type
        return None

    def can_create_request_for_item(self, status: ItemStatus) -> bool:
        if self is RequestType.PAGE:
            return status is ItemStatus.AVAILABLE
        return status in _HOLD_OR_RECALL_STATUSES


class RequestStatus(str, Enum):
    OPEN_NOT_YET_FILLED = "Open - Not yet filled"
    OPEN_AWAITING_PICKUP = "Open - Awaiting pickup"
    OPEN_IN_TRANSIT = "Open - In transit"
    CLOSED_FILLED = "Closed - Filled"
    CLOSED_CANCELLED = "Closed - Cancelled"
    CLOSED_UNFILLED = "Closed - Unfilled"
    CLOSED_PICKUP_EXPIRED = "Closed - Pickup expired"

    def is_open(self) -> bool:
        return self.value.startswith("Open")


@dataclass(frozen=True)
class User:
    id: str
    patron_group_id: Optional[str] = None
    barcode: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def personal_name(self) -> str:
        return ", ".join(part for part in (self.last_name, self.first_name) if part)


@dataclass(frozen=True)
class Item:
    id: str
    status: ItemStatus = ItemStatus.AVAILABLE
    title: Optional[str] = None
    barcode: Optional[str] = None
    material_type_id: Optional[str] = None
    loan_type_id: Optional[str] = None
    location_id: Optional[str] = None

    def change_status(self, status: ItemStatus) -> "Item":
        return replace(self, status=status)


@dataclass(frozen=True)
class Loan:
    id: str
    item_id: str
    user_id: str
    loan_date: datetime
    due_date: Optional[datetime] = None
    renewal_count: int = 0
    return_date: Optional[datetime] = None
    status: str = "Open"
    action: Optional[str] = None
    action_comment: Optional[str] = None
    loan_policy_id: Optional[str] = None
    due_date_changed_by_recall: bool = False

    def __post_init__(self) -> None:
        for name in ("loan_date", "due_date", "return_date"):
            value = getattr(self, name)
            if isinstance(value, datetime):
                object.__setattr__(self, name, ensure_aware(value))

    @property
    def is_closed(self) -> bool:
        return self.status == "Closed"

    def change_due_date(self, due_date: datetime) -> "Loan":
        return replace(self, due_date=due_date)

    def change_action(self, action: str) -> "Loan":
        return replace(self, action=action)

    def check_out(self, due_date: datetime, loan_policy_id: Optional[str]) -> "Loan":
        return replace(
            self,
            due_date=due_date,
            loan_policy_id=loan_policy_id,
            action="checkedout",
        )

    def renew(self, due_date: datetime, loan_policy_id: Optional[str]) -> "Loan":
        return replace(
            self,
            due_date=due_date,
            loan_policy_id=loan_policy_id,
            renewal_count=self.renewal_count + 1,
            action="renewed",
            action_comment=None,
        )

    def override_renewal(
        self,
        due_date: datetime,
        loan_policy_id: Optional[str],
        comment: Optional[str],
    ) -> "Loan":
        return replace(
            self,
            due_date=due_date,
            loan_policy_id=loan_policy_id,
            renewal_count=self.renewal_count + 1,
            action="renewedThroughOverride",
            action_comment=comment,
        )

    def recall(self, due_date: datetime) -> "Loan":
        return replace(
            self,
            due_date=due_date,
            action="recallrequested",
            due_date_changed_by_recall=True,
        )


@dataclass(frozen=True)
class Request:
    id: str
    item_id: str
    requester_id: str
    request_type: RequestType
    status: RequestStatus = RequestStatus.OPEN_NOT_YET_FILLED
    position: Optional[int] = None
    request_date: Optional[datetime] = None
    proxy_user_id: Optional[str] = None

    def change_position(self, position: int) -> "Request":
        return replace(self, position=position)

    def is_fulfillable(self) -> bool:
        return self.status.is_open()


@dataclass(frozen=True)
class RequestContext:
    """A request together with the records the creation pipeline consults."""

    request: Request
    request_queue: "RequestQueue"
    item: Optional[Item] = None
    requester: Optional[User] = None
    request_policy: Optional["RequestPolicy"] = None
    loan: Optional[Loan] = None
    loan_policy: Optional["LoanPolicy"] = None

    def with_request(self, request: Request) -> "RequestContext":
        return replace(self, request=request)

    def with_item(self, item: Item) -> "RequestContext":
        return replace(self, item=item)

    def with_loan(self, loan: Optional[Loan]) -> "RequestContext":
        return replace(self, loan=loan)

    def with_request_policy(self, request_policy: "RequestPolicy") -> "RequestContext":
        return replace(self, request_policy=request_policy)

    def allowed_for_item(self) -> bool:
        if self.item is None:
            return False
        return self.request.request_type.can_create_request_for_item(self.item.status)


@dataclass(frozen=True)
class CheckOutContext:
    """A loan being checked out with its item, borrower, queue and policy."""

    loan: Loan
    item: Item
    user: User
    request_queue: "RequestQueue"
    loan_policy: Optional["LoanPolicy"] = None

    def with_loan(self, loan: Loan) -> "CheckOutContext":
        return replace(self, loan=loan)


__all__ = [
    "CheckOutContext",
    "Item",
    "ItemStatus",
    "Loan",
    "Request",
    "RequestContext",
    "RequestStatus",
    "RequestType",
    "User",
]
