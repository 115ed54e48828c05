"""Per-item queue of outstanding requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from circulation.domain.models import Request, RequestStatus, RequestType, User


def _position_key(request: Request) -> Tuple[bool, int]:
    # Unpositioned requests go after every positioned one.
    return (request.position is None, request.position or 0)


@dataclass(frozen=True)
class RequestQueue:
    """Requests for a single item ordered by ascending position.

    The queue is a snapshot read per operation; :meth:`add` and
    :meth:`remove` return new queues rather than changing this one.
    """

    requests: Tuple[Request, ...] = ()

    @classmethod
    def of(cls, requests: Iterable[Request]) -> "RequestQueue":
        return cls(tuple(sorted(requests, key=_position_key)))

    @classmethod
    def empty(cls) -> "RequestQueue":
        return cls()

    def __iter__(self) -> Iterator[Request]:
        return iter(self.requests)

    def __len__(self) -> int:
        return len(self.requests)

    @property
    def size(self) -> int:
        return len(self.requests)

    def contains(self, request: Request) -> bool:
        return any(existing.id == request.id for existing in self.requests)

    def next_available_position(self) -> int:
        positions = [r.position for r in self.requests if r.position is not None]
        return max(positions, default=0) + 1

    def add(self, request: Request) -> "RequestQueue":
        positioned = request.change_position(self.next_available_position())
        return RequestQueue(self.requests + (positioned,))

    def remove(self, request: Request) -> "RequestQueue":
        """Drop ``request`` and renumber the remaining positions from 1."""

        remaining = [r for r in self.requests if r.id != request.id]
        return RequestQueue(
            tuple(r.change_position(index) for index, r in enumerate(remaining, start=1))
        )

    def has_awaiting_pickup_request_for_other_patron(self, requester: Optional[User]) -> bool:
        requester_id = requester.id if requester is not None else None
        return any(
            r.status is RequestStatus.OPEN_AWAITING_PICKUP and r.requester_id != requester_id
            for r in self.requests
        )

    def highest_priority_fulfillable_request(self) -> Optional[Request]:
        return next((r for r in self.requests if r.is_fulfillable()), None)

    def has_outstanding_fulfillable_requests(self) -> bool:
        return self.highest_priority_fulfillable_request() is not None

    def is_requested_by_other_patron(self, user: User) -> bool:
        request = self.highest_priority_fulfillable_request()
        return request is not None and request.requester_id != user.id

    def has_waiting_hold_behind_first(self) -> bool:
        """True when the request right behind the first one is an unfilled hold."""

        if len(self.requests) < 2:
            return False
        second = self.requests[1]
        return (
            second.request_type is RequestType.HOLD
            and second.status is RequestStatus.OPEN_NOT_YET_FILLED
        )


__all__ = ["RequestQueue"]
