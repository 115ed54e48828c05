"""Check-out validation against the item's request queue."""

from __future__ import annotations

from typing import Callable

from circulation.domain.models import CheckOutContext
from circulation.support.result import (
    Result,
    ValidationError,
    ValidationErrorFailure,
    failed,
    succeeded,
)


def awaiting_pickup_error(message: str, user_barcode: str | None) -> ValidationErrorFailure:
    return ValidationErrorFailure((ValidationError(message, {"userBarcode": user_barcode}),))


class AwaitingPickupValidator:
    """Refuses check-out while the item awaits pickup by another patron."""

    def __init__(self, error_function: Callable[[str], ValidationErrorFailure]) -> None:
        self._error_function = error_function

    def refuse_when_user_is_not_awaiting_pickup(
        self, records: Result[CheckOutContext]
    ) -> Result[CheckOutContext]:
        return records.next(self._check)

    def _check(self, context: CheckOutContext) -> Result[CheckOutContext]:
        user = context.user
        item = context.item

        if context.request_queue.has_awaiting_pickup_request_for_other_patron(user):
            return failed(
                self._error_function(
                    f"{item.title} (Barcode: {item.barcode}) cannot be checked out to user "
                    f"{user.personal_name} because it is awaiting pickup by another patron"
                )
            )
        return succeeded(context)


__all__ = ["AwaitingPickupValidator", "awaiting_pickup_error"]
