"""Check-out of an item to a patron."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from circulation.domain.models import CheckOutContext
from circulation.domain.validation import AwaitingPickupValidator, awaiting_pickup_error
from circulation.policy.loan_policy import ITEM_IS_NOT_LOANABLE
from circulation.support.result import (
    Result,
    ServerErrorFailure,
    failed,
    failed_validation_errors,
    succeeded,
)

log = logging.getLogger(__name__)


class CheckOutService:
    def __init__(self, awaiting_pickup_validator: Optional[AwaitingPickupValidator] = None) -> None:
        self.awaiting_pickup_validator = awaiting_pickup_validator

    def check_out(self, context: CheckOutContext, system_date: datetime) -> Result[CheckOutContext]:
        """Validate the check-out and stamp the loan with its initial due date."""

        validator = self._validator_for(context)
        return (
            validator.refuse_when_user_is_not_awaiting_pickup(succeeded(context))
            .next(self._refuse_when_not_loanable)
            .next(lambda records: self._apply_due_date(records, system_date))
        )

    def _validator_for(self, context: CheckOutContext) -> AwaitingPickupValidator:
        if self.awaiting_pickup_validator is not None:
            return self.awaiting_pickup_validator
        return AwaitingPickupValidator(
            lambda message: awaiting_pickup_error(message, context.user.barcode)
        )

    @staticmethod
    def _refuse_when_not_loanable(context: CheckOutContext) -> Result[CheckOutContext]:
        policy = context.loan_policy
        if policy is None:
            return failed(ServerErrorFailure("No loan policy was resolved for check-out"))
        if not policy.loanable:
            return failed_validation_errors([policy.error_for_policy(ITEM_IS_NOT_LOANABLE)])
        return succeeded(context)

    @staticmethod
    def _apply_due_date(context: CheckOutContext, system_date: datetime) -> Result[CheckOutContext]:
        policy = context.loan_policy
        loan = context.loan
        due_date = policy.calculate_initial_due_date(loan, context.request_queue, system_date)
        if due_date.is_success():
            log.info(
                "LOAN_CHECKED_OUT loan_id=%s item_id=%s policy_id=%s due_date=%s",
                loan.id,
                loan.item_id,
                policy.id,
                due_date.value.isoformat(),
            )
        return due_date.map(lambda value: context.with_loan(loan.check_out(value, policy.id)))


__all__ = ["CheckOutService"]
