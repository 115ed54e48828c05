"""Due date strategies selected by a loan policy.

Each strategy is a small frozen record holding only what it needs and
exposing ``calculate_due_date(loan)``. The set is closed; see
:func:`circulation.policy.loan_policy.LoanPolicy.determine_strategy` for
the selection table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from circulation.domain.models import Loan
from circulation.policy.period import ErrorForPolicy, Period
from circulation.policy.schedules import FixedDueDateSchedule
from circulation.support.result import (
    PolicyConfigurationError,
    Result,
    ValidationError,
    failed_validation_errors,
    succeeded,
)

CHECK_OUT_OUTSIDE_SCHEDULE = "loan date falls outside of the date ranges in the loan policy"
RENEWAL_OUTSIDE_SCHEDULE = "renewal date falls outside of the date ranges in the loan policy"
CANNOT_DETERMINE_RENEW_FROM = "cannot determine when to renew from"
LOAN_HAS_NO_DUE_DATE = "loan has no current due date to renew from"


class RenewFrom(str, Enum):
    SYSTEM_DATE = "SYSTEM_DATE"
    CURRENT_DUE_DATE = "CURRENT_DUE_DATE"

    @classmethod
    def from_id(cls, renew_from_id: Optional[str]) -> Optional["RenewFrom"]:
        text = (renew_from_id or "").strip().upper()
        for option in cls:
            if option.value == text:
                return option
        return None


@dataclass(frozen=True)
class RollingCheckOutStrategy:
    """Loan date plus the rolling period, capped by the checkout schedule."""

    period: Period
    limit_schedule: FixedDueDateSchedule
    error_for: ErrorForPolicy

    def calculate_due_date(self, loan: Loan) -> Result[datetime]:
        loan_date = loan.loan_date
        return self.period.add_to(loan_date, self.error_for).next(
            lambda due_date: self.limit_schedule.truncate_due_date(
                due_date,
                loan_date,
                lambda: self.error_for(CHECK_OUT_OUTSIDE_SCHEDULE),
            )
        )


@dataclass(frozen=True)
class FixedCheckOutStrategy:
    schedule: FixedDueDateSchedule
    error_for: ErrorForPolicy

    def calculate_due_date(self, loan: Loan) -> Result[datetime]:
        due_date = self.schedule.find_due_date_for(loan.loan_date)
        if due_date is None:
            return failed_validation_errors([self.error_for(CHECK_OUT_OUTSIDE_SCHEDULE)])
        return succeeded(due_date)


@dataclass(frozen=True)
class RollingRenewalStrategy:
    """Renew from the system date or current due date by the renewal period.

    With ``skip_truncation`` set (operator override) the renewal limit
    schedule is not applied.
    """

    system_date: datetime
    renew_from_id: Optional[str]
    period: Period
    limit_schedule: FixedDueDateSchedule
    error_for: ErrorForPolicy
    skip_truncation: bool = False

    def calculate_due_date(self, loan: Loan) -> Result[datetime]:
        renew_from = RenewFrom.from_id(self.renew_from_id)
        if renew_from is RenewFrom.CURRENT_DUE_DATE:
            if loan.due_date is None:
                return failed_validation_errors(
                    [ValidationError(LOAN_HAS_NO_DUE_DATE, {"loanId": loan.id})]
                )
            base = loan.due_date
        elif renew_from is RenewFrom.SYSTEM_DATE:
            base = self.system_date
        else:
            base = None

        if base is None:
            return failed_validation_errors(
                [PolicyConfigurationError.from_error(self.error_for(CANNOT_DETERMINE_RENEW_FROM))]
            )

        proposed = self.period.add_to(base, self.error_for)
        if self.skip_truncation:
            return proposed

        return proposed.next(
            lambda due_date: self.limit_schedule.truncate_due_date(
                due_date,
                loan.loan_date,
                lambda: self.error_for(RENEWAL_OUTSIDE_SCHEDULE),
            )
        )


@dataclass(frozen=True)
class FixedRenewalStrategy:
    schedule: FixedDueDateSchedule
    system_date: datetime
    error_for: ErrorForPolicy

    def calculate_due_date(self, loan: Loan) -> Result[datetime]:
        due_date = self.schedule.find_due_date_for(self.system_date)
        if due_date is None:
            return failed_validation_errors([self.error_for(RENEWAL_OUTSIDE_SCHEDULE)])
        return succeeded(due_date)


@dataclass(frozen=True)
class UnknownStrategy:
    """Fallback for a missing or unrecognized loan profile; always fails."""

    profile_id: Optional[str]
    is_renewal: bool
    error_for: ErrorForPolicy

    def calculate_due_date(self, loan: Loan) -> Result[datetime]:
        action = "renewed" if self.is_renewal else "checked out"
        message = (
            f'Item can\'t be {action} as profile "{self.profile_id or ""}" '
            "in the loan policy is not recognized."
        )
        return failed_validation_errors(
            [PolicyConfigurationError.from_error(self.error_for(message))]
        )


DueDateStrategy = Union[
    RollingCheckOutStrategy,
    FixedCheckOutStrategy,
    RollingRenewalStrategy,
    FixedRenewalStrategy,
    UnknownStrategy,
]


__all__ = [
    "CANNOT_DETERMINE_RENEW_FROM",
    "CHECK_OUT_OUTSIDE_SCHEDULE",
    "DueDateStrategy",
    "FixedCheckOutStrategy",
    "FixedRenewalStrategy",
    "LOAN_HAS_NO_DUE_DATE",
    "RENEWAL_OUTSIDE_SCHEDULE",
    "RenewFrom",
    "RollingCheckOutStrategy",
    "RollingRenewalStrategy",
    "UnknownStrategy",
]
