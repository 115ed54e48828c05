"""Loan policy: due date strategy selection and renewal, override and recall rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, List, Mapping, Optional

from circulation.domain.models import Loan
from circulation.domain.request_queue import RequestQueue
from circulation.policy.documents import LoanPolicyDocument, PeriodDocument
from circulation.policy.due_date_management import DueDateManagement
from circulation.policy.period import Interval, Period
from circulation.policy.schedules import NO_SCHEDULE, FixedDueDateSchedule
from circulation.policy.strategies import (
    DueDateStrategy,
    FixedCheckOutStrategy,
    FixedRenewalStrategy,
    RollingCheckOutStrategy,
    RollingRenewalStrategy,
    UnknownStrategy,
)
from circulation.support.dates import ensure_aware
from circulation.support.result import (
    Result,
    ServerErrorFailure,
    ValidationError,
    failed,
    failed_validation_errors,
    succeeded,
)

log = logging.getLogger(__name__)

RENEWAL_WOULD_NOT_CHANGE_THE_DUE_DATE = "renewal would not change the due date"
ITEM_IS_NOT_LOANABLE = "item is not loanable"
LOAN_IS_NOT_RENEWABLE = "loan is not renewable"
LOAN_AT_MAXIMUM_RENEWAL_NUMBER = "loan at maximum renewal number"
OVERRIDE_DUE_DATE_REQUIRED = "New due date must be specified when due date calculation fails"
OVERRIDE_DOES_NOT_MATCH = (
    "Override renewal does not match any of expected cases: "
    "item is not loanable, "
    "item is not renewable, "
    "reached number of renewals limit or "
    "renewal date falls outside of the date ranges in the loan policy"
)

MINIMUM_GUARANTEED_LOAN_PERIOD_KEY = "minimumGuaranteedLoanPeriod"
RECALL_RETURN_INTERVAL_KEY = "recallReturnInterval"


class LoanProfile(str, Enum):
    ROLLING = "Rolling"
    FIXED = "Fixed"

    @classmethod
    def from_id(cls, profile_id: Optional[str]) -> Optional["LoanProfile"]:
        text = (profile_id or "").strip().lower()
        for profile in cls:
            if profile.value.lower() == text:
                return profile
        return None


def _period(document: Optional[PeriodDocument]) -> Period:
    if document is None:
        return Period()
    return Period.from_values(document.duration, document.interval_id)


def _optional_period(document: Optional[PeriodDocument]) -> Optional[Period]:
    return None if document is None else _period(document)


@dataclass(frozen=True)
class LoanPolicy:
    """Immutable loan policy built once from its configuration document.

    ``has_loans_policy`` is false when the document carries no
    ``loansPolicy`` section; every due date calculation then fails with a
    profile error instead of raising.
    """

    id: Optional[str] = None
    name: Optional[str] = None
    loanable: bool = False
    renewable: bool = False
    has_loans_policy: bool = True
    profile_id: Optional[str] = None
    checkout_period: Period = field(default_factory=Period)
    checkout_schedule: FixedDueDateSchedule = NO_SCHEDULE
    alternate_renewal_schedule: FixedDueDateSchedule = NO_SCHEDULE
    fixed_due_date_schedule_id: Optional[str] = None
    alternate_fixed_due_date_schedule_id: Optional[str] = None
    unlimited_renewals: bool = False
    renewal_limit: int = 0
    different_renewal_period: bool = False
    renew_from_id: Optional[str] = None
    alternate_renewal_period: Period = field(default_factory=Period)
    alternate_checkout_period: Optional[Period] = None
    recall_minimum_guaranteed_period: Optional[Period] = None
    recall_return_interval: Optional[Period] = None
    closed_library_due_date_management_id: Optional[str] = None
    opening_time_offset: Optional[Period] = None

    @classmethod
    def from_document(
        cls,
        document: LoanPolicyDocument,
        schedules: FixedDueDateSchedule = NO_SCHEDULE,
        alternate_renewal_schedules: FixedDueDateSchedule = NO_SCHEDULE,
    ) -> "LoanPolicy":
        loans = document.loans_policy
        renewals = document.renewals_policy
        holds = document.request_management.holds
        recalls = document.request_management.recalls

        return cls(
            id=document.id,
            name=document.name,
            loanable=document.loanable,
            renewable=document.renewable,
            has_loans_policy=loans is not None,
            profile_id=loans.profile_id if loans else None,
            checkout_period=_period(loans.period if loans else None),
            checkout_schedule=schedules,
            alternate_renewal_schedule=alternate_renewal_schedules,
            fixed_due_date_schedule_id=loans.fixed_due_date_schedule_id if loans else None,
            alternate_fixed_due_date_schedule_id=renewals.alternate_fixed_due_date_schedule_id,
            unlimited_renewals=renewals.unlimited,
            renewal_limit=renewals.number_allowed or 0,
            different_renewal_period=renewals.different_period,
            renew_from_id=renewals.renew_from_id,
            alternate_renewal_period=_period(renewals.period),
            alternate_checkout_period=_optional_period(holds.alternate_checkout_loan_period),
            recall_minimum_guaranteed_period=_optional_period(
                recalls.minimum_guaranteed_loan_period
            ),
            recall_return_interval=_optional_period(recalls.recall_return_interval),
            closed_library_due_date_management_id=(
                loans.closed_library_due_date_management_id if loans else None
            ),
            opening_time_offset=_optional_period(loans.opening_time_offset if loans else None),
        )

    @classmethod
    def from_representation(
        cls,
        representation: Mapping[str, Any],
        schedules: Optional[Mapping[str, Any]] = None,
        alternate_renewal_schedules: Optional[Mapping[str, Any]] = None,
        tz: tzinfo = timezone.utc,
    ) -> "LoanPolicy":
        return cls.from_document(
            LoanPolicyDocument.model_validate(representation),
            FixedDueDateSchedule.from_representation(schedules, tz),
            FixedDueDateSchedule.from_representation(alternate_renewal_schedules, tz),
        )

    def with_due_date_schedules(self, schedules: FixedDueDateSchedule) -> "LoanPolicy":
        return replace(self, checkout_schedule=schedules)

    def with_alternate_renewal_schedules(self, schedules: FixedDueDateSchedule) -> "LoanPolicy":
        return replace(self, alternate_renewal_schedule=schedules)

    @property
    def profile(self) -> Optional[LoanProfile]:
        return LoanProfile.from_id(self.profile_id)

    @property
    def is_rolling(self) -> bool:
        return self.has_loans_policy and self.profile is LoanProfile.ROLLING

    @property
    def is_fixed(self) -> bool:
        return self.has_loans_policy and self.profile is LoanProfile.FIXED

    @property
    def renewal_period(self) -> Period:
        return self.alternate_renewal_period if self.different_renewal_period else self.checkout_period

    @property
    def renewal_limit_schedule(self) -> FixedDueDateSchedule:
        if self.different_renewal_period and self.alternate_renewal_schedule.configured:
            return self.alternate_renewal_schedule
        return self.checkout_schedule

    @property
    def renewal_fixed_schedule(self) -> FixedDueDateSchedule:
        if self.different_renewal_period:
            return self.alternate_renewal_schedule
        return self.checkout_schedule

    @property
    def due_date_management(self) -> DueDateManagement:
        if not self.has_loans_policy:
            return DueDateManagement.KEEP_THE_CURRENT_DUE_DATE_TIME
        return DueDateManagement.from_id(self.closed_library_due_date_management_id)

    @property
    def period_interval(self) -> Interval:
        if not self.has_loans_policy:
            return Interval.INCORRECT
        return self.checkout_period.unit

    @property
    def offset_period_interval(self) -> Interval:
        if not self.has_loans_policy or self.opening_time_offset is None:
            return Interval.INCORRECT
        return self.opening_time_offset.unit

    @property
    def offset_period_duration(self) -> int:
        if self.opening_time_offset is None or not self.opening_time_offset.has_valid_duration():
            return 0
        return self.opening_time_offset.duration

    def error_for_policy(self, reason: str) -> ValidationError:
        return ValidationError(
            reason,
            {"loanPolicyId": self.id, "loanPolicyName": self.name},
        )

    def is_alternate_due_date_schedule(self, request_queue: Optional[RequestQueue]) -> bool:
        if request_queue is None or self.alternate_checkout_period is None:
            return False
        return request_queue.has_waiting_hold_behind_first()

    def determine_strategy(
        self,
        request_queue: Optional[RequestQueue],
        is_renewal: bool,
        system_date: Optional[datetime],
    ) -> DueDateStrategy:
        error_for = self.error_for_policy

        if not self.has_loans_policy:
            strategy: DueDateStrategy = UnknownStrategy("", is_renewal, error_for)
        elif self.is_rolling:
            if is_renewal:
                strategy = RollingRenewalStrategy(
                    system_date,
                    self.renew_from_id,
                    self.renewal_period,
                    self.renewal_limit_schedule,
                    error_for,
                )
            else:
                period = self.checkout_period
                if self.is_alternate_due_date_schedule(request_queue):
                    period = self.alternate_checkout_period
                strategy = RollingCheckOutStrategy(period, self.checkout_schedule, error_for)
        elif self.is_fixed:
            if is_renewal:
                strategy = FixedRenewalStrategy(self.renewal_fixed_schedule, system_date, error_for)
            elif self.is_alternate_due_date_schedule(request_queue):
                strategy = RollingCheckOutStrategy(
                    self.alternate_checkout_period, self.checkout_schedule, error_for
                )
            else:
                strategy = FixedCheckOutStrategy(self.checkout_schedule, error_for)
        else:
            strategy = UnknownStrategy(self.profile_id, is_renewal, error_for)

        log.debug(
            "LOAN_POLICY_STRATEGY policy_id=%s strategy=%s renewal=%s",
            self.id,
            type(strategy).__name__,
            is_renewal,
        )
        return strategy

    def rolling_renewal_override_strategy(self, system_date: datetime) -> RollingRenewalStrategy:
        return RollingRenewalStrategy(
            system_date,
            self.renew_from_id,
            self.renewal_period,
            self.renewal_limit_schedule,
            self.error_for_policy,
            skip_truncation=True,
        )

    def calculate_initial_due_date(
        self,
        loan: Loan,
        request_queue: Optional[RequestQueue],
        system_date: Optional[datetime] = None,
    ) -> Result[datetime]:
        try:
            system_date = _aware(system_date)
            return self.determine_strategy(request_queue, False, system_date).calculate_due_date(loan)
        except Exception as exc:
            return self._server_error("check_out", loan, exc)

    def renew(self, loan: Loan, system_date: datetime) -> Result[Loan]:
        try:
            system_date = _aware(system_date)
            if not self.loanable:
                return failed_validation_errors([self.error_for_policy(ITEM_IS_NOT_LOANABLE)])
            if not self.renewable:
                return failed_validation_errors([self.error_for_policy(LOAN_IS_NOT_RENEWABLE)])

            proposed = self.determine_strategy(None, True, system_date).calculate_due_date(loan)

            errors: List[ValidationError] = []
            if proposed.is_failure():
                errors.extend(proposed.validation_errors())
            elif self._is_same_or_before(loan, proposed.value):
                errors.append(self.error_for_policy(RENEWAL_WOULD_NOT_CHANGE_THE_DUE_DATE))

            if self._reached_renewal_limit(loan):
                errors.append(self.error_for_policy(LOAN_AT_MAXIMUM_RENEWAL_NUMBER))

            if errors:
                log.info(
                    "LOAN_RENEWAL_REFUSED loan_id=%s policy_id=%s errors=%s",
                    loan.id,
                    self.id,
                    len(errors),
                )
                return failed_validation_errors(errors)
            if proposed.is_failure():
                return failed(proposed.cause)

            return succeeded(loan.renew(proposed.value, self.id))
        except Exception as exc:
            return self._server_error("renew", loan, exc)

    def override_renewal(
        self,
        loan: Loan,
        system_date: datetime,
        override_due_date: Optional[datetime],
        comment: Optional[str],
    ) -> Result[Loan]:
        try:
            system_date = _aware(system_date)
            override_due_date = _aware(override_due_date)
            if not self.loanable or not self.renewable:
                return self._override_renewal_for_due_date(loan, override_due_date, comment)

            proposed = self.determine_strategy(None, True, system_date).calculate_due_date(loan)

            if proposed.is_failure() and self.is_fixed:
                return self._override_renewal_for_due_date(loan, override_due_date, comment)

            if proposed.is_failure() and self.is_rolling:
                strategy = self.rolling_renewal_override_strategy(system_date)
                return self._process_override(strategy.calculate_due_date(loan), loan, comment)

            if proposed.is_success() and self._reached_renewal_limit(loan):
                return self._process_override(proposed, loan, comment)

            return failed_validation_errors([self.error_for_policy(OVERRIDE_DOES_NOT_MATCH)])
        except Exception as exc:
            return self._server_error("override_renewal", loan, exc)

    def recall(self, loan: Loan, system_date: datetime) -> Result[Loan]:
        try:
            system_date = _aware(system_date)
            minimum_due_date = self._due_date_for(
                self.recall_minimum_guaranteed_period,
                MINIMUM_GUARANTEED_LOAN_PERIOD_KEY,
                loan.loan_date,
                None,
            )
            recall_due_date = self._due_date_for(
                self.recall_return_interval,
                RECALL_RETURN_INTERVAL_KEY,
                system_date,
                system_date,
            )

            errors = recall_due_date.validation_errors() + minimum_due_date.validation_errors()
            if errors:
                return failed_validation_errors(errors)

            return minimum_due_date.combine(recall_due_date, _recall_due_date).map(loan.recall)
        except Exception as exc:
            return self._server_error("recall", loan, exc)

    def schedule_limit(
        self,
        loan_date: datetime,
        is_renewal: bool,
        system_date: datetime,
    ) -> Optional[datetime]:
        loan_date = _aware(loan_date)
        system_date = _aware(system_date)
        if self.is_rolling:
            if is_renewal:
                return self.renewal_limit_schedule.find_due_date_for(loan_date)
            return self.checkout_schedule.find_due_date_for(loan_date)
        if self.is_fixed:
            if is_renewal:
                return self.renewal_fixed_schedule.find_due_date_for(system_date)
            return self.checkout_schedule.find_due_date_for(loan_date)
        return None

    def _override_renewal_for_due_date(
        self,
        loan: Loan,
        override_due_date: Optional[datetime],
        comment: Optional[str],
    ) -> Result[Loan]:
        if override_due_date is None:
            return failed_validation_errors(
                [ValidationError(OVERRIDE_DUE_DATE_REQUIRED, {"dueDate": "null"})]
            )
        return succeeded(loan.override_renewal(override_due_date, self.id, comment))

    def _process_override(
        self,
        calculated_due_date: Result[datetime],
        loan: Loan,
        comment: Optional[str],
    ) -> Result[Loan]:
        return calculated_due_date.next(
            lambda due_date: self._refuse_when_same_or_before(loan, due_date)
        ).map(lambda due_date: loan.override_renewal(due_date, self.id, comment))

    def _refuse_when_same_or_before(self, loan: Loan, due_date: datetime) -> Result[datetime]:
        if self._is_same_or_before(loan, due_date):
            return failed_validation_errors(
                [self.error_for_policy(RENEWAL_WOULD_NOT_CHANGE_THE_DUE_DATE)]
            )
        return succeeded(due_date)

    @staticmethod
    def _is_same_or_before(loan: Loan, proposed_due_date: datetime) -> bool:
        return loan.due_date is not None and proposed_due_date <= loan.due_date

    def _reached_renewal_limit(self, loan: Loan) -> bool:
        return not self.unlimited_renewals and loan.renewal_count >= self.renewal_limit

    def _due_date_for(
        self,
        period: Optional[Period],
        key: str,
        initial: datetime,
        default: Optional[datetime],
    ) -> Result[Optional[datetime]]:
        if period is None:
            return succeeded(default)
        return period.add_to(initial, self.error_for_policy, key)

    def _server_error(self, operation: str, loan: Loan, exc: Exception) -> Result[Any]:
        log.exception(
            "LOAN_POLICY_SERVER_ERROR operation=%s loan_id=%s policy_id=%s",
            operation,
            loan.id,
            self.id,
        )
        return failed(ServerErrorFailure.from_exception(exc))


def _aware(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_aware(value)
    return value


def _recall_due_date(
    minimum_guaranteed_due_date: Optional[datetime],
    recall_due_date: datetime,
) -> datetime:
    if minimum_guaranteed_due_date is None or recall_due_date > minimum_guaranteed_due_date:
        return recall_due_date
    return minimum_guaranteed_due_date


__all__ = [
    "ITEM_IS_NOT_LOANABLE",
    "LOAN_AT_MAXIMUM_RENEWAL_NUMBER",
    "LOAN_IS_NOT_RENEWABLE",
    "LoanPolicy",
    "LoanProfile",
    "OVERRIDE_DOES_NOT_MATCH",
    "OVERRIDE_DUE_DATE_REQUIRED",
    "RENEWAL_WOULD_NOT_CHANGE_THE_DUE_DATE",
]
