"""Tests for due date strategy selection and calculation."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from circulation.domain.models import Loan, Request, RequestType
from circulation.domain.request_queue import RequestQueue
from circulation.policy.loan_policy import LoanPolicy
from circulation.policy.period import Period
from circulation.policy.schedules import FixedDueDateSchedule, ScheduleRange
from circulation.policy.strategies import (
    FixedCheckOutStrategy,
    FixedRenewalStrategy,
    RollingCheckOutStrategy,
    RollingRenewalStrategy,
    UnknownStrategy,
)
from circulation.support.result import PolicyConfigurationError


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _make_loan(loan_date=None, due_date=None, renewal_count=0) -> Loan:
    return Loan(
        id="loan-1",
        item_id="item-1",
        user_id="user-1",
        loan_date=loan_date or _utc(2024, 3, 1, 10, 0),
        due_date=due_date,
        renewal_count=renewal_count,
    )


def _make_schedule() -> FixedDueDateSchedule:
    return FixedDueDateSchedule.of(
        [
            ScheduleRange(_utc(2024, 1, 1), _utc(2024, 1, 31), _utc(2024, 2, 15)),
            ScheduleRange(_utc(2024, 2, 1), _utc(2024, 2, 29), _utc(2024, 3, 15)),
        ]
    )


def _make_queue(*second_types: RequestType) -> RequestQueue:
    requests = [
        Request("request-1", "item-1", "user-2", RequestType.HOLD, position=1),
    ]
    for index, request_type in enumerate(second_types, start=2):
        requests.append(
            Request(f"request-{index}", "item-1", f"user-{index + 1}", request_type, position=index)
        )
    return RequestQueue.of(requests)


def _rolling_policy(**overrides) -> LoanPolicy:
    values = dict(
        id="policy-1",
        name="Rolling",
        loanable=True,
        renewable=True,
        profile_id="Rolling",
        checkout_period=Period.days(14),
        renewal_limit=3,
        renew_from_id="CURRENT_DUE_DATE",
    )
    values.update(overrides)
    return LoanPolicy(**values)


def _fixed_policy(**overrides) -> LoanPolicy:
    values = dict(
        id="policy-2",
        name="Fixed",
        loanable=True,
        renewable=True,
        profile_id="Fixed",
        checkout_schedule=_make_schedule(),
        renewal_limit=3,
    )
    values.update(overrides)
    return LoanPolicy(**values)


class TestStrategySelection:
    """The policy profile and renewal flag pick a strategy variant."""

    def test_rolling_check_out(self):
        strategy = _rolling_policy().determine_strategy(None, False, None)
        assert isinstance(strategy, RollingCheckOutStrategy)
        assert strategy.period == Period.days(14)

    def test_rolling_renewal(self):
        strategy = _rolling_policy().determine_strategy(None, True, _utc(2024, 3, 10))
        assert isinstance(strategy, RollingRenewalStrategy)

    def test_fixed_check_out(self):
        assert isinstance(
            _fixed_policy().determine_strategy(None, False, None), FixedCheckOutStrategy
        )

    def test_fixed_renewal(self):
        assert isinstance(
            _fixed_policy().determine_strategy(None, True, _utc(2024, 1, 10)),
            FixedRenewalStrategy,
        )

    def test_fixed_check_out_with_waiting_hold_uses_alternate_period(self):
        policy = _fixed_policy(alternate_checkout_period=Period.days(2))
        strategy = policy.determine_strategy(_make_queue(RequestType.HOLD), False, None)

        assert isinstance(strategy, RollingCheckOutStrategy)
        assert strategy.period == Period.days(2)

    @pytest.mark.parametrize("profile_id", ["Indefinite", None, ""])
    def test_unrecognized_profile(self, profile_id):
        strategy = _rolling_policy(profile_id=profile_id).determine_strategy(None, False, None)
        assert isinstance(strategy, UnknownStrategy)

    def test_missing_loans_policy(self):
        strategy = _rolling_policy(has_loans_policy=False).determine_strategy(None, True, None)
        assert isinstance(strategy, UnknownStrategy)
        assert strategy.profile_id == ""


class TestCheckOutDueDates:
    def test_rolling_fourteen_days(self):
        result = _rolling_policy().calculate_initial_due_date(_make_loan(), None)

        assert result.value == _utc(2024, 3, 15, 10, 0)

    def test_fixed_schedule_due_date(self):
        loan = _make_loan(loan_date=_utc(2024, 1, 10, 9, 0))

        assert _fixed_policy().calculate_initial_due_date(loan, None).value == _utc(2024, 2, 15)

    def test_fixed_schedule_without_match(self):
        loan = _make_loan(loan_date=_utc(2024, 6, 10))
        result = _fixed_policy().calculate_initial_due_date(loan, None)

        assert result.validation_errors()[0].message == (
            "loan date falls outside of the date ranges in the loan policy"
        )
        assert result.validation_errors()[0].parameters == {
            "loanPolicyId": "policy-2",
            "loanPolicyName": "Fixed",
        }

    def test_rolling_truncated_by_schedule(self):
        policy = _rolling_policy(checkout_schedule=_make_schedule())
        loan = _make_loan(loan_date=_utc(2024, 2, 10))

        assert policy.calculate_initial_due_date(loan, None).value == _utc(2024, 2, 24)

        late = _make_loan(loan_date=_utc(2024, 2, 27))
        assert policy.calculate_initial_due_date(late, None).value == _utc(2024, 3, 12)

    def test_rolling_truncation_caps_at_schedule_due_date(self):
        policy = _rolling_policy(checkout_period=Period.months(2), checkout_schedule=_make_schedule())
        loan = _make_loan(loan_date=_utc(2024, 1, 10))

        assert policy.calculate_initial_due_date(loan, None).value == _utc(2024, 2, 15)

    def test_alternate_hold_period_when_hold_waits_behind_first(self):
        policy = _rolling_policy(alternate_checkout_period=Period.days(2))
        queue = _make_queue(RequestType.HOLD)

        assert policy.calculate_initial_due_date(_make_loan(), queue).value == _utc(2024, 3, 3, 10, 0)

    def test_regular_period_when_second_request_is_not_a_hold(self):
        policy = _rolling_policy(alternate_checkout_period=Period.days(2))
        queue = _make_queue(RequestType.RECALL)

        assert policy.calculate_initial_due_date(_make_loan(), queue).value == _utc(2024, 3, 15, 10, 0)

    def test_regular_period_when_hold_is_first_in_queue(self):
        policy = _rolling_policy(alternate_checkout_period=Period.days(2))

        assert policy.calculate_initial_due_date(_make_loan(), _make_queue()).value == _utc(
            2024, 3, 15, 10, 0
        )

    def test_unknown_profile_message(self):
        result = _rolling_policy(profile_id="Indefinite").calculate_initial_due_date(_make_loan(), None)

        error = result.validation_errors()[0]
        assert isinstance(error, PolicyConfigurationError)
        assert error.message == (
            'Item can\'t be checked out as profile "Indefinite" in the loan policy is not recognized.'
        )


class TestRenewalStrategies:
    def test_rolling_renewal_from_current_due_date(self):
        strategy = RollingRenewalStrategy(
            _utc(2024, 3, 10),
            "CURRENT_DUE_DATE",
            Period.days(7),
            FixedDueDateSchedule(configured=False),
            _rolling_policy().error_for_policy,
        )

        result = strategy.calculate_due_date(_make_loan(due_date=_utc(2024, 3, 15, 10, 0)))
        assert result.value == _utc(2024, 3, 22, 10, 0)

    def test_rolling_renewal_from_system_date(self):
        policy = _rolling_policy(renew_from_id="SYSTEM_DATE")
        strategy = policy.determine_strategy(None, True, _utc(2024, 3, 10, 12, 0))

        assert strategy.calculate_due_date(_make_loan()).value == _utc(2024, 3, 24, 12, 0)

    def test_rolling_renewal_with_unknown_renew_from(self):
        policy = _rolling_policy(renew_from_id="SOMETIME")
        result = policy.determine_strategy(None, True, _utc(2024, 3, 10)).calculate_due_date(
            _make_loan(due_date=_utc(2024, 3, 15))
        )

        assert result.validation_errors()[0].message == "cannot determine when to renew from"

    def test_rolling_renewal_limited_by_schedule_at_loan_date(self):
        policy = _rolling_policy(checkout_schedule=_make_schedule())
        loan = _make_loan(loan_date=_utc(2024, 2, 10), due_date=_utc(2024, 3, 10))
        result = policy.determine_strategy(None, True, _utc(2024, 3, 5)).calculate_due_date(loan)

        assert result.value == _utc(2024, 3, 15)

    def test_rolling_renewal_outside_schedule(self):
        policy = _rolling_policy(checkout_schedule=_make_schedule())
        loan = _make_loan(loan_date=_utc(2024, 5, 1), due_date=_utc(2024, 5, 15))
        result = policy.determine_strategy(None, True, _utc(2024, 5, 10)).calculate_due_date(loan)

        assert result.validation_errors()[0].message == (
            "renewal date falls outside of the date ranges in the loan policy"
        )

    def test_different_renewal_period_and_schedule(self):
        alternate = FixedDueDateSchedule.of(
            [ScheduleRange(_utc(2024, 1, 1), _utc(2024, 12, 31), _utc(2024, 3, 20))]
        )
        policy = _rolling_policy(
            different_renewal_period=True,
            alternate_renewal_period=Period.days(10),
            alternate_renewal_schedule=alternate,
        )
        loan = _make_loan(due_date=_utc(2024, 3, 15, 10, 0))
        result = policy.determine_strategy(None, True, _utc(2024, 3, 10)).calculate_due_date(loan)

        assert result.value == _utc(2024, 3, 20)

    def test_fixed_renewal_uses_system_date(self):
        strategy = _fixed_policy().determine_strategy(None, True, _utc(2024, 2, 10))

        assert strategy.calculate_due_date(_make_loan(loan_date=_utc(2024, 1, 10))).value == _utc(
            2024, 3, 15
        )

    def test_fixed_renewal_outside_schedule(self):
        strategy = _fixed_policy().determine_strategy(None, True, _utc(2024, 6, 10))
        result = strategy.calculate_due_date(_make_loan())

        assert result.validation_errors()[0].message == (
            "renewal date falls outside of the date ranges in the loan policy"
        )

    def test_unknown_profile_renewal_message(self):
        result = UnknownStrategy("Indefinite", True, _rolling_policy().error_for_policy).calculate_due_date(
            _make_loan()
        )

        assert result.validation_errors()[0].message == (
            'Item can\'t be renewed as profile "Indefinite" in the loan policy is not recognized.'
        )


class TestReferenceScenarios:
    """Worked examples for the standard policy shapes."""

    def test_rolling_fourteen_days_from_new_year(self):
        loan = _make_loan(loan_date=_utc(2024, 1, 1))

        assert _rolling_policy().calculate_initial_due_date(loan, None).value == _utc(2024, 1, 15)

    def test_fixed_schedule_january(self):
        schedule = FixedDueDateSchedule.of(
            [ScheduleRange(_utc(2024, 1, 1), _utc(2024, 2, 1), _utc(2024, 2, 5))]
        )
        policy = _fixed_policy(checkout_schedule=schedule)

        inside = policy.calculate_initial_due_date(_make_loan(loan_date=_utc(2024, 1, 10)), None)
        outside = policy.calculate_initial_due_date(_make_loan(loan_date=_utc(2024, 2, 2)), None)

        assert inside.value == _utc(2024, 2, 5)
        assert outside.is_failure()
        assert schedule.find_due_date_for(_utc(2024, 2, 2)) is None

    def test_seven_day_renewal_from_current_due_date(self):
        policy = _rolling_policy(
            different_renewal_period=True,
            alternate_renewal_period=Period.days(7),
        )
        loan = _make_loan(loan_date=_utc(2024, 1, 1), due_date=_utc(2024, 1, 15))

        renewed = policy.renew(loan, _utc(2024, 1, 14)).value

        assert renewed.due_date == _utc(2024, 1, 22)
        assert renewed.renewal_count == 1


class TestNaiveTimestamps:
    """Naive loan and reference times are read as UTC."""

    def test_fixed_check_out_with_naive_loan_date(self):
        policy = LoanPolicy.from_representation(
            {
                "id": "policy-3",
                "name": "Fixed January",
                "loanable": True,
                "loansPolicy": {"profileId": "Fixed", "fixedDueDateScheduleId": "schedule-1"},
            },
            {
                "id": "schedule-1",
                "schedules": [{"from": "2024-01-01", "to": "2024-02-01", "due": "2024-02-05"}],
            },
        )
        loan = Loan("loan-1", "item-1", "user-1", datetime(2024, 1, 10))

        result = policy.calculate_initial_due_date(loan, None)

        assert result.is_success()
        assert result.value == _utc(2024, 2, 5)

    def test_rolling_renewal_with_naive_system_date(self):
        policy = _rolling_policy(renew_from_id="SYSTEM_DATE", checkout_schedule=_make_schedule())
        loan = _make_loan(loan_date=datetime(2024, 2, 10), due_date=datetime(2024, 2, 24))

        result = policy.renew(loan, datetime(2024, 2, 20))

        assert result.value.due_date == _utc(2024, 3, 5)


def test_normal_period_when_no_alternate_period_is_configured():
    policy = _rolling_policy(alternate_checkout_period=None)
    queue = _make_queue(RequestType.HOLD)

    assert not policy.is_alternate_due_date_schedule(queue)
    assert policy.calculate_initial_due_date(_make_loan(), queue).value == _utc(2024, 3, 15, 10, 0)


def test_renewal_from_current_due_date_of_loan_without_one():
    result = _rolling_policy().determine_strategy(None, True, _utc(2024, 3, 10)).calculate_due_date(
        _make_loan(due_date=None)
    )

    errors = result.validation_errors()
    assert [e.message for e in errors] == ["loan has no current due date to renew from"]
    assert errors[0].parameters == {"loanId": "loan-1"}
