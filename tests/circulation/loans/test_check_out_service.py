"""Tests for check-out orchestration."""
from __future__ import annotations

from datetime import datetime, timezone

from circulation.domain.models import (
    CheckOutContext,
    Item,
    ItemStatus,
    Loan,
    Request,
    RequestStatus,
    RequestType,
    User,
)
from circulation.domain.request_queue import RequestQueue
from circulation.loans.check_out import CheckOutService
from circulation.policy.loan_policy import ITEM_IS_NOT_LOANABLE, LoanPolicy
from circulation.policy.period import Period
from circulation.support.result import ServerErrorFailure

SYSTEM_DATE = datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)


def _make_policy(**overrides) -> LoanPolicy:
    values = dict(
        id="policy-1",
        name="Two weeks",
        loanable=True,
        renewable=True,
        profile_id="Rolling",
        checkout_period=Period.days(14),
        alternate_checkout_period=Period.days(2),
    )
    values.update(overrides)
    return LoanPolicy(**values)


def _make_context(queue=None, **overrides) -> CheckOutContext:
    values = dict(
        loan=Loan("loan-1", "item-1", "user-1", SYSTEM_DATE),
        item=Item("item-1", ItemStatus.AVAILABLE, title="Dune", barcode="036000291452"),
        user=User("user-1", "undergrad", "5550001", "Ada", "Lovelace"),
        request_queue=queue if queue is not None else RequestQueue.empty(),
        loan_policy=_make_policy(),
    )
    values.update(overrides)
    return CheckOutContext(**values)


def test_check_out_sets_rolling_due_date(caplog):
    with caplog.at_level("INFO"):
        result = CheckOutService().check_out(_make_context(), SYSTEM_DATE)

    loan = result.value.loan
    assert loan.due_date == datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)
    assert loan.action == "checkedout"
    assert loan.loan_policy_id == "policy-1"
    assert "LOAN_CHECKED_OUT" in caplog.text


def test_check_out_with_hold_waiting_uses_alternate_period():
    queue = RequestQueue.of(
        [
            Request("request-1", "item-1", "user-1", RequestType.HOLD, position=1),
            Request("request-2", "item-1", "user-3", RequestType.HOLD, position=2),
        ]
    )

    result = CheckOutService().check_out(_make_context(queue), SYSTEM_DATE)

    assert result.value.loan.due_date == datetime(2024, 3, 3, 10, 0, tzinfo=timezone.utc)


def test_check_out_refused_when_awaiting_pickup_for_someone_else():
    queue = RequestQueue.of(
        [
            Request(
                "request-1",
                "item-1",
                "user-2",
                RequestType.HOLD,
                status=RequestStatus.OPEN_AWAITING_PICKUP,
                position=1,
            )
        ]
    )

    result = CheckOutService().check_out(_make_context(queue), SYSTEM_DATE)

    errors = result.validation_errors()
    assert "awaiting pickup by another patron" in errors[0].message
    assert errors[0].parameters == {"userBarcode": "5550001"}


def test_check_out_refused_for_non_loanable_item():
    result = CheckOutService().check_out(
        _make_context(loan_policy=_make_policy(loanable=False)), SYSTEM_DATE
    )

    assert [e.message for e in result.validation_errors()] == [ITEM_IS_NOT_LOANABLE]


def test_check_out_without_policy_is_server_error():
    result = CheckOutService().check_out(_make_context(loan_policy=None), SYSTEM_DATE)

    assert isinstance(result.cause, ServerErrorFailure)


def test_check_out_reports_bad_period():
    policy = _make_policy(checkout_period=Period(14, "Fortnights"))

    result = CheckOutService().check_out(_make_context(loan_policy=policy), SYSTEM_DATE)

    assert [e.message for e in result.validation_errors()] == [
        'the interval "Fortnights" in the loan policy is not recognized'
    ]
