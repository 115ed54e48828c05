"""Loan and request policy public API surface."""

from .due_date_management import DueDateManagement
from .loan_policy import LoanPolicy, LoanProfile
from .period import Interval, Period
from .request_policy import RequestPolicy
from .rules import PolicyMatch, PolicyResolver, StaticPolicyResolver
from .schedules import NO_SCHEDULE, FixedDueDateSchedule, ScheduleRange
from .strategies import RenewFrom

__all__ = [
    "DueDateManagement",
    "FixedDueDateSchedule",
    "Interval",
    "LoanPolicy",
    "LoanProfile",
    "NO_SCHEDULE",
    "Period",
    "PolicyMatch",
    "PolicyResolver",
    "RenewFrom",
    "RequestPolicy",
    "ScheduleRange",
    "StaticPolicyResolver",
]
