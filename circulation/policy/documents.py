from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from circulation.support.dates import parse_timestamp


class _PolicySection(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class PeriodDocument(_PolicySection):
    # Kept loose so bad values reach the engine and become policy errors.
    duration: Optional[Any] = None
    interval_id: Optional[str] = Field(default=None, alias="intervalId")


class LoansPolicySection(_PolicySection):
    profile_id: Optional[str] = Field(default=None, alias="profileId")
    period: Optional[PeriodDocument] = None
    fixed_due_date_schedule_id: Optional[str] = Field(
        default=None, alias="fixedDueDateScheduleId"
    )
    closed_library_due_date_management_id: Optional[str] = Field(
        default=None, alias="closedLibraryDueDateManagementId"
    )
    opening_time_offset: Optional[PeriodDocument] = Field(
        default=None, alias="openingTimeOffset"
    )


class RenewalsPolicySection(_PolicySection):
    unlimited: bool = False
    number_allowed: Optional[int] = Field(default=None, alias="numberAllowed")
    different_period: bool = Field(default=False, alias="differentPeriod")
    renew_from_id: Optional[str] = Field(default=None, alias="renewFromId")
    period: Optional[PeriodDocument] = None
    alternate_fixed_due_date_schedule_id: Optional[str] = Field(
        default=None, alias="alternateFixedDueDateScheduleId"
    )


class HoldsSection(_PolicySection):
    alternate_checkout_loan_period: Optional[PeriodDocument] = Field(
        default=None, alias="alternateCheckoutLoanPeriod"
    )


class RecallsSection(_PolicySection):
    minimum_guaranteed_loan_period: Optional[PeriodDocument] = Field(
        default=None, alias="minimumGuaranteedLoanPeriod"
    )
    recall_return_interval: Optional[PeriodDocument] = Field(
        default=None, alias="recallReturnInterval"
    )


class RequestManagementSection(_PolicySection):
    holds: HoldsSection = Field(default_factory=HoldsSection)
    recalls: RecallsSection = Field(default_factory=RecallsSection)


class LoanPolicyDocument(_PolicySection):
    id: Optional[str] = None
    name: Optional[str] = None
    loanable: bool = False
    renewable: bool = False
    loans_policy: Optional[LoansPolicySection] = Field(default=None, alias="loansPolicy")
    renewals_policy: RenewalsPolicySection = Field(
        default_factory=RenewalsPolicySection, alias="renewalsPolicy"
    )
    request_management: RequestManagementSection = Field(
        default_factory=RequestManagementSection, alias="requestManagement"
    )


class ScheduleEntryDocument(_PolicySection):
    from_date: datetime = Field(alias="from")
    to_date: datetime = Field(alias="to")
    due_date: datetime = Field(alias="due")

    @field_validator("from_date", "to_date", "due_date", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> datetime:
        return parse_timestamp(value)


class FixedDueDateScheduleDocument(_PolicySection):
    id: Optional[str] = None
    name: Optional[str] = None
    schedules: List[ScheduleEntryDocument] = Field(default_factory=list)


class RequestPolicyDocument(_PolicySection):
    id: Optional[str] = None
    name: Optional[str] = None
    request_types: List[str] = Field(default_factory=list, alias="requestTypes")


__all__ = [
    "FixedDueDateScheduleDocument",
    "HoldsSection",
    "LoanPolicyDocument",
    "LoansPolicySection",
    "PeriodDocument",
    "RecallsSection",
    "RenewalsPolicySection",
    "RequestManagementSection",
    "RequestPolicyDocument",
    "ScheduleEntryDocument",
]
