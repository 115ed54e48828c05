"""Loan period values and calendar-aware date arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from dateutil.relativedelta import relativedelta

from circulation.support.result import (
    PolicyConfigurationError,
    Result,
    ValidationError,
    failed_validation_errors,
    succeeded,
)

ErrorForPolicy = Callable[[str], ValidationError]


class Interval(str, Enum):
    MINUTES = "Minutes"
    HOURS = "Hours"
    DAYS = "Days"
    WEEKS = "Weeks"
    MONTHS = "Months"
    INCORRECT = "Incorrect"

    @classmethod
    def from_id(cls, interval_id: Optional[str]) -> "Interval":
        """Return the interval for ``interval_id``, ``INCORRECT`` when unrecognized."""

        text = (interval_id or "").strip().lower()
        for interval in cls:
            if interval is not cls.INCORRECT and interval.value.lower() == text:
                return interval
        return cls.INCORRECT


def _as_duration(raw: Any) -> Any:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return raw


@dataclass(frozen=True)
class Period:
    """A duration and interval id as configured in a policy document.

    ``duration`` and ``interval_id`` hold whatever the document provided so
    that bad configuration surfaces as a policy error naming the offending
    value.
    """

    duration: Any = None
    interval_id: Optional[str] = None

    @classmethod
    def from_values(cls, duration: Any, interval_id: Optional[str]) -> "Period":
        return cls(duration=_as_duration(duration), interval_id=interval_id)

    @classmethod
    def from_representation(cls, representation: Optional[Mapping[str, Any]]) -> "Period":
        if not representation:
            return cls()
        return cls.from_values(representation.get("duration"), representation.get("intervalId"))

    @classmethod
    def days(cls, duration: int) -> "Period":
        return cls(duration, Interval.DAYS.value)

    @classmethod
    def weeks(cls, duration: int) -> "Period":
        return cls(duration, Interval.WEEKS.value)

    @classmethod
    def months(cls, duration: int) -> "Period":
        return cls(duration, Interval.MONTHS.value)

    @classmethod
    def hours(cls, duration: int) -> "Period":
        return cls(duration, Interval.HOURS.value)

    @classmethod
    def minutes(cls, duration: int) -> "Period":
        return cls(duration, Interval.MINUTES.value)

    @property
    def unit(self) -> Interval:
        return Interval.from_id(self.interval_id)

    def has_valid_duration(self) -> bool:
        return (
            isinstance(self.duration, int)
            and not isinstance(self.duration, bool)
            and self.duration > 0
        )

    def to_delta(self) -> Optional[relativedelta]:
        if not self.has_valid_duration():
            return None
        unit = self.unit
        if unit is Interval.MONTHS:
            return relativedelta(months=self.duration)
        if unit is Interval.WEEKS:
            return relativedelta(weeks=self.duration)
        if unit is Interval.DAYS:
            return relativedelta(days=self.duration)
        if unit is Interval.HOURS:
            return relativedelta(hours=self.duration)
        if unit is Interval.MINUTES:
            return relativedelta(minutes=self.duration)
        return None

    def add_to(
        self,
        base_date: datetime,
        error_for: ErrorForPolicy,
        field: Optional[str] = None,
    ) -> Result[datetime]:
        """Add this period to ``base_date``.

        ``field`` names the policy property the period came from and is
        used in error messages; when omitted the errors refer to the loan
        period of the loan policy.
        """

        if self.interval_id is None or self.duration is None:
            subject = f'the "{field}"' if field else "the loan period"
            return self._failed(error_for(f"{subject} in the loan policy is not recognized"))

        location = f'"{field}"' if field else "the loan policy"

        if self.unit is Interval.INCORRECT:
            return self._failed(
                error_for(f'the interval "{self.interval_id}" in {location} is not recognized')
            )

        if not self.has_valid_duration():
            return self._failed(
                error_for(f'the duration "{self.duration}" in {location} is invalid')
            )

        return succeeded(base_date + self.to_delta())

    @staticmethod
    def _failed(error: ValidationError) -> Result[datetime]:
        return failed_validation_errors([PolicyConfigurationError.from_error(error)])


__all__ = ["ErrorForPolicy", "Interval", "Period"]
