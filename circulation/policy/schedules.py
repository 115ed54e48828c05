"""Fixed due date schedules: date ranges mapped to a fixed due date."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, time, timezone, tzinfo
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from circulation.policy.documents import FixedDueDateScheduleDocument
from circulation.support.dates import ensure_aware
from circulation.support.result import (
    Result,
    ValidationError,
    failed_validation_errors,
    succeeded,
)


@dataclass(frozen=True)
class ScheduleRange:
    from_date: datetime
    to_date: datetime
    due_date: datetime

    def contains(self, date: datetime) -> bool:
        # Both boundaries are exclusive.
        return self.from_date < date < self.to_date


@dataclass(frozen=True)
class FixedDueDateSchedule:
    """Ordered ranges of a fixed due date schedule.

    The first range (in configured order) containing a date governs. An
    unconfigured schedule (see :data:`NO_SCHEDULE`) never matches and
    leaves truncated due dates untouched.
    """

    ranges: Tuple[ScheduleRange, ...] = ()
    schedule_id: Optional[str] = None
    name: Optional[str] = None
    configured: bool = True

    @classmethod
    def of(
        cls,
        ranges: Iterable[ScheduleRange],
        schedule_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "FixedDueDateSchedule":
        return cls(ranges=tuple(ranges), schedule_id=schedule_id, name=name)

    @classmethod
    def from_document(
        cls,
        document: FixedDueDateScheduleDocument,
        tz: tzinfo = timezone.utc,
    ) -> "FixedDueDateSchedule":
        ranges = [
            ScheduleRange(
                from_date=ensure_aware(entry.from_date, tz),
                to_date=ensure_aware(entry.to_date, tz),
                due_date=ensure_aware(entry.due_date, tz),
            )
            for entry in document.schedules
        ]
        return cls.of(ranges, document.id, document.name)

    @classmethod
    def from_representation(
        cls,
        representation: Optional[Mapping[str, Any]],
        tz: tzinfo = timezone.utc,
    ) -> "FixedDueDateSchedule":
        if representation is None:
            return NO_SCHEDULE
        return cls.from_document(
            FixedDueDateScheduleDocument.model_validate(representation), tz
        )

    @property
    def is_empty(self) -> bool:
        return not self.ranges

    def find_due_date_for(self, date: datetime) -> Optional[datetime]:
        for schedule_range in self.ranges:
            if schedule_range.contains(date):
                return schedule_range.due_date
        return None

    def due_dates(self) -> List[datetime]:
        """Every configured due date moved to the end of its UTC day."""

        return [
            datetime.combine(
                schedule_range.due_date.astimezone(timezone.utc).date(),
                time.max,
                tzinfo=timezone.utc,
            )
            for schedule_range in self.ranges
        ]

    def truncate_due_date(
        self,
        due_date: datetime,
        reference_date: datetime,
        no_applicable_schedule: Callable[[], ValidationError],
    ) -> Result[datetime]:
        """Limit ``due_date`` by the schedule entry matching ``reference_date``."""

        if not self.configured:
            return succeeded(due_date)

        limit = self.find_due_date_for(reference_date)
        if limit is None:
            return failed_validation_errors([no_applicable_schedule()])

        return succeeded(limit if limit < due_date else due_date)

    def with_ranges(self, ranges: Iterable[ScheduleRange]) -> "FixedDueDateSchedule":
        return replace(self, ranges=tuple(ranges), configured=True)


NO_SCHEDULE = FixedDueDateSchedule(configured=False)


__all__ = [
    "FixedDueDateSchedule",
    "NO_SCHEDULE",
    "ScheduleRange",
]
