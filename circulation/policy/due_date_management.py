"""Closed library due date management options of a loan policy."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class DueDateManagement(str, Enum):
    KEEP_THE_CURRENT_DUE_DATE = "CURRENT_DUE_DATE"
    MOVE_TO_THE_END_OF_THE_PREVIOUS_OPEN_DAY = "END_OF_THE_PREVIOUS_OPEN_DAY"
    MOVE_TO_THE_END_OF_THE_NEXT_OPEN_DAY = "END_OF_THE_NEXT_OPEN_DAY"
    KEEP_THE_CURRENT_DUE_DATE_TIME = "CURRENT_DUE_DATE_TIME"
    MOVE_TO_END_OF_CURRENT_SERVICE_POINT_HOURS = "END_OF_THE_CURRENT_SERVICE_POINT_HOURS"
    MOVE_TO_BEGINNING_OF_NEXT_OPEN_SERVICE_POINT_HOURS = (
        "BEGINNING_OF_THE_NEXT_OPEN_SERVICE_POINT_HOURS"
    )

    @classmethod
    def from_id(cls, management_id: Optional[str]) -> "DueDateManagement":
        for option in cls:
            if option.value == management_id:
                return option
        return cls.KEEP_THE_CURRENT_DUE_DATE


__all__ = ["DueDateManagement"]
