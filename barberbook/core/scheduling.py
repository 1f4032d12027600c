"""Scheduling grid configuration shared by slot generation and booking."""

from __future__ import annotations

from dataclasses import dataclass

from ..utils.time_utils import MINUTES_PER_DAY, to_minutes, to_time_of_day
from .exceptions import ValidationException


@dataclass(frozen=True)
class ScheduleConfig:
    """
    Working window ``[work_start, work_end)`` in minutes and the grid step.

    Built once from settings and passed into the components that need it;
    a per-provider schedule would supply its own instance.
    """

    work_start: int = 9 * 60
    work_end: int = 21 * 60
    slot_step_minutes: int = 15

    def __post_init__(self) -> None:
        if not 0 <= self.work_start < self.work_end <= MINUTES_PER_DAY:
            raise ValidationException(
                "Working window must satisfy 00:00 <= start < end <= 24:00",
                code="INVALID_SCHEDULE",
                details={"work_start": self.work_start, "work_end": self.work_end},
            )
        if self.slot_step_minutes <= 0:
            raise ValidationException(
                "Slot step must be a positive number of minutes",
                code="INVALID_SCHEDULE",
                details={"slot_step_minutes": self.slot_step_minutes},
            )

    @classmethod
    def from_strings(cls, work_start: str, work_end: str, slot_step_minutes: int) -> ScheduleConfig:
        # "24:00" is accepted as a closing time only.
        end = MINUTES_PER_DAY if work_end.strip() == "24:00" else to_minutes(work_end)
        return cls(
            work_start=to_minutes(work_start),
            work_end=end,
            slot_step_minutes=slot_step_minutes,
        )

    def is_on_grid(self, start_minutes: int) -> bool:
        return (start_minutes - self.work_start) % self.slot_step_minutes == 0

    def fits_window(self, start_minutes: int, duration_minutes: int) -> bool:
        return start_minutes >= self.work_start and start_minutes + duration_minutes <= self.work_end

    def describe(self) -> dict[str, object]:
        end = "24:00" if self.work_end == MINUTES_PER_DAY else to_time_of_day(self.work_end)
        return {
            "work_start": to_time_of_day(self.work_start),
            "work_end": end,
            "slot_step_minutes": self.slot_step_minutes,
        }
