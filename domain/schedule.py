"""
Domain: Sale window and unlock schedule.

Rules implemented here:
- The sale is open iff now < end_time. Purchases are only admitted while open.
- On construction end_time = created_at + grace_window.
- The owner may move end_time while the sale is open, but only to an
  instant at least `minimum_notice` after now.
- Once now >= end_time the sale is closed for good: there is no reopen.
- Vested balances unlock at unlock_time, fixed at construction.

This module contains only pure domain values: no I/O and no clock access.
"now" is always passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from .errors import InvalidSchedule
from .time import require_non_negative_duration, require_utc_timestamp


class SalePhase(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


@dataclass(frozen=True, slots=True)
class SaleSchedule:
    """
    Immutable sale schedule.

    Changing the end time returns a new schedule; the current one is left
    untouched so a rejected update has no effect.
    """

    start_time: datetime
    end_time: datetime
    unlock_time: datetime
    minimum_notice: timedelta

    def __post_init__(self) -> None:
        require_utc_timestamp("start_time", self.start_time)
        require_utc_timestamp("end_time", self.end_time)
        require_utc_timestamp("unlock_time", self.unlock_time)
        require_non_negative_duration("minimum_notice", self.minimum_notice)

    @staticmethod
    def open(
        *,
        created_at: datetime,
        grace_window: timedelta,
        unlock_time: datetime,
        minimum_notice: timedelta,
    ) -> "SaleSchedule":
        require_utc_timestamp("created_at", created_at)
        require_non_negative_duration("grace_window", grace_window)
        return SaleSchedule(
            start_time=created_at,
            end_time=created_at + grace_window,
            unlock_time=unlock_time,
            minimum_notice=minimum_notice,
        )

    def is_open(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return now < self.end_time

    def phase(self, now: datetime) -> SalePhase:
        return SalePhase.OPEN if self.is_open(now) else SalePhase.CLOSED

    def is_unlocked(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return now >= self.unlock_time

    def with_end_time(self, now: datetime, new_end_time: datetime) -> "SaleSchedule":
        """
        Return a schedule ending at `new_end_time`.

        Raises InvalidSchedule if the sale is already closed or if the new end
        time gives less than `minimum_notice` from now.
        """

        require_utc_timestamp("new_end_time", new_end_time)
        if not self.is_open(now):
            raise InvalidSchedule("Sale has already ended and cannot be reopened")

        earliest = now + self.minimum_notice
        if new_end_time < earliest:
            raise InvalidSchedule(
                f"Sale end time must be at least {self.minimum_notice} from now "
                f"(earliest {earliest.isoformat()}, got {new_end_time.isoformat()})"
            )
        return replace(self, end_time=new_end_time)


__all__ = ["SalePhase", "SaleSchedule"]
