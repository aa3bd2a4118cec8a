"""Calendar grid generation and hourly slot selection.

All day/hour arithmetic happens on the portal's local clock
(``settings.PORTAL_TIMEZONE``); returned instants are UTC.
"""
import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

import pytz

from reservation_portal.config import settings
from reservation_portal.errors import SlotUnavailable
from reservation_portal.services.overlap_service import find_conflicts, is_occupied

logger = logging.getLogger(__name__)


def portal_tz():
    return pytz.timezone(settings.PORTAL_TIMEZONE)


def business_hours() -> list[int]:
    """Hours whose one-hour slot lies inside business hours."""
    return list(range(settings.BUSINESS_HOUR_START, settings.BUSINESS_HOUR_END))


def local_day(instant: datetime) -> date:
    return instant.astimezone(portal_tz()).date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC instants of local midnight at the start and end of ``day``."""
    tz = portal_tz()
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def slot_interval(day: date, hour: int) -> tuple[datetime, datetime]:
    """The ``[start, end)`` UTC interval of the hourly slot ``hour`` on ``day``."""
    tz = portal_tz()
    local_start = tz.localize(datetime.combine(day, time(hour)))
    local_end = tz.normalize(local_start + timedelta(hours=1))
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


def hourly_slots(day: date) -> list[tuple[int, datetime, datetime]]:
    return [(hour, *slot_interval(day, hour)) for hour in business_hours()]


def month_bounds(month: str) -> tuple[datetime, datetime]:
    """UTC instants bounding the local ``YYYY-MM`` month. Raises ValueError for a bad month."""
    first = datetime.strptime(month, "%Y-%m").date()
    following = date(first.year + first.month // 12, first.month % 12 + 1, 1)
    return day_bounds(first)[0], day_bounds(following)[0]


def month_grid(year: int, month: int) -> list[Optional[date]]:
    """Days of the month laid out Sunday-first, padded with leading Nones."""
    first_weekday, days_in_month = calendar.monthrange(year, month)
    leading = (first_weekday + 1) % 7  # monthrange counts Monday as 0
    cells: list[Optional[date]] = [None] * leading
    cells.extend(date(year, month, d) for d in range(1, days_in_month + 1))
    return cells


def reservations_on(day: date, reservations: Iterable) -> list:
    """Reservations starting on the local ``day``, earliest first."""
    start, end = day_bounds(day)
    found = [r for r in reservations if start <= r.start_time < end]
    return sorted(found, key=lambda r: r.start_time)


class SlotSelection:
    """A contiguous run of hourly slots in a single room on one day.

    ``end_hour`` is exclusive. Every slot in the run is free according to the
    overlap checker at the time it was added.
    """

    def __init__(self, day: date, room_id: Optional[str] = None,
                 start_hour: Optional[int] = None, end_hour: Optional[int] = None):
        self.day = day
        self.room_id = room_id
        self.start_hour = start_hour
        self.end_hour = end_hour
        if self.is_empty:
            self.clear()

    @property
    def is_empty(self) -> bool:
        return (
            self.room_id is None
            or self.start_hour is None
            or self.end_hour is None
            or self.start_hour >= self.end_hour
        )

    def clear(self) -> None:
        self.room_id = None
        self.start_hour = None
        self.end_hour = None

    def _is_free(self, room_id: str, hour: int, reservations: list) -> bool:
        start, end = slot_interval(self.day, hour)
        return not is_occupied(room_id, start, end, reservations)

    def _is_valid(self, reservations: list, now: Optional[datetime]) -> bool:
        """Every slot of the current run is a free business-hours slot not yet over."""
        hours = business_hours()
        if self.start_hour not in hours or self.end_hour - 1 not in hours:
            return False
        if now is not None and slot_interval(self.day, self.start_hour)[1] <= now:
            return False
        return all(
            self._is_free(self.room_id, h, reservations)
            for h in range(self.start_hour, self.end_hour)
        )

    def select(self, room_id: str, hour: int, reservations: Iterable,
               now: Optional[datetime] = None) -> bool:
        """Apply one click on slot ``(room_id, hour)``.

        Returns True when an extension was truncated at an occupied slot.
        Raises ``SlotUnavailable`` if the clicked slot itself is occupied and
        ``ValueError`` for hours outside business hours or slots in the past.
        """
        reservations = list(reservations)
        if hour not in business_hours():
            raise ValueError(f"Hour {hour} is outside business hours")
        slot_start, slot_end = slot_interval(self.day, hour)
        if now is not None and slot_end <= now:
            raise ValueError(f"Slot {hour}:00 on {self.day} is in the past")

        if not self.is_empty and not self._is_valid(reservations, now):
            logger.info(
                "Discarding selection %s %d-%d in room %s: no longer a free run",
                self.day, self.start_hour, self.end_hour, self.room_id,
            )
            self.clear()

        if not self.is_empty and room_id != self.room_id:
            logger.info("Selection switched from room %s to %s; clearing", self.room_id, room_id)
            self.clear()

        if not self.is_empty and self.start_hour <= hour < self.end_hour:
            if hour == self.start_hour:
                self.start_hour += 1
            elif hour == self.end_hour - 1:
                self.end_hour -= 1
            else:
                self.end_hour = hour
            if self.is_empty:
                self.clear()
            return False

        if is_occupied(room_id, slot_start, slot_end, reservations):
            raise SlotUnavailable(room_id, find_conflicts(room_id, slot_start, slot_end, reservations))

        if self.is_empty:
            self.room_id, self.start_hour, self.end_hour = room_id, hour, hour + 1
            return False

        if hour >= self.end_hour:
            new_end = self.end_hour
            for h in range(self.end_hour, hour + 1):
                if not self._is_free(room_id, h, reservations):
                    break
                new_end = h + 1
            truncated = new_end != hour + 1
            self.end_hour = new_end
        else:
            new_start = self.start_hour
            for h in range(self.start_hour - 1, hour - 1, -1):
                if not self._is_free(room_id, h, reservations):
                    break
                new_start = h
            truncated = new_start != hour
            self.start_hour = new_start

        if truncated:
            logger.info("Selection in room %s truncated at an occupied slot", room_id)
        return truncated

    def interval(self) -> Optional[tuple[datetime, datetime]]:
        if self.is_empty:
            return None
        start, _ = slot_interval(self.day, self.start_hour)
        _, end = slot_interval(self.day, self.end_hour - 1)
        return start, end
