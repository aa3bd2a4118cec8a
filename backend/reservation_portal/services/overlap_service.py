"""Room overlap checking: pure functions over a reservation collection.

Occupied intervals are half-open ``[start_time, end_time)``, so back-to-back
bookings never conflict. Pending reservations hold their slot exactly like
approved ones; only cancelled and rejected reservations release it.
"""
from datetime import datetime
from typing import Iterable, Optional

from reservation_portal.errors import InvalidInterval
from reservation_portal.models.reservation import ReservationStatus, RELEASED_STATUSES


def _check_interval(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidInterval(start, end)


def holds_slot(reservation) -> bool:
    """True if the reservation still occupies its room interval."""
    return ReservationStatus(reservation.status) not in RELEASED_STATUSES


def _overlaps(reservation, start: datetime, end: datetime) -> bool:
    return reservation.start_time < end and reservation.end_time > start


def find_conflicts(room_id: str, start: datetime, end: datetime, reservations: Optional[Iterable]) -> list:
    """Return active reservations in ``room_id`` overlapping ``[start, end)``, earliest first."""
    _check_interval(start, end)
    conflicts = [
        r for r in reservations or ()
        if r.room_id == room_id and holds_slot(r) and _overlaps(r, start, end)
    ]
    return sorted(conflicts, key=lambda r: r.start_time)


def is_occupied(room_id: str, start: datetime, end: datetime, reservations: Optional[Iterable]) -> bool:
    """True if any active reservation in the room overlaps the candidate interval."""
    _check_interval(start, end)
    return any(
        r.room_id == room_id and holds_slot(r) and _overlaps(r, start, end)
        for r in reservations or ()
    )


def first_free_interval(
    room_id: str,
    start: datetime,
    end: datetime,
    reservations: Optional[Iterable],
) -> Optional[tuple[datetime, datetime]]:
    """Truncate a candidate interval to its first free stretch.

    Walks the conflicts in start order: occupied time at the head of the
    candidate is skipped, and the result ends where the next conflict begins.
    Returns None when the whole candidate is occupied.
    """
    cursor = start
    for conflict in find_conflicts(room_id, start, end, reservations):
        if conflict.start_time > cursor:
            return cursor, conflict.start_time
        cursor = max(cursor, conflict.end_time)
        if cursor >= end:
            return None
    return cursor, end
