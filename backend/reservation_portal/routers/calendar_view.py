"""Calendar views: month grid, day slot matrix, and slot selection."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from reservation_portal.database import get_db, utcnow
from reservation_portal.errors import SlotUnavailable
from reservation_portal.models.room import Room
from reservation_portal.repositories.reservation_repository import ReservationRepository
from reservation_portal.schemas.calendar import (
    CalendarDay,
    DayDetail,
    MonthView,
    SelectionOut,
    SelectionState,
    SelectionStep,
    SlotCell,
)
from reservation_portal.schemas.reservation import ReservationFilter
from reservation_portal.services.calendar_service import (
    SlotSelection,
    business_hours,
    day_bounds,
    hourly_slots,
    local_day,
    month_grid,
    reservations_on,
)
from reservation_portal.services.overlap_service import find_conflicts

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/month", response_model=MonthView)
def month_view(
    year: int = Query(..., ge=1970),
    month: int = Query(..., ge=1, le=12),
    room_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Sunday-first month grid with each day's active reservations."""
    cells = month_grid(year, month)
    days = [d for d in cells if d is not None]
    range_start, _ = day_bounds(days[0])
    _, range_end = day_bounds(days[-1])
    reservations = ReservationRepository(db).list_reservations(ReservationFilter(
        room_id=room_id,
        active_only=True,
        overlapping_start=range_start,
        overlapping_end=range_end,
    ))
    today = local_day(utcnow())
    return MonthView(
        year=year,
        month=month,
        cells=[
            CalendarDay(day=d, is_past=d < today, reservations=reservations_on(d, reservations))
            if d is not None else None
            for d in cells
        ],
    )


@router.get("/day", response_model=DayDetail)
def day_detail(
    day: date = Query(...),
    viewer_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Room × hour matrix for one day. Pending bookings occupy slots like approved ones."""
    rooms = db.query(Room).order_by(Room.name).all()
    start, end = day_bounds(day)
    reservations = ReservationRepository(db).list_reservations(ReservationFilter(
        active_only=True,
        overlapping_start=start,
        overlapping_end=end,
    ))
    now = utcnow()

    slots = []
    for hour, slot_start, slot_end in hourly_slots(day):
        for room in rooms:
            conflicts = find_conflicts(room.room_id, slot_start, slot_end, reservations)
            holder = conflicts[0] if conflicts else None
            slots.append(SlotCell(
                room_id=room.room_id,
                hour=hour,
                start_time=slot_start,
                end_time=slot_end,
                occupied=holder is not None,
                is_mine=bool(holder and viewer_id and holder.user_id == viewer_id),
                is_past=slot_end <= now,
                reservation_id=holder.reservation_id if holder else None,
                reservation_status=holder.status.value if holder else None,
            ))
    return DayDetail(
        day=day,
        hours=business_hours(),
        room_versions={room.room_id: room.version for room in rooms},
        slots=slots,
    )


@router.post("/selection", response_model=SelectionOut)
def select_slot(payload: SelectionStep, db: Session = Depends(get_db)):
    """Apply one slot click to the caller's current selection and return the new range."""
    start, end = day_bounds(payload.day)
    reservations = ReservationRepository(db).list_reservations(ReservationFilter(
        room_id=payload.room_id,
        active_only=True,
        overlapping_start=start,
        overlapping_end=end,
    ))
    current = payload.current
    selection = SlotSelection(payload.day, current.room_id, current.start_hour, current.end_hour)
    try:
        truncated = selection.select(payload.room_id, payload.hour, reservations, now=utcnow())
    except SlotUnavailable:
        raise HTTPException(status_code=409, detail=f"Slot {payload.hour}:00 is already booked")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    interval = selection.interval()
    return SelectionOut(
        selection=SelectionState(
            room_id=selection.room_id,
            start_hour=selection.start_hour,
            end_hour=selection.end_hour,
        ),
        start_time=interval[0] if interval else None,
        end_time=interval[1] if interval else None,
        truncated=truncated,
    )
