"""Pydantic schemas for calendar, slot selection and dashboards."""
from __future__ import annotations
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from reservation_portal.schemas.reservation import ReservationOut


class CalendarDay(BaseModel):
    day: date
    is_past: bool
    reservations: list[ReservationOut] = []


class MonthView(BaseModel):
    year: int
    month: int
    cells: list[Optional[CalendarDay]]


class SlotCell(BaseModel):
    room_id: str
    hour: int
    start_time: datetime
    end_time: datetime
    occupied: bool
    is_mine: bool = False
    is_past: bool = False
    reservation_id: Optional[str] = None
    reservation_status: Optional[str] = None


class DayDetail(BaseModel):
    day: date
    hours: list[int]
    room_versions: dict[str, int]
    slots: list[SlotCell]


class SelectionState(BaseModel):
    room_id: Optional[str] = None
    start_hour: Optional[int] = None
    end_hour: Optional[int] = None


class SelectionStep(BaseModel):
    day: date
    room_id: str
    hour: int
    current: SelectionState = SelectionState()


class SelectionOut(BaseModel):
    selection: SelectionState
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    truncated: bool = False


class ApproverDashboard(BaseModel):
    pending: list[ReservationOut]
    history: list[ReservationOut]


class ObserverStats(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    cancelled: int = 0
    total: int = 0


class ObserverDashboard(BaseModel):
    stats: ObserverStats
    reservations: list[ReservationOut]
