"""Pydantic schemas for Reservations and change requests."""
from __future__ import annotations
import enum
from datetime import datetime, timezone
from typing import Annotated, Any, Optional
from pydantic import AfterValidator, BaseModel, Field


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]


class ExternalVisitor(BaseModel):
    company: str
    name: str
    email: str


class ChangeField(str, enum.Enum):
    start_time = "startTime"
    end_time = "endTime"
    room_id = "roomId"
    purpose = "purpose"
    participants = "participants"
    external_visitors = "externalVisitors"


class Change(BaseModel):
    """One field-level edit proposed against an existing reservation."""

    field: ChangeField
    old_value: Any = None
    new_value: Any = None


class ReservationCreate(BaseModel):
    room_id: str
    user_id: str
    start_time: UTCDatetime
    end_time: UTCDatetime
    purpose: str
    participants: int = Field(1, ge=1)
    external_visitors: Optional[list[ExternalVisitor]] = None
    room_version: Optional[int] = None  # booking-state token from the day view


class ReservationOut(BaseModel):
    reservation_id: str
    room_id: str
    user_id: str
    user_name: str
    start_time: datetime
    end_time: datetime
    purpose: str
    participants: int
    status: str
    rejection_reason: Optional[str] = None
    access_token: Optional[str] = None
    external_visitors: Optional[list[ExternalVisitor]] = None
    is_change_request: bool = False
    original_reservation_id: Optional[str] = None
    change_reason: Optional[str] = None
    changes: Optional[list[Change]] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReservationFilter(BaseModel):
    room_id: Optional[str] = None
    user_id: Optional[str] = None
    statuses: Optional[list[str]] = None
    active_only: bool = False
    overlapping_start: Optional[datetime] = None
    overlapping_end: Optional[datetime] = None
    include_change_requests: bool = True
    original_reservation_id: Optional[str] = None
    exclude_ids: list[str] = []


class ReservationReject(BaseModel):
    reason: Optional[str] = None


class ReservationCancelRequest(BaseModel):
    actor_user_id: str
    version: int  # required for optimistic locking


class ChangeSubmit(BaseModel):
    actor_user_id: str
    version: int  # required for optimistic locking
    start_time: Optional[UTCDatetime] = None
    end_time: Optional[UTCDatetime] = None
    room_id: Optional[str] = None
    purpose: Optional[str] = None
    participants: Optional[int] = Field(None, ge=1)
    external_visitors: Optional[list[ExternalVisitor]] = None
    change_reason: Optional[str] = None


class ChangeSubmitResult(BaseModel):
    requires_approval: bool
    changes: list[Change]
    reservation: ReservationOut
    change_request: Optional[ReservationOut] = None


class PendingChangeRequestOut(BaseModel):
    change_request: ReservationOut
    original: Optional[ReservationOut] = None
    descriptions: list[str]


class AvailabilityQuery(BaseModel):
    room_id: str
    start_time: UTCDatetime
    end_time: UTCDatetime


class IntervalOut(BaseModel):
    start_time: datetime
    end_time: datetime


class AvailabilityOut(BaseModel):
    room_id: str
    occupied: bool
    conflicts: list[ReservationOut] = []
    free_interval: Optional[IntervalOut] = None


class VisitorCsvImport(BaseModel):
    csv_text: str
