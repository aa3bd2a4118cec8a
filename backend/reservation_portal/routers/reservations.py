"""Reservation API routes, delegating to reservation_service for lifecycle rules."""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from reservation_portal.database import get_db
from reservation_portal.models.reservation import ReservationStatus
from reservation_portal.repositories.reservation_repository import ReservationRepository
from reservation_portal.schemas.reservation import (
    AvailabilityOut,
    AvailabilityQuery,
    ChangeSubmit,
    ChangeSubmitResult,
    ExternalVisitor,
    IntervalOut,
    ReservationCancelRequest,
    ReservationCreate,
    ReservationFilter,
    ReservationOut,
    ReservationReject,
    VisitorCsvImport,
    as_utc,
)
from reservation_portal.services import reservation_service
from reservation_portal.services.overlap_service import find_conflicts, first_free_interval
from reservation_portal.services.visitor_import import VisitorCsvError, parse_visitor_csv

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
def create_reservation(payload: ReservationCreate, db: Session = Depends(get_db)):
    """Submit a reservation request for a room interval."""
    return reservation_service.create_reservation(db, payload)


@router.get("/", response_model=list[ReservationOut])
def list_reservations(
    room_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    status_filter: Optional[list[str]] = Query(None),
    start_after: Optional[datetime] = Query(None),
    start_before: Optional[datetime] = Query(None),
    include_released: bool = Query(True),
    include_change_requests: bool = Query(True),
    db: Session = Depends(get_db),
):
    """List reservations with optional filters, ordered by start time."""
    if status_filter:
        invalid = [s for s in status_filter if s not in ReservationStatus.__members__]
        if invalid:
            raise HTTPException(status_code=400, detail=f"Invalid status: {', '.join(invalid)}")
    reservations = ReservationRepository(db).list_reservations(ReservationFilter(
        room_id=room_id,
        user_id=user_id,
        statuses=status_filter,
        active_only=not include_released,
        include_change_requests=include_change_requests,
    ))
    if start_after:
        reservations = [r for r in reservations if r.start_time >= as_utc(start_after)]
    if start_before:
        reservations = [r for r in reservations if r.start_time <= as_utc(start_before)]
    return reservations


@router.post("/availability", response_model=AvailabilityOut)
def check_availability(payload: AvailabilityQuery, db: Session = Depends(get_db)):
    """Is the room free for the interval? Also returns the first free stretch of it."""
    reservations = ReservationRepository(db).list_reservations(ReservationFilter(
        room_id=payload.room_id,
        active_only=True,
        overlapping_start=payload.start_time,
        overlapping_end=payload.end_time,
    ))
    conflicts = find_conflicts(payload.room_id, payload.start_time, payload.end_time, reservations)
    free = first_free_interval(payload.room_id, payload.start_time, payload.end_time, reservations)
    return AvailabilityOut(
        room_id=payload.room_id,
        occupied=bool(conflicts),
        conflicts=[ReservationOut.model_validate(r) for r in conflicts],
        free_interval=IntervalOut(start_time=free[0], end_time=free[1]) if free else None,
    )


@router.post("/visitors/import", response_model=list[ExternalVisitor])
def import_visitors(payload: VisitorCsvImport):
    """Parse an uploaded visitor list (CSV with company,name,email columns)."""
    try:
        return parse_visitor_csv(payload.csv_text)
    except VisitorCsvError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.get("/{reservation_id}", response_model=ReservationOut)
def get_reservation(reservation_id: str, db: Session = Depends(get_db)):
    """Fetch a single reservation (or change-request record) by ID."""
    reservation = ReservationRepository(db).get(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


@router.post("/{reservation_id}/approve", response_model=ReservationOut)
def approve_reservation(reservation_id: str, db: Session = Depends(get_db)):
    """Approver accepts a pending request. For change requests, returns the merged original."""
    return reservation_service.approve_reservation(db, reservation_id)


@router.post("/{reservation_id}/reject", response_model=ReservationOut)
def reject_reservation(reservation_id: str, payload: ReservationReject, db: Session = Depends(get_db)):
    """Approver declines a pending request. For change requests, returns the untouched original."""
    return reservation_service.reject_reservation(db, reservation_id, reason=payload.reason)


@router.post("/{reservation_id}/cancel", response_model=ReservationOut)
def cancel_reservation(reservation_id: str, payload: ReservationCancelRequest, db: Session = Depends(get_db)):
    """Requester withdraws or cancels their reservation (optimistic locking enforced)."""
    return reservation_service.cancel_reservation(
        db,
        reservation_id,
        actor_user_id=payload.actor_user_id,
        version=payload.version,
    )


@router.post("/{reservation_id}/changes", response_model=ChangeSubmitResult)
def submit_change(reservation_id: str, payload: ChangeSubmit, db: Session = Depends(get_db)):
    """Requester edits an approved reservation; returns whether approval is needed."""
    return reservation_service.submit_change(db, reservation_id, payload)
