"""Role dashboards: applicant, approver, observer."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from reservation_portal.database import get_db
from reservation_portal.models.reservation import Reservation, ReservationStatus
from reservation_portal.models.user import User
from reservation_portal.schemas.calendar import ApproverDashboard, ObserverDashboard, ObserverStats
from reservation_portal.schemas.reservation import ReservationOut
from reservation_portal.services.calendar_service import portal_tz

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/applicant/{user_id}", response_model=list[ReservationOut])
def applicant_dashboard(user_id: str, db: Session = Depends(get_db)):
    """The user's own reservations and change requests, most recently submitted first."""
    if not db.query(User).filter(User.user_id == user_id).first():
        raise HTTPException(status_code=404, detail="User not found")
    return (
        db.query(Reservation)
        .filter(Reservation.user_id == user_id)
        .order_by(Reservation.created_at.desc())
        .all()
    )


@router.get("/approver", response_model=ApproverDashboard)
def approver_dashboard(db: Session = Depends(get_db)):
    """Pending queue (FIFO by submission) and decided history (latest start first)."""
    pending = (
        db.query(Reservation)
        .filter(Reservation.status == ReservationStatus.pending)
        .order_by(Reservation.created_at)
        .all()
    )
    history = (
        db.query(Reservation)
        .filter(Reservation.status != ReservationStatus.pending)
        .order_by(Reservation.start_time.desc())
        .all()
    )
    return ApproverDashboard(
        pending=[ReservationOut.model_validate(r) for r in pending],
        history=[ReservationOut.model_validate(r) for r in history],
    )


@router.get("/observer", response_model=ObserverDashboard)
def observer_dashboard(
    status_filter: Optional[str] = Query(None),
    room_id: Optional[str] = Query(None),
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    db: Session = Depends(get_db),
):
    """Read-only view across all reservations with per-status counts.

    Counts follow the room and month filters but not the status filter.
    """
    query = db.query(Reservation).filter(Reservation.is_change_request.is_(False))
    if room_id:
        query = query.filter(Reservation.room_id == room_id)
    reservations = query.order_by(Reservation.start_time).all()

    if month:
        tz = portal_tz()
        reservations = [r for r in reservations if r.start_time.astimezone(tz).strftime("%Y-%m") == month]

    stats = ObserverStats(total=len(reservations))
    for r in reservations:
        key = ReservationStatus(r.status).value
        setattr(stats, key, getattr(stats, key) + 1)

    if status_filter:
        try:
            wanted = ReservationStatus(status_filter)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status_filter}")
        reservations = [r for r in reservations if r.status == wanted]

    return ObserverDashboard(
        stats=stats,
        reservations=[ReservationOut.model_validate(r) for r in reservations],
    )
