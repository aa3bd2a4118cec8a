"""Change-request review queue for approvers."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from reservation_portal.database import get_db
from reservation_portal.models.reservation import Reservation, ReservationStatus
from reservation_portal.models.room import Room
from reservation_portal.schemas.reservation import Change, PendingChangeRequestOut, ReservationOut
from reservation_portal.services.change_approval import describe_change

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[PendingChangeRequestOut])
def list_pending_change_requests(db: Session = Depends(get_db)):
    """Pending change requests, oldest first, with readable change summaries."""
    room_names = {room.room_id: room.name for room in db.query(Room).all()}
    change_requests = (
        db.query(Reservation)
        .filter(
            Reservation.is_change_request.is_(True),
            Reservation.status == ReservationStatus.pending,
        )
        .order_by(Reservation.created_at)
        .all()
    )

    result = []
    for cr in change_requests:
        original = db.query(Reservation).filter(
            Reservation.reservation_id == cr.original_reservation_id
        ).first()
        changes = [Change.model_validate(c) for c in cr.changes or []]
        result.append(PendingChangeRequestOut(
            change_request=ReservationOut.model_validate(cr),
            original=ReservationOut.model_validate(original) if original else None,
            descriptions=[describe_change(c, room_names) for c in changes],
        ))
    return result
