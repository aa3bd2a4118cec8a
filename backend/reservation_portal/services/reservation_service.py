"""Core reservation service — lifecycle transitions and change requests.

Responsibilities:
- Submission: new reservations start pending; the slot check and insert are
  one transaction guarded by the room's booking version
- Approver actions: approve (issues access token) / reject (with reason)
- Owner actions: cancel, submit changes to an approved reservation
- Change requests: diffs needing review become linked pending records that
  are merged into the original on approval and discarded on decision
- Optimistic locking via the reservation ``version`` field
"""
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from reservation_portal.config import settings
from reservation_portal.errors import InvalidInterval, SlotUnavailable, StaleBookingState
from reservation_portal.models.email_log import EmailType
from reservation_portal.models.reservation import Reservation, ReservationStatus
from reservation_portal.models.room import Room
from reservation_portal.models.user import User
from reservation_portal.repositories.reservation_repository import ReservationRepository
from reservation_portal.schemas.reservation import (
    Change,
    ChangeSubmit,
    ChangeSubmitResult,
    ReservationCreate,
    ReservationFilter,
    ReservationOut,
)
from reservation_portal.services import notification_service
from reservation_portal.services.change_approval import (
    compute_changes,
    normalize_visitors,
    requires_approval,
)

logger = logging.getLogger(__name__)


def _conflict_detail(exc: SlotUnavailable) -> dict:
    return {
        "message": "The room is already booked for the requested time",
        "conflicts": [
            {
                "reservation_id": r.reservation_id,
                "start": r.start_time.isoformat(),
                "end": r.end_time.isoformat(),
                "status": ReservationStatus(r.status).value,
            }
            for r in exc.conflicts
        ],
    }


def _booking_conflict(exc: Exception) -> HTTPException:
    if isinstance(exc, SlotUnavailable):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_conflict_detail(exc))
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"Room availability changed (version {exc.actual}, expected {exc.expected}). Re-fetch and retry.",
    )


def _get_or_404(repo: ReservationRepository, reservation_id: str) -> Reservation:
    reservation = repo.get(reservation_id)
    if not reservation:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


def _check_owner(reservation: Reservation, actor_user_id: str) -> None:
    if reservation.user_id != actor_user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the requester may modify this reservation.",
        )


def _check_version(reservation: Reservation, version: int) -> None:
    if reservation.version != version:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Version mismatch: expected {reservation.version}, got {version}. Re-fetch and retry.",
        )


def _require_room(db: Session, room_id: str) -> Room:
    room = db.query(Room).filter(Room.room_id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


def create_reservation(db: Session, payload: ReservationCreate) -> Reservation:
    """Submit a new reservation request (status pending)."""
    if payload.end_time <= payload.start_time:
        raise InvalidInterval(payload.start_time, payload.end_time)

    user = db.query(User).filter(User.user_id == payload.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    _require_room(db, payload.room_id)

    reservation = Reservation(
        room_id=payload.room_id,
        user_id=user.user_id,
        user_name=user.display_name,
        start_time=payload.start_time,
        end_time=payload.end_time,
        purpose=payload.purpose,
        participants=payload.participants,
        status=ReservationStatus.pending,
        external_visitors=normalize_visitors(payload.external_visitors) or None,
        version=1,
    )
    repo = ReservationRepository(db)
    try:
        repo.create(reservation, expected_room_version=payload.room_version)
    except (SlotUnavailable, StaleBookingState) as exc:
        logger.warning("Reservation refused for room %s: %s", payload.room_id, exc)
        raise _booking_conflict(exc)

    notification_service.notify(db, EmailType.reservation_received, reservation)
    logger.info("Created reservation %s by user %s", reservation.reservation_id, user.user_id)
    return reservation


def _pending_change_requests(repo: ReservationRepository, original_id: str) -> list[Reservation]:
    return repo.list_reservations(ReservationFilter(
        original_reservation_id=original_id,
        statuses=[ReservationStatus.pending.value],
    ))


def approve_reservation(db: Session, reservation_id: str) -> Reservation:
    """Approve a pending reservation; change-request records are merged into their original."""
    repo = ReservationRepository(db)
    reservation = _get_or_404(repo, reservation_id)
    if reservation.status != ReservationStatus.pending:
        raise HTTPException(status_code=400, detail=f"Reservation is already {reservation.status.value}")

    if reservation.is_change_request:
        return _approve_change_request(db, repo, reservation)

    reservation = repo.update_status(reservation_id, ReservationStatus.approved)
    notification_service.notify(db, EmailType.approved, reservation)
    return reservation


def _approve_change_request(db: Session, repo: ReservationRepository, change_request: Reservation) -> Reservation:
    original = repo.get(change_request.original_reservation_id)
    if not original or original.status != ReservationStatus.approved:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The original reservation is no longer approved; reject this change request instead.",
        )

    changes = [Change.model_validate(c) for c in change_request.changes or []]
    change_request_id = change_request.reservation_id
    repo.discard(change_request_id, commit=False)
    try:
        original = repo.apply_change(original.reservation_id, changes, exclude_ids=[change_request_id])
    except (SlotUnavailable, StaleBookingState) as exc:
        logger.warning("Change request %s could not be merged: %s", change_request_id, exc)
        raise _booking_conflict(exc)

    notification_service.notify(db, EmailType.change_approved, original)
    logger.info("Change request %s merged into reservation %s", change_request_id, original.reservation_id)
    return original


def reject_reservation(db: Session, reservation_id: str, reason: Optional[str] = None) -> Reservation:
    """Reject a pending reservation; change-request records are discarded, leaving the original as-is."""
    repo = ReservationRepository(db)
    reservation = _get_or_404(repo, reservation_id)
    if reservation.status != ReservationStatus.pending:
        raise HTTPException(status_code=400, detail=f"Reservation is already {reservation.status.value}")

    if reservation.is_change_request:
        original = repo.get(reservation.original_reservation_id)
        if not original:
            raise HTTPException(status_code=404, detail="Original reservation not found")
        reason = reason or settings.DEFAULT_REJECTION_REASON
        notification_service.notify(db, EmailType.change_rejected, reservation, reason=reason)
        repo.discard(reservation_id)
        logger.info("Change request %s rejected (reason: %s)", reservation_id, reason)
        return original

    reservation = repo.update_status(reservation_id, ReservationStatus.rejected, reason=reason)
    notification_service.notify(db, EmailType.rejected, reservation, reason=reservation.rejection_reason)
    return reservation


def cancel_reservation(db: Session, reservation_id: str, actor_user_id: str, version: int) -> Reservation:
    """Owner cancels a pending (withdrawal) or approved (cancellation) reservation."""
    repo = ReservationRepository(db)
    reservation = _get_or_404(repo, reservation_id)
    _check_owner(reservation, actor_user_id)

    previous = reservation.status
    if previous not in (ReservationStatus.pending, ReservationStatus.approved):
        raise HTTPException(status_code=400, detail=f"Reservation is already {previous.value}")
    _check_version(reservation, version)

    if not reservation.is_change_request:
        for change_request in _pending_change_requests(repo, reservation_id):
            repo.discard(change_request.reservation_id, commit=False)

    reservation = repo.update_status(reservation_id, ReservationStatus.cancelled)
    email_type = EmailType.withdrawal if previous == ReservationStatus.pending else EmailType.cancellation
    notification_service.notify(db, email_type, reservation)
    return reservation


def submit_change(db: Session, reservation_id: str, payload: ChangeSubmit) -> ChangeSubmitResult:
    """Owner edits an approved reservation.

    Edits that need review are filed as a pending change request linked to
    the original; the rest are merged right away.
    """
    repo = ReservationRepository(db)
    reservation = _get_or_404(repo, reservation_id)
    if reservation.is_change_request:
        raise HTTPException(status_code=400, detail="A change request cannot itself be changed")
    _check_owner(reservation, payload.actor_user_id)
    if reservation.status != ReservationStatus.approved:
        raise HTTPException(
            status_code=400,
            detail=f"Only approved reservations can be changed (this one is {reservation.status.value})",
        )
    _check_version(reservation, payload.version)

    proposed = payload.model_dump(exclude={"actor_user_id", "version", "change_reason"}, exclude_none=True)
    if "room_id" in proposed:
        _require_room(db, proposed["room_id"])

    changes = compute_changes(reservation, proposed)
    if not changes:
        raise HTTPException(status_code=400, detail="No changes to apply")

    start = proposed.get("start_time", reservation.start_time)
    end = proposed.get("end_time", reservation.end_time)
    if end <= start:
        raise InvalidInterval(start, end)

    if not requires_approval(changes):
        try:
            updated = repo.apply_change(reservation_id, changes)
        except (SlotUnavailable, StaleBookingState) as exc:
            raise _booking_conflict(exc)
        notification_service.notify(db, EmailType.change_applied, updated)
        logger.info("Applied %d self-service change(s) to reservation %s", len(changes), reservation_id)
        return ChangeSubmitResult(
            requires_approval=False,
            changes=changes,
            reservation=ReservationOut.model_validate(updated),
        )

    reason = (payload.change_reason or "").strip()
    if not reason:
        raise HTTPException(status_code=400, detail="A change reason is required for changes that need approval")
    if _pending_change_requests(repo, reservation_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A change request for this reservation is already awaiting approval",
        )

    visitors = proposed.get("external_visitors", reservation.external_visitors)
    change_request = Reservation(
        room_id=proposed.get("room_id", reservation.room_id),
        user_id=reservation.user_id,
        user_name=reservation.user_name,
        start_time=start,
        end_time=end,
        purpose=proposed.get("purpose", reservation.purpose),
        participants=proposed.get("participants", reservation.participants),
        status=ReservationStatus.pending,
        external_visitors=normalize_visitors(visitors) or None,
        is_change_request=True,
        original_reservation_id=reservation_id,
        change_reason=reason,
        changes=[c.model_dump(mode="json") for c in changes],
        version=1,
    )
    try:
        repo.create(change_request, exclude_ids=[reservation_id])
    except (SlotUnavailable, StaleBookingState) as exc:
        logger.warning("Change request for %s refused: %s", reservation_id, exc)
        raise _booking_conflict(exc)

    notification_service.notify(db, EmailType.change_request_received, change_request)
    logger.info("Change request %s filed against reservation %s", change_request.reservation_id, reservation_id)
    return ChangeSubmitResult(
        requires_approval=True,
        changes=changes,
        reservation=ReservationOut.model_validate(reservation),
        change_request=ReservationOut.model_validate(change_request),
    )
