"""Reservation repository: the single write path for reservation records.

Booking writes are serialised per room through ``Room.version``: the
availability check and the insert (or interval move) commit together only if
the room's version is unchanged since the check, otherwise the transaction is
rolled back and ``StaleBookingState`` is raised.
"""
import logging
import uuid
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from reservation_portal.config import settings
from reservation_portal.errors import InvalidInterval, SlotUnavailable, StaleBookingState
from reservation_portal.models.reservation import Reservation, ReservationStatus, RELEASED_STATUSES
from reservation_portal.models.room import Room
from reservation_portal.schemas.reservation import Change, ChangeField, ReservationFilter
from reservation_portal.services.change_approval import normalize_visitors, parse_timestamp
from reservation_portal.services.overlap_service import find_conflicts

logger = logging.getLogger(__name__)

_CHANGE_ATTRS = {
    ChangeField.start_time: ("start_time", parse_timestamp),
    ChangeField.end_time: ("end_time", parse_timestamp),
    ChangeField.room_id: ("room_id", str),
    ChangeField.purpose: ("purpose", str),
    ChangeField.participants: ("participants", int),
    ChangeField.external_visitors: ("external_visitors", normalize_visitors),
}


def new_access_token() -> str:
    return f"{settings.ACCESS_TOKEN_PREFIX}-{uuid.uuid4().hex}"


class ReservationRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, reservation_id: str) -> Optional[Reservation]:
        return self.db.query(Reservation).filter(Reservation.reservation_id == reservation_id).first()

    def list_reservations(self, filter: Optional[ReservationFilter] = None) -> list[Reservation]:
        """Query reservations; results are ordered by start time."""
        f = filter or ReservationFilter()
        query = self.db.query(Reservation)
        if f.room_id:
            query = query.filter(Reservation.room_id == f.room_id)
        if f.user_id:
            query = query.filter(Reservation.user_id == f.user_id)
        if f.statuses:
            query = query.filter(Reservation.status.in_([ReservationStatus(s) for s in f.statuses]))
        if f.active_only:
            query = query.filter(Reservation.status.notin_(list(RELEASED_STATUSES)))
        if f.overlapping_start is not None:
            query = query.filter(Reservation.end_time > f.overlapping_start)
        if f.overlapping_end is not None:
            query = query.filter(Reservation.start_time < f.overlapping_end)
        if not f.include_change_requests:
            query = query.filter(Reservation.is_change_request.is_(False))
        if f.original_reservation_id:
            query = query.filter(Reservation.original_reservation_id == f.original_reservation_id)
        if f.exclude_ids:
            query = query.filter(Reservation.reservation_id.notin_(f.exclude_ids))
        return query.order_by(Reservation.start_time).all()

    def room_version(self, room_id: str) -> Optional[int]:
        room = self.db.query(Room).filter(Room.room_id == room_id).first()
        return room.version if room else None

    def _claim_interval(
        self,
        room_id: str,
        start: datetime,
        end: datetime,
        seen_version: int,
        exclude_ids: Iterable[str] = (),
    ) -> None:
        """Check the interval is free and bump the room version in the open transaction."""
        candidates = self.list_reservations(ReservationFilter(
            room_id=room_id,
            active_only=True,
            overlapping_start=start,
            overlapping_end=end,
            exclude_ids=list(exclude_ids),
        ))
        conflicts = find_conflicts(room_id, start, end, candidates)
        if conflicts:
            self.db.rollback()
            raise SlotUnavailable(room_id, conflicts)

        bumped = (
            self.db.query(Room)
            .filter(Room.room_id == room_id, Room.version == seen_version)
            .update({Room.version: Room.version + 1}, synchronize_session=False)
        )
        if bumped != 1:
            self.db.rollback()
            raise StaleBookingState(room_id, seen_version, self.room_version(room_id))

    def create(
        self,
        reservation: Reservation,
        expected_room_version: Optional[int] = None,
        exclude_ids: Iterable[str] = (),
    ) -> Reservation:
        """Insert a reservation if its interval is free (check-then-create in one transaction)."""
        if reservation.end_time <= reservation.start_time:
            raise InvalidInterval(reservation.start_time, reservation.end_time)

        seen_version = self.room_version(reservation.room_id)
        if seen_version is None:
            raise LookupError(f"Room {reservation.room_id} not found")
        if expected_room_version is not None and expected_room_version != seen_version:
            raise StaleBookingState(reservation.room_id, expected_room_version, seen_version)

        self._claim_interval(
            reservation.room_id, reservation.start_time, reservation.end_time,
            seen_version, exclude_ids,
        )
        self.db.add(reservation)
        self.db.commit()
        self.db.refresh(reservation)
        logger.info("Stored reservation %s in room %s", reservation.reservation_id, reservation.room_id)
        return reservation

    def update_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        reason: Optional[str] = None,
    ) -> Reservation:
        """Move a reservation to ``status``.

        Rejected records always get a reason and approved ones always get an
        access token.
        """
        reservation = self.get(reservation_id)
        if reservation is None:
            raise LookupError(f"Reservation {reservation_id} not found")

        reservation.status = ReservationStatus(status)
        if reservation.status == ReservationStatus.rejected:
            reservation.rejection_reason = reason or settings.DEFAULT_REJECTION_REASON
        elif reservation.status == ReservationStatus.approved and not reservation.access_token:
            reservation.access_token = new_access_token()
        reservation.version += 1

        self.db.commit()
        self.db.refresh(reservation)
        logger.info("Reservation %s is now %s", reservation_id, reservation.status.value)
        return reservation

    def apply_change(
        self,
        original_id: str,
        changes: Iterable[Change],
        exclude_ids: Iterable[str] = (),
    ) -> Reservation:
        """Merge field changes into a reservation.

        Moves in time or to another room re-claim the new interval first.
        """
        reservation = self.get(original_id)
        if reservation is None:
            raise LookupError(f"Reservation {original_id} not found")

        values = {}
        for change in changes:
            attr, coerce = _CHANGE_ATTRS[ChangeField(change.field)]
            values[attr] = coerce(change.new_value)

        room_id = values.get("room_id", reservation.room_id)
        start = values.get("start_time", reservation.start_time)
        end = values.get("end_time", reservation.end_time)
        if end <= start:
            raise InvalidInterval(start, end)

        if values.keys() & {"room_id", "start_time", "end_time"}:
            seen_version = self.room_version(room_id)
            if seen_version is None:
                raise LookupError(f"Room {room_id} not found")
            self._claim_interval(room_id, start, end, seen_version, [original_id, *exclude_ids])

        for attr, value in values.items():
            setattr(reservation, attr, value)
        reservation.version += 1

        self.db.commit()
        self.db.refresh(reservation)
        logger.info("Applied %d change(s) to reservation %s", len(values), original_id)
        return reservation

    def discard(self, reservation_id: str, commit: bool = True) -> None:
        """Remove a record outright (used for decided or orphaned change requests)."""
        reservation = self.get(reservation_id)
        if reservation is None:
            return
        self.db.delete(reservation)
        if commit:
            self.db.commit()
        logger.info("Discarded reservation record %s", reservation_id)
