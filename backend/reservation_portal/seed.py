"""Mock users, rooms and reservations for demos.

Loaded at startup when ``SEED_MOCK_DATA`` is set; idempotent (skips if any
room exists). Reservation times are relative to today on the portal clock.
"""
import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from reservation_portal.models.reservation import Reservation, ReservationStatus
from reservation_portal.models.room import Room
from reservation_portal.models.user import User, Role
from reservation_portal.repositories.reservation_repository import new_access_token
from reservation_portal.services.calendar_service import local_day, slot_interval
from reservation_portal.database import utcnow

logger = logging.getLogger(__name__)

MOCK_USERS = [
    {"user_id": "1", "display_name": "Taro Kano", "email": "kano.taro@example.com", "role": Role.applicant, "department": "CoE Promotion"},
    {"user_id": "2", "display_name": "Manager Yoshida", "email": "yoshida.manager@example.com", "role": Role.approver, "department": "CoE Promotion"},
    {"user_id": "3", "display_name": "Jiro Nakayama", "email": "nakayama.jiro@example.com", "role": Role.observer, "department": "Audit"},
    {"user_id": "4", "display_name": "Taro Yoshida", "email": "admin@example.com", "role": Role.admin, "department": "IT"},
    {"user_id": "5", "display_name": "Saburo Suzuki", "email": "suzuki.saburo@example.com", "role": Role.applicant, "department": "Sales"},
    {"user_id": "6", "display_name": "Misaki Takahashi", "email": "takahashi.misaki@example.com", "role": Role.applicant, "department": "Marketing"},
]

MOCK_ROOMS = [
    {"room_id": "room-a", "name": "Collab Room A", "capacity": 4, "facilities": ["Monitor", "Whiteboard"], "floor": "10F"},
    {"room_id": "room-b", "name": "Collab Room B", "capacity": 6, "facilities": ["Projector", "Video conferencing"], "floor": "10F"},
    {"room_id": "room-c", "name": "Collab Room C", "capacity": 8, "facilities": ["Large monitor", "Soundproofing", "Whiteboard"], "floor": "10F"},
]

# (id, room, user, day offset, start hour, end hour, purpose, participants, status, visitors)
MOCK_RESERVATIONS = [
    ("res-1", "room-a", "1", 0, 10, 11, "Team weekly sync", 4, ReservationStatus.approved, None),
    ("res-2", "room-b", "5", 1, 14, 16, "Sales strategy meeting", 6, ReservationStatus.approved,
     [{"company": "ABC Trading Co.", "name": "Taro Yamada", "email": "yamada@abc-corp.example"}]),
    ("res-3", "room-a", "1", 2, 10, 12, "New project kickoff", 4, ReservationStatus.pending, None),
    ("res-4", "room-c", "6", 2, 13, 15, "Marketing campaign review", 5, ReservationStatus.pending, None),
    ("res-5", "room-b", "5", 3, 15, 17, "Client presentation prep", 3, ReservationStatus.pending,
     [{"company": "XYZ Inc.", "name": "Kenta Sasaki", "email": "sasaki@xyz-inc.example"},
      {"company": "XYZ Inc.", "name": "Mika Ito", "email": "ito@xyz-inc.example"}]),
    ("res-6", "room-a", "1", 4, 11, 12, "Weekly progress report", 4, ReservationStatus.pending, None),
    ("res-7", "room-c", "6", -1, 16, 18, "Internal event planning", 8, ReservationStatus.rejected, None),
]


def _at(today: date, offset: int, hour: int):
    return slot_interval(today + timedelta(days=offset), hour)[0]


def seed_mock_data(db: Session) -> None:
    if db.query(Room).first():
        logger.info("Mock data already present; skipping seed")
        return

    users = {}
    for data in MOCK_USERS:
        user = User(**data)
        users[user.user_id] = user
        db.add(user)
    for data in MOCK_ROOMS:
        db.add(Room(**data, version=1))

    today = local_day(utcnow())
    for rid, room_id, user_id, offset, start_h, end_h, purpose, people, res_status, visitors in MOCK_RESERVATIONS:
        db.add(Reservation(
            reservation_id=rid,
            room_id=room_id,
            user_id=user_id,
            user_name=users[user_id].display_name,
            start_time=_at(today, offset, start_h),
            end_time=_at(today, offset, end_h),
            purpose=purpose,
            participants=people,
            status=res_status,
            access_token=new_access_token() if res_status == ReservationStatus.approved else None,
            rejection_reason=(
                "Over capacity: Collab Room C seats 8 but more than 10 attendees are expected."
                if res_status == ReservationStatus.rejected else None
            ),
            external_visitors=visitors,
            version=1,
        ))
    db.commit()
    logger.info(
        "Seeded %d users, %d rooms, %d reservations",
        len(MOCK_USERS), len(MOCK_ROOMS), len(MOCK_RESERVATIONS),
    )
