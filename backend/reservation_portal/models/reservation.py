"""Reservation ORM model, including change-request records."""
import uuid
import enum
from sqlalchemy import Column, String, Integer, Boolean, Text, JSON, ForeignKey, Enum as SAEnum
from reservation_portal.database import Base, UTCDateTime, utcnow


class ReservationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# Statuses that no longer hold their room interval
RELEASED_STATUSES = frozenset({ReservationStatus.cancelled, ReservationStatus.rejected})


class Reservation(Base):
    __tablename__ = "reservations"

    reservation_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(String(36), ForeignKey("rooms.room_id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    user_name = Column(String(100), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    purpose = Column(String(500), nullable=False)
    participants = Column(Integer, nullable=False, default=1)
    status = Column(SAEnum(ReservationStatus), nullable=False, default=ReservationStatus.pending)
    rejection_reason = Column(Text, nullable=True)
    access_token = Column(String(100), nullable=True)
    external_visitors = Column(JSON, nullable=True)

    # Change-request extension
    is_change_request = Column(Boolean, nullable=False, default=False)
    original_reservation_id = Column(String(36), ForeignKey("reservations.reservation_id"), nullable=True)
    change_reason = Column(Text, nullable=True)
    changes = Column(JSON, nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
