"""Room ORM model."""
import uuid
from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.sql import func
from reservation_portal.database import Base


class Room(Base):
    __tablename__ = "rooms"

    room_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), nullable=False)
    capacity = Column(Integer, nullable=False)
    facilities = Column(JSON, nullable=False, default=list)
    floor = Column(String(20), nullable=True)
    # Bumped on every booking write touching this room (check-then-create guard)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
