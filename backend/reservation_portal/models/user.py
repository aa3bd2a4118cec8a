"""User ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, Enum as SAEnum
from sqlalchemy.sql import func
from reservation_portal.database import Base


class Role(str, enum.Enum):
    applicant = "applicant"
    approver = "approver"
    admin = "admin"
    observer = "observer"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    display_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    role = Column(SAEnum(Role), nullable=False, default=Role.applicant)
    department = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
