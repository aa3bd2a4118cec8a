"""EmailLog ORM model for mock outbound notification history."""
import uuid
import enum
from sqlalchemy import Column, String, Boolean, Text, JSON, ForeignKey, Enum as SAEnum
from reservation_portal.database import Base, UTCDateTime, utcnow


class EmailType(str, enum.Enum):
    reservation_received = "reservation_received"
    approved = "approved"
    rejected = "rejected"
    withdrawal = "withdrawal"
    cancellation = "cancellation"
    change_request_received = "change_request_received"
    change_approved = "change_approved"
    change_rejected = "change_rejected"
    change_applied = "change_applied"


class DeliveryStatus(str, enum.Enum):
    delivered = "delivered"
    bounced = "bounced"
    pending = "pending"


class EmailLog(Base):
    __tablename__ = "email_logs"

    email_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email_type = Column(SAEnum(EmailType), nullable=False)
    subject = Column(String(255), nullable=False)
    recipients = Column(JSON, nullable=False, default=list)
    status = Column(SAEnum(DeliveryStatus), nullable=False, default=DeliveryStatus.pending)
    bounce_reason = Column(String(255), nullable=True)
    # Decision note carried to the applicant (rejections)
    reason = Column(Text, nullable=True)
    # No FK: history outlives discarded change-request records
    reservation_id = Column(String(36), nullable=True)
    reservation_details = Column(String(500), nullable=False, default="")
    access_token = Column(String(100), nullable=True)
    has_attachment = Column(Boolean, nullable=False, default=False)
    resent_from_id = Column(String(36), ForeignKey("email_logs.email_id"), nullable=True)
    sent_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
