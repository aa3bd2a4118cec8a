"""Pydantic schemas for the email history view."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class EmailLogOut(BaseModel):
    email_id: str
    email_type: str
    subject: str
    recipients: list[str]
    status: str
    bounce_reason: Optional[str] = None
    reason: Optional[str] = None
    reservation_id: Optional[str] = None
    reservation_details: str
    access_token: Optional[str] = None
    has_attachment: bool
    resent_from_id: Optional[str] = None
    sent_at: datetime

    model_config = {"from_attributes": True}


class EmailMonthStats(BaseModel):
    delivered: int = 0
    bounced: int = 0
    pending: int = 0
    total: int = 0


class EmailHistoryOut(BaseModel):
    month: str
    stats: EmailMonthStats
    emails: list[EmailLogOut]


class EmailResend(BaseModel):
    to: list[str]
