"""Email history API routes (mock notification log)."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from reservation_portal.database import get_db, utcnow
from reservation_portal.models.email_log import EmailLog
from reservation_portal.schemas.email import EmailHistoryOut, EmailLogOut, EmailMonthStats, EmailResend
from reservation_portal.services import notification_service
from reservation_portal.services.calendar_service import portal_tz

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=EmailHistoryOut)
def email_history(
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Emails for a month (default: current), newest first, with delivery counts."""
    month = month or utcnow().astimezone(portal_tz()).strftime("%Y-%m")
    try:
        stats, emails = notification_service.history_for_month(db, month, q)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid month: {month}")
    return EmailHistoryOut(
        month=month,
        stats=EmailMonthStats(**stats),
        emails=[EmailLogOut.model_validate(e) for e in emails],
    )


@router.get("/{email_id}", response_model=EmailLogOut)
def get_email(email_id: str, db: Session = Depends(get_db)):
    email = db.query(EmailLog).filter(EmailLog.email_id == email_id).first()
    if not email:
        raise HTTPException(status_code=404, detail="Email not found")
    return email


@router.post("/{email_id}/resend", response_model=EmailLogOut, status_code=status.HTTP_201_CREATED)
def resend_email(email_id: str, payload: EmailResend, db: Session = Depends(get_db)):
    """Resend a logged email to the given addresses."""
    email = db.query(EmailLog).filter(EmailLog.email_id == email_id).first()
    if not email:
        raise HTTPException(status_code=404, detail="Email not found")
    if not any(address.strip() for address in payload.to):
        raise HTTPException(status_code=400, detail="At least one recipient is required")
    return notification_service.resend(db, email, [a.strip() for a in payload.to if a.strip()])
