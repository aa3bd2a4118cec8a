"""Mock notification dispatcher that records outbound email in ``email_logs``.

Nothing is actually sent. Delivery status is simulated: addresses without a
domain bounce, and when ``MAIL_DELIVERY_ENABLED`` is off everything stays
pending.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from reservation_portal.config import settings
from reservation_portal.models.email_log import EmailLog, EmailType, DeliveryStatus
from reservation_portal.models.reservation import Reservation
from reservation_portal.models.room import Room
from reservation_portal.models.user import User
from reservation_portal.services.calendar_service import month_bounds, portal_tz

logger = logging.getLogger(__name__)

SUBJECTS = {
    EmailType.reservation_received: "Reservation request received",
    EmailType.approved: "Reservation approved (access QR code attached)",
    EmailType.rejected: "Reservation rejected",
    EmailType.withdrawal: "Reservation request withdrawn",
    EmailType.cancellation: "Reservation cancelled",
    EmailType.change_request_received: "Change request received",
    EmailType.change_approved: "Change request approved",
    EmailType.change_rejected: "Change request rejected",
    EmailType.change_applied: "Reservation updated",
}

# Types whose mail is copied to the reservation's external visitors
VISITOR_COPIED = frozenset({EmailType.approved, EmailType.cancellation, EmailType.change_approved})


def _subject(email_type: EmailType) -> str:
    return f"{settings.MAIL_SUBJECT_PREFIX} {SUBJECTS[email_type]}"


def _is_deliverable(address: str) -> bool:
    local, _, domain = address.partition("@")
    return bool(local) and "." in domain


def _delivery(recipients: list[str]) -> tuple[DeliveryStatus, Optional[str]]:
    if not settings.MAIL_DELIVERY_ENABLED:
        return DeliveryStatus.pending, None
    invalid = [r for r in recipients if not _is_deliverable(r)]
    if invalid:
        return DeliveryStatus.bounced, f"Invalid recipient: {', '.join(invalid)}"
    return DeliveryStatus.delivered, None


def _dedupe(addresses: Iterable[Optional[str]]) -> list[str]:
    seen: list[str] = []
    for address in addresses:
        if address and address not in seen:
            seen.append(address)
    return seen


def reservation_details(db: Session, reservation: Reservation) -> str:
    """``"<room> / YYYY-MM-DD HH:MM-HH:MM"`` on the portal clock."""
    room = db.query(Room).filter(Room.room_id == reservation.room_id).first()
    room_name = room.name if room else reservation.room_id
    tz = portal_tz()
    start = reservation.start_time.astimezone(tz)
    end = reservation.end_time.astimezone(tz)
    return f"{room_name} / {start:%Y-%m-%d %H:%M}-{end:%H:%M}"


def notify(
    db: Session,
    email_type: EmailType,
    reservation: Reservation,
    reason: Optional[str] = None,
) -> Optional[EmailLog]:
    """Record the email a status transition would send. Returns None if nobody can be addressed.

    ``reason`` is the approver's note on rejections.
    """
    requester = db.query(User).filter(User.user_id == reservation.user_id).first()
    addresses = [requester.email if requester else None]
    if email_type in VISITOR_COPIED:
        addresses.extend(v.get("email") for v in reservation.external_visitors or [])
    recipients = _dedupe(addresses)
    if not recipients:
        logger.info("No recipients for %s on reservation %s; skipping", email_type.value, reservation.reservation_id)
        return None

    status, bounce_reason = _delivery(recipients)
    with_token = email_type == EmailType.approved and bool(reservation.access_token)
    log = EmailLog(
        email_type=email_type,
        subject=_subject(email_type),
        recipients=recipients,
        status=status,
        bounce_reason=bounce_reason,
        reason=reason,
        reservation_id=reservation.reservation_id,
        reservation_details=reservation_details(db, reservation),
        access_token=reservation.access_token if with_token else None,
        has_attachment=with_token,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    logger.info("Email %s (%s) to %s: %s", log.email_id, email_type.value, recipients, status.value)
    return log


def resend(db: Session, original: EmailLog, to: list[str]) -> EmailLog:
    """Send a copy of a logged email to new recipients."""
    recipients = _dedupe(to)
    status, bounce_reason = _delivery(recipients)
    log = EmailLog(
        email_type=original.email_type,
        subject=original.subject,
        recipients=recipients,
        status=status,
        bounce_reason=bounce_reason,
        reason=original.reason,
        reservation_id=original.reservation_id,
        reservation_details=original.reservation_details,
        access_token=original.access_token,
        has_attachment=original.has_attachment,
        resent_from_id=original.email_id,
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    logger.info("Resent email %s as %s to %s", original.email_id, log.email_id, recipients)
    return log


def history_for_month(db: Session, month: str, search: Optional[str] = None) -> tuple[dict, list[EmailLog]]:
    """Emails sent in local ``YYYY-MM`` ``month``, newest first, plus that month's counts.

    The search (recipient, subject or reservation details, case-insensitive)
    narrows the list but not the counts.
    """
    start, end = month_bounds(month)
    in_month = (
        db.query(EmailLog)
        .filter(EmailLog.sent_at >= start, EmailLog.sent_at < end)
        .order_by(EmailLog.sent_at.desc())
        .all()
    )
    stats = {
        "delivered": sum(1 for e in in_month if e.status == DeliveryStatus.delivered),
        "bounced": sum(1 for e in in_month if e.status == DeliveryStatus.bounced),
        "pending": sum(1 for e in in_month if e.status == DeliveryStatus.pending),
        "total": len(in_month),
    }

    emails = in_month
    if search:
        needle = search.lower()
        emails = [
            e for e in in_month
            if needle in ", ".join(e.recipients).lower()
            or needle in e.subject.lower()
            or needle in e.reservation_details.lower()
        ]
    return stats, emails
