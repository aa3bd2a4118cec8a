"""External integration panels (QR access system, Google Calendar), mocked."""
import logging
from urllib.parse import urlparse
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from reservation_portal.database import get_db, utcnow
from reservation_portal.models.integration import IntegrationConnection, IntegrationKind, IntegrationStatus
from reservation_portal.models.reservation import Reservation, ReservationStatus
from reservation_portal.schemas.integration import IntegrationConnect, IntegrationOut, VisitorReservationOut
from reservation_portal.services.calendar_service import portal_tz

logger = logging.getLogger(__name__)
router = APIRouter()

VISIT_STATUS = {
    ReservationStatus.approved: "confirmed",
    ReservationStatus.pending: "pending",
}


def _parse_kind(kind: str) -> IntegrationKind:
    try:
        return IntegrationKind(kind)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown integration: {kind}")


def _get_connection(db: Session, kind: IntegrationKind) -> IntegrationConnection:
    conn = db.query(IntegrationConnection).filter(IntegrationConnection.kind == kind).first()
    if not conn:
        conn = IntegrationConnection(kind=kind, status=IntegrationStatus.disconnected)
        db.add(conn)
        db.flush()
    return conn


@router.get("/", response_model=list[IntegrationOut])
def list_integrations(db: Session = Depends(get_db)):
    """Connection state of every known integration."""
    connections = [_get_connection(db, kind) for kind in IntegrationKind]
    db.commit()
    return connections


@router.post("/{kind}/connect", response_model=IntegrationOut)
def connect_integration(kind: str, payload: IntegrationConnect, db: Session = Depends(get_db)):
    """Record the endpoint and mark the integration connected (no network call is made)."""
    conn = _get_connection(db, _parse_kind(kind))
    conn.endpoint_url = payload.endpoint_url
    parsed = urlparse(payload.endpoint_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        conn.status = IntegrationStatus.error
        conn.last_error = "Endpoint must be an http(s) URL"
        conn.connected_at = None
        logger.warning("Integration %s rejected endpoint %s", kind, payload.endpoint_url)
    else:
        conn.status = IntegrationStatus.connected
        conn.last_error = None
        conn.connected_at = utcnow()
        logger.info("Integration %s connected to %s", kind, payload.endpoint_url)
    db.commit()
    db.refresh(conn)
    return conn


@router.post("/{kind}/disconnect", response_model=IntegrationOut)
def disconnect_integration(kind: str, db: Session = Depends(get_db)):
    conn = _get_connection(db, _parse_kind(kind))
    conn.status = IntegrationStatus.disconnected
    conn.connected_at = None
    conn.last_error = None
    db.commit()
    db.refresh(conn)
    logger.info("Integration %s disconnected", kind)
    return conn


@router.get("/visitors", response_model=list[VisitorReservationOut])
def visitor_reservations(db: Session = Depends(get_db)):
    """One row per external visitor on pending or approved reservations, by visit time."""
    reservations = (
        db.query(Reservation)
        .filter(
            Reservation.is_change_request.is_(False),
            Reservation.status.in_(list(VISIT_STATUS)),
        )
        .order_by(Reservation.start_time)
        .all()
    )
    tz = portal_tz()
    rows = []
    for r in reservations:
        local_start = r.start_time.astimezone(tz)
        for visitor in r.external_visitors or []:
            rows.append(VisitorReservationOut(
                reservation_id=r.reservation_id,
                visitor_name=visitor.get("name", ""),
                company=visitor.get("company", ""),
                email=visitor.get("email", ""),
                visit_date=local_start.strftime("%Y-%m-%d"),
                visit_time=local_start.strftime("%H:%M"),
                purpose=r.purpose,
                host=r.user_name,
                access_token=r.access_token,
                status=VISIT_STATUS[r.status],
            ))
    return rows
