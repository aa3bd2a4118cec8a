"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reservation_portal.config import settings
from reservation_portal.database import Base, SessionLocal, engine
from reservation_portal.errors import InvalidInterval

# Import routers
from reservation_portal.routers import (
    users, rooms, reservations, change_requests, calendar_view, dashboards, email_history, integrations,
)

# Import all models so Base.metadata knows about them
from reservation_portal.models.user import User                      # noqa: F401
from reservation_portal.models.room import Room                      # noqa: F401
from reservation_portal.models.reservation import Reservation        # noqa: F401
from reservation_portal.models.email_log import EmailLog             # noqa: F401
from reservation_portal.models.integration import IntegrationConnection  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Meeting Room Reservation Portal",
    description="Room reservations with approver review, change requests and mock notifications",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(rooms.router, prefix="/api/rooms", tags=["Rooms"])
app.include_router(reservations.router, prefix="/api/reservations", tags=["Reservations"])
app.include_router(change_requests.router, prefix="/api/change-requests", tags=["ChangeRequests"])
app.include_router(calendar_view.router, prefix="/api/calendar", tags=["Calendar"])
app.include_router(dashboards.router, prefix="/api/dashboard", tags=["Dashboards"])
app.include_router(email_history.router, prefix="/api/email-history", tags=["EmailHistory"])
app.include_router(integrations.router, prefix="/api/integrations", tags=["Integrations"])


@app.exception_handler(InvalidInterval)
async def invalid_interval_handler(request: Request, exc: InvalidInterval):
    logger.warning("Rejected invalid interval on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": str(exc)})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode) and optionally load mock data."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)
    if settings.SEED_MOCK_DATA:
        from reservation_portal.seed import seed_mock_data
        db = SessionLocal()
        try:
            seed_mock_data(db)
        finally:
            db.close()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
