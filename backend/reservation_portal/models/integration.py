"""IntegrationConnection ORM model for mock external-system link state."""
import enum
from sqlalchemy import Column, String, Enum as SAEnum
from reservation_portal.database import Base, UTCDateTime


class IntegrationKind(str, enum.Enum):
    qr_system = "qr_system"
    google_calendar = "google_calendar"


class IntegrationStatus(str, enum.Enum):
    disconnected = "disconnected"
    connected = "connected"
    error = "error"


class IntegrationConnection(Base):
    __tablename__ = "integration_connections"

    kind = Column(SAEnum(IntegrationKind), primary_key=True)
    endpoint_url = Column(String(500), nullable=True)
    status = Column(SAEnum(IntegrationStatus), nullable=False, default=IntegrationStatus.disconnected)
    connected_at = Column(UTCDateTime, nullable=True)
    last_error = Column(String(500), nullable=True)
