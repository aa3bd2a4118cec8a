"""Pydantic schemas for external integration panels."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class IntegrationOut(BaseModel):
    kind: str
    endpoint_url: Optional[str] = None
    status: str
    connected_at: Optional[datetime] = None
    last_error: Optional[str] = None

    model_config = {"from_attributes": True}


class IntegrationConnect(BaseModel):
    endpoint_url: str


class VisitorReservationOut(BaseModel):
    reservation_id: str
    visitor_name: str
    company: str
    email: str
    visit_date: str
    visit_time: str
    purpose: str
    host: str
    access_token: Optional[str] = None
    status: str  # confirmed | pending
