"""Pydantic schemas for Rooms."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class RoomCreate(BaseModel):
    name: str
    capacity: int = Field(..., gt=0)
    facilities: list[str] = []
    floor: Optional[str] = None


class RoomUpdate(BaseModel):
    name: Optional[str] = None
    capacity: Optional[int] = Field(None, gt=0)
    facilities: Optional[list[str]] = None
    floor: Optional[str] = None


class RoomOut(BaseModel):
    room_id: str
    name: str
    capacity: int
    facilities: list[str]
    floor: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
