"""Pydantic schemas for Users."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class UserCreate(BaseModel):
    display_name: str
    email: Optional[str] = None
    role: str = "applicant"
    department: Optional[str] = None


class UserUpdate(BaseModel):
    display_name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    department: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    display_name: str
    email: Optional[str] = None
    role: str
    department: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
