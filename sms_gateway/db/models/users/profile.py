# sms_gateway/db/models/users/profile.py
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional

from ....utils import utc_now

class Profile(SQLModel, table=True):
    __tablename__ = "profiles"
    id: str = Field(primary_key=True)  # auth_identities.id
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20, index=True)
    role: str = Field(default="agent", max_length=30)
    status: str = Field(default="active", max_length=20)
    position: Optional[str] = Field(default=None, max_length=50)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
