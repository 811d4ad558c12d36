# sms_gateway/db/models/users/identity.py
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
import uuid

from ....utils import utc_now

class AuthIdentity(SQLModel, table=True):
    __tablename__ = "auth_identities"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    phone: Optional[str] = Field(default=None, max_length=20, unique=True, index=True)
    password_hash: str
    email_confirmed: bool = Field(default=False)
    user_metadata: str = Field(default="{}")  # JSON
    app_metadata: str = Field(default="{}")  # JSON
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
