# sms_gateway/db/models/auth/otp.py
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
import uuid

from ....utils import utc_now

class OtpLog(SQLModel, table=True):
    """Append-only record of one send or verify attempt."""
    __tablename__ = "otp_logs"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    phone: str = Field(max_length=20, index=True)
    mode: str = Field(max_length=10)  # send | verify
    provider: str = Field(max_length=50)
    request_id: Optional[str] = Field(default=None, max_length=255)
    status: str = Field(max_length=10, index=True)  # sent | verified | failed
    error_code: Optional[int] = Field(default=None)
    error_message: Optional[str] = Field(default=None)
    otp_last2: Optional[str] = Field(default=None, max_length=2)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True), index=True)
