# sms_gateway/db/models/settings/app_setting.py
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, UniqueConstraint
from datetime import datetime
from typing import Optional

from ....utils import utc_now

class AppSetting(SQLModel, table=True):
    __tablename__ = "app_settings"
    __table_args__ = (UniqueConstraint("category", "setting_key"),)
    id: Optional[int] = Field(default=None, primary_key=True)
    category: str = Field(max_length=50, index=True)
    setting_key: str = Field(max_length=100, index=True)
    setting_json: str = Field(default="{}")
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
