# sms_gateway/schemas/auth/auth.py
from pydantic import BaseModel, Field, AliasChoices
from typing import Optional


class UpdateEmailRequest(BaseModel):
    user_id: Optional[str] = Field(None, validation_alias=AliasChoices("userId", "user_id"))
    new_email: Optional[str] = Field(None, validation_alias=AliasChoices("newEmail", "new_email"))


class UpdateEmailResponse(BaseModel):
    ok: bool = True
    email: str
