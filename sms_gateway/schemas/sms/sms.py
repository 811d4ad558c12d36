# sms_gateway/schemas/sms/sms.py
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Optional


class SendOTPRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    phone: Optional[str] = Field(None, description="Phone number in any common format")
    purpose: Optional[str] = Field("login", description="Why the code is requested")


class SendOTPResponse(BaseModel):
    requestId: str
    status: str = "sent"
    mode: str


class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    phone: Optional[str] = None
    request_id: Optional[str] = Field(None, validation_alias=AliasChoices("requestId", "request_id"))
    otp: Optional[str] = None


class VerifyOTPResponse(BaseModel):
    status: str = "verified"


class AgentUpsertRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    phone: Optional[str] = None
    name: Optional[str] = Field(None, max_length=100)


class AgentUpsertResponse(BaseModel):
    email: str
    password: str
    userId: str


class SmsConfigStatus(BaseModel):
    mode: str
    provider: str
    senderId: str
    enabledSend: bool
    enabledVerify: bool
