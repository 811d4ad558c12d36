# sms_gateway/schemas/common/common.py
from pydantic import BaseModel
from typing import Optional


class ErrorResponse(BaseModel):
    error: str
    providerError: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    mode: str
    provider: str
    enabledSend: bool
    enabledVerify: bool
    auditFailures: int
    timestamp: str
