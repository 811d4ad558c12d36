from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class ProviderResponse:
    ok: bool
    request_id: str = ""
    status_code: int = 200  # upstream HTTP status, 0 when no response arrived
    provider_error: Optional[str] = None


class OTPProvider(Protocol):
    name: str

    async def send(self, phone: str, otp_code: str) -> ProviderResponse:
        ...

    async def verify(self, phone: str, request_id: str, otp_code: str) -> ProviderResponse:
        ...
