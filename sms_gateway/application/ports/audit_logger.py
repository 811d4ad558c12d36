from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Protocol


@dataclass(frozen=True)
class OtpAttempt:
    phone: str
    mode: str  # send | verify
    provider: str
    status: str  # sent | verified | failed
    request_id: Optional[str] = None
    error_code: Optional[int] = None
    error_message: Optional[str] = None
    otp_last2: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AuditLogger(Protocol):
    async def log(self, attempt: OtpAttempt) -> None:
        ...
