import logging
import time

from ...application.ports.otp_provider import OTPProvider, ProviderResponse
from ...utils import compose_message, mask_code, mask_phone

logger = logging.getLogger(__name__)


class MockOTPProvider(OTPProvider):
    """Deterministic backend for non-production use; never touches the network."""

    name = "mock"

    def __init__(self, template_text: str = "Your OTP is {otp}.") -> None:
        self.template_text = template_text

    async def send(self, phone: str, otp_code: str) -> ProviderResponse:
        request_id = f"mock_{int(time.time() * 1000)}"
        message = compose_message(self.template_text, mask_code(otp_code))
        logger.debug(f"Mock SMS to {mask_phone(phone)}: {message}")
        return ProviderResponse(ok=True, request_id=request_id)

    async def verify(self, phone: str, request_id: str, otp_code: str) -> ProviderResponse:
        return ProviderResponse(ok=True, request_id=request_id)
