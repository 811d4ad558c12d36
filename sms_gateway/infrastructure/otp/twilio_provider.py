import asyncio
import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client
from twilio.base.exceptions import TwilioException, TwilioRestException

from ...application.ports.otp_provider import OTPProvider, ProviderResponse
from ...utils import mask_phone

logger = logging.getLogger(__name__)


class TwilioOTPProvider(OTPProvider):
    """Twilio Verify; the generated code is handed over as ``custom_code``."""

    name = "twilio"

    def __init__(self, account_sid: str, auth_token: str, verify_service_sid: str,
                 timeout_seconds: float = 10.0, client: Optional[Client] = None):
        # A bounded HTTP timeout frees the worker thread when the upstream hangs
        self.client = client or Client(account_sid, auth_token, http_client=TwilioHttpClient(timeout=timeout_seconds))
        self.verify_sid = verify_service_sid
        self.timeout_seconds = timeout_seconds

    async def send(self, phone: str, otp_code: str) -> ProviderResponse:
        def _create():
            return self.client.verify.v2.services(self.verify_sid).verifications.create(
                to=phone, channel="sms", custom_code=otp_code
            )

        try:
            verification = await self._call(_create)
        except TwilioRestException as e:
            logger.error(f"Twilio REST error for {mask_phone(phone)}: {e.code} - {e.msg}")
            return ProviderResponse(ok=False, status_code=e.status or 500, provider_error=str(e.msg))
        except (TwilioException, asyncio.TimeoutError, OSError) as e:
            return ProviderResponse(ok=False, status_code=0, provider_error=_describe(e))
        return ProviderResponse(ok=True, request_id=verification.sid)

    async def verify(self, phone: str, request_id: str, otp_code: str) -> ProviderResponse:
        def _check():
            return self.client.verify.v2.services(self.verify_sid).verification_checks.create(
                to=phone, code=otp_code
            )

        try:
            check = await self._call(_check)
        except TwilioRestException as e:
            logger.error(f"Twilio verification error for {mask_phone(phone)}: {e.code} - {e.msg}")
            return ProviderResponse(ok=False, request_id=request_id, status_code=e.status or 500,
                                    provider_error=str(e.msg))
        except (TwilioException, asyncio.TimeoutError, OSError) as e:
            return ProviderResponse(ok=False, request_id=request_id, status_code=0, provider_error=_describe(e))
        if check.status == "approved":
            return ProviderResponse(ok=True, request_id=request_id)
        # Twilio answers 200 with status "pending" for a wrong code
        return ProviderResponse(ok=False, request_id=request_id, status_code=400,
                                provider_error=f"Verification {check.status}")

    async def _call(self, fn):
        return await asyncio.wait_for(run_in_threadpool(fn), timeout=self.timeout_seconds)


def _describe(exc: Exception) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "Provider request timed out"
    return str(exc) or exc.__class__.__name__
