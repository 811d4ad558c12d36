import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from ...application.ports.otp_provider import OTPProvider, ProviderResponse
from ...utils import mask_phone

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Provider request timed out"


def _seg(value: str) -> str:
    return quote(str(value), safe="")


class TwoFactorOTPProvider(OTPProvider):
    """2Factor.in SMS OTP API.

    Send:   GET {base}/{api_key}/SMS/{phone}/{otp}/{sender_id}
    Verify: GET {base}/{api_key}/SMS/VERIFY/{request_id}/{otp}

    Responses are JSON ``{"Status": "Success"|"Error", "Details": ...}``; on a
    successful send ``Details`` carries the session id used as request id.
    """

    name = "2factor"

    def __init__(self, api_key: str, sender_id: str, base_url: str = "https://2factor.in/API/V1",
                 timeout_seconds: float = 10.0, session: Optional[aiohttp.ClientSession] = None) -> None:
        self.api_key = api_key
        self.sender_id = sender_id
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.session = session

    async def send(self, phone: str, otp_code: str) -> ProviderResponse:
        url = f"{self.base_url}/{_seg(self.api_key)}/SMS/{_seg(phone)}/{_seg(otp_code)}/{_seg(self.sender_id)}"
        status, body = await self._get(url)
        ok = 200 <= status < 300 and str(body.get("Status", "")).lower() == "success"
        details = str(body.get("Details") or "")
        if ok:
            return ProviderResponse(ok=True, request_id=details, status_code=status)
        logger.warning(f"2factor send failed for {mask_phone(phone)}: status={status} details={details}")
        return ProviderResponse(ok=False, request_id=details, status_code=status,
                                provider_error=details or "Provider error")

    async def verify(self, phone: str, request_id: str, otp_code: str) -> ProviderResponse:
        url = f"{self.base_url}/{_seg(self.api_key)}/SMS/VERIFY/{_seg(request_id)}/{_seg(otp_code)}"
        status, body = await self._get(url)
        ok = 200 <= status < 300 and str(body.get("Status", "")).lower() == "success"
        details = str(body.get("Details") or "")
        if ok:
            return ProviderResponse(ok=True, request_id=request_id, status_code=status)
        logger.warning(f"2factor verify failed for {mask_phone(phone)}: status={status} details={details}")
        return ProviderResponse(ok=False, request_id=request_id, status_code=status,
                                provider_error=details or "Provider error")

    async def _get(self, url: str) -> tuple[int, Dict[str, Any]]:
        """Issue the GET; timeouts and transport errors come back as status 0."""
        try:
            if self.session is not None:
                return await self._fetch(self.session, url)
            async with aiohttp.ClientSession() as session:
                return await self._fetch(session, url)
        except asyncio.TimeoutError:
            return 0, {"Details": TIMEOUT_MESSAGE}
        except aiohttp.ClientError as e:
            return 0, {"Details": str(e) or e.__class__.__name__}

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> tuple[int, Dict[str, Any]]:
        async with session.get(url, timeout=self.timeout) as response:
            try:
                body = await response.json(content_type=None)
            except (aiohttp.ContentTypeError, ValueError):
                body = {}
            if not isinstance(body, dict):
                body = {}
            return response.status, body
