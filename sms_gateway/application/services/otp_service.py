import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from ..ports.audit_logger import AuditLogger, OtpAttempt
from ..ports.otp_provider import OTPProvider, ProviderResponse
from .config_manager import ConfigManager, OtpConfig
from ...utils import generate_otp, mask_phone, normalize_phone

logger = logging.getLogger(__name__)

OTP_LENGTH = 6
INTERNAL_ERROR = "Internal error"
NOT_CONFIGURED = "SMS provider not configured"
MISSING_API_KEY = "Missing provider API key"


# Flow outcomes
@dataclass(frozen=True)
class Sent:
    request_id: str
    mode: str


@dataclass(frozen=True)
class Verified:
    pass


@dataclass(frozen=True)
class InvalidRequest:
    message: str


@dataclass(frozen=True)
class Disabled:
    message: str


@dataclass(frozen=True)
class Unconfigured:
    message: str = NOT_CONFIGURED


@dataclass(frozen=True)
class ProviderFailure:
    status_code: int
    error: str
    provider_error: Optional[str] = None


SendResult = Union[Sent, InvalidRequest, Disabled, Unconfigured, ProviderFailure]
VerifyResult = Union[Verified, InvalidRequest, Disabled, Unconfigured, ProviderFailure]


def map_provider_failure(response: ProviderResponse, flow: str) -> ProviderFailure:
    """Translate an upstream failure into the caller-facing status and message."""
    code = response.status_code
    message = response.provider_error or "Provider error"
    if code == 429:
        return ProviderFailure(429, "Rate limit exceeded", message)
    if code == 401:
        return ProviderFailure(401, "Authentication failed", message)
    if code == 0:
        return ProviderFailure(500, INTERNAL_ERROR, message)
    status = code if code >= 400 else 400
    if flow == "verify":
        if "expired" in message.lower():
            return ProviderFailure(status, "OTP expired", message)
        return ProviderFailure(status, "Invalid OTP", message)
    return ProviderFailure(status, "Failed to send OTP", message)


class OTPService:
    """Send and verify flows: received -> validated -> completed.

    Nothing is kept between calls; the provider and the audit log hold all state.
    """

    def __init__(self, config_manager: ConfigManager, audit_logger: AuditLogger,
                 provider_factory: Callable[[OtpConfig], Optional[OTPProvider]],
                 otp_generator: Callable[[int], str] = generate_otp) -> None:
        self.config_manager = config_manager
        self.audit_logger = audit_logger
        self.provider_factory = provider_factory
        self.otp_generator = otp_generator

    async def send_otp(self, phone_raw: Optional[str], purpose: str = "login") -> SendResult:
        # received
        phone = normalize_phone(phone_raw)
        if not phone:
            return InvalidRequest("Invalid phone number")

        # validated
        config = await self.config_manager.load_config()
        if not config.send_enabled:
            await self._log(phone, "send", config.provider, "failed", error_code=503, error_message="SMS send disabled")
            return Disabled("SMS send disabled")

        otp = self.otp_generator(OTP_LENGTH)
        last2 = otp[-2:]
        provider = await self._provider_for(config, phone, "send")
        if provider is None:
            return Unconfigured()

        logger.info(f"Sending OTP to {mask_phone(phone)} via {provider.name} (purpose={purpose})")
        response = await provider.send(phone, otp)
        if not response.ok:
            failure = map_provider_failure(response, "send")
            await self._log(phone, "send", provider.name, "failed", request_id=response.request_id or None,
                            error_code=response.status_code or 500, error_message=failure.provider_error,
                            otp_last2=last2)
            return failure

        # completed
        await self._log(phone, "send", provider.name, "sent", request_id=response.request_id, otp_last2=last2)
        return Sent(request_id=response.request_id, mode=config.mode)

    async def verify_otp(self, phone_raw: Optional[str], request_id: Optional[str], otp: Optional[str]) -> VerifyResult:
        # received
        phone = normalize_phone(phone_raw)
        request_id = str(request_id or "").strip()
        otp = str(otp or "").strip()
        if not phone or not request_id or not otp:
            return InvalidRequest("phone, requestId and otp are required")

        # validated
        config = await self.config_manager.load_config()
        if config.mode == "mock":
            await self._log(phone, "verify", "mock", "verified", request_id=request_id)
            return Verified()
        if not config.verify_enabled:
            await self._log(phone, "verify", config.provider, "failed", request_id=request_id,
                            error_code=503, error_message="SMS verify disabled")
            return Disabled("SMS verify disabled")

        provider = await self._provider_for(config, phone, "verify", request_id=request_id)
        if provider is None:
            return Unconfigured()

        response = await provider.verify(phone, request_id, otp)
        if not response.ok:
            failure = map_provider_failure(response, "verify")
            await self._log(phone, "verify", provider.name, "failed", request_id=request_id,
                            error_code=response.status_code or 500, error_message=failure.provider_error)
            return failure

        # completed
        await self._log(phone, "verify", provider.name, "verified", request_id=request_id)
        return Verified()

    async def log_internal_error(self, phone_raw: Optional[str], mode: str, error: Exception,
                                 request_id: Optional[str] = None) -> None:
        """Audit an unexpected failure caught at the HTTP boundary."""
        phone = normalize_phone(phone_raw)
        if not phone:
            return
        await self._log(phone, mode, self.config_manager.snapshot.provider, "failed",
                        request_id=request_id or None, error_code=500, error_message=str(error))

    async def _provider_for(self, config: OtpConfig, phone: str, mode: str,
                            request_id: Optional[str] = None) -> Optional[OTPProvider]:
        provider = None
        if config.mode == "mock" or config.api_key:
            provider = self.provider_factory(config)
        if provider is None:
            reason = MISSING_API_KEY
            if config.api_key:
                describe = getattr(self.provider_factory, "unavailable_reason", None)
                reason = describe(config) if describe else f"SMS provider '{config.provider}' is unavailable"
            logger.error(f"SMS provider '{config.provider}' is not configured: {reason}")
            await self._log(phone, mode, config.provider, "failed", request_id=request_id,
                            error_code=401, error_message=reason)
        return provider

    async def _log(self, phone: str, mode: str, provider: str, status: str, **fields) -> None:
        await self.audit_logger.log(OtpAttempt(phone=phone, mode=mode, provider=provider, status=status, **fields))
