from typing import Optional

import aiohttp

from ...application.ports.otp_provider import OTPProvider
from ...application.services.config_manager import OtpConfig
from ...config import Settings
from .mock_provider import MockOTPProvider
from .two_factor_provider import TwoFactorOTPProvider
from .twilio_provider import TwilioOTPProvider


class ProviderFactory:
    """Picks the provider for one request from a config snapshot."""

    def __init__(self, settings: Settings, http_session: Optional[aiohttp.ClientSession] = None) -> None:
        self.settings = settings
        self.http_session = http_session

    def __call__(self, config: OtpConfig) -> Optional[OTPProvider]:
        if config.mode == "mock":
            return MockOTPProvider(template_text=config.template_text)
        provider = (config.provider or "").lower()
        if provider == "2factor":
            return TwoFactorOTPProvider(
                api_key=config.api_key,
                sender_id=config.sender_id,
                base_url=self.settings.TWO_FACTOR_BASE_URL,
                timeout_seconds=self.settings.PROVIDER_TIMEOUT_SEC,
                session=self.http_session,
            )
        if provider == "twilio":
            if not self.settings.TWILIO_ACCOUNT_SID or not self.settings.TWILIO_VERIFY_SERVICE_SID:
                return None
            return TwilioOTPProvider(
                account_sid=self.settings.TWILIO_ACCOUNT_SID,
                auth_token=config.api_key,
                verify_service_sid=self.settings.TWILIO_VERIFY_SERVICE_SID,
                timeout_seconds=self.settings.PROVIDER_TIMEOUT_SEC,
            )
        return None

    def unavailable_reason(self, config: OtpConfig) -> str:
        """Operator-facing reason why ``__call__`` returned None for this snapshot."""
        provider = (config.provider or "").lower()
        if provider == "twilio":
            missing = [name for name in ("TWILIO_ACCOUNT_SID", "TWILIO_VERIFY_SERVICE_SID")
                       if not getattr(self.settings, name)]
            if missing:
                return f"Missing {', '.join(missing)}"
        if provider not in ("2factor", "twilio"):
            return f"Unknown SMS provider '{config.provider}'"
        return "Missing provider API key"
