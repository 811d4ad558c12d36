import logging
from dataclasses import dataclass, replace
from typing import Any, Dict

from ..ports.settings_repo import SettingsRepository
from ...config import Settings

logger = logging.getLogger(__name__)

MODES = ("mock", "live")


@dataclass(frozen=True)
class OtpConfig:
    provider: str = "2factor"
    mode: str = "mock"
    api_key: str = ""
    sender_id: str = "TXPORT"
    template_text: str = "Your OTP is {otp}."
    send_enabled: bool = True
    verify_enabled: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "OtpConfig":
        mode = (settings.SMS_MODE or "mock").lower()
        return cls(
            provider=settings.SMS_PROVIDER,
            mode=mode if mode in MODES else "mock",
            api_key=settings.TWO_FACTOR_API_KEY,
            sender_id=settings.SMS_SENDER_ID,
            template_text=settings.SMS_TEMPLATE,
        )

    def merged(self, record: Dict[str, Any]) -> "OtpConfig":
        """Copy with the fields present in a stored record applied."""
        changes: Dict[str, Any] = {}
        if record.get("provider"):
            changes["provider"] = str(record["provider"])
        if record.get("mode"):
            mode = str(record["mode"]).lower()
            if mode in MODES:
                changes["mode"] = mode
            else:
                logger.warning(f"Ignoring unknown SMS mode in settings store: {mode}")
        if record.get("api_key"):
            changes["api_key"] = str(record["api_key"])
        if record.get("sender_id"):
            changes["sender_id"] = str(record["sender_id"])
        if record.get("template_text"):
            changes["template_text"] = str(record["template_text"])
        if "enabled_send" in record:
            changes["send_enabled"] = record["enabled_send"] is not False
        if "enabled_verify" in record:
            changes["verify_enabled"] = record["enabled_verify"] is not False
        return replace(self, **changes)


class ConfigManager:
    """Holds the current OtpConfig snapshot.

    Readers get a whole immutable snapshot; a reload builds a new one and
    publishes it with a single reference assignment.
    """

    def __init__(self, settings_repo: SettingsRepository, defaults: OtpConfig,
                 category: str = "Integrations", key: str = "sms_otp_config") -> None:
        self.settings_repo = settings_repo
        self.category = category
        self.key = key
        self._snapshot = defaults

    @property
    def snapshot(self) -> OtpConfig:
        return self._snapshot

    async def load_config(self) -> OtpConfig:
        """Refresh from the settings store; on failure keep the current snapshot."""
        current = self._snapshot
        try:
            record = await self.settings_repo.get(self.category, self.key)
        except Exception as e:
            logger.warning(f"SMS config load failed, using current snapshot: {e}")
            return current
        if not record:
            return current
        if not isinstance(record, dict):
            logger.warning("SMS config record is not an object, ignoring it")
            return current
        updated = current.merged(record)
        self._snapshot = updated
        return updated
