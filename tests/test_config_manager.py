import pytest

from sms_gateway.application.services.config_manager import ConfigManager, OtpConfig
from sms_gateway.config import Settings


class FakeSettingsRepo:
    def __init__(self, record=None, error=None):
        self.record = record
        self.error = error
        self.calls = []

    async def get(self, category, key):
        self.calls.append((category, key))
        if self.error:
            raise self.error
        return self.record


def test_defaults_come_from_settings():
    settings = Settings(SMS_MODE="LIVE", SMS_PROVIDER="2factor", TWO_FACTOR_API_KEY="k", SMS_SENDER_ID="ABCDEF")
    config = OtpConfig.from_settings(settings)
    assert config.mode == "live"
    assert config.api_key == "k"
    assert config.sender_id == "ABCDEF"
    assert config.send_enabled is True and config.verify_enabled is True


def test_unknown_mode_in_settings_falls_back_to_mock():
    assert OtpConfig.from_settings(Settings(SMS_MODE="staging")).mode == "mock"


@pytest.mark.asyncio
async def test_partial_record_only_overrides_present_fields():
    repo = FakeSettingsRepo({"mode": "live", "api_key": "secret"})
    manager = ConfigManager(repo, OtpConfig(sender_id="TXPORT", template_text="OTP {otp}"))

    config = await manager.load_config()

    assert config.mode == "live"
    assert config.api_key == "secret"
    assert config.sender_id == "TXPORT"
    assert config.template_text == "OTP {otp}"
    assert config.send_enabled is True
    assert repo.calls == [("Integrations", "sms_otp_config")]


@pytest.mark.asyncio
async def test_enabled_flags_only_false_disables():
    repo = FakeSettingsRepo({"enabled_send": False, "enabled_verify": None})
    config = await ConfigManager(repo, OtpConfig()).load_config()
    assert config.send_enabled is False
    assert config.verify_enabled is True


@pytest.mark.asyncio
async def test_invalid_mode_in_record_is_ignored():
    repo = FakeSettingsRepo({"mode": "sandbox", "sender_id": "NEWSND"})
    config = await ConfigManager(repo, OtpConfig(mode="mock")).load_config()
    assert config.mode == "mock"
    assert config.sender_id == "NEWSND"


@pytest.mark.asyncio
async def test_empty_api_key_in_record_keeps_env_key():
    repo = FakeSettingsRepo({"api_key": "", "mode": "live"})
    config = await ConfigManager(repo, OtpConfig(api_key="from-env")).load_config()
    assert config.mode == "live"
    assert config.api_key == "from-env"


@pytest.mark.asyncio
async def test_non_empty_api_key_in_record_overrides_env_key():
    repo = FakeSettingsRepo({"api_key": "from-store"})
    config = await ConfigManager(repo, OtpConfig(api_key="from-env")).load_config()
    assert config.api_key == "from-store"


@pytest.mark.asyncio
async def test_load_failure_keeps_current_snapshot():
    repo = FakeSettingsRepo({"mode": "live", "api_key": "k1"})
    manager = ConfigManager(repo, OtpConfig())
    loaded = await manager.load_config()

    repo.error = RuntimeError("settings store unreachable")
    again = await manager.load_config()

    assert again is loaded
    assert manager.snapshot.mode == "live"


@pytest.mark.asyncio
async def test_missing_or_malformed_record_keeps_defaults():
    defaults = OtpConfig()
    manager = ConfigManager(FakeSettingsRepo(None), defaults)
    assert await manager.load_config() is defaults

    manager.settings_repo = FakeSettingsRepo(["not", "an", "object"])
    assert await manager.load_config() is defaults


@pytest.mark.asyncio
async def test_reload_publishes_new_snapshot_without_mutating_old_one():
    repo = FakeSettingsRepo({"mode": "live"})
    manager = ConfigManager(repo, OtpConfig())
    first = await manager.load_config()

    repo.record = {"mode": "mock", "enabled_send": False}
    second = await manager.load_config()

    assert first.mode == "live" and first.send_enabled is True
    assert second.mode == "mock" and second.send_enabled is False
    assert manager.snapshot is second
