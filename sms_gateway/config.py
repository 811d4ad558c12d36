#config.py
import os
from pydantic_settings import BaseSettings
from pydantic import Field
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True)
    # Application Settings
    APP_NAME: str = "sms-otp-gateway"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True  # Can disable in production

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = Field(default=3005, alias="SMS_SERVER_PORT")

    # Database Settings (settings store, identity/profile store, audit sink)
    DATABASE_URL: str = "sqlite:///./sms_gateway.db"
    REDIS_URL: Optional[str] = None

    # SMS / OTP defaults, overridden at runtime by the settings store record
    SMS_MODE: str = "mock"
    SMS_PROVIDER: str = "2factor"
    TWO_FACTOR_API_KEY: str = ""
    TWO_FACTOR_BASE_URL: str = "https://2factor.in/API/V1"
    SMS_SENDER_ID: str = "TXPORT"
    SMS_TEMPLATE: str = "Your OTP is {otp}."
    PROVIDER_TIMEOUT_SEC: float = 10.0

    # Twilio Verify (used when the active provider is "twilio")
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_VERIFY_SERVICE_SID: str = ""

    # Settings store record holding the runtime SMS config
    SETTINGS_CATEGORY: str = "Integrations"
    SETTINGS_KEY: str = "sms_otp_config"

    # Phone / identity
    DEFAULT_COUNTRY_CODE: str = "91"
    ALIAS_EMAIL_DOMAIN: str = "mobile.local"

    # CORS Settings (accept comma-separated strings to avoid JSON parsing in env)
    FRONTEND_URL: str = ""
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"
    ALLOWED_ORIGIN_REGEX: str = r"^http://localhost:\d+$"

    # Request body cap
    MAX_BODY_SIZE: int = 1024 * 1024  # 1MB

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Rate Limiting
    RATE_LIMIT_WINDOW_SEC: int = 900  # 15 min, per client IP
    RATE_LIMIT_MAX_REQUESTS: int = 200
    OTP_RATE_LIMIT_WINDOW_SEC: int = 600  # 10 min, per phone
    OTP_RATE_LIMIT_MAX_REQUESTS: int = 5
    RATE_LIMIT_MAX_KEYS: int = 10000

    # Accept comma-separated strings for list envs in addition to JSON arrays
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def allowed_origins_list(self) -> List[str]:
        origins = self._split_csv(self.ALLOWED_ORIGINS)
        if self.FRONTEND_URL and self.FRONTEND_URL not in origins:
            origins.append(self.FRONTEND_URL)
        return origins


@lru_cache()
def get_settings() -> Settings:
    s = Settings()
    # Normalize ALLOWED_ORIGINS if provided as comma-separated string env var CORS_ORIGINS
    cors_env = os.environ.get("CORS_ORIGINS")
    if cors_env:
        s.ALLOWED_ORIGINS = cors_env
    return s

settings: Settings = get_settings()
