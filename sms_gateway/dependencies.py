import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp
from fastapi import Request
from sqlalchemy.engine import Engine
from starlette.concurrency import run_in_threadpool

from .application.ports.audit_logger import AuditLogger
from .application.ports.rate_limiter import RateLimiter
from .application.services.config_manager import ConfigManager, OtpConfig
from .application.services.identity_service import IdentityService
from .application.services.otp_service import OTPService
from .config import Settings
from .database import build_engine, create_db_and_tables
from .exceptions import APIException
from .infrastructure.audit.sql_audit_logger import SqlAuditLogger
from .infrastructure.otp.provider_factory import ProviderFactory
from .infrastructure.persistence.sqlalchemy.repositories.identity_repository_sql import SqlIdentityRepository
from .infrastructure.persistence.sqlalchemy.repositories.profile_repository_sql import SqlProfileRepository
from .infrastructure.persistence.sqlalchemy.repositories.settings_repository_sql import SqlSettingsRepository
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .middleware import client_ip
from .utils import mask_phone, normalize_phone

logger = logging.getLogger(__name__)


@dataclass
class Container:
    """Process-wide collaborators, stored on ``app.state.container``."""
    settings: Settings
    config_manager: ConfigManager
    otp_service: OTPService
    identity_service: IdentityService
    audit_logger: AuditLogger
    ip_rate_limiter: RateLimiter
    otp_rate_limiter: RateLimiter
    engine: Optional[Engine] = None
    provider_factory: Optional[ProviderFactory] = None

    async def startup(self) -> None:
        if self.engine is not None:
            await run_in_threadpool(create_db_and_tables, self.engine)
        if self.provider_factory is not None and self.provider_factory.http_session is None:
            self.provider_factory.http_session = aiohttp.ClientSession()

    async def shutdown(self) -> None:
        if self.provider_factory is not None and self.provider_factory.http_session is not None:
            await self.provider_factory.http_session.close()
            self.provider_factory.http_session = None
        for limiter in (self.ip_rate_limiter, self.otp_rate_limiter):
            close = getattr(limiter, "close", None)
            if close is not None:
                await close()


def build_rate_limiter(settings: Settings) -> RateLimiter:
    if settings.REDIS_URL:
        from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(settings.REDIS_URL)
    logger.info("Using memory-based rate limiting")
    return InMemoryRateLimiter(max_keys=settings.RATE_LIMIT_MAX_KEYS)


def build_container(settings: Settings, engine: Optional[Engine] = None) -> Container:
    engine = engine or build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    config_manager = ConfigManager(
        settings_repo=SqlSettingsRepository(engine),
        defaults=OtpConfig.from_settings(settings),
        category=settings.SETTINGS_CATEGORY,
        key=settings.SETTINGS_KEY,
    )
    audit_logger = SqlAuditLogger(engine)
    provider_factory = ProviderFactory(settings)
    return Container(
        settings=settings,
        config_manager=config_manager,
        otp_service=OTPService(config_manager, audit_logger, provider_factory),
        identity_service=IdentityService(
            identity_repo=SqlIdentityRepository(engine),
            profile_repo=SqlProfileRepository(engine),
            alias_domain=settings.ALIAS_EMAIL_DOMAIN,
        ),
        audit_logger=audit_logger,
        ip_rate_limiter=build_rate_limiter(settings),
        otp_rate_limiter=build_rate_limiter(settings),
        engine=engine,
        provider_factory=provider_factory,
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_otp_service(request: Request) -> OTPService:
    return get_container(request).otp_service


def get_identity_service(request: Request) -> IdentityService:
    return get_container(request).identity_service


def get_config_manager(request: Request) -> ConfigManager:
    return get_container(request).config_manager


async def otp_rate_limit(request: Request) -> None:
    """Per-phone limit for OTP send/verify, falling back to the client IP."""
    container = get_container(request)
    phone = ""
    try:
        body = await request.json()
        if isinstance(body, dict) and body.get("phone") is not None:
            phone = normalize_phone(str(body["phone"]))
    except ValueError:
        pass
    if not phone:
        phone = normalize_phone(request.query_params.get("phone"))
    key = f"otp:{phone}" if phone else f"otp:{client_ip(request)}"
    allowed = await container.otp_rate_limiter.allow(
        key,
        container.settings.OTP_RATE_LIMIT_MAX_REQUESTS,
        container.settings.OTP_RATE_LIMIT_WINDOW_SEC,
    )
    if not allowed:
        logger.warning(f"OTP rate limit exceeded for {mask_phone(phone) or client_ip(request)}")
        raise APIException(status_code=429, detail="Too many OTP requests, please try again later.")
