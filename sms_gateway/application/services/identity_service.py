import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from ..ports.identity_repo import IdentityRepository, ProfileRepository, ProfileDto, IdentityStoreError
from ...utils import alias_email_for, generate_password, mask_phone, national_digits, normalize_phone

logger = logging.getLogger(__name__)

AGENT_ROLE = "agent"
EMAIL_PATTERN = re.compile(r".+@.+\..+")


@dataclass(frozen=True)
class ProvisionedIdentity:
    email: str
    password: str
    user_id: str


@dataclass(frozen=True)
class ProvisioningError:
    error: str
    status_code: int = 500


@dataclass(frozen=True)
class EmailUpdated:
    email: str


@dataclass(frozen=True)
class EmailUpdateError:
    status_code: int
    error: str


@dataclass
class IdentityService:
    identity_repo: IdentityRepository
    profile_repo: ProfileRepository
    alias_domain: str = "mobile.local"
    password_length: int = 14
    profile_attempts: int = 2

    async def ensure_agent_identity(self, phone_raw: Optional[str],
                                    display_name: Optional[str] = None) -> Union[ProvisionedIdentity, ProvisioningError]:
        """Create or refresh the agent identity for a phone.

        The password is rotated on every call. Store failures are returned as
        ``ProvisioningError`` rather than raised.
        """
        phone = normalize_phone(phone_raw)
        if not phone:
            return ProvisioningError("Invalid phone number", status_code=400)

        email = alias_email_for(phone, self.alias_domain)
        password = generate_password(self.password_length)
        name = (display_name or "").strip() or f"Agent {national_digits(phone)[-4:]}"
        user_metadata = {"role": AGENT_ROLE, "phone": phone, "name": name}
        app_metadata = {"role": AGENT_ROLE}

        try:
            existing = await self.identity_repo.get_by_phone(phone)
            if existing:
                identity = await self.identity_repo.update(
                    existing.id,
                    email=email,
                    password=password,
                    phone=phone,
                    user_metadata=user_metadata,
                    app_metadata=app_metadata,
                    email_confirmed=True,
                )
                logger.info(f"Refreshed agent identity {identity.id} for {mask_phone(phone)}")
            else:
                identity = await self.identity_repo.create(
                    email=email,
                    password=password,
                    phone=phone,
                    user_metadata=user_metadata,
                    app_metadata=app_metadata,
                )
                logger.info(f"Created agent identity {identity.id} for {mask_phone(phone)}")
        except IdentityStoreError as e:
            logger.error(f"Agent identity write failed for {mask_phone(phone)}: {e}")
            return ProvisioningError(str(e) or "User creation error")

        profile = ProfileDto(
            id=identity.id,
            name=name,
            email=email,
            phone=phone,
            role=AGENT_ROLE,
            status="active",
            position="Agent",
        )
        error = await self._upsert_profile(profile)
        if error:
            # The identity stays; the next provisioning call repairs the profile
            logger.error(f"Profile upsert failed for identity {identity.id}: {error}")
            return ProvisioningError(error)

        return ProvisionedIdentity(email=email, password=password, user_id=identity.id)

    async def _upsert_profile(self, profile: ProfileDto) -> Optional[str]:
        error = None
        for attempt in range(1, self.profile_attempts + 1):
            try:
                await self.profile_repo.upsert(profile)
                return None
            except IdentityStoreError as e:
                error = str(e) or "Profile upsert failed"
                logger.warning(f"Profile upsert attempt {attempt} failed for {profile.id}: {error}")
        return error

    async def update_email(self, user_id: Optional[str], new_email: Optional[str]) -> Union[EmailUpdated, EmailUpdateError]:
        user_id = str(user_id or "").strip()
        if not user_id or not new_email:
            return EmailUpdateError(400, "userId and newEmail required")
        email = str(new_email).strip().lower()
        if not EMAIL_PATTERN.fullmatch(email):
            return EmailUpdateError(400, "Invalid email format")

        try:
            await self.identity_repo.update(user_id, email=email, email_confirmed=True)
        except IdentityStoreError as e:
            return EmailUpdateError(409, str(e) or "Update failed")

        try:
            await self.profile_repo.update_email(user_id, email)
        except IdentityStoreError as e:
            logger.warning(f"Identity {user_id} email changed but profile sync failed: {e}")
            return EmailUpdateError(500, str(e) or "Profile update failed")

        return EmailUpdated(email=email)
