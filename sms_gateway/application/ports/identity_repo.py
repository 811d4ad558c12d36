from typing import Protocol, Optional, Dict, Any
from datetime import datetime


class IdentityStoreError(Exception):
    """Raised by identity/profile stores when a read or write fails."""


class IdentityDto:
    def __init__(self, id: str, email: str, phone: Optional[str], email_confirmed: bool,
                 user_metadata: Dict[str, Any], created_at: datetime, updated_at: datetime):
        self.id = id
        self.email = email
        self.phone = phone
        self.email_confirmed = email_confirmed
        self.user_metadata = user_metadata
        self.created_at = created_at
        self.updated_at = updated_at


class ProfileDto:
    def __init__(self, id: str, name: Optional[str], email: Optional[str], phone: Optional[str],
                 role: str, status: str, position: Optional[str] = None):
        self.id = id
        self.name = name
        self.email = email
        self.phone = phone
        self.role = role
        self.status = status
        self.position = position


class IdentityRepository(Protocol):
    async def get_by_phone(self, phone: str) -> Optional[IdentityDto]:
        ...

    async def create(self, email: str, password: str, phone: str,
                     user_metadata: Dict[str, Any], app_metadata: Dict[str, Any]) -> IdentityDto:
        ...

    async def update(self, user_id: str, email: Optional[str] = None, password: Optional[str] = None,
                     phone: Optional[str] = None, user_metadata: Optional[Dict[str, Any]] = None,
                     app_metadata: Optional[Dict[str, Any]] = None, email_confirmed: Optional[bool] = None) -> IdentityDto:
        ...


class ProfileRepository(Protocol):
    async def upsert(self, profile: ProfileDto) -> None:
        ...

    async def update_email(self, user_id: str, email: str) -> None:
        ...
