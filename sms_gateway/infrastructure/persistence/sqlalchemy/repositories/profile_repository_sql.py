from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from .....utils import utc_now
from .....db.models import Profile
from .....application.ports.identity_repo import ProfileRepository, ProfileDto, IdentityStoreError


class SqlProfileRepository(ProfileRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    async def upsert(self, profile: ProfileDto) -> None:
        await run_in_threadpool(self._upsert, profile)

    async def update_email(self, user_id: str, email: str) -> None:
        await run_in_threadpool(self._update_email, user_id, email)

    def _upsert(self, profile: ProfileDto) -> None:
        # Keyed by identity id, so repeating the call converges on one row
        try:
            with Session(self.engine) as session:
                rec = session.get(Profile, profile.id)
                if rec is None:
                    rec = Profile(id=profile.id)
                rec.name = profile.name
                rec.email = profile.email
                rec.phone = profile.phone
                rec.role = profile.role
                rec.status = profile.status
                rec.position = profile.position
                rec.updated_at = utc_now()
                session.add(rec)
                session.commit()
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"Profile upsert failed: {e.__class__.__name__}") from e

    def _update_email(self, user_id: str, email: str) -> None:
        try:
            with Session(self.engine) as session:
                rec = session.get(Profile, user_id)
                if rec is None:
                    raise IdentityStoreError("Profile not found")
                rec.email = email
                rec.updated_at = utc_now()
                session.add(rec)
                session.commit()
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"Profile update failed: {e.__class__.__name__}") from e
