import json
from typing import Optional, Dict, Any

from passlib.context import CryptContext
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from .....utils import utc_now
from .....db.models import AuthIdentity
from .....application.ports.identity_repo import IdentityRepository, IdentityDto, IdentityStoreError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class SqlIdentityRepository(IdentityRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    def _to_dto(self, rec: AuthIdentity) -> IdentityDto:
        return IdentityDto(
            id=rec.id,
            email=rec.email,
            phone=rec.phone,
            email_confirmed=bool(rec.email_confirmed),
            user_metadata=json.loads(rec.user_metadata or "{}"),
            created_at=rec.created_at,
            updated_at=rec.updated_at,
        )

    async def get_by_phone(self, phone: str) -> Optional[IdentityDto]:
        return await run_in_threadpool(self._get_by_phone, phone)

    async def create(self, email: str, password: str, phone: str,
                     user_metadata: Dict[str, Any], app_metadata: Dict[str, Any]) -> IdentityDto:
        return await run_in_threadpool(self._create, email, password, phone, user_metadata, app_metadata)

    async def update(self, user_id: str, email: Optional[str] = None, password: Optional[str] = None,
                     phone: Optional[str] = None, user_metadata: Optional[Dict[str, Any]] = None,
                     app_metadata: Optional[Dict[str, Any]] = None, email_confirmed: Optional[bool] = None) -> IdentityDto:
        return await run_in_threadpool(self._update, user_id, email, password, phone,
                                       user_metadata, app_metadata, email_confirmed)

    def _get_by_phone(self, phone: str) -> Optional[IdentityDto]:
        try:
            with Session(self.engine) as session:
                rec = session.exec(select(AuthIdentity).where(AuthIdentity.phone == phone)).first()
                return self._to_dto(rec) if rec else None
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"Identity lookup failed: {e.__class__.__name__}") from e

    def _create(self, email, password, phone, user_metadata, app_metadata) -> IdentityDto:
        rec = AuthIdentity(
            email=email,
            phone=phone,
            password_hash=pwd_context.hash(password),
            email_confirmed=True,
            user_metadata=json.dumps(user_metadata),
            app_metadata=json.dumps(app_metadata),
        )
        try:
            with Session(self.engine) as session:
                session.add(rec)
                session.commit()
                session.refresh(rec)
                return self._to_dto(rec)
        except IntegrityError as e:
            raise IdentityStoreError("A user with this email or phone already exists") from e
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"createUser failed: {e.__class__.__name__}") from e

    def _update(self, user_id, email, password, phone, user_metadata, app_metadata, email_confirmed) -> IdentityDto:
        try:
            with Session(self.engine) as session:
                rec = session.get(AuthIdentity, user_id)
                if not rec:
                    raise IdentityStoreError("User not found")
                if email is not None:
                    rec.email = email
                if password is not None:
                    rec.password_hash = pwd_context.hash(password)
                if phone is not None:
                    rec.phone = phone
                if user_metadata is not None:
                    rec.user_metadata = json.dumps(user_metadata)
                if app_metadata is not None:
                    rec.app_metadata = json.dumps(app_metadata)
                if email_confirmed is not None:
                    rec.email_confirmed = email_confirmed
                rec.updated_at = utc_now()
                session.add(rec)
                session.commit()
                session.refresh(rec)
                return self._to_dto(rec)
        except IntegrityError as e:
            raise IdentityStoreError("A user with this email address has already been registered") from e
        except SQLAlchemyError as e:
            raise IdentityStoreError(f"updateUserById failed: {e.__class__.__name__}") from e
