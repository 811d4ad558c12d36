import json
import logging

from sqlalchemy.engine import Engine
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from ...application.ports.audit_logger import AuditLogger, OtpAttempt
from ...db.models import OtpLog
from ...utils import mask_phone, utc_now


class SqlAuditLogger(AuditLogger):
    """Appends OTP attempts to ``otp_logs``.

    Writes are best-effort: a failed insert is logged and counted in
    ``failures`` but never raised to the caller.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.failures = 0
        self._logger = logging.getLogger(__name__)

    async def log(self, attempt: OtpAttempt) -> None:
        entry = attempt.to_dict()
        entry["phone"] = mask_phone(attempt.phone)
        entry["timestamp"] = utc_now().isoformat()
        self._logger.info(f"AUDIT: {json.dumps(entry)}")
        try:
            await run_in_threadpool(self._insert, attempt)
        except Exception as e:
            self.failures += 1
            self._logger.error(f"Failed to write OTP audit record ({self.failures} so far): {e}")

    def _insert(self, attempt: OtpAttempt) -> None:
        with Session(self.engine) as session:
            session.add(OtpLog(**attempt.to_dict()))
            session.commit()
