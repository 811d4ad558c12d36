import json
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from .....utils import utc_now
from .....db.models import AppSetting
from .....application.ports.settings_repo import SettingsRepository


class SqlSettingsRepository(SettingsRepository):
    def __init__(self, engine: Engine):
        self.engine = engine

    async def get(self, category: str, key: str) -> Optional[Dict[str, Any]]:
        return await run_in_threadpool(self._get, category, key)

    def put(self, category: str, key: str, value: Dict[str, Any]) -> None:
        """Write a whole record; used by seeding scripts and tests."""
        with Session(self.engine) as session:
            rec = session.exec(
                select(AppSetting).where(AppSetting.category == category, AppSetting.setting_key == key)
            ).first()
            if rec is None:
                rec = AppSetting(category=category, setting_key=key)
            rec.setting_json = json.dumps(value)
            rec.updated_at = utc_now()
            session.add(rec)
            session.commit()

    def _get(self, category: str, key: str) -> Optional[Dict[str, Any]]:
        with Session(self.engine) as session:
            rec = session.exec(
                select(AppSetting).where(AppSetting.category == category, AppSetting.setting_key == key)
            ).first()
            if rec is None or not rec.setting_json:
                return None
            return json.loads(rec.setting_json)
