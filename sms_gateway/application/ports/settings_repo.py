from typing import Any, Dict, Optional, Protocol


class SettingsRepository(Protocol):
    async def get(self, category: str, key: str) -> Optional[Dict[str, Any]]:
        ...
