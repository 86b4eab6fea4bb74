"""Клиент Roblox API: поиск аккаунта, описание профиля, членство в группе."""
import asyncio
import time
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp
from loguru import logger

from bot.exceptions import ExternalServiceUnavailable

USERS_API_BASE = "https://users.roblox.com/v1"
GROUPS_API_BASE = "https://groups.roblox.com/v2"


@dataclass(frozen=True)
class IdentityResolution:
    """Результат поиска аккаунта Roblox по имени."""
    exists: bool
    external_id: Optional[str] = None
    username: Optional[str] = None


class RobloxService:
    """
    Тонкая обертка над публичным API Roblox.

    Таймауты, ошибки соединения и ответы не 2xx одинаково превращаются
    в ExternalServiceUnavailable. Проверки членства в группе выполняются
    строго по одной и не чаще min_request_interval.
    """

    def __init__(
        self,
        group_id: int,
        timeout: float = 10.0,
        min_request_interval: float = 1.0,
        session: Optional[aiohttp.ClientSession] = None,
        log=None,
    ):
        self.group_id = group_id
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.min_request_interval = min_request_interval
        self._session = session
        self._owns_session = session is None
        self._membership_lock = asyncio.Lock()
        self._last_membership_call = 0.0
        self.log = log or logger.bind(component="roblox")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Закрывает HTTP-сессию, если она создана этим клиентом."""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        """Выполняет запрос и возвращает JSON-тело ответа."""
        session = await self._get_session()
        try:
            async with session.request(method, url, timeout=self.timeout, **kwargs) as response:
                if response.status // 100 != 2:
                    raise ExternalServiceUnavailable("roblox", f"{method} {url} -> HTTP {response.status}")
                return await response.json()
        except ExternalServiceUnavailable:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ExternalServiceUnavailable("roblox", f"{method} {url}: {e!r}") from e

    async def resolve_identity(self, name: str) -> IdentityResolution:
        """
        Ищет аккаунт Roblox по точному имени (с учетом регистра).

        Args:
            name: Имя аккаунта, введенное пользователем.

        Returns:
            IdentityResolution с exists=False, если аккаунта нет.
        """
        payload = {"usernames": [name], "excludeBannedUsers": True}
        body = await self._request_json("POST", f"{USERS_API_BASE}/usernames/users", json=payload)

        for entry in (body or {}).get("data", []):
            if entry.get("name") == name:
                self.log.debug(f"Аккаунт Roblox '{name}' найден: id={entry.get('id')}")
                return IdentityResolution(exists=True, external_id=str(entry["id"]), username=entry["name"])

        self.log.info(f"Аккаунт Roblox '{name}' не найден")
        return IdentityResolution(exists=False)

    async def fetch_profile_text(self, external_id: str) -> str:
        """Возвращает описание профиля (как есть, без обрезки пробелов)."""
        body = await self._request_json("GET", f"{USERS_API_BASE}/users/{external_id}")
        return (body or {}).get("description") or ""

    async def check_group_membership(self, external_id: str) -> bool:
        """Проверяет, состоит ли аккаунт в настроенной группе Roblox."""
        async with self._membership_lock:
            wait = self.min_request_interval - (time.monotonic() - self._last_membership_call)
            if wait > 0:
                await asyncio.sleep(wait)
            try:
                body = await self._request_json("GET", f"{GROUPS_API_BASE}/users/{external_id}/groups/roles")
            finally:
                self._last_membership_call = time.monotonic()

        for entry in (body or {}).get("data", []):
            group = entry.get("group") or {}
            if str(group.get("id")) == str(self.group_id):
                return True
        return False
