"""Проверка доступа к чату для каждого входящего сообщения."""
import asyncio
from enum import Enum
from typing import Set

import discord
from loguru import logger

from bot.database.manager import DatabaseManager
from config.settings import Settings


class GateDecision(str, Enum):
    """ALLOW - верифицированный, EXEMPT - неверифицированный модератор,
    OPEN - неверифицированный в открытом канале."""
    IGNORE = "ignore"
    DELETE = "delete"
    ALLOW = "allow"
    OPEN = "open"
    EXEMPT = "exempt"
    BLOCK = "block"


class AccessGate:
    """
    Политика доступа к чату на основе статуса верификации.

    Статус читается из БД на каждое сообщение, без кэша: он может
    измениться между двумя сообщениями.
    """

    def __init__(self, db_manager: DatabaseManager, settings: Settings, log=None):
        self.db_manager = db_manager
        self.settings = settings
        self.log = log or logger.bind(component="access_gate")
        self._pending_removals: Set[asyncio.Task] = set()

    async def evaluate(self, message: discord.Message) -> GateDecision:
        """Решение для сообщения без побочных эффектов."""
        if message.author.bot or message.guild is None:
            return GateDecision.IGNORE

        channel_id = message.channel.id

        if channel_id == self.settings.VERIFICATION_CHANNEL_ID:
            return GateDecision.DELETE

        link = await self.db_manager.principal_links.get(str(message.author.id))
        if link and link.is_verified:
            return GateDecision.ALLOW

        permissions = getattr(message.author, "guild_permissions", None)
        if permissions is not None and permissions.manage_guild:
            return GateDecision.EXEMPT

        if channel_id in self.settings.RESTRICTED_CHANNEL_IDS:
            return GateDecision.BLOCK

        return GateDecision.OPEN

    async def enforce(self, message: discord.Message) -> GateDecision:
        """Применяет решение: удаляет сообщение и при необходимости показывает напоминание."""
        decision = await self.evaluate(message)

        if decision == GateDecision.DELETE:
            await self._delete(message)
        elif decision == GateDecision.BLOCK:
            await self._delete(message)
            await self._post_redirect_notice(message)
            self.log.info(
                f"🚫 Заблокировано сообщение неверифицированного {message.author.id} в канале {message.channel.id}"
            )

        return decision

    async def _delete(self, message: discord.Message) -> None:
        try:
            await message.delete()
        except discord.NotFound:
            pass
        except discord.HTTPException as e:
            self.log.error(f"Не удалось удалить сообщение {message.id} от {message.author.id}: {e}")

    def _verification_url(self, guild_id: int) -> str:
        return f"https://discord.com/channels/{guild_id}/{self.settings.VERIFICATION_CHANNEL_ID}"

    async def _post_redirect_notice(self, message: discord.Message) -> None:
        view = discord.ui.View()
        view.add_item(
            discord.ui.Button(
                label="📝 Go to Registration",
                style=discord.ButtonStyle.link,
                url=self._verification_url(message.guild.id),
            )
        )
        try:
            notice = await message.channel.send(
                content=f"{message.author.mention}, please verify your Roblox account before chatting here.",
                view=view,
            )
        except discord.HTTPException as e:
            self.log.error(f"Не удалось отправить напоминание в канал {message.channel.id}: {e}")
            return

        task = asyncio.create_task(self._remove_later(notice, self.settings.NOTICE_DELETE_AFTER))
        self._pending_removals.add(task)
        task.add_done_callback(self._pending_removals.discard)

    async def _remove_later(self, notice: discord.Message, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await notice.delete()
        except discord.HTTPException:
            # уже удалено вручную
            pass

    async def wait_for_pending_removals(self) -> None:
        """Ожидает удаления всех напоминаний (используется при остановке)."""
        if self._pending_removals:
            await asyncio.gather(*self._pending_removals, return_exceptions=True)
