"""Журнал событий верификации: таблица verification_logs и канал логов Discord."""
from typing import Optional

import discord
from loguru import logger

from bot.database.manager import DatabaseManager
from bot.database.models.verification_log import VerificationEvent, VerificationLog
from bot.exceptions import PersistenceFailure

ANNOUNCED_EVENTS = {
    VerificationEvent.VERIFIED: ("✅ Verified", discord.Color.green()),
    VerificationEvent.ADMIN_OVERRIDE: ("🛡️ Admin override", discord.Color.blurple()),
    VerificationEvent.UNVERIFIED: ("↩️ Unverified", discord.Color.light_grey()),
    VerificationEvent.REVOKED: ("⚠️ Verification revoked", discord.Color.orange()),
}


class AuditService:
    """Сохраняет события верификации и дублирует важные из них в канал логов."""

    def __init__(self, db_manager: DatabaseManager, client: Optional[discord.Client] = None,
                 log_channel_id: Optional[int] = None):
        self.db_manager = db_manager
        self.client = client
        self.log_channel_id = log_channel_id

    async def record(
        self,
        chat_user_id: str,
        event: VerificationEvent,
        external_username: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        """Записывает событие. Ошибки журнала не прерывают основной поток."""
        try:
            await self.db_manager.logs.add(
                VerificationLog(
                    chat_user_id=chat_user_id,
                    event=event,
                    external_username=external_username,
                    details=details,
                )
            )
        except PersistenceFailure as e:
            logger.warning(f"Не удалось записать событие {event.value} для {chat_user_id}: {e}")

        if event in ANNOUNCED_EVENTS:
            await self._announce(chat_user_id, event, external_username, details)

    async def _announce(self, chat_user_id: str, event: VerificationEvent,
                        external_username: Optional[str], details: Optional[str]) -> None:
        if not self.client or not self.log_channel_id:
            return

        channel = self.client.get_channel(self.log_channel_id)
        if channel is None:
            logger.debug(f"Канал логов {self.log_channel_id} недоступен")
            return

        title, color = ANNOUNCED_EVENTS[event]
        embed = discord.Embed(title=title, color=color)
        embed.add_field(name="User", value=f"<@{chat_user_id}>", inline=True)
        if external_username:
            embed.add_field(name="Roblox", value=external_username, inline=True)
        if details:
            embed.add_field(name="Details", value=details[:1024], inline=False)

        try:
            await channel.send(embed=embed)
        except discord.HTTPException as e:
            logger.warning(f"Не удалось отправить событие в канал логов: {e}")
