"""Обработка сообщений на сервере: проверка доступа и ответы AI."""
from typing import List, Optional

import discord
from discord.ext import commands
from loguru import logger

from bot.exceptions import ExternalServiceUnavailable
from bot.middleware.access_gate import AccessGate, GateDecision
from bot.services.gemini_service import GeminiService
from config.settings import Settings

DISCORD_MESSAGE_LIMIT = 2000


def split_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """Режет длинный ответ на части не длиннее limit, по возможности по переносам строк."""
    chunks = []
    while len(text) > limit:
        cut = text.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(text[:cut])
        text = text[cut:].lstrip("\n")
    if text:
        chunks.append(text)
    return chunks


class MessagesCog(commands.Cog):
    """
    Модерирует сообщения через AccessGate.

    AI отвечает только на разрешенные сообщения верифицированных
    пользователей в каналах AI_CHANNEL_IDS или при упоминании бота.
    """

    def __init__(self, bot: commands.Bot, access_gate: AccessGate,
                 gemini: Optional[GeminiService], settings: Settings):
        self.bot = bot
        self.access_gate = access_gate
        self.gemini = gemini
        self.settings = settings

    def _wants_ai_reply(self, message: discord.Message) -> bool:
        if self.gemini is None:
            return False
        if message.channel.id in self.settings.AI_CHANNEL_IDS:
            return True
        return self.bot.user is not None and self.bot.user in message.mentions

    def _prompt_from(self, message: discord.Message) -> str:
        text = message.content
        if self.bot.user is not None:
            text = text.replace(self.bot.user.mention, "").replace(f"<@!{self.bot.user.id}>", "")
        return text.strip()

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        try:
            decision = await self.access_gate.enforce(message)
        except Exception as e:
            logger.error(f"Ошибка при проверке доступа для сообщения {message.id}: {e}")
            return

        if decision != GateDecision.ALLOW or not self._wants_ai_reply(message):
            return

        prompt = self._prompt_from(message)
        if not prompt:
            return

        await self.reply_with_ai(message, prompt)

    async def reply_with_ai(self, message: discord.Message, prompt: str) -> None:
        try:
            async with message.channel.typing():
                answer = await self.gemini.generate(prompt)
        except ExternalServiceUnavailable as e:
            logger.warning(f"AI не ответил на сообщение {message.id}: {e}")
            await message.reply("⚠️ I can't answer right now, please try again later.", mention_author=False)
            return

        for chunk in split_message(answer):
            await message.reply(chunk, mention_author=False)
