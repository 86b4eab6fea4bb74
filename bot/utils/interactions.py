"""Вспомогательные функции для ответов на interaction в Discord."""
from typing import Optional

import discord
from loguru import logger

from bot.exceptions import BotError, PersistenceFailure, VerificationError

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


async def send_ephemeral(
    interaction: discord.Interaction,
    content: Optional[str] = None,
    *,
    embed: Optional[discord.Embed] = None,
    view: Optional[discord.ui.View] = None,
) -> None:
    """Скрытый ответ: первый через response, последующие через followup."""
    kwargs = {"content": content, "ephemeral": True}
    if embed is not None:
        kwargs["embed"] = embed
    if view is not None:
        kwargs["view"] = view

    if interaction.response.is_done():
        await interaction.followup.send(**kwargs)
    else:
        await interaction.response.send_message(**kwargs)


async def reply_with_error(interaction: discord.Interaction, error: Exception, action: str) -> None:
    """
    Отвечает пользователю понятным сообщением об ошибке.

    Трассировки остаются только в логе.
    """
    user_id = interaction.user.id if interaction.user else "unknown"

    if isinstance(error, VerificationError):
        logger.info(f"{action}: {error.__class__.__name__} для {user_id}")
        content = error.user_message
    elif isinstance(error, PersistenceFailure):
        logger.error(f"{action}: ошибка БД для {user_id}: {error}")
        content = error.user_message
    elif isinstance(error, BotError):
        logger.warning(f"{action}: {error} (пользователь {user_id})")
        content = error.user_message
    else:
        logger.opt(exception=error).error(f"{action}: непредвиденная ошибка для {user_id}")
        content = GENERIC_ERROR_MESSAGE

    try:
        await send_ephemeral(interaction, content)
    except discord.HTTPException as e:
        logger.error(f"Не удалось отправить сообщение об ошибке пользователю {user_id}: {e}")
