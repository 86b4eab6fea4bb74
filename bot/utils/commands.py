"""Синхронизация slash-команд бота с сервером Discord."""
import discord
from discord.ext import commands
from loguru import logger


async def set_bot_commands(bot: commands.Bot, guild_id: int) -> None:
    """
    Регистрирует slash-команды только на целевом сервере.

    Глобальные команды копируются в сервер и затем очищаются,
    чтобы не было дублей в интерфейсе.
    """
    guild = discord.Object(id=guild_id)
    bot.tree.copy_global_to(guild=guild)
    bot.tree.clear_commands(guild=None)

    try:
        await bot.tree.sync()
        logger.info("Глобальные команды бота очищены")
    except discord.HTTPException as e:
        logger.warning(f"Ошибка при очистке команд: {e}")

    try:
        synced = await bot.tree.sync(guild=guild)
        logger.info(f"Команды бота настроены для сервера {guild_id}: {', '.join(c.name for c in synced)}")
    except discord.HTTPException as e:
        logger.error(f"Не удалось установить команды бота: {e}")
