"""
Настройка и регистрация всех обработчиков и постоянных компонентов бота.
"""
from typing import TYPE_CHECKING, Optional

from discord.ext import commands
from loguru import logger

from bot.handlers import AdminCog, AgreeView, MessagesCog, ProofView, VerificationCog

if TYPE_CHECKING:
    from bot.database.manager import DatabaseManager
    from bot.middleware.access_gate import AccessGate
    from bot.services.gemini_service import GeminiService
    from bot.services.verification_service import VerificationService
    from config.settings import Settings


async def setup_dispatcher(
    bot: commands.Bot,
    db_manager: "DatabaseManager",
    verification_service: "VerificationService",
    access_gate: "AccessGate",
    gemini: Optional["GeminiService"],
    settings: "Settings",
) -> None:
    """
    Регистрирует cog'и и постоянные (переживающие перезапуск) кнопки.

    Args:
        bot: Экземпляр commands.Bot.
        db_manager: Менеджер базы данных.
        verification_service: Машина состояний верификации.
        access_gate: Проверка доступа к чату.
        gemini: Сервис AI или None, если ключ не настроен.
        settings: Конфигурация бота.
    """
    await bot.add_cog(VerificationCog(bot, verification_service))
    await bot.add_cog(AdminCog(bot, verification_service, db_manager.logs, settings))
    await bot.add_cog(MessagesCog(bot, access_gate, gemini, settings))

    bot.add_view(AgreeView(verification_service))
    bot.add_view(ProofView(verification_service))

    logger.info("Все обработчики успешно зарегистрированы.")
