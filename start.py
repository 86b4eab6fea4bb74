#!/usr/bin/env python3
"""
Простой запуск Discord-бота верификации Roblox.

Использование:
    python start.py
"""

import asyncio
import sys
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from bot.app import BotApp
from bot.exceptions import PersistenceFailure
from bot.utils.logging_setup import setup_logging
from config.settings import get_settings

project_root = Path(__file__).parent


def main():
    """Основная функция для запуска бота."""
    env_file = project_root / ".env"
    if not env_file.exists():
        logger.warning("Файл .env не найден, настройки читаются только из окружения")

    try:
        settings = get_settings()
    except ValidationError as e:
        logger.critical(f"❌ Ошибка конфигурации:\n{e}")
        sys.exit(1)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    logger.info("🚀 Запуск бота верификации Roblox...")
    logger.info("📋 Для остановки нажмите Ctrl+C")

    try:
        asyncio.run(BotApp(settings).run())
    except PersistenceFailure as e:
        logger.critical(f"💥 База данных недоступна, запуск невозможен: {e}")
        sys.exit(1)
    except (KeyboardInterrupt, SystemExit):
        logger.info("✅ Бот остановлен.")
    except Exception as e:
        logger.opt(exception=e).critical(f"💥 Непредвиденная ошибка: {e}")
        sys.exit(1)


if __name__ == "__main__":
    logger.info(f"Запуск на Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
    if sys.version_info < (3, 10):
        logger.critical("Требуется Python 3.10 или выше.")
        sys.exit(1)
    main()
