"""Настройка loguru и перенаправление стандартного logging (discord.py, aiohttp)."""
import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    """Передает записи стандартного logging в loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", log_file: str | None = "bot.log") -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)
    if log_file:
        logger.add(log_file, level="DEBUG", rotation="10 MB", retention=1)

    logging.basicConfig(handlers=[InterceptHandler()], level=logging.INFO, force=True)
    logging.getLogger("discord.http").setLevel(logging.WARNING)
