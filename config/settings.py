"""Настройки конфигурации для бота верификации Roblox."""
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Основные настройки приложения."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # 1. Настройки Discord
    DISCORD_TOKEN: SecretStr = Field(..., description="Токен Discord бота")
    GUILD_ID: int = Field(..., description="ID сервера Discord")
    VERIFICATION_CHANNEL_ID: int = Field(..., description="Канал для верификации")
    LOG_CHANNEL_ID: Optional[int] = Field(
        default=None,
        description="Канал для журнала верификаций (необязательно)"
    )
    RESTRICTED_CHANNEL_IDS: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        description="Каналы, где пишут только верифицированные (через запятую в .env)"
    )
    AI_CHANNEL_IDS: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        description="Каналы, где отвечает AI (через запятую в .env)"
    )
    MEMBER_ROLE_ID: int = Field(..., description="Роль после успешной верификации")
    UNVERIFIED_ROLE_ID: int = Field(..., description="Роль для неверифицированных")

    # 2. Настройки Roblox
    ROBLOX_GROUP_ID: int = Field(..., description="ID группы Roblox для проверки членства")
    REQUIRE_GROUP_MEMBERSHIP: bool = Field(
        default=True,
        description="Требовать членство в группе Roblox для верификации"
    )
    ROBLOX_MIN_REQUEST_INTERVAL: float = Field(
        default=1.0,
        description="Минимальный интервал между проверками членства (сек)"
    )
    EXTERNAL_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Таймаут запросов к внешним API (сек)"
    )

    # 3. Настройки верификации
    ADMIN_IDENTIFIER: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Идентификатор администратора для обхода верификации"
    )
    ADMIN_SECRET: Optional[SecretStr] = Field(
        default=None,
        description="Секрет администратора для обхода верификации"
    )
    SESSION_TTL_SECONDS: int = Field(
        default=900,
        description="Время жизни сессии верификации (сек)"
    )
    REVOCATION_INTERVAL_HOURS: float = Field(
        default=12,
        description="Интервал повторной проверки членства (часы)"
    )
    NOTICE_DELETE_AFTER: float = Field(
        default=10,
        description="Через сколько секунд удалять напоминание о верификации"
    )

    # 4. Настройки базы данных
    DATABASE_PATH: str = Field(
        default="database.db",
        description="Путь к файлу SQLite"
    )
    AUTO_DELETE_LOGS_DAYS: int = Field(
        default=30,
        description="Хранить журнал верификаций (дней)"
    )

    # 5. Настройки Gemini
    GEMINI_API_KEY: Optional[SecretStr] = Field(default=None, description="Ключ Gemini API")
    GEMINI_MODEL: str = Field(default="gemini-2.0-flash", description="Модель Gemini")
    GEMINI_BASE_URL: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        description="OpenAI-совместимый endpoint Gemini"
    )
    GEMINI_SYSTEM_INSTRUCTION: str = Field(
        default=(
            "You are a friendly assistant for a Roblox community Discord server. "
            "Keep answers short and helpful."
        ),
        description="Системная инструкция для модели"
    )
    GEMINI_MAX_ATTEMPTS: int = Field(default=3, description="Количество попыток запроса")
    GEMINI_BACKOFF_BASE: float = Field(default=1.0, description="Базовая задержка между попытками (сек)")

    # 6. Логирование
    LOG_LEVEL: str = Field(default="INFO", description="Уровень логирования")
    LOG_FILE: str = Field(default="bot.log", description="Файл логов")

    # Валидаторы
    @field_validator('RESTRICTED_CHANNEL_IDS', 'AI_CHANNEL_IDS', mode='before')
    def parse_ids(cls, value):
        if isinstance(value, int):
            return [value]
        if isinstance(value, str):
            return [int(x.strip()) for x in value.split(',') if x.strip()]
        return value

    @field_validator('LOG_CHANNEL_ID', mode='before')
    def empty_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    # Методы для удобства
    def get_bot_token(self) -> str:
        """Получить токен бота в виде строки."""
        return self.DISCORD_TOKEN.get_secret_value()

    def get_admin_secret(self) -> Optional[str]:
        """Секрет администратора или None, если обход не настроен."""
        if self.ADMIN_SECRET is None:
            return None
        return self.ADMIN_SECRET.get_secret_value()

    def get_gemini_api_key(self) -> Optional[str]:
        if self.GEMINI_API_KEY is None:
            return None
        return self.GEMINI_API_KEY.get_secret_value()

    @property
    def revocation_interval_seconds(self) -> float:
        """Интервал повторной проверки в секундах."""
        return self.REVOCATION_INTERVAL_HOURS * 3600

    @property
    def admin_bypass_enabled(self) -> bool:
        return bool(self.ADMIN_IDENTIFIER) and bool(self.get_admin_secret())


@lru_cache
def get_settings() -> Settings:
    """Настройки процесса (загружаются один раз)."""
    return Settings()
