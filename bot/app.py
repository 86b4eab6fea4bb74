"""Основной класс приложения для управления ботом."""

import asyncio
from typing import Optional

import discord
from discord.ext import commands
from loguru import logger

from bot.database.manager import DatabaseManager
from bot.dispatcher_setup import setup_dispatcher
from bot.middleware.access_gate import AccessGate
from bot.services.audit_service import AuditService
from bot.services.gemini_service import GeminiService
from bot.services.revocation_service import RevocationScheduler
from bot.services.roblox_service import RobloxService
from bot.services.verification_service import VerificationService
from bot.states.sessions import PendingSessionStore
from bot.utils.commands import set_bot_commands
from config.settings import Settings


class BotApp:
    """
    Основной класс приложения, который инициализирует и координирует
    все компоненты бота: настройки, базу данных, клиента Discord, сервисы.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.bot: Optional[commands.Bot] = None
        self.db_manager: Optional[DatabaseManager] = None
        self.roblox: Optional[RobloxService] = None
        self.gemini: Optional[GeminiService] = None
        self.sessions: Optional[PendingSessionStore] = None
        self.verification_service: Optional[VerificationService] = None
        self.access_gate: Optional[AccessGate] = None
        self.scheduler: Optional[RevocationScheduler] = None
        self._cleanup_task: Optional[asyncio.Task] = None
        self._ready_once = False

    def _setup_bot(self):
        """Инициализирует клиента Discord."""
        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = True

        self.bot = commands.Bot(command_prefix=commands.when_mentioned, intents=intents, help_command=None)
        self.bot.setup_hook = self._setup_hook
        self.bot.add_listener(self.on_ready, "on_ready")
        logger.info("Клиент Discord успешно настроен.")

    async def _setup_database(self):
        """Инициализирует менеджер базы данных."""
        self.db_manager = DatabaseManager(self.settings.DATABASE_PATH)
        await self.db_manager.init_database()

        counts = await self.db_manager.principal_links.count_by_status()
        logger.info(f"База данных готова: {counts or 'нет записей'}")

    def _setup_services(self):
        """Создает сервисы предметной области."""
        self.roblox = RobloxService(
            group_id=self.settings.ROBLOX_GROUP_ID,
            timeout=self.settings.EXTERNAL_TIMEOUT_SECONDS,
            min_request_interval=self.settings.ROBLOX_MIN_REQUEST_INTERVAL,
        )

        api_key = self.settings.get_gemini_api_key()
        if api_key:
            self.gemini = GeminiService(
                api_key=api_key,
                model=self.settings.GEMINI_MODEL,
                system_instruction=self.settings.GEMINI_SYSTEM_INSTRUCTION,
                base_url=self.settings.GEMINI_BASE_URL,
                timeout=self.settings.EXTERNAL_TIMEOUT_SECONDS,
                max_attempts=self.settings.GEMINI_MAX_ATTEMPTS,
                backoff_base=self.settings.GEMINI_BACKOFF_BASE,
            )
        else:
            logger.warning("GEMINI_API_KEY не задан: ответы AI отключены.")

        audit = AuditService(self.db_manager, self.bot, self.settings.LOG_CHANNEL_ID)
        self.sessions = PendingSessionStore(ttl_seconds=self.settings.SESSION_TTL_SECONDS)
        self.verification_service = VerificationService(
            self.db_manager, self.roblox, self.sessions, self.settings, audit=audit
        )
        self.access_gate = AccessGate(self.db_manager, self.settings)
        self.scheduler = RevocationScheduler(self.bot, self.db_manager, self.roblox, self.settings, audit=audit)

    async def _setup_hook(self):
        """Вызывается discord.py перед подключением к gateway."""
        await setup_dispatcher(
            bot=self.bot,
            db_manager=self.db_manager,
            verification_service=self.verification_service,
            access_gate=self.access_gate,
            gemini=self.gemini,
            settings=self.settings,
        )
        logger.info("Диспетчер полностью настроен.")

    async def _periodic_cleanup(self):
        """Периодическая очистка старых логов и просроченных сессий."""
        while True:
            await asyncio.sleep(24 * 60 * 60)
            try:
                deleted_count = await self.db_manager.logs.cleanup_old(
                    self.settings.AUTO_DELETE_LOGS_DAYS
                )
                expired = self.sessions.purge_expired()
                if deleted_count > 0 or expired > 0:
                    logger.info(
                        f"Автоочистка: удалено {deleted_count} старых логов, {expired} просроченных сессий."
                    )
            except Exception as e:
                logger.error(f"Ошибка при автоочистке: {e}")

    async def on_ready(self):
        """Выполняется при подключении к Discord (и после каждого переподключения)."""
        logger.info(f"✅ Бот онлайн: {self.bot.user}")
        if self._ready_once:
            return
        self._ready_once = True

        await set_bot_commands(self.bot, self.settings.GUILD_ID)

        if self.settings.REQUIRE_GROUP_MEMBERSHIP:
            self.scheduler.start()
        else:
            logger.info("Членство в группе не требуется: перепроверка отключена.")

        self._cleanup_task = asyncio.create_task(self._periodic_cleanup())
        logger.info("Периодические задачи запущены.")

    async def on_shutdown(self):
        """Выполняется при остановке бота."""
        logger.info("Остановка бота...")
        if self.scheduler:
            self.scheduler.stop()
        if self._cleanup_task:
            self._cleanup_task.cancel()
        if self.bot and not self.bot.is_closed():
            await self.bot.close()
        if self.roblox:
            await self.roblox.close()
        if self.db_manager:
            await self.db_manager.close()
        logger.info("Все ресурсы освобождены. Бот остановлен.")

    async def run(self):
        """
        Главный метод для запуска бота.

        PersistenceFailure при подготовке БД пробрасывается наружу:
        без рабочей базы бот не запускается.
        """
        try:
            self._setup_bot()
            await self._setup_database()
            self._setup_services()
            await self.bot.start(self.settings.get_bot_token())
        finally:
            await self.on_shutdown()
