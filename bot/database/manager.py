from pathlib import Path
from typing import Optional

from loguru import logger
import aiosqlite

from bot.database.repositories.log_repository import LogRepository
from bot.database.repositories.principal_link_repository import PrincipalLinkRepository
from bot.exceptions import PersistenceFailure


class DatabaseManager:
    """
    Управление базой данных SQLite и репозиториями.

    Отвечает за инициализацию соединения и создание таблиц,
    а также предоставляет доступ к репозиториям для работы с данными.
    Соединение одно на процесс и используется всеми обработчиками.
    """

    def __init__(self, db_path: str):
        """Инициализация менеджера базы данных."""
        self.db_path = db_path
        self.conn: Optional[aiosqlite.Connection] = None
        self.principal_links: Optional[PrincipalLinkRepository] = None
        self.logs: Optional[LogRepository] = None

    async def init_database(self) -> None:
        """
        Инициализация соединения с базой данных и создание таблиц.

        Raises:
            PersistenceFailure: если БД недоступна или схема не создается.
        """
        try:
            self.conn = await aiosqlite.connect(self.db_path)
            self.conn.row_factory = aiosqlite.Row
            await self._run_sql_scripts()
        except (aiosqlite.Error, OSError) as e:
            logger.critical(f"❌ Не удалось подготовить базу данных {self.db_path}: {e}")
            raise PersistenceFailure(f"schema setup failed: {e}") from e

        self._init_repositories()
        logger.info("База данных и репозитории успешно инициализированы")

    def _init_repositories(self) -> None:
        """Инициализация всех репозиториев."""
        self.principal_links = PrincipalLinkRepository(self.conn)
        self.logs = LogRepository(self.conn)

    async def _run_sql_scripts(self) -> None:
        """
        Выполнение SQL-скриптов для создания таблиц.

        Скрипты читаются из директории bot/database/sql
        и выполняются в алфавитном порядке.
        """
        sql_dir = Path(__file__).parent / "sql"
        scripts = sorted(sql_dir.glob("*.sql"))

        async with self.conn.cursor() as cursor:
            for script_path in scripts:
                try:
                    sql_query = script_path.read_text(encoding="utf-8").strip()
                    await cursor.execute(sql_query)
                except Exception as e:
                    logger.error(f"❌ Ошибка выполнения SQL-скрипта {script_path.name}: {e}")
                    raise

        await self.conn.commit()
        logger.info(f"Инициализация БД завершена: выполнено {len(scripts)} SQL-скриптов")

    async def close(self) -> None:
        """Закрытие соединения с базой данных."""
        if self.conn:
            await self.conn.close()
            self.conn = None
            logger.info("Соединение с базой данных закрыто")
