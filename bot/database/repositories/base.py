"""Базовый класс для всех репозиториев."""

import aiosqlite

from bot.exceptions import PersistenceFailure


class BaseRepository:
    """Базовый класс репозитория.

    Все ошибки драйвера превращаются в PersistenceFailure.
    """

    def __init__(self, conn: aiosqlite.Connection):
        """
        Инициализация репозитория.

        :param conn: Соединение с базой данных.
        """
        self.conn = conn

    async def execute(self, query: str, parameters=None):
        """Выполнение SQL запроса."""
        if parameters is None:
            parameters = ()
        try:
            async with self.conn.execute(query, parameters) as cursor:
                await self.conn.commit()
                return cursor
        except (aiosqlite.Error, ValueError) as e:
            raise PersistenceFailure(f"execute failed: {e}") from e

    async def fetchone(self, query: str, parameters=None):
        """Выполнение SQL запроса и получение одной записи."""
        if parameters is None:
            parameters = ()
        try:
            async with self.conn.execute(query, parameters) as cursor:
                return await cursor.fetchone()
        except (aiosqlite.Error, ValueError) as e:
            raise PersistenceFailure(f"fetchone failed: {e}") from e

    async def fetchall(self, query: str, parameters=None):
        """Выполнение SQL запроса и получение всех записей."""
        if parameters is None:
            parameters = ()
        try:
            async with self.conn.execute(query, parameters) as cursor:
                return await cursor.fetchall()
        except (aiosqlite.Error, ValueError) as e:
            raise PersistenceFailure(f"fetchall failed: {e}") from e
