"""Репозиторий для работы с таблицей verification_logs."""
from typing import List

from .base import BaseRepository
from ..models.verification_log import VerificationLog


class LogRepository(BaseRepository):
    """Репозиторий для управления журналом верификации."""

    async def add(self, log: VerificationLog) -> None:
        """Добавление записи в журнал."""
        query = """
            INSERT INTO verification_logs (chat_user_id, event, external_username, details, created_at)
            VALUES (?, ?, ?, ?, datetime('now'))
        """
        await self.execute(
            query,
            (
                log.chat_user_id,
                log.event.value,
                log.external_username,
                log.details,
            ),
        )

    async def get_for_user(self, chat_user_id: str, limit: int = 10) -> List[VerificationLog]:
        """Последние записи журнала пользователя, новые первыми."""
        query = """
            SELECT * FROM verification_logs
            WHERE chat_user_id = ?
            ORDER BY id DESC
            LIMIT ?
        """
        rows = await self.fetchall(query, (chat_user_id, limit))
        return [VerificationLog(**dict(row)) for row in rows]

    async def cleanup_old(self, days: int) -> int:
        """Удаление старых записей журнала."""
        query = "DELETE FROM verification_logs WHERE created_at < datetime('now', ?)"
        params = (f'-{days} days',)
        cursor = await self.execute(query, params)
        return cursor.rowcount if cursor else 0
