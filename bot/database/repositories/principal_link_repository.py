"""
Репозиторий для управления привязками Discord-пользователей к Roblox.
"""
from datetime import datetime, timezone
from typing import List, Optional

from .base import BaseRepository
from ..models.principal_link import LinkStatus, PrincipalLink


class PrincipalLinkRepository(BaseRepository):
    """
    Операции над таблицей principal_links.

    Одна запись на пользователя: все записи идут через upsert.
    """

    async def get(self, chat_user_id: str) -> Optional[PrincipalLink]:
        """Возвращает привязку или None, если пользователь не начинал верификацию."""
        sql = "SELECT * FROM principal_links WHERE chat_user_id = ?"
        row = await self.fetchone(sql, (chat_user_id,))
        return PrincipalLink.from_row(row) if row else None

    async def upsert(self, link: PrincipalLink) -> PrincipalLink:
        """
        Создает или полностью перезаписывает привязку пользователя.

        Возвращает сохраненное состояние записи.
        """
        sql = """
            INSERT INTO principal_links (
                chat_user_id, status, external_username, external_id, proof_token,
                is_external_group_member, is_admin_override, verified_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (chat_user_id) DO UPDATE SET
                status = excluded.status,
                external_username = excluded.external_username,
                external_id = excluded.external_id,
                proof_token = excluded.proof_token,
                is_external_group_member = excluded.is_external_group_member,
                is_admin_override = excluded.is_admin_override,
                verified_at = excluded.verified_at,
                updated_at = CURRENT_TIMESTAMP
        """
        await self.execute(
            sql,
            (
                link.chat_user_id,
                link.status.value,
                link.external_username,
                link.external_id,
                link.proof_token,
                int(link.is_external_group_member),
                int(link.is_admin_override),
                link.verified_at.isoformat() if link.verified_at else None,
            ),
        )
        return await self.get(link.chat_user_id)

    async def save_pending(
        self, chat_user_id: str, external_username: str, external_id: str, proof_token: str
    ) -> PrincipalLink:
        """Переводит пользователя в PENDING_PROOF с новым ключом."""
        return await self.upsert(
            PrincipalLink(
                chat_user_id=chat_user_id,
                status=LinkStatus.PENDING_PROOF,
                external_username=external_username,
                external_id=external_id,
                proof_token=proof_token,
            )
        )

    async def save_verified(
        self,
        chat_user_id: str,
        external_username: str,
        external_id: Optional[str],
        is_group_member: bool,
        is_admin_override: bool = False,
    ) -> PrincipalLink:
        """Переводит пользователя в VERIFIED и фиксирует время верификации."""
        return await self.upsert(
            PrincipalLink(
                chat_user_id=chat_user_id,
                status=LinkStatus.VERIFIED,
                external_username=external_username,
                external_id=external_id,
                is_external_group_member=is_group_member,
                is_admin_override=is_admin_override,
                verified_at=datetime.now(timezone.utc),
            )
        )

    async def delete(self, chat_user_id: str) -> Optional[PrincipalLink]:
        """
        Удаляет привязку пользователя.

        Возвращает удаленную запись или None, если удалять было нечего.
        """
        existing = await self.get(chat_user_id)
        if existing is None:
            return None
        await self.execute("DELETE FROM principal_links WHERE chat_user_id = ?", (chat_user_id,))
        return existing

    async def get_group_members(self) -> List[PrincipalLink]:
        """Все верифицированные по обычному пути пользователи, числящиеся в группе Roblox."""
        sql = """
            SELECT * FROM principal_links
            WHERE status = ? AND is_external_group_member = 1 AND is_admin_override = 0
            ORDER BY verified_at
        """
        rows = await self.fetchall(sql, (LinkStatus.VERIFIED.value,))
        return [PrincipalLink.from_row(row) for row in rows]

    async def mark_revoked(self, chat_user_id: str) -> bool:
        """
        Снимает верификацию после потери членства в группе. Запись не удаляется.

        Меняется только верифицированная запись участника группы: новая
        заявка, начатая во время перепроверки, не затрагивается.
        Возвращает True, если запись обновлена.
        """
        sql = """
            UPDATE principal_links
            SET is_external_group_member = 0,
                status = ?,
                proof_token = NULL,
                updated_at = CURRENT_TIMESTAMP
            WHERE chat_user_id = ?
              AND status = ?
              AND is_external_group_member = 1
        """
        cursor = await self.execute(
            sql, (LinkStatus.UNVERIFIED.value, chat_user_id, LinkStatus.VERIFIED.value)
        )
        return bool(cursor and cursor.rowcount > 0)

    async def count_by_status(self) -> dict:
        """Количество записей по статусам."""
        rows = await self.fetchall(
            "SELECT status, COUNT(*) AS total FROM principal_links GROUP BY status"
        )
        return {row["status"]: row["total"] for row in rows}
