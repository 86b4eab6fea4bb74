"""
Сервис периодической перепроверки членства в группе Roblox.
"""
import asyncio
from dataclasses import dataclass
from typing import List, Optional

import discord
from loguru import logger

from bot.database.manager import DatabaseManager
from bot.database.models.principal_link import PrincipalLink
from bot.database.models.verification_log import VerificationEvent
from bot.exceptions import BotError
from bot.services.audit_service import AuditService
from bot.services.roblox_service import RobloxService
from config.settings import Settings


@dataclass
class SweepReport:
    checked: int = 0
    revoked: int = 0
    skipped: int = 0
    failed: int = 0


class RevocationScheduler:
    """
    Снимает верификацию с тех, кто покинул группу Roblox.

    Roblox опрашивается строго последовательно, а изменения в Discord
    (роли, личные сообщения) выполняются параллельно.
    """

    def __init__(
        self,
        client: discord.Client,
        db_manager: DatabaseManager,
        roblox: RobloxService,
        settings: Settings,
        audit: Optional[AuditService] = None,
        log=None,
    ):
        self.client = client
        self.db_manager = db_manager
        self.roblox = roblox
        self.settings = settings
        self.audit = audit or AuditService(db_manager)
        self.log = log or logger.bind(component="revocation")
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Запуск: первая проверка сразу, далее по интервалу."""
        if self.is_running:
            self.log.warning("Перепроверка членства уже запущена.")
            return
        self._task = asyncio.create_task(self._run_forever())
        self.log.info(
            f"Перепроверка членства запланирована каждые {self.settings.REVOCATION_INTERVAL_HOURS} ч."
        )

    def stop(self) -> None:
        if self._task:
            self._task.cancel()
            self._task = None
            self.log.info("Перепроверка членства остановлена.")

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.run_sweep()
            except Exception as e:
                self.log.exception(f"Ошибка в цикле перепроверки: {e}")
            await asyncio.sleep(self.settings.revocation_interval_seconds)

    async def run_sweep(self) -> SweepReport:
        """Один проход перепроверки всех верифицированных пользователей."""
        links = await self.db_manager.principal_links.get_group_members()
        report = SweepReport()
        self.log.info(f"--- Перепроверка членства: {len(links)} пользователей ---")

        to_revoke: List[PrincipalLink] = []
        for link in links:
            try:
                is_member = await self.roblox.check_group_membership(link.external_id)
            except BotError as e:
                report.failed += 1
                self.log.warning(f"Не удалось проверить {link.chat_user_id} ({link.external_username}): {e}")
                continue
            except Exception as e:
                report.failed += 1
                self.log.exception(f"Ошибка проверки {link.chat_user_id}: {e}")
                continue

            report.checked += 1
            if not is_member:
                to_revoke.append(link)
                self.log.info(f"Нужно снять верификацию с {link.chat_user_id}: {link.external_username} покинул группу")

        results = await asyncio.gather(*(self._revoke(link) for link in to_revoke))
        report.revoked = sum(1 for outcome in results if outcome is True)
        report.skipped = sum(1 for outcome in results if outcome is None)
        report.failed += sum(1 for outcome in results if outcome is False)

        self.log.info(
            f"--- Перепроверка завершена: проверено {report.checked}, "
            f"снято {report.revoked}, пропущено {report.skipped}, ошибок {report.failed} ---"
        )
        return report

    async def _resolve_member(self, chat_user_id: str) -> Optional[discord.Member]:
        guild = self.client.get_guild(self.settings.GUILD_ID)
        if guild is None:
            return None
        member = guild.get_member(int(chat_user_id))
        if member is not None:
            return member
        try:
            return await guild.fetch_member(int(chat_user_id))
        except discord.HTTPException:
            return None

    async def _revoke(self, link: PrincipalLink) -> Optional[bool]:
        """
        Понижение одного пользователя. Ошибки изолированы.

        Returns:
            True - верификация снята, None - запись уже изменилась
            (например, /unverify и новая заявка), False - ошибка.
        """
        try:
            if not await self.db_manager.principal_links.mark_revoked(link.chat_user_id):
                self.log.info(f"Запись {link.chat_user_id} изменилась во время перепроверки, пропускаем")
                return None

            member = await self._resolve_member(link.chat_user_id)
            if member is not None:
                await self._swap_roles(member)
                await self._notify(member)
            else:
                self.log.info(f"Пользователь {link.chat_user_id} не найден на сервере, только обновляем БД")

            await self.audit.record(
                link.chat_user_id,
                VerificationEvent.REVOKED,
                link.external_username,
                details=f"left Roblox group {self.settings.ROBLOX_GROUP_ID}",
            )
            return True
        except Exception as e:
            self.log.exception(f"Ошибка при снятии верификации с {link.chat_user_id}: {e}")
            return False

    async def _swap_roles(self, member: discord.Member) -> None:
        reason = "Left the required Roblox group"
        try:
            await member.remove_roles(discord.Object(id=self.settings.MEMBER_ROLE_ID), reason=reason)
        except discord.HTTPException as e:
            self.log.warning(f"Не удалось снять роль участника у {member.id}: {e}")
        try:
            await member.add_roles(discord.Object(id=self.settings.UNVERIFIED_ROLE_ID), reason=reason)
        except discord.HTTPException as e:
            self.log.warning(f"Не удалось выдать роль неверифицированного {member.id}: {e}")

    async def _notify(self, member: discord.Member) -> None:
        embed = discord.Embed(
            title="⚠️ Verification Revoked",
            description=(
                "Your verification status has been revoked because you are no longer a member "
                f"of the required Roblox group (ID: {self.settings.ROBLOX_GROUP_ID}). "
                "Please rejoin and use `/verify` again."
            ),
            color=discord.Color.orange(),
        )
        try:
            await member.send(embed=embed)
        except discord.HTTPException as e:
            self.log.warning(f"Не удалось отправить личное сообщение {member.id}: {e}")
