"""Сервис верификации Discord-пользователей через профиль Roblox."""
from typing import Optional

import discord
from loguru import logger

from bot.database.manager import DatabaseManager
from bot.database.models.principal_link import PrincipalLink
from bot.database.models.verification_log import VerificationEvent
from bot.exceptions import (
    AlreadyVerified,
    IdentityNotFound,
    NotAMember,
    NotCurrentlyVerified,
    ProofMismatch,
    SessionExpired,
)
from bot.services.audit_service import AuditService
from bot.services.key_generator import generate_proof_token
from bot.services.roblox_service import RobloxService
from bot.states.sessions import PendingSessionStore
from bot.states.verification import VerificationStep
from bot.utils.validators import is_admin_identity, validate_roblox_username
from config.settings import Settings

MAX_NICKNAME_LENGTH = 32


class VerificationService:
    """
    Машина состояний верификации.

    UNVERIFIED -> PENDING_PROOF -> VERIFIED по обычному пути,
    UNVERIFIED -> VERIFIED через обход администратора.
    Побочные эффекты в Discord (роли, ник) не откатывают смену статуса.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        roblox: RobloxService,
        sessions: PendingSessionStore,
        settings: Settings,
        audit: Optional[AuditService] = None,
        log=None,
    ):
        self.db_manager = db_manager
        self.roblox = roblox
        self.sessions = sessions
        self.settings = settings
        self.audit = audit or AuditService(db_manager)
        self.log = log or logger.bind(component="verification")

    @property
    def links(self):
        return self.db_manager.principal_links

    async def start_verification(self, chat_user_id: str) -> Optional[PrincipalLink]:
        """
        Начало верификации.

        Returns:
            Привязку в PENDING_PROOF, если ключ уже выдан (его нужно показать
            повторно), иначе None - нужно запросить имя аккаунта Roblox.

        Raises:
            AlreadyVerified: пользователь уже верифицирован.
        """
        link = await self.links.get(chat_user_id)

        if link and link.is_verified:
            raise AlreadyVerified(link.external_username)

        if link and link.is_pending:
            self.sessions.open(chat_user_id, VerificationStep.awaiting_proof)
            self.log.info(f"Пользователь {chat_user_id} повторно запросил ключ для {link.external_username}")
            return link

        self.sessions.open(chat_user_id, VerificationStep.awaiting_identity)
        self.log.info(f"Верификация начата для пользователя {chat_user_id}")
        return None

    async def submit_identity(
        self, member: discord.Member, identity: str, admin_secret: Optional[str] = None
    ) -> PrincipalLink:
        """
        Обработка введенного имени аккаунта Roblox.

        Returns:
            VERIFIED-привязку для обхода администратора или
            PENDING_PROOF-привязку с ключом для обычного пути.
        """
        chat_user_id = str(member.id)
        if self.sessions.get(chat_user_id) is None:
            raise SessionExpired()

        identity = (identity or "").strip()

        if self._is_admin_bypass(identity, admin_secret):
            return await self._verify_admin_override(member, identity)

        if admin_secret and is_admin_identity(identity, self.settings.ADMIN_IDENTIFIER):
            self.log.warning(f"Неверный секрет администратора от пользователя {chat_user_id}")

        is_valid, _ = validate_roblox_username(identity)
        if not is_valid:
            raise IdentityNotFound(identity)

        existing = await self.links.get(chat_user_id)
        if existing and existing.is_verified:
            self.sessions.close(chat_user_id)
            raise AlreadyVerified(existing.external_username)

        resolution = await self.roblox.resolve_identity(identity)
        if not resolution.exists:
            raise IdentityNotFound(identity)

        if existing and existing.is_pending and existing.external_id == resolution.external_id:
            token = existing.proof_token
        else:
            token = generate_proof_token()

        link = await self.links.save_pending(chat_user_id, resolution.username, resolution.external_id, token)
        self.sessions.open(chat_user_id, VerificationStep.awaiting_proof)

        await self.audit.record(chat_user_id, VerificationEvent.IDENTITY_CLAIMED, resolution.username)
        self.log.info(f"Пользователь {chat_user_id} заявил аккаунт {resolution.username} (id={resolution.external_id})")
        return link

    async def submit_proof(self, member: discord.Member) -> PrincipalLink:
        """
        Проверка ключа в описании профиля Roblox.

        Raises:
            SessionExpired, ProofMismatch, NotAMember
        """
        chat_user_id = str(member.id)
        if self.sessions.get(chat_user_id) is None:
            raise SessionExpired()

        link = await self.links.get(chat_user_id)
        if link is None or not link.is_pending:
            self.sessions.close(chat_user_id)
            if link and link.is_verified:
                raise AlreadyVerified(link.external_username)
            raise SessionExpired()

        profile_text = await self.roblox.fetch_profile_text(link.external_id)
        if profile_text.strip() != link.proof_token:
            await self.audit.record(chat_user_id, VerificationEvent.PROOF_MISMATCH, link.external_username)
            self.log.info(f"Ключ не найден в профиле {link.external_username} (пользователь {chat_user_id})")
            raise ProofMismatch()

        if self.settings.REQUIRE_GROUP_MEMBERSHIP:
            is_member = await self.roblox.check_group_membership(link.external_id)
            if not is_member:
                await self.audit.record(chat_user_id, VerificationEvent.NOT_A_MEMBER, link.external_username)
                self.log.info(f"{link.external_username} не состоит в группе {self.settings.ROBLOX_GROUP_ID}")
                raise NotAMember(self.settings.ROBLOX_GROUP_ID)

        verified = await self.links.save_verified(
            chat_user_id,
            link.external_username,
            link.external_id,
            is_group_member=True,
        )
        self.sessions.close(chat_user_id)

        await self._apply_verified_side_effects(member, verified.external_username)
        await self.audit.record(chat_user_id, VerificationEvent.VERIFIED, verified.external_username)
        self.log.success(f"Пользователь {chat_user_id} верифицирован как {verified.external_username}")
        return verified

    async def unverify(self, member: discord.Member) -> PrincipalLink:
        """
        Снятие верификации по запросу пользователя.

        Незавершенная привязка тоже удаляется, но считается, что
        пользователь не был верифицирован.
        """
        chat_user_id = str(member.id)
        self.sessions.close(chat_user_id)

        deleted = await self.links.delete(chat_user_id)
        if deleted is None or not deleted.is_verified:
            raise NotCurrentlyVerified()

        await self._swap_roles(
            member,
            add_role_id=self.settings.UNVERIFIED_ROLE_ID,
            remove_role_id=self.settings.MEMBER_ROLE_ID,
            reason="Roblox verification removed by user",
        )
        await self.audit.record(chat_user_id, VerificationEvent.UNVERIFIED, deleted.external_username)
        self.log.info(f"Пользователь {chat_user_id} снял верификацию ({deleted.external_username})")
        return deleted

    async def get_status(self, chat_user_id: str) -> Optional[PrincipalLink]:
        """Статус пользователя только для чтения."""
        return await self.links.get(chat_user_id)

    def _is_admin_bypass(self, identity: str, admin_secret: Optional[str]) -> bool:
        expected_secret = self.settings.get_admin_secret()
        if not expected_secret or not admin_secret:
            return False
        return is_admin_identity(identity, self.settings.ADMIN_IDENTIFIER) and admin_secret == expected_secret

    async def _verify_admin_override(self, member: discord.Member, identity: str) -> PrincipalLink:
        chat_user_id = str(member.id)
        link = await self.links.save_verified(
            chat_user_id,
            identity,
            None,
            is_group_member=False,
            is_admin_override=True,
        )
        self.sessions.close(chat_user_id)

        await self._apply_verified_side_effects(member, identity)
        await self.audit.record(chat_user_id, VerificationEvent.ADMIN_OVERRIDE, identity)
        self.log.warning(f"Пользователь {chat_user_id} верифицирован через обход администратора")
        return link

    async def _apply_verified_side_effects(self, member: discord.Member, nickname: str) -> None:
        await self._swap_roles(
            member,
            add_role_id=self.settings.MEMBER_ROLE_ID,
            remove_role_id=self.settings.UNVERIFIED_ROLE_ID,
            reason="Roblox verification completed",
        )
        await self._set_nickname(member, nickname)

    async def _swap_roles(self, member: discord.Member, add_role_id: int, remove_role_id: int, reason: str) -> None:
        """Меняет роли пользователя. Ошибки прав только логируются."""
        try:
            await member.remove_roles(discord.Object(id=remove_role_id), reason=reason)
        except discord.HTTPException as e:
            self.log.warning(f"Не удалось снять роль {remove_role_id} у {member.id}: {e}")
        try:
            await member.add_roles(discord.Object(id=add_role_id), reason=reason)
        except discord.HTTPException as e:
            self.log.warning(f"Не удалось выдать роль {add_role_id} пользователю {member.id}: {e}")

    async def _set_nickname(self, member: discord.Member, nickname: str) -> None:
        try:
            await member.edit(nick=nickname[:MAX_NICKNAME_LENGTH], reason="Roblox verification completed")
        except discord.HTTPException as e:
            self.log.warning(f"Не удалось сменить ник пользователю {member.id}: {e}")
