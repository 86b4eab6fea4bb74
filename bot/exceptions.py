"""Ошибки предметной области бота.

Каждая ошибка несет ``user_message`` - безопасный текст для ответа
пользователю в Discord. Технические подробности уходят только в лог.
"""
from typing import Optional


class BotError(Exception):
    """Базовая ошибка бота."""

    user_message = "Something went wrong. Please try again later."

    def __init__(self, message: Optional[str] = None, *, user_message: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        if user_message is not None:
            self.user_message = user_message


class VerificationError(BotError):
    """Ошибка шага верификации, которую пользователь может исправить сам."""


class AlreadyVerified(VerificationError):
    def __init__(self, external_username: str):
        super().__init__(
            f"already verified as {external_username}",
            user_message=f"You are already verified as **{external_username}**!",
        )
        self.external_username = external_username


class IdentityNotFound(VerificationError):
    def __init__(self, identity: str):
        super().__init__(
            f"identity {identity!r} not found",
            user_message=(
                f"❌ Roblox account **{identity}** was not found. "
                "Check the spelling (usernames are case-sensitive) and try again."
            ),
        )
        self.identity = identity


class ProofMismatch(VerificationError):
    user_message = (
        "❌ The verification key was not found in your Roblox profile description. "
        "Paste the key exactly as shown, save your profile and try again."
    )


class NotAMember(VerificationError):
    def __init__(self, group_id: int):
        super().__init__(
            f"not a member of group {group_id}",
            user_message=(
                "⚠️ Your Roblox account is not a member of the required group "
                f"(ID: **{group_id}**). Join the group and press **Done** again."
            ),
        )
        self.group_id = group_id


class SessionExpired(VerificationError):
    user_message = "⌛ Verification session expired. Please run `/verify` again."


class NotCurrentlyVerified(VerificationError):
    user_message = "You are not currently verified."


class ExternalServiceUnavailable(BotError):
    """Внешний сервис (Roblox, Gemini) недоступен или не ответил вовремя."""

    user_message = "⚠️ An external service is not responding right now. Please try again later."

    def __init__(self, service: str, reason: str = ""):
        super().__init__(f"{service} unavailable: {reason}" if reason else f"{service} unavailable")
        self.service = service
        self.reason = reason


class PersistenceFailure(BotError):
    """Ошибка хранилища."""

    user_message = "⚠️ Could not reach the database. Please try again later."


class PermissionDenied(BotError):
    user_message = "⛔ You do not have permission to do that."
