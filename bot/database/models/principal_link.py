from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator


class LinkStatus(str, Enum):
    """Статус привязки Discord-пользователя к аккаунту Roblox."""
    UNVERIFIED = "unverified"
    PENDING_PROOF = "pending_proof"
    VERIFIED = "verified"


class PrincipalLink(BaseModel):
    """
    Pydantic-модель привязки, соответствующая таблице principal_links.

    Отсутствие записи в БД равнозначно статусу UNVERIFIED.
    """

    chat_user_id: str
    status: LinkStatus = LinkStatus.UNVERIFIED
    external_username: Optional[str] = None
    external_id: Optional[str] = None
    proof_token: Optional[str] = None
    is_external_group_member: bool = False
    is_admin_override: bool = False
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_invariants(self) -> "PrincipalLink":
        if self.status == LinkStatus.VERIFIED and not self.external_username:
            raise ValueError("verified link requires external_username")
        if self.status != LinkStatus.PENDING_PROOF:
            self.proof_token = None
        return self

    @property
    def is_verified(self) -> bool:
        return self.status == LinkStatus.VERIFIED

    @property
    def is_pending(self) -> bool:
        return self.status == LinkStatus.PENDING_PROOF

    @classmethod
    def from_row(cls, row) -> "PrincipalLink":
        """Создает модель из строки aiosqlite.Row."""
        return cls(**dict(row))
