"""
Модели журнала верификации.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class VerificationEvent(str, Enum):
    """Событие, фиксируемое в журнале."""
    IDENTITY_CLAIMED = "identity_claimed"
    PROOF_MISMATCH = "proof_mismatch"
    NOT_A_MEMBER = "not_a_member"
    VERIFIED = "verified"
    ADMIN_OVERRIDE = "admin_override"
    UNVERIFIED = "unverified"
    REVOKED = "revoked"


class VerificationLog(BaseModel):
    """
    Pydantic-модель для лога верификации, соответствующая структуре в БД.
    """
    id: Optional[int] = None
    chat_user_id: str
    event: VerificationEvent
    external_username: Optional[str] = None
    details: Optional[str] = None
    created_at: Optional[datetime] = None
