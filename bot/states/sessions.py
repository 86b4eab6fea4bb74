"""Незавершенные сессии верификации (в памяти процесса, с TTL)."""
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from loguru import logger

from bot.states.verification import VerificationStep


@dataclass
class PendingSession:
    chat_user_id: str
    step: VerificationStep
    expires_at: float


class PendingSessionStore:
    """
    Сессии верификации по chat_user_id.

    Просроченная сессия считается отсутствующей и удаляется при обращении.
    """

    def __init__(self, ttl_seconds: float = 900, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, PendingSession] = {}

    def open(self, chat_user_id: str, step: VerificationStep) -> PendingSession:
        """Создает или продлевает сессию пользователя на шаге step."""
        session = PendingSession(
            chat_user_id=chat_user_id,
            step=step,
            expires_at=self._clock() + self.ttl_seconds,
        )
        self._sessions[chat_user_id] = session
        logger.debug(f"Сессия верификации {chat_user_id}: {step.value}")
        return session

    def get(self, chat_user_id: str) -> Optional[PendingSession]:
        session = self._sessions.get(chat_user_id)
        if session is None:
            return None
        if session.expires_at <= self._clock():
            del self._sessions[chat_user_id]
            logger.debug(f"Сессия верификации {chat_user_id} истекла")
            return None
        return session

    def close(self, chat_user_id: str) -> None:
        self._sessions.pop(chat_user_id, None)

    def purge_expired(self) -> int:
        """Удаляет все просроченные сессии. Возвращает их количество."""
        now = self._clock()
        expired = [key for key, session in self._sessions.items() if session.expires_at <= now]
        for key in expired:
            del self._sessions[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
