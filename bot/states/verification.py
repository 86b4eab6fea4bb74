"""Шаги процесса верификации Roblox."""
from enum import Enum


class VerificationStep(str, Enum):
    """Шаг, на котором находится незавершенная сессия верификации."""

    awaiting_identity = "awaiting_identity"
    awaiting_proof = "awaiting_proof"
