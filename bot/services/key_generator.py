"""Генерация ключей подтверждения для профиля Roblox."""
import secrets
import string

PROOF_TOKEN_ALPHABET = string.ascii_uppercase + string.digits
PROOF_TOKEN_LENGTH = 12


def generate_proof_token(length: int = PROOF_TOKEN_LENGTH) -> str:
    """
    Генерирует ключ, который пользователь вставляет в описание профиля Roblox.

    Ключ - это секрет для копирования руками, а не криптографический
    credential. Уникальность обеспечивается размером пространства (36^12).
    """
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(PROOF_TOKEN_ALPHABET) for _ in range(length))
