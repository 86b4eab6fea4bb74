"""Валидаторы для данных верификации."""
import re

ROBLOX_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")


def validate_roblox_username(username: str) -> tuple[bool, str]:
    """Валидация имени пользователя Roblox."""
    if not username or not username.strip():
        return False, "Username is empty"

    username = username.strip()

    if len(username) < 3 or len(username) > 20:
        return False, "Roblox usernames are 3-20 characters long"

    if not ROBLOX_USERNAME_PATTERN.match(username):
        return False, "Roblox usernames contain only letters, digits and underscores"

    if username.startswith("_") or username.endswith("_"):
        return False, "Roblox usernames cannot start or end with an underscore"

    if username.count("_") > 1:
        return False, "Roblox usernames contain at most one underscore"

    return True, username


def is_admin_identity(identity: str, admin_identifier: str | None) -> bool:
    """Сравнение с идентификатором администратора без учета регистра."""
    if not identity or not admin_identifier:
        return False
    return identity.strip().casefold() == admin_identifier.strip().casefold()
