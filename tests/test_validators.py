"""Tests for input validators."""
import pytest

from bot.utils.validators import is_admin_identity, validate_roblox_username


@pytest.mark.parametrize("username", ["alice", "ghost404", "Builder_Man", "abc"])
def test_valid_usernames(username):
    assert validate_roblox_username(username) == (True, username)


@pytest.mark.parametrize(
    "username",
    ["", "   ", "ab", "a" * 21, "has space", "bad-dash", "_lead", "trail_", "two_under_scores"],
)
def test_invalid_usernames(username):
    is_valid, message = validate_roblox_username(username)
    assert not is_valid
    assert message


def test_username_is_trimmed():
    assert validate_roblox_username("  alice  ") == (True, "alice")


def test_admin_identity_is_case_insensitive():
    assert is_admin_identity("botadmin", "BotAdmin")
    assert is_admin_identity(" BOTADMIN ", "BotAdmin")
    assert not is_admin_identity("someone", "BotAdmin")
    assert not is_admin_identity("BotAdmin", None)
