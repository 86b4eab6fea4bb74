"""Pytest fixtures for the verification bot tests."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from bot.database.manager import DatabaseManager
from bot.services.audit_service import AuditService
from bot.services.roblox_service import IdentityResolution, RobloxService
from bot.services.verification_service import VerificationService
from bot.states.sessions import PendingSessionStore
from config.settings import Settings

GUILD_ID = 1000
VERIFICATION_CHANNEL_ID = 2000
RESTRICTED_CHANNEL_ID = 3000
OPEN_CHANNEL_ID = 3001
AI_CHANNEL_ID = 3002
MEMBER_ROLE_ID = 4000
UNVERIFIED_ROLE_ID = 5000
ROBLOX_GROUP_ID = 1234567


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DISCORD_TOKEN="test-token",
        GUILD_ID=GUILD_ID,
        VERIFICATION_CHANNEL_ID=VERIFICATION_CHANNEL_ID,
        RESTRICTED_CHANNEL_IDS=str(RESTRICTED_CHANNEL_ID),
        AI_CHANNEL_IDS=[AI_CHANNEL_ID],
        MEMBER_ROLE_ID=MEMBER_ROLE_ID,
        UNVERIFIED_ROLE_ID=UNVERIFIED_ROLE_ID,
        ROBLOX_GROUP_ID=ROBLOX_GROUP_ID,
        ADMIN_IDENTIFIER="BotAdmin",
        ADMIN_SECRET="s3cret-Key",
        DATABASE_PATH=str(tmp_path / "test.db"),
        NOTICE_DELETE_AFTER=10,
    )


@pytest.fixture
async def db_manager(settings):
    manager = DatabaseManager(settings.DATABASE_PATH)
    await manager.init_database()
    yield manager
    await manager.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions(clock) -> PendingSessionStore:
    return PendingSessionStore(ttl_seconds=900, clock=clock)


@pytest.fixture
def roblox():
    """Roblox client double: 'alice' exists with id 101, everyone is a group member."""
    client = MagicMock(spec=RobloxService)

    async def resolve(name):
        if name == "alice":
            return IdentityResolution(exists=True, external_id="101", username="alice")
        if name == "bob":
            return IdentityResolution(exists=True, external_id="202", username="bob")
        return IdentityResolution(exists=False)

    client.resolve_identity = AsyncMock(side_effect=resolve)
    client.fetch_profile_text = AsyncMock(return_value="")
    client.check_group_membership = AsyncMock(return_value=True)
    return client


@pytest.fixture
def verification_service(db_manager, roblox, sessions, settings) -> VerificationService:
    return VerificationService(db_manager, roblox, sessions, settings, audit=AuditService(db_manager))


def make_member(user_id: int = 42, manage_guild: bool = False) -> MagicMock:
    member = MagicMock()
    member.id = user_id
    member.bot = False
    member.mention = f"<@{user_id}>"
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    member.edit = AsyncMock()
    member.send = AsyncMock()
    member.guild_permissions.manage_guild = manage_guild
    return member


@pytest.fixture
def member() -> MagicMock:
    return make_member()
