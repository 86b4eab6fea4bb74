"""Tests for the periodic group membership sweep."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from bot.database.models.principal_link import LinkStatus
from bot.database.models.verification_log import VerificationEvent
from bot.exceptions import ExternalServiceUnavailable
from bot.services.audit_service import AuditService
from bot.services.revocation_service import RevocationScheduler
from tests.conftest import MEMBER_ROLE_ID, UNVERIFIED_ROLE_ID, make_member


def _not_found() -> discord.NotFound:
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Member")


@pytest.fixture
def guild_members():
    return {}


@pytest.fixture
def client(guild_members):
    guild = MagicMock()
    guild.get_member.side_effect = lambda user_id: guild_members.get(user_id)
    guild.fetch_member = AsyncMock(side_effect=_not_found())
    bot = MagicMock()
    bot.get_guild.return_value = guild
    return bot


@pytest.fixture
def scheduler(client, db_manager, roblox, settings):
    return RevocationScheduler(client, db_manager, roblox, settings, audit=AuditService(db_manager))


async def _seed(db_manager, guild_members, count):
    for index in range(count):
        user_id = 100 + index
        await db_manager.principal_links.save_verified(
            str(user_id), f"player{index}", str(9000 + index), is_group_member=True
        )
        guild_members[user_id] = make_member(user_id)


async def test_sweep_revokes_only_non_members(scheduler, db_manager, roblox, guild_members):
    await _seed(db_manager, guild_members, 5)
    left = {"9001", "9003"}
    roblox.check_group_membership.side_effect = lambda external_id: external_id not in left

    report = await scheduler.run_sweep()

    assert (report.checked, report.revoked, report.failed) == (5, 2, 0)
    for user_id in (101, 103):
        link = await db_manager.principal_links.get(str(user_id))
        assert link.status == LinkStatus.UNVERIFIED
        assert not link.is_external_group_member
        member = guild_members[user_id]
        assert member.remove_roles.await_args.args[0].id == MEMBER_ROLE_ID
        assert member.add_roles.await_args.args[0].id == UNVERIFIED_ROLE_ID
        member.send.assert_awaited_once()
        events = [entry.event for entry in await db_manager.logs.get_for_user(str(user_id))]
        assert events == [VerificationEvent.REVOKED]

    for user_id in (100, 102, 104):
        link = await db_manager.principal_links.get(str(user_id))
        assert link.status == LinkStatus.VERIFIED
        guild_members[user_id].remove_roles.assert_not_awaited()


async def test_revoked_user_is_not_rechecked(scheduler, db_manager, roblox, guild_members):
    await _seed(db_manager, guild_members, 1)
    roblox.check_group_membership.return_value = False

    await scheduler.run_sweep()
    report = await scheduler.run_sweep()

    assert report.checked == 0
    roblox.check_group_membership.assert_awaited_once_with("9000")


async def test_member_missing_from_guild_is_still_revoked(scheduler, db_manager, roblox, client):
    await db_manager.principal_links.save_verified("555", "gone", "9555", is_group_member=True)
    roblox.check_group_membership.return_value = False

    report = await scheduler.run_sweep()

    assert report.revoked == 1
    client.get_guild.return_value.fetch_member.assert_awaited_once_with(555)
    link = await db_manager.principal_links.get("555")
    assert link.status == LinkStatus.UNVERIFIED


async def test_external_failure_is_isolated(scheduler, db_manager, roblox, guild_members):
    await _seed(db_manager, guild_members, 3)

    async def check(external_id):
        if external_id == "9000":
            raise ExternalServiceUnavailable("roblox", "HTTP 503")
        return external_id != "9002"

    roblox.check_group_membership.side_effect = check

    report = await scheduler.run_sweep()

    assert (report.checked, report.revoked, report.failed) == (2, 1, 1)
    assert (await db_manager.principal_links.get("100")).status == LinkStatus.VERIFIED
    assert (await db_manager.principal_links.get("102")).status == LinkStatus.UNVERIFIED


async def test_dm_failure_is_not_fatal(scheduler, db_manager, roblox, guild_members):
    await _seed(db_manager, guild_members, 1)
    guild_members[100].send = AsyncMock(
        side_effect=discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Cannot send messages")
    )
    roblox.check_group_membership.return_value = False

    report = await scheduler.run_sweep()

    assert report.revoked == 1
    assert (await db_manager.principal_links.get("100")).status == LinkStatus.UNVERIFIED


async def test_admin_override_links_are_skipped(scheduler, db_manager, roblox):
    await db_manager.principal_links.save_verified(
        "77", "botadmin", None, is_group_member=False, is_admin_override=True
    )

    report = await scheduler.run_sweep()

    assert report.checked == 0
    roblox.check_group_membership.assert_not_awaited()
    assert (await db_manager.principal_links.get("77")).is_verified


async def test_membership_checks_are_sequential(scheduler, db_manager, roblox, guild_members):
    await _seed(db_manager, guild_members, 4)
    in_flight = 0
    peak = 0

    async def check(external_id):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return True

    roblox.check_group_membership.side_effect = check

    report = await scheduler.run_sweep()

    assert report.checked == 4
    assert peak == 1


async def test_start_and_stop(scheduler, roblox):
    scheduler.start()
    assert scheduler.is_running
    await asyncio.sleep(0)

    scheduler.stop()

    assert not scheduler.is_running


async def test_add_role_runs_even_if_remove_fails(scheduler, db_manager, roblox, guild_members):
    await _seed(db_manager, guild_members, 1)
    member = guild_members[100]
    member.remove_roles = AsyncMock(
        side_effect=discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Permissions")
    )
    roblox.check_group_membership.return_value = False

    report = await scheduler.run_sweep()

    assert report.revoked == 1
    assert member.add_roles.await_args.args[0].id == UNVERIFIED_ROLE_ID
    member.send.assert_awaited_once()


async def test_claim_started_during_sweep_is_kept(scheduler, db_manager, roblox, guild_members):
    await _seed(db_manager, guild_members, 1)
    links = db_manager.principal_links

    async def check(external_id):
        await links.delete("100")
        await links.save_pending("100", "player0", "9000", "FRESHTOKEN00")
        return False

    roblox.check_group_membership.side_effect = check

    report = await scheduler.run_sweep()

    assert (report.checked, report.revoked, report.skipped, report.failed) == (1, 0, 1, 0)
    link = await links.get("100")
    assert link.status == LinkStatus.PENDING_PROOF
    assert link.proof_token == "FRESHTOKEN00"
    guild_members[100].remove_roles.assert_not_awaited()
    guild_members[100].send.assert_not_awaited()
    assert await db_manager.logs.get_for_user("100") == []
