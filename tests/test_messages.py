"""Tests for message moderation and AI replies."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from bot.exceptions import ExternalServiceUnavailable
from bot.handlers.messages import MessagesCog, split_message
from bot.middleware.access_gate import AccessGate, GateDecision
from tests.conftest import AI_CHANNEL_ID, GUILD_ID, OPEN_CHANNEL_ID, make_member


def test_split_short_message():
    assert split_message("hello") == ["hello"]
    assert split_message("") == []


def test_split_prefers_line_breaks():
    text = "a" * 15 + "\n" + "b" * 15

    assert split_message(text, limit=20) == ["a" * 15, "b" * 15]


def test_split_hard_cut_without_line_breaks():
    chunks = split_message("x" * 45, limit=20)

    assert [len(chunk) for chunk in chunks] == [20, 20, 5]


def make_message(channel_id, content="what is the group about?", mentions=()):
    message = MagicMock()
    message.id = 1
    message.content = content
    message.channel.id = channel_id
    message.mentions = list(mentions)
    message.reply = AsyncMock()
    return message


@pytest.fixture
def bot_user():
    user = MagicMock()
    user.id = 777
    user.mention = "<@777>"
    return user


@pytest.fixture
def gemini():
    service = MagicMock()
    service.generate = AsyncMock(return_value="It is a building group.")
    return service


def make_cog(settings, gemini, bot_user, decision):
    bot = MagicMock()
    bot.user = bot_user
    gate = MagicMock()
    gate.enforce = AsyncMock(return_value=decision)
    return MessagesCog(bot, gate, gemini, settings)


async def test_ai_replies_to_verified_user_in_ai_channel(settings, gemini, bot_user):
    cog = make_cog(settings, gemini, bot_user, GateDecision.ALLOW)
    message = make_message(AI_CHANNEL_ID)

    await cog.on_message(message)

    gemini.generate.assert_awaited_once_with("what is the group about?")
    message.reply.assert_awaited_once_with("It is a building group.", mention_author=False)


async def test_ai_replies_to_mention_with_mention_stripped(settings, gemini, bot_user):
    cog = make_cog(settings, gemini, bot_user, GateDecision.ALLOW)
    message = make_message(OPEN_CHANNEL_ID, content="<@777> hello bot", mentions=[bot_user])

    await cog.on_message(message)

    gemini.generate.assert_awaited_once_with("hello bot")


@pytest.mark.parametrize(
    "decision",
    [GateDecision.OPEN, GateDecision.EXEMPT, GateDecision.BLOCK, GateDecision.DELETE, GateDecision.IGNORE],
)
async def test_no_ai_reply_unless_allowed(settings, gemini, bot_user, decision):
    cog = make_cog(settings, gemini, bot_user, decision)
    message = make_message(AI_CHANNEL_ID)

    await cog.on_message(message)

    gemini.generate.assert_not_awaited()
    message.reply.assert_not_awaited()


async def test_no_ai_reply_in_regular_channel(settings, gemini, bot_user):
    cog = make_cog(settings, gemini, bot_user, GateDecision.ALLOW)

    await cog.on_message(make_message(OPEN_CHANNEL_ID))

    gemini.generate.assert_not_awaited()


async def test_ai_disabled_without_gemini(settings, bot_user):
    cog = make_cog(settings, None, bot_user, GateDecision.ALLOW)
    message = make_message(AI_CHANNEL_ID)

    await cog.on_message(message)

    message.reply.assert_not_awaited()


async def test_ai_outage_sends_apology(settings, gemini, bot_user):
    gemini.generate.side_effect = ExternalServiceUnavailable("gemini", "timeout")
    cog = make_cog(settings, gemini, bot_user, GateDecision.ALLOW)
    message = make_message(AI_CHANNEL_ID)

    await cog.on_message(message)

    message.reply.assert_awaited_once()
    assert "try again later" in message.reply.await_args.args[0]


async def test_long_answer_is_split(settings, gemini, bot_user):
    gemini.generate.return_value = "y" * 2500
    cog = make_cog(settings, gemini, bot_user, GateDecision.ALLOW)
    message = make_message(AI_CHANNEL_ID)

    await cog.on_message(message)

    assert [len(c.args[0]) for c in message.reply.await_args_list] == [2000, 500]


async def test_unverified_moderator_gets_no_ai_reply(settings, db_manager, gemini, bot_user):
    bot = MagicMock()
    bot.user = bot_user
    cog = MessagesCog(bot, AccessGate(db_manager, settings), gemini, settings)
    message = make_message(AI_CHANNEL_ID, content="hi")
    message.author = make_member(9, manage_guild=True)
    message.guild = MagicMock(id=GUILD_ID)
    message.delete = AsyncMock()

    await cog.on_message(message)

    gemini.generate.assert_not_awaited()
    message.delete.assert_not_awaited()


async def test_verified_member_gets_ai_reply_through_gate(settings, db_manager, gemini, bot_user):
    await db_manager.principal_links.save_verified("42", "alice", "101", is_group_member=True)
    bot = MagicMock()
    bot.user = bot_user
    cog = MessagesCog(bot, AccessGate(db_manager, settings), gemini, settings)
    message = make_message(AI_CHANNEL_ID, content="hi")
    message.author = make_member(42)
    message.guild = MagicMock(id=GUILD_ID)

    await cog.on_message(message)

    gemini.generate.assert_awaited_once_with("hi")
