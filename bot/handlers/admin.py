"""Административные команды: статус пользователя и сообщение верификации."""
import discord
from discord import app_commands
from discord.ext import commands
from loguru import logger

from bot.database.models.principal_link import PrincipalLink
from bot.database.repositories.log_repository import LogRepository
from bot.exceptions import PermissionDenied
from bot.handlers.verification import AgreeView
from bot.services.verification_service import VerificationService
from bot.utils.interactions import reply_with_error, send_ephemeral
from config.settings import Settings


def format_status(member: discord.abc.User, link: PrincipalLink | None) -> str:
    """Текст ответа /checkstatus."""
    if link is None:
        return f"User **{member}** is NOT currently verified in the database."

    lines = [f"User **{member}**: status **{link.status.value}**"]
    if link.external_username:
        external_id = link.external_id or "n/a"
        lines.append(f"Roblox: **{link.external_username}** (ID: {external_id})")
    lines.append(f"Group Member: **{'Yes' if link.is_external_group_member else 'No'}**")
    if link.is_admin_override:
        lines.append("Verified via **admin override**.")
    if link.verified_at:
        lines.append(f"Verified on: {discord.utils.format_dt(link.verified_at)}")
    return "\n".join(lines)


class AdminCog(commands.Cog):
    """Команды для модераторов сервера."""

    def __init__(self, bot: commands.Bot, verification_service: VerificationService,
                 logs: LogRepository, settings: Settings):
        self.bot = bot
        self.verification_service = verification_service
        self.logs = logs
        self.settings = settings

    @app_commands.command(name="checkstatus", description="Admin command: Check a user's verification status.")
    @app_commands.describe(user="The Discord user to check.")
    @app_commands.default_permissions(manage_roles=True)
    @app_commands.guild_only()
    async def checkstatus(self, interaction: discord.Interaction, user: discord.Member):
        try:
            if not interaction.user.guild_permissions.manage_roles:
                raise PermissionDenied(f"{interaction.user.id} tried /checkstatus")

            link = await self.verification_service.get_status(str(user.id))
            text = format_status(user, link)

            history = await self.logs.get_for_user(str(user.id), limit=5)
            if history:
                text += "\n\nRecent events:\n" + "\n".join(
                    f"• `{entry.event.value}` {entry.created_at:%Y-%m-%d %H:%M}" if entry.created_at
                    else f"• `{entry.event.value}`"
                    for entry in history
                )
        except Exception as e:
            await reply_with_error(interaction, e, "checkstatus")
            return

        await send_ephemeral(interaction, text)

    @app_commands.command(
        name="deploy_verification_message",
        description="Admin command: Post the verification message in the verification channel.",
    )
    @app_commands.default_permissions(administrator=True)
    @app_commands.guild_only()
    async def deploy_verification_message(self, interaction: discord.Interaction):
        try:
            if not interaction.user.guild_permissions.administrator:
                raise PermissionDenied(f"{interaction.user.id} tried /deploy_verification_message")

            channel = self.bot.get_channel(self.settings.VERIFICATION_CHANNEL_ID)
            if channel is None:
                channel = await self.bot.fetch_channel(self.settings.VERIFICATION_CHANNEL_ID)

            embed = discord.Embed(
                title="🔐 Roblox Verification",
                description=(
                    "To chat on this server you need to link your Roblox account.\n\n"
                    "Press the button below, enter your Roblox username and follow the "
                    "instructions. You must be a member of our Roblox group."
                ),
                color=discord.Color.blurple(),
            )
            await channel.send(embed=embed, view=AgreeView(self.verification_service))
        except Exception as e:
            await reply_with_error(interaction, e, "deploy_verification_message")
            return

        logger.info(f"Сообщение верификации опубликовано в канале {self.settings.VERIFICATION_CHANNEL_ID}")
        await send_ephemeral(interaction, "✅ Verification message deployed.")
