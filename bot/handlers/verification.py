"""Команды и компоненты процесса верификации Roblox."""
import discord
from discord import app_commands
from discord.ext import commands
from loguru import logger

from bot.database.models.principal_link import PrincipalLink
from bot.services.verification_service import VerificationService
from bot.utils.interactions import reply_with_error, send_ephemeral

AGREE_BUTTON_ID = "verification:agree"
SUBMIT_IDENTITY_MODAL_ID = "verification:submit-identity"
SUBMIT_PROOF_BUTTON_ID = "verification:submit-proof"

IDENTITY_MAX_LENGTH = 100


def build_challenge_embed(link: PrincipalLink) -> discord.Embed:
    """Инструкция с ключом, который нужно вставить в описание профиля Roblox."""
    embed = discord.Embed(
        title="🔑 Prove you own this Roblox account",
        description=(
            f"Roblox account: **{link.external_username}**\n\n"
            "1. Open your Roblox profile and edit the **About** (description) field.\n"
            "2. Replace its content with the key below, exactly as shown.\n"
            "3. Save your profile and press **Done**."
        ),
        color=discord.Color.blurple(),
    )
    embed.add_field(name="Verification key", value=f"```{link.proof_token}```", inline=False)
    embed.set_footer(text="You can restore your description after verification.")
    return embed


def build_success_embed(link: PrincipalLink) -> discord.Embed:
    embed = discord.Embed(
        title="🎉 Verification Successful!",
        description=f"Welcome, **{link.external_username}**! You now have the verified role.",
        color=discord.Color.green(),
    )
    if link.is_admin_override:
        embed.set_footer(text="Verified via admin override.")
    return embed


class IdentityModal(discord.ui.Modal, title="Roblox Verification"):
    """Форма ввода имени аккаунта Roblox."""

    username = discord.ui.TextInput(
        label="Roblox username",
        placeholder="Exactly as on Roblox (case-sensitive)",
        max_length=IDENTITY_MAX_LENGTH,
    )
    admin_secret = discord.ui.TextInput(
        label="Admin key (staff only)",
        required=False,
        max_length=100,
    )

    def __init__(self, verification_service: VerificationService):
        super().__init__(custom_id=SUBMIT_IDENTITY_MODAL_ID)
        self.verification_service = verification_service

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            link = await self.verification_service.submit_identity(
                interaction.user,
                self.username.value,
                admin_secret=self.admin_secret.value or None,
            )
        except Exception as e:
            await reply_with_error(interaction, e, "submit-identity")
            return

        if link.is_verified:
            await send_ephemeral(interaction, embed=build_success_embed(link))
        else:
            await send_ephemeral(
                interaction,
                embed=build_challenge_embed(link),
                view=ProofView(self.verification_service),
            )


class ProofView(discord.ui.View):
    """Кнопка «Готово» после вставки ключа в профиль."""

    def __init__(self, verification_service: VerificationService):
        super().__init__(timeout=None)
        self.verification_service = verification_service

    @discord.ui.button(label="Done", style=discord.ButtonStyle.success, custom_id=SUBMIT_PROOF_BUTTON_ID)
    async def submit_proof(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            link = await self.verification_service.submit_proof(interaction.user)
        except Exception as e:
            await reply_with_error(interaction, e, "submit-proof")
            return

        await send_ephemeral(interaction, embed=build_success_embed(link))


class AgreeView(discord.ui.View):
    """Кнопка начала верификации в закрепленном сообщении канала."""

    def __init__(self, verification_service: VerificationService):
        super().__init__(timeout=None)
        self.verification_service = verification_service

    @discord.ui.button(label="I agree, verify me", style=discord.ButtonStyle.primary, custom_id=AGREE_BUTTON_ID)
    async def agree(self, interaction: discord.Interaction, button: discord.ui.Button):
        await begin_verification(interaction, self.verification_service)


async def begin_verification(interaction: discord.Interaction, verification_service: VerificationService):
    """Общий вход для /verify и кнопки agree."""
    try:
        pending = await verification_service.start_verification(str(interaction.user.id))
    except Exception as e:
        await reply_with_error(interaction, e, "verify")
        return

    if pending is not None:
        await send_ephemeral(
            interaction,
            embed=build_challenge_embed(pending),
            view=ProofView(verification_service),
        )
        return

    await interaction.response.send_modal(IdentityModal(verification_service))


class VerificationCog(commands.Cog):
    """Команды /verify и /unverify."""

    def __init__(self, bot: commands.Bot, verification_service: VerificationService):
        self.bot = bot
        self.verification_service = verification_service

    @app_commands.command(name="verify", description="Starts the Roblox verification process.")
    @app_commands.guild_only()
    async def verify(self, interaction: discord.Interaction):
        await begin_verification(interaction, self.verification_service)

    @app_commands.command(name="unverify", description="Removes your verification status and roles.")
    @app_commands.guild_only()
    async def unverify(self, interaction: discord.Interaction):
        try:
            deleted = await self.verification_service.unverify(interaction.user)
        except Exception as e:
            await reply_with_error(interaction, e, "unverify")
            return

        logger.info(f"/unverify выполнен для {interaction.user.id}")
        await send_ephemeral(
            interaction,
            f"✅ Your verification for Roblox user **{deleted.external_username}** has been removed. "
            "You are now unverified.",
        )
