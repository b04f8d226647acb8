"""Registration of slash commands for the bot."""

from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..core.errors import HobblyError
from ..core.models import ActivityType
from ..data.directory import ImageUpload
from ..ui.modals import LoginModal, PasswordModal, ResetPasswordModal, SignUpModal
from .navigation import Navigator

log = logging.getLogger("hobbly.commands")

TYPE_CHOICES = [app_commands.Choice(name=t.label, value=t.value) for t in ActivityType]


def register_commands(bot: commands.Bot, nav: Navigator) -> None:
    """Register every Hobbly slash command on ``bot.tree``."""
    tree = bot.tree

    # ------------------------------------------------------------------
    # Public and account commands
    # ------------------------------------------------------------------
    @tree.command(name="welcome", description="Start here")
    async def welcome(interaction: discord.Interaction) -> None:
        await nav.show(interaction, "welcome")

    @tree.command(name="login", description="Sign in to your Hobbly account")
    async def login(interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(LoginModal(nav.submit_login))

    @tree.command(name="signup", description="Create a Hobbly account")
    async def signup(interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(SignUpModal(nav.submit_sign_up))

    @tree.command(name="logout", description="Sign out")
    async def logout(interaction: discord.Interaction) -> None:
        await nav.sign_out(interaction)

    @tree.command(name="reset_password", description="Email yourself a password reset link")
    async def reset_password(interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(ResetPasswordModal(nav.submit_reset))

    @tree.command(name="profile", description="Show your personal info")
    async def profile(interaction: discord.Interaction) -> None:
        await nav.show(interaction, "personal_info")

    @tree.command(name="edit_profile", description="Update your name, organization or phone")
    async def edit_profile(interaction: discord.Interaction) -> None:
        await nav.edit_profile(interaction)

    @tree.command(name="change_password", description="Change your password")
    async def change_password(interaction: discord.Interaction) -> None:
        await interaction.response.send_modal(PasswordModal(nav.submit_password))

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------
    @tree.command(name="browse", description="Discover activities")
    @app_commands.describe(
        search="Words in the title or description",
        type="Kind of activity",
        category="Category",
        location="Town or area",
        min_price="Lowest price in EUR",
        max_price="Highest price in EUR",
        page="Page number",
    )
    @app_commands.choices(type=TYPE_CHOICES)
    async def browse(
        interaction: discord.Interaction,
        search: str | None = None,
        type: app_commands.Choice[str] | None = None,
        category: str | None = None,
        location: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        page: int = 1,
    ) -> None:
        await nav.show(
            interaction,
            "browse",
            page=page,
            search=search,
            type=type.value if type else None,
            category_id=category,
            location=location,
            min_price=min_price,
            max_price=max_price,
        )

    @tree.command(name="activity", description="Show one activity")
    @app_commands.describe(activity_id="Activity id")
    async def activity(interaction: discord.Interaction, activity_id: str) -> None:
        await nav.show(interaction, "activity", activity_id=activity_id)

    # ------------------------------------------------------------------
    # Admin panel
    # ------------------------------------------------------------------
    @tree.command(name="dashboard", description="Organizer dashboard")
    async def dashboard(interaction: discord.Interaction) -> None:
        await nav.show(interaction, "dashboard")

    @tree.command(name="activities", description="Manage your activities")
    @app_commands.describe(search="Search titles and descriptions", page="Page number")
    async def activities(
        interaction: discord.Interaction, search: str | None = None, page: int = 1
    ) -> None:
        await nav.show(interaction, "activities", page=page, search=search or "")

    @tree.command(name="users", description="All activities (admins only)")
    async def users(interaction: discord.Interaction, page: int = 1) -> None:
        await nav.show(interaction, "users", page=page)

    @tree.command(name="trash", description="Deleted activities")
    async def trash(interaction: discord.Interaction, page: int = 1) -> None:
        await nav.show(interaction, "trash", page=page)

    @tree.command(name="create_activity", description="Create an activity")
    @app_commands.describe(
        title="Title",
        description="Description",
        type="Kind of activity",
        category="Category",
        location="Town or area",
        contact_email="Contact email",
        start="Start, YYYY-MM-DD HH:MM",
        end="End, YYYY-MM-DD HH:MM",
        price="Price in EUR (0 for free)",
        address="Street address",
        max_participants="Maximum participants",
        min_age="Minimum age",
        max_age="Maximum age",
        contact_phone="Contact phone",
        link="External link",
        tags="Comma-separated tag ids",
    )
    @app_commands.choices(type=TYPE_CHOICES)
    async def create_activity(
        interaction: discord.Interaction,
        title: str,
        description: str,
        type: app_commands.Choice[str],
        category: str,
        location: str,
        contact_email: str,
        start: str | None = None,
        end: str | None = None,
        price: float = 0.0,
        address: str | None = None,
        max_participants: int | None = None,
        min_age: int | None = None,
        max_age: int | None = None,
        contact_phone: str | None = None,
        link: str | None = None,
        tags: str | None = None,
    ) -> None:
        values = {
            "title": title,
            "description": description,
            "type": type.value,
            "category_id": category,
            "location": location,
            "contact_email": contact_email,
            "start_date": start,
            "end_date": end,
            "price": price,
            "address": address,
            "max_participants": max_participants,
            "min_age": min_age,
            "max_age": max_age,
            "contact_phone": contact_phone,
            "external_link": link,
            "tags": tags,
        }
        await nav.save_activity(interaction, None, values)

    @tree.command(name="edit_activity", description="Edit an activity")
    @app_commands.describe(
        activity_id="Activity id",
        type="Kind of activity",
        category="Category",
        price="Price in EUR (0 for free)",
        end="End, YYYY-MM-DD HH:MM",
        address="Street address",
        max_participants="Maximum participants",
        min_age="Minimum age",
        max_age="Maximum age",
        contact_phone="Contact phone",
        link="External link",
    )
    @app_commands.choices(type=TYPE_CHOICES)
    async def edit_activity(
        interaction: discord.Interaction,
        activity_id: str,
        type: app_commands.Choice[str] | None = None,
        category: str | None = None,
        price: float | None = None,
        end: str | None = None,
        address: str | None = None,
        max_participants: int | None = None,
        min_age: int | None = None,
        max_age: int | None = None,
        contact_phone: str | None = None,
        link: str | None = None,
    ) -> None:
        """Without options, open the text-field modal; with options, save them."""
        changes = {
            "type": type.value if type else None,
            "category_id": category,
            "price": price,
            "end_date": end,
            "address": address,
            "max_participants": max_participants,
            "min_age": min_age,
            "max_age": max_age,
            "contact_phone": contact_phone,
            "external_link": link,
        }
        if any(v is not None for v in changes.values()):
            await nav.save_activity(interaction, activity_id, changes)
        else:
            await nav.edit_activity(interaction, activity_id)

    @tree.command(name="delete_activity", description="Move an activity to the trash bin")
    @app_commands.describe(activity_id="Activity id")
    async def delete_activity(interaction: discord.Interaction, activity_id: str) -> None:
        await nav.delete_activity(interaction, activity_id)

    @tree.command(name="upload_image", description="Add an image to an activity")
    @app_commands.describe(activity_id="Activity id", image="Image file, up to 5 MB")
    async def upload_image(
        interaction: discord.Interaction, activity_id: str, image: discord.Attachment
    ) -> None:
        await interaction.response.defer(ephemeral=True)
        upload = ImageUpload(
            filename=image.filename,
            content=await image.read(),
            content_type=image.content_type or "",
        )
        await nav.upload_images(interaction, activity_id, [upload])

    # ------------------------------------------------------------------
    # Autocomplete
    # ------------------------------------------------------------------
    async def category_autocomplete(
        interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        try:
            categories = await nav.directory.categories()
        except HobblyError as exc:
            log.warning("Category autocomplete failed: %s", exc)
            return []
        current_lower = current.lower()
        results = [
            app_commands.Choice(name=c.name, value=c.id)
            for c in categories
            if current_lower in c.name.lower()
        ]
        return results[:25]

    for command in (browse, create_activity, edit_activity):
        command.autocomplete("category")(category_autocomplete)
