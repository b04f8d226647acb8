"""Routing between Discord interactions and page controllers.

:class:`Navigator` opens pages for the member behind an interaction, follows
screen redirects and answers with an embed plus the matching view. Buttons,
selects and modals on those views call back into the navigator.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import discord

from ..core.errors import HobblyError
from ..core.pagination import DEFAULT_LIMIT
from ..data.directory import ActivityDirectory, ImageUpload
from ..data.session import SessionRegistry, SessionStore
from ..pages.activities import (
    ActivitiesPage,
    ActivityDetailPage,
    ActivityEditorPage,
    BrowsePage,
    TrashPage,
    UsersPage,
)
from ..pages.auth import LoginPage, SignUpPage, UnauthorizedPage, WelcomePage
from ..pages.base import PageController, Screen
from ..pages.dashboard import DashboardPage
from ..pages.profile import PersonalInfoPage
from ..ui.components import Button
from ..ui.modals import (
    ActivityModal,
    LoginModal,
    PasswordModal,
    ProfileModal,
    ResetPasswordModal,
    SignUpModal,
)
from ..ui.views import ChoiceView, ScreenView, screen_embed

log = logging.getLogger("hobbly.navigation")

ROUTES: dict[str, type[PageController]] = {
    "welcome": WelcomePage,
    "login": LoginPage,
    "signup": SignUpPage,
    "unauthorized": UnauthorizedPage,
    "dashboard": DashboardPage,
    "activities": ActivitiesPage,
    "users": UsersPage,
    "trash": TrashPage,
    "browse": BrowsePage,
    "activity": ActivityDetailPage,
    "activity_editor": ActivityEditorPage,
    "personal_info": PersonalInfoPage,
}

# Listings whose rows open the activity detail page.
ROW_DETAIL_ROUTES = {"activities", "users", "trash", "browse"}
# Routes that take the activity id from a screen's state.
ACTIVITY_ROUTES = {"activity", "activity_editor"}
MAX_REDIRECTS = 3


class Navigator:
    def __init__(
        self,
        sessions: SessionRegistry,
        directory: ActivityDirectory,
        *,
        page_size: int = DEFAULT_LIMIT,
    ) -> None:
        self.sessions = sessions
        self.directory = directory
        self.page_size = page_size

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------
    def session_for(self, user_id: int) -> SessionStore:
        return self.sessions.get(user_id)

    def page(self, route: str, user_id: int) -> PageController:
        return ROUTES[route](
            self.session_for(user_id), self.directory, page_size=self.page_size
        )

    async def _restore(self, session: SessionStore) -> None:
        if session.is_authenticated or session.is_loading:
            return
        try:
            await session.restore()
        except HobblyError as exc:
            log.info("Could not restore session: %s", exc)

    async def open(self, route: str, user_id: int, **params: Any) -> Screen:
        controller = self.page(route, user_id)
        await self._restore(controller.session)
        return await controller.open(**params)

    async def follow(self, screen: Screen, user_id: int) -> Screen:
        """Resolve ``screen.redirect`` chains, carrying the notice along."""
        hops = 0
        while screen.redirect and hops < MAX_REDIRECTS:
            params: dict[str, Any] = {}
            if screen.redirect in ACTIVITY_ROUTES and screen.state.get("activity_id"):
                params["activity_id"] = screen.state["activity_id"]
            target = await self.open(screen.redirect, user_id, **params)
            if screen.notice and not target.notice and not target.error:
                target.notice = screen.notice
            screen = target
            hops += 1
        return screen

    # ------------------------------------------------------------------
    # Responding
    # ------------------------------------------------------------------
    async def show(
        self, interaction: discord.Interaction, route: str, *, edit: bool = False, **params: Any
    ) -> None:
        screen = await self.open(route, interaction.user.id, **params)
        await self.present(interaction, screen, edit=edit)

    async def present(
        self, interaction: discord.Interaction, screen: Screen, *, edit: bool = False
    ) -> None:
        screen = await self.follow(screen, interaction.user.id)
        view = self.view_for(screen)
        embed = screen_embed(screen)
        if edit and not interaction.response.is_done():
            await interaction.response.edit_message(
                embed=embed, view=None if view.is_empty else view
            )
            return
        kwargs: dict[str, Any] = {"embed": embed, "ephemeral": True}
        if not view.is_empty:
            kwargs["view"] = view
        if interaction.response.is_done():
            await interaction.followup.send(**kwargs)
        else:
            await interaction.response.send_message(**kwargs)

    def view_for(self, screen: Screen) -> ScreenView:
        on_page = None
        if screen.pagination is not None:
            extra: dict[str, Any] = {}
            if screen.state.get("search"):
                extra["search"] = screen.state["search"]
            extra.update(screen.state.get("filters") or {})

            async def on_page(inter: discord.Interaction, page: int) -> None:
                await self.show(inter, screen.route, edit=True, page=page, **extra)

        on_row = None
        if screen.table is not None and screen.route in ROW_DETAIL_ROUTES:

            async def on_row(inter: discord.Interaction, activity_id: str) -> None:
                await self.show(inter, "activity", activity_id=activity_id)

        return ScreenView(screen, on_page=on_page, on_row=on_row, on_action=self.act)

    async def act(self, interaction: discord.Interaction, button: Button) -> None:
        action, payload = button.action, dict(button.payload)
        user_id = interaction.user.id
        if action == "login":
            await interaction.response.send_modal(LoginModal(self.submit_login))
        elif action == "signup":
            await interaction.response.send_modal(SignUpModal(self.submit_sign_up))
        elif action == "reset_password":
            await interaction.response.send_modal(ResetPasswordModal(self.submit_reset))
        elif action == "edit_profile":
            await self.edit_profile(interaction)
        elif action == "change_password":
            await interaction.response.send_modal(PasswordModal(self.submit_password))
        elif action == "delete_activity":
            await self.delete_activity(interaction, payload["activity_id"])
        elif action in ("activity_editor", "save_activity"):
            if payload.get("activity_id"):
                await self.edit_activity(interaction, payload["activity_id"])
            else:
                await self.create_activity(interaction)
        elif action in ROUTES:
            await self.show(interaction, action, **payload)
        else:
            log.warning("Unknown action %r from user %s", action, user_id)
            await interaction.response.send_message("That action is not available.", ephemeral=True)

    # ------------------------------------------------------------------
    # Account flows
    # ------------------------------------------------------------------
    async def submit_login(self, interaction: discord.Interaction, values: dict[str, str]) -> None:
        page = self.page("login", interaction.user.id)
        await self.present(interaction, await page.submit(values["email"], values["password"]))

    async def submit_sign_up(self, interaction: discord.Interaction, values: dict[str, str]) -> None:
        page = self.page("signup", interaction.user.id)
        screen = await page.submit(
            full_name=values.get("full_name", ""),
            email=values.get("email", ""),
            password=values.get("password", ""),
            confirm_password=values.get("confirm_password", ""),
            organization_name=values.get("organization_name") or None,
            phone=values.get("phone") or None,
            agree_to_terms=True,
        )
        await self.present(interaction, screen)

    async def submit_reset(self, interaction: discord.Interaction, values: dict[str, str]) -> None:
        page = self.page("login", interaction.user.id)
        await self.present(interaction, await page.reset_password(values["email"]))

    async def sign_out(self, interaction: discord.Interaction) -> None:
        page = self.page("login", interaction.user.id)
        screen = await page.sign_out()
        self.sessions.discard(interaction.user.id)
        await self.present(interaction, screen)

    async def edit_profile(self, interaction: discord.Interaction) -> None:
        session = self.session_for(interaction.user.id)
        await self._restore(session)
        identity = session.identity
        if identity is None:
            await self.show(interaction, "personal_info")
            return
        await interaction.response.send_modal(
            ProfileModal(
                self.submit_profile,
                full_name=identity.display_name,
                organization_name=identity.organization_name,
                phone=identity.phone,
            )
        )

    async def submit_profile(self, interaction: discord.Interaction, values: dict[str, str]) -> None:
        page = self.page("personal_info", interaction.user.id)
        screen = await page.save(
            full_name=values.get("full_name"),
            organization_name=values.get("organization_name"),
            phone=values.get("phone"),
        )
        await self.present(interaction, screen)

    async def submit_password(self, interaction: discord.Interaction, values: dict[str, str]) -> None:
        page = self.page("personal_info", interaction.user.id)
        screen = await page.change_password(values["password"], values["confirm_password"])
        await self.present(interaction, screen)

    # ------------------------------------------------------------------
    # Activity flows
    # ------------------------------------------------------------------
    async def delete_activity(
        self, interaction: discord.Interaction, activity_id: str, page: int = 1
    ) -> None:
        controller = self.page("activities", interaction.user.id)
        await self._restore(controller.session)
        await self.present(interaction, await controller.delete(activity_id, page))

    async def create_activity(self, interaction: discord.Interaction) -> None:
        """Pick a category, then fill in the activity modal."""
        screen = await self.open("activity_editor", interaction.user.id)
        if not screen.ok:
            await self.present(interaction, screen)
            return
        try:
            categories = await self.directory.categories()
        except HobblyError as exc:
            screen.error = exc.user_message
            await self.present(interaction, screen)
            return

        async def on_category(inter: discord.Interaction, category_id: str) -> None:
            async def submit(modal_inter: discord.Interaction, values: dict[str, str]) -> None:
                await self.save_activity(modal_inter, None, {**values, "category_id": category_id})

            await inter.response.send_modal(ActivityModal(submit, screen.fields))

        if not categories:
            screen.error = "No categories are available yet."
            await self.present(interaction, screen)
            return
        options = [
            (f"{c.icon} {c.name}" if c.icon else c.name, c.id) for c in categories
        ]
        await interaction.response.send_message(
            "Choose a category for the new activity:",
            view=ChoiceView("Category", options, on_category),
            ephemeral=True,
        )

    async def edit_activity(self, interaction: discord.Interaction, activity_id: str) -> None:
        screen = await self.open("activity_editor", interaction.user.id, activity_id=activity_id)
        if not screen.ok:
            await self.present(interaction, screen)
            return

        async def submit(modal_inter: discord.Interaction, values: dict[str, str]) -> None:
            await self.save_activity(modal_inter, activity_id, values)

        await interaction.response.send_modal(ActivityModal(submit, screen.fields, editing=True))

    async def save_activity(
        self,
        interaction: discord.Interaction,
        activity_id: str | None,
        values: dict[str, Any],
    ) -> None:
        editor = self.page("activity_editor", interaction.user.id)
        if activity_id:
            screen = await editor.edit(activity_id, values)
        else:
            screen = await editor.create(values)
        await self.present(interaction, screen)

    async def upload_images(
        self,
        interaction: discord.Interaction,
        activity_id: str,
        files: Iterable[ImageUpload],
    ) -> None:
        editor = self.page("activity_editor", interaction.user.id)
        await self._restore(editor.session)
        await self.present(interaction, await editor.upload(activity_id, files))
