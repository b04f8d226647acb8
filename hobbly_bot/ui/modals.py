from __future__ import annotations

from collections.abc import Awaitable, Callable

import discord

from .components import Input

# Discord allows five text inputs per modal.
MAX_INPUTS = 5
LONG_FIELDS = {"description"}

SubmitHandler = Callable[[discord.Interaction, dict[str, str]], Awaitable[None]]


class FormModal(discord.ui.Modal):
    """A modal built from :class:`~hobbly_bot.ui.components.Input` fields.

    On submit the entered values, keyed by field name, go to ``submit``.
    """

    def __init__(self, fields: list[Input], submit: SubmitHandler, *, title: str) -> None:
        super().__init__(title=title)
        self.submit = submit
        self.inputs: dict[str, discord.ui.TextInput] = {}
        for item in fields[:MAX_INPUTS]:
            text = discord.ui.TextInput(
                label=item.label[:45],
                style=(
                    discord.TextStyle.long
                    if item.name in LONG_FIELDS
                    else discord.TextStyle.short
                ),
                default=item.value or None,
                placeholder=item.helper[:100] if item.helper else None,
                required=item.required,
                max_length=4000 if item.name in LONG_FIELDS else 200,
            )
            self.inputs[item.name] = text
            self.add_item(text)

    def values(self) -> dict[str, str]:
        return {name: str(text.value or "") for name, text in self.inputs.items()}

    async def on_submit(self, interaction: discord.Interaction) -> None:
        await self.submit(interaction, self.values())


class LoginModal(FormModal):
    def __init__(self, submit: SubmitHandler, email: str = "") -> None:
        super().__init__(
            [
                Input("Email", "email", email, required=True),
                Input("Password", "password", required=True),
            ],
            submit,
            title="Sign in",
        )


class ResetPasswordModal(FormModal):
    def __init__(self, submit: SubmitHandler, email: str = "") -> None:
        super().__init__(
            [Input("Email", "email", email, required=True)],
            submit,
            title="Reset password",
        )


class SignUpModal(FormModal):
    """Sign-up form. Submitting it accepts the Terms of Service."""

    def __init__(self, submit: SubmitHandler) -> None:
        super().__init__(
            [
                Input("Full name", "full_name", required=True),
                Input("Email", "email", required=True),
                Input(
                    "Password",
                    "password",
                    required=True,
                    helper="8+ characters, a number and a special character",
                ),
                Input("Confirm password", "confirm_password", required=True),
                Input(
                    "Organization (organizers only)",
                    "organization_name",
                    helper="Leave empty to sign up as a user",
                ),
            ],
            submit,
            title="Create account",
        )


class ProfileModal(FormModal):
    def __init__(
        self,
        submit: SubmitHandler,
        *,
        full_name: str = "",
        organization_name: str | None = None,
        phone: str | None = None,
    ) -> None:
        super().__init__(
            [
                Input("Full name", "full_name", full_name, required=True),
                Input("Organization", "organization_name", organization_name or ""),
                Input("Phone", "phone", phone or ""),
            ],
            submit,
            title="Edit profile",
        )


class PasswordModal(FormModal):
    def __init__(self, submit: SubmitHandler) -> None:
        super().__init__(
            [
                Input("New password", "password", required=True),
                Input("Confirm password", "confirm_password", required=True),
            ],
            submit,
            title="Change password",
        )


class ActivityModal(FormModal):
    """The main text fields of an activity; the rest keep their values."""

    FIELDS = ("title", "description", "location", "start_date", "contact_email")

    def __init__(
        self, submit: SubmitHandler, fields: list[Input], *, editing: bool = False
    ) -> None:
        by_name = {f.name: f for f in fields}
        super().__init__(
            [by_name[name] for name in self.FIELDS if name in by_name],
            submit,
            title="Edit activity" if editing else "Create activity",
        )
