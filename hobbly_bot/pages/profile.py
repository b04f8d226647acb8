from __future__ import annotations

from typing import Any

from ..core.errors import ValidationError
from ..core.models import Identity
from ..ui.components import Button, Input
from .base import PageController, Screen


class PersonalInfoPage(PageController):
    """Profile details and password change for the signed-in user."""

    route = "personal_info"
    title = "PERSONAL INFO"
    # Any signed-in user may edit their own profile.
    required_roles: frozenset[str] = frozenset()

    @staticmethod
    def profile_fields(
        identity: Identity,
        full_name: str | None = None,
        organization_name: str | None = None,
        phone: str | None = None,
    ) -> list[Input]:
        def pick(given: str | None, stored: str | None) -> str:
            return (given if given is not None else stored) or ""

        return [
            Input("Full name", "full_name", pick(full_name, identity.display_name), required=True),
            Input("Email", "email", identity.email, helper="Email cannot be changed"),
            Input("Organization", "organization_name", pick(organization_name, identity.organization_name)),
            Input("Phone", "phone", pick(phone, identity.phone)),
            Input("Role", "role", identity.role.value.capitalize()),
        ]

    async def render(self, **kwargs: Any) -> Screen:
        identity = self._user()
        lines = []
        if identity.created_at is not None:
            lines.append(f"Member since {identity.created_at:%d.%m.%Y}")
        return self.screen(
            lines=lines,
            fields=self.profile_fields(identity),
            actions=[
                Button("Edit profile", "edit_profile"),
                Button("Change password", "change_password", variant="secondary"),
            ],
            **kwargs,
        )

    async def save(
        self,
        *,
        full_name: str | None = None,
        organization_name: str | None = None,
        phone: str | None = None,
    ) -> Screen:
        return await self.guard(
            self._save,
            full_name=full_name,
            organization_name=organization_name,
            phone=phone,
        )

    async def _save(self, **values: str | None) -> Screen:
        try:
            await self.session.update_profile(**values)
        except ValidationError as exc:
            fields = self.profile_fields(self._user(), **values)
            return self.failed(exc, fields=fields)
        return await self.render(notice="Profile updated successfully.")

    async def change_password(self, new_password: str, confirm_password: str) -> Screen:
        return await self.guard(self._change_password, new_password, confirm_password)

    async def _change_password(self, new_password: str, confirm_password: str) -> Screen:
        try:
            await self.session.change_password(new_password, confirm_password)
        except ValidationError as exc:
            fields = [
                Input("New password", "password", required=True, secret=True),
                Input("Confirm password", "confirm_password", required=True, secret=True),
            ]
            return self.failed(exc, fields=fields)
        return await self.render(notice="Password changed successfully.")
