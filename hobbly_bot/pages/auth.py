"""Public pages: welcome, sign-in, sign-up and the access-denied page."""

from __future__ import annotations

import logging
from typing import Any

from ..core.errors import HobblyError
from ..core.models import Role
from ..ui.components import Button, Input
from .base import PageController, Screen

log = logging.getLogger("hobbly.pages.auth")


def landing_route(role: Role) -> str:
    """Where a user goes right after signing in."""
    return "browse" if role is Role.USER else "dashboard"


class WelcomePage(PageController):
    route = "welcome"
    title = "Welcome to Hobbly!"
    requires_login = False

    async def render(self, **kwargs: Any) -> Screen:
        if self.session.is_authenticated:
            return self.screen(redirect=landing_route(self._user().role))
        return self.screen(
            lines=["Hobbly Technologies Oy", "Find hobbies, events and clubs near you."],
            actions=[
                Button("Sign up", "signup", variant="secondary"),
                Button("Log in", "login"),
            ],
        )


class LoginPage(PageController):
    route = "login"
    title = "Sign in"
    requires_login = False

    def _form(self, email: str = "") -> list[Input]:
        return [
            Input("Email", "email", value=email, required=True),
            Input("Password", "password", required=True, secret=True),
        ]

    async def render(self, **kwargs: Any) -> Screen:
        if self.session.is_authenticated:
            return self.screen(redirect=landing_route(self._user().role))
        return self.screen(
            fields=self._form(),
            actions=[
                Button("Sign in", "login"),
                Button("Forgot password?", "reset_password", variant="ghost"),
                Button("Create account", "signup", variant="secondary"),
            ],
        )

    async def submit(self, email: str, password: str) -> Screen:
        try:
            identity = await self.session.sign_in(email, password)
        except HobblyError as exc:
            return self.failed(exc, fields=self._form(email))
        return self.screen(
            notice=f"Welcome back, {identity.name}!",
            redirect=landing_route(identity.role),
        )

    async def reset_password(self, email: str) -> Screen:
        try:
            await self.session.request_password_reset(email)
        except HobblyError as exc:
            return self.failed(exc, fields=self._form(email))
        return self.screen(
            notice="If an account exists for that address, a reset link is on its way."
        )

    async def sign_out(self) -> Screen:
        try:
            await self.session.sign_out()
        except HobblyError as exc:
            # The local session is already cleared.
            log.warning("Remote sign-out failed: %s", exc)
        return self.screen(notice="You have been signed out.", redirect="welcome")


class SignUpPage(PageController):
    route = "signup"
    title = "Create account"
    requires_login = False

    def _form(self, values: dict[str, Any]) -> list[Input]:
        return [
            Input("Full name", "full_name", value=values.get("full_name", ""), required=True),
            Input("Email", "email", value=values.get("email", ""), required=True),
            Input(
                "Password",
                "password",
                required=True,
                secret=True,
                helper="At least 8 characters with a number and a special character",
            ),
            Input("Confirm password", "confirm_password", required=True, secret=True),
            Input(
                "Organization",
                "organization_name",
                value=values.get("organization_name") or "",
                helper="Fill in to register as an organizer",
            ),
            Input("Phone", "phone", value=values.get("phone") or ""),
        ]

    async def render(self, **kwargs: Any) -> Screen:
        return self.screen(
            fields=self._form({}),
            actions=[
                Button("Sign up", "signup"),
                Button("Already have an account?", "login", variant="ghost"),
            ],
        )

    async def submit(
        self,
        *,
        full_name: str,
        email: str,
        password: str,
        confirm_password: str,
        organization_name: str | None = None,
        phone: str | None = None,
        agree_to_terms: bool = True,
    ) -> Screen:
        values = {
            "full_name": full_name,
            "email": email,
            "organization_name": organization_name,
            "phone": phone,
        }
        try:
            identity = await self.session.sign_up(
                full_name=full_name,
                email=email,
                password=password,
                confirm_password=confirm_password,
                organization_name=organization_name,
                phone=phone,
                agree_to_terms=agree_to_terms,
            )
        except HobblyError as exc:
            return self.failed(exc, fields=self._form(values))
        if identity is None:
            return self.screen(
                notice="Please check your email to confirm your account, then sign in.",
                redirect="login",
            )
        return self.screen(
            notice=f"Welcome, {identity.name}!", redirect=landing_route(identity.role)
        )


class UnauthorizedPage(PageController):
    route = "unauthorized"
    title = "Access Denied"
    requires_login = False

    async def render(self, **kwargs: Any) -> Screen:
        home = "welcome"
        if self.session.is_authenticated:
            home = landing_route(self._user().role)
        return self.screen(
            lines=[
                "You don't have permission to access this page.",
                "Please contact your administrator if you believe this is an error.",
            ],
            actions=[Button("Home", home, variant="secondary")],
        )
