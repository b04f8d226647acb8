"""Shared machinery for page controllers.

A controller pairs a :class:`~hobbly_bot.data.session.SessionStore` with an
:class:`~hobbly_bot.data.directory.ActivityDirectory` and produces
:class:`Screen` values. Screens are plain data; the Discord layer decides how
to draw them.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ..core.authorization import Decision, decide
from ..core.errors import AuthError, BackendError, HobblyError, NetworkError, ValidationError
from ..core.models import Identity
from ..core.pagination import DEFAULT_LIMIT
from ..data.directory import ActivityDirectory
from ..data.session import SessionStore
from ..ui.components import Button, Header, Input, Pagination, Sidebar, Table

log = logging.getLogger("hobbly.pages")

ORGANIZER_ONLY = frozenset({"organizer"})

SIGN_IN_NOTICE = "Please sign in to continue."


@dataclass
class Screen:
    """Everything needed to draw one page.

    Attributes
    ----------
    title:
        Heading of the page.
    route:
        Route name of the controller that produced the screen.
    decision:
        Outcome of the authorization gate.
    redirect:
        Route the user should be sent to instead, if any.
    state:
        Values the UI hands back on the next interaction (page number,
        search term, activity id).

    """

    title: str
    route: str = ""
    decision: Decision = Decision.RENDER
    lines: list[str] = field(default_factory=list)
    table: Table | None = None
    pagination: Pagination | None = None
    fields: list[Input] = field(default_factory=list)
    actions: list[Button] = field(default_factory=list)
    header: Header | None = None
    sidebar: Sidebar | None = None
    error: str | None = None
    notice: str | None = None
    redirect: str | None = None
    field_errors: dict[str, str] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.decision is Decision.RENDER and self.error is None


class PageController:
    """Base class for every page.

    Subclasses set :attr:`route`, :attr:`title` and :attr:`required_roles`
    and implement :meth:`render`. Public operations go through :meth:`guard`
    so the gate runs first and :class:`HobblyError` never escapes.
    """

    route = ""
    title = ""
    required_roles: frozenset[str] = ORGANIZER_ONLY
    requires_login = True

    def __init__(
        self,
        session: SessionStore,
        directory: ActivityDirectory,
        *,
        page_size: int = DEFAULT_LIMIT,
    ) -> None:
        self.session = session
        self.directory = directory
        self.page_size = page_size

    @property
    def identity(self) -> Identity | None:
        return self.session.identity

    def _user(self) -> Identity:
        if self.session.identity is None:
            raise AuthError("not_authenticated")
        return self.session.identity

    def gate(self) -> Decision:
        if not self.requires_login:
            return Decision.RENDER
        return decide(self.session.identity, self.session.is_loading, self.required_roles)

    def screen(self, **kwargs: Any) -> Screen:
        """A screen for this page with header and sidebar filled in."""
        kwargs.setdefault("title", self.title)
        kwargs.setdefault("route", self.route)
        identity = self.session.identity
        if identity is not None and self.session.is_authenticated:
            kwargs.setdefault(
                "header", Header(identity.name, identity.organization_name)
            )
            if self.requires_login:
                kwargs.setdefault("sidebar", Sidebar(identity.role, active=self.route))
        return Screen(**kwargs)

    def blocked(self, decision: Decision) -> Screen:
        if decision is Decision.PENDING:
            return Screen(
                title=self.title, route=self.route, decision=decision, lines=["Loading..."]
            )
        if decision is Decision.REDIRECT_TO_LOGIN:
            return Screen(
                title=self.title,
                route=self.route,
                decision=decision,
                redirect="login",
                notice=SIGN_IN_NOTICE,
            )
        return Screen(
            title=self.title, route=self.route, decision=decision, redirect="unauthorized"
        )

    def failed(self, exc: HobblyError, **kwargs: Any) -> Screen:
        if isinstance(exc, (NetworkError, BackendError)):
            log.warning("%s failed: %s", self.route or type(self).__name__, exc)
        else:
            log.info("%s rejected: %s", self.route or type(self).__name__, exc)
        if isinstance(exc, ValidationError):
            errors = dict(exc.errors)
            form_error = errors.pop("form", None)
            kwargs.setdefault("field_errors", errors)
            for item in kwargs.get("fields", ()):
                item.error = errors.get(item.name)
            return self.screen(error=form_error or exc.user_message, **kwargs)
        return self.screen(error=exc.user_message, **kwargs)

    async def guard(
        self, operation: Callable[..., Awaitable[Screen]], *args: Any, **kwargs: Any
    ) -> Screen:
        decision = self.gate()
        if decision is not Decision.RENDER:
            return self.blocked(decision)
        try:
            return await operation(*args, **kwargs)
        except HobblyError as exc:
            return self.failed(exc)

    async def open(self, **kwargs: Any) -> Screen:
        return await self.guard(self.render, **kwargs)

    async def render(self, **kwargs: Any) -> Screen:
        raise NotImplementedError
