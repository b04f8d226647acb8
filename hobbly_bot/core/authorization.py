"""Role-based access decisions for pages.

:func:`decide` is a pure function of the current identity, the session's
loading flag and the roles a page declares. Callers turn the returned
:class:`Decision` into a screen, a redirect or a loading indicator.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from .models import ROLE_HIERARCHY, Identity, Role


class Decision(str, Enum):
    PENDING = "pending"
    RENDER = "render"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    REDIRECT_TO_UNAUTHORIZED = "redirect_to_unauthorized"


def normalize_roles(roles: Iterable[str | Role] | None) -> frozenset[str]:
    """Lower-case role names so comparisons ignore case."""
    if not roles:
        return frozenset()
    return frozenset(
        (r.value if isinstance(r, Role) else str(r)).strip().lower() for r in roles
    )


def is_allowed(role: Role, required: Iterable[str | Role]) -> bool:
    """Return ``True`` if ``role`` satisfies ``required``.

    Admins pass everything. Other roles pass when they are listed themselves
    or when every required role is one they include (an organizer may open
    pages meant for organizers and users). Unknown role names never match.
    """
    wanted = normalize_roles(required)
    if not wanted or role is Role.ADMIN:
        return True
    if role.value in wanted:
        return True
    included = {r.value for r in ROLE_HIERARCHY[role]}
    return wanted <= included


def decide(
    identity: Identity | None,
    is_loading: bool,
    required_roles: Iterable[str | Role] | None = None,
) -> Decision:
    if is_loading:
        return Decision.PENDING
    if identity is None:
        return Decision.REDIRECT_TO_LOGIN
    if is_allowed(identity.role, required_roles or ()):
        return Decision.RENDER
    return Decision.REDIRECT_TO_UNAUTHORIZED
