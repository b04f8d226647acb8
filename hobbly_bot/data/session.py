"""Authentication state for one user.

A :class:`SessionStore` owns the signed-in :class:`~hobbly_bot.core.models.Identity`
and moves between three states::

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED -> UNAUTHENTICATED
                       AUTHENTICATING -> UNAUTHENTICATED   (failed sign-in)

Stores are explicit objects handed to page controllers; there is no
process-wide session. :class:`SessionRegistry` keeps one store per chat user.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable
from datetime import UTC
from enum import Enum
from typing import Any

from ..adapters.base import AuthProvider, AuthSession, Row, TableQuery, TableStore
from ..core import validation
from ..core.errors import AuthError, ValidationError
from ..core.models import Identity, Role

log = logging.getLogger("hobbly.session")

PROFILES = "user_profiles"

Listener = Callable[["SessionStore"], None]


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def identity_from_profile(row: Row) -> Identity:
    return Identity(
        id=str(row["id"]),
        email=row.get("email") or "",
        role=Role.parse(row.get("role")),
        display_name=row.get("full_name") or "",
        organization_name=row.get("organization_name"),
        phone=row.get("phone"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def profile_from_session(session: AuthSession, now: str) -> Row:
    """Initial ``user_profiles`` row built from sign-up metadata.

    A ``role`` in the metadata is ignored: an organization name makes an
    organizer, anything else a user.
    """
    meta = session.metadata
    organization_name = (meta.get("organization_name") or "").strip() or None
    role = Role.ORGANIZER if organization_name else Role.USER
    return {
        "id": session.user_id,
        "email": session.email,
        "full_name": meta.get("full_name") or "",
        "organization_name": organization_name,
        "phone": meta.get("phone"),
        "role": role.value,
        "created_at": now,
        "updated_at": now,
    }


class SessionStore:
    """Current identity plus sign-in, sign-up and profile operations."""

    def __init__(
        self,
        auth: AuthProvider,
        profiles: TableStore,
        *,
        clock: Callable[[], datetime.datetime] = lambda: datetime.datetime.now(tz=UTC),
    ) -> None:
        self.auth = auth
        self.profiles = profiles
        self._clock = clock
        self.state = SessionState.UNAUTHENTICATED
        self.identity: Identity | None = None
        self.awaiting_confirmation = False
        self._listeners: list[Listener] = []
        self._unsubscribe = auth.on_session_change(self._on_auth_event)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    @property
    def is_loading(self) -> bool:
        return self.state is SessionState.AUTHENTICATING

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED and self.identity is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(store)`` after every change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _set(self, state: SessionState, identity: Identity | None) -> None:
        self.state = state
        self.identity = identity
        self._notify()

    def _on_auth_event(self, event: str, session: AuthSession | None) -> None:
        # Sign-in flows set the identity themselves once the profile loads;
        # only a provider-side sign-out (e.g. a rejected refresh) needs handling.
        if event == "SIGNED_OUT" and self.state is not SessionState.UNAUTHENTICATED:
            log.info("Session ended by the auth provider")
            self._set(SessionState.UNAUTHENTICATED, None)

    def close(self) -> None:
        self._unsubscribe()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Profile helpers
    # ------------------------------------------------------------------
    def _now(self) -> str:
        return self._clock().isoformat()

    async def _load_identity(self, session: AuthSession) -> Identity:
        result = await self.profiles.query(
            PROFILES, TableQuery(limit=1).where("id", "eq", session.user_id)
        )
        if result.rows:
            return identity_from_profile(result.rows[0])
        log.info("Creating missing profile for %s", session.user_id)
        row = await self.profiles.insert(PROFILES, profile_from_session(session, self._now()))
        return identity_from_profile(row)

    async def _authenticate(self, attempt: Callable[[], Any]) -> Identity | None:
        self._set(SessionState.AUTHENTICATING, None)
        try:
            session = await attempt()
            if session is None:
                self._set(SessionState.UNAUTHENTICATED, None)
                return None
            identity = await self._load_identity(session)
        except Exception:
            self._set(SessionState.UNAUTHENTICATED, None)
            raise
        self.awaiting_confirmation = False
        self._set(SessionState.AUTHENTICATED, identity)
        return identity

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def restore(self) -> Identity | None:
        """Resume a session the auth provider still holds."""
        return await self._authenticate(self.auth.get_session)

    async def sign_in(self, email: str, password: str) -> Identity:
        validation.validate_sign_in(email, password)
        identity = await self._authenticate(
            lambda: self.auth.sign_in(email.strip(), password)
        )
        if identity is None:
            raise AuthError("invalid_credentials")
        log.info("Signed in %s (%s)", identity.email, identity.role.value)
        return identity

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        confirm_password: str,
        full_name: str,
        organization_name: str | None = None,
        phone: str | None = None,
        agree_to_terms: bool = True,
    ) -> Identity | None:
        """Register a new account.

        Returns the identity when the provider signs the user in straight
        away, or ``None`` when the account waits for email confirmation (in
        which case :attr:`awaiting_confirmation` is set).
        """
        validation.validate_sign_up(
            full_name=full_name,
            email=email,
            password=password,
            confirm_password=confirm_password,
            phone=phone,
            agree_to_terms=agree_to_terms,
        )
        organization_name = (organization_name or "").strip() or None
        role = Role.ORGANIZER if organization_name else Role.USER
        metadata = {
            "full_name": full_name.strip(),
            "organization_name": organization_name,
            "phone": (phone or "").strip() or None,
            "role": role.value,
        }
        identity = await self._authenticate(
            lambda: self.auth.sign_up(email.strip(), password, metadata)
        )
        if identity is None:
            self.awaiting_confirmation = True
            self._notify()
        return identity

    async def sign_out(self) -> None:
        try:
            await self.auth.sign_out()
        finally:
            self.awaiting_confirmation = False
            self._set(SessionState.UNAUTHENTICATED, None)

    async def update_profile(
        self,
        *,
        full_name: str | None = None,
        organization_name: str | None = None,
        phone: str | None = None,
    ) -> Identity:
        identity = self._require_identity()
        full_name = identity.display_name if full_name is None else full_name
        validation.validate_profile(full_name, phone)
        values: Row = {"full_name": full_name.strip(), "updated_at": self._now()}
        if organization_name is not None:
            values["organization_name"] = organization_name.strip() or None
        if phone is not None:
            values["phone"] = phone.strip() or None
        rows = await self.profiles.update(PROFILES, {"id": identity.id}, values)
        if rows:
            updated = identity_from_profile(rows[0])
        else:
            updated = identity.model_copy(
                update={
                    "display_name": values["full_name"],
                    "organization_name": values.get(
                        "organization_name", identity.organization_name
                    ),
                    "phone": values.get("phone", identity.phone),
                }
            )
        self.identity = updated
        self._notify()
        return updated

    async def change_password(self, new_password: str, confirm_password: str) -> None:
        self._require_identity()
        validation.validate_new_password(new_password, confirm_password)
        await self.auth.update_password(new_password)

    async def request_password_reset(self, email: str) -> None:
        if msg := validation.email_error(email):
            raise ValidationError({"email": msg})
        await self.auth.reset_password(email.strip())

    def _require_identity(self) -> Identity:
        if self.identity is None:
            raise AuthError("not_authenticated")
        return self.identity


class SessionRegistry:
    """One :class:`SessionStore` per chat user, created on first use."""

    def __init__(self, factory: Callable[[], SessionStore]) -> None:
        self._factory = factory
        self._sessions: dict[int, SessionStore] = {}

    def get(self, user_id: int) -> SessionStore:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions[user_id] = self._factory()
        return session

    def discard(self, user_id: int) -> None:
        session = self._sessions.pop(user_id, None)
        if session is not None:
            session.close()

    def __len__(self) -> int:
        return len(self._sessions)
