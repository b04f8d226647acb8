"""Supabase implementations of the backend capability interfaces.

The adapters talk to Supabase's REST endpoints directly using :mod:`httpx`
which keeps the implementation dependency light while remaining fully
asynchronous:

* GoTrue (``/auth/v1``) for :class:`SupabaseAuthProvider`
* PostgREST (``/rest/v1``) for :class:`SupabaseTableStore`
* Storage (``/storage/v1``) for :class:`SupabaseObjectStore`

Transport failures surface as :class:`~hobbly_bot.core.errors.NetworkError`,
non-2xx responses as :class:`~hobbly_bot.core.errors.BackendError` (or
:class:`~hobbly_bot.core.errors.AuthError` for the auth endpoints).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from ..core.errors import AuthError, BackendError, NetworkError
from .base import (
    AuthProvider,
    AuthSession,
    Filter,
    ObjectStore,
    QueryResult,
    Row,
    SessionListener,
    TableQuery,
    TableStore,
)

log = logging.getLogger("hobbly.supabase")

# Characters PostgREST treats as syntax inside ``or=(...)`` groups.
_RESERVED = set(',()".:')


class SupabaseHTTP:
    """Shared connection details and request helper."""

    def __init__(
        self, base_url: str, api_key: str, client: httpx.AsyncClient | None = None
    ) -> None:
        """Store the project ``base_url``, ``api_key`` and optional ``client``."""
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = client or httpx.AsyncClient()

    def _headers(self, token: str | None = None, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token or self.api_key}",
        }
        headers.update(extra)
        return headers

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            log.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._translate(response) from exc
        return response

    def _translate(self, response: httpx.Response) -> Exception:
        return BackendError(_error_message(response), status=response.status_code)

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        for key in ("message", "msg", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return f"HTTP {response.status_code}"


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _operand(f: Filter) -> str:
    value = _format_value(f.value)
    if f.op == "ilike":
        value = f"*{value}*"
    return value


def _quoted(value: str) -> str:
    if any(ch in _RESERVED for ch in value):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def build_params(query: TableQuery) -> list[tuple[str, str]]:
    """Translate ``query`` into PostgREST query parameters."""
    params: list[tuple[str, str]] = [("select", "*")]
    for f in query.filters:
        params.append((f.column, f"{f.op}.{_operand(f)}"))
    if query.any_of:
        parts = ",".join(f"{f.column}.{f.op}.{_quoted(_operand(f))}" for f in query.any_of)
        params.append(("or", f"({parts})"))
    if query.order_by:
        direction = "desc" if query.descending else "asc"
        params.append(("order", f"{query.order_by}.{direction}"))
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    if query.offset:
        params.append(("offset", str(query.offset)))
    return params


def parse_content_range(value: str | None) -> int | None:
    """Return the total from a ``Content-Range`` header such as ``0-9/42``."""
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class SupabaseTableStore(SupabaseHTTP, TableStore):
    """PostgREST-backed :class:`TableStore`."""

    async def query(self, table: str, query: TableQuery) -> QueryResult:
        headers = self._headers()
        if query.count:
            headers["Prefer"] = "count=exact"
        response = await self._send(
            "GET", f"/rest/v1/{table}", params=build_params(query), headers=headers
        )
        rows = response.json() or []
        total = parse_content_range(response.headers.get("content-range"))
        if query.count and total is None:
            total = len(rows)
        return QueryResult(rows=rows, total=total)

    async def insert(self, table: str, row: Row) -> Row:
        response = await self._send(
            "POST",
            f"/rest/v1/{table}",
            json=row,
            headers=self._headers(Prefer="return=representation"),
        )
        data = response.json()
        if isinstance(data, list):
            if not data:
                raise BackendError(f"Insert into {table} returned no rows")
            return data[0]
        return data

    async def update(self, table: str, match: Row, values: Row) -> list[Row]:
        params = [(k, f"eq.{_format_value(v)}") for k, v in match.items()]
        response = await self._send(
            "PATCH",
            f"/rest/v1/{table}",
            params=params,
            json=values,
            headers=self._headers(Prefer="return=representation"),
        )
        return response.json() or []


class SupabaseObjectStore(SupabaseHTTP, ObjectStore):
    """Supabase Storage-backed :class:`ObjectStore`."""

    async def upload(
        self, bucket: str, path: str, content: bytes, content_type: str
    ) -> str:
        await self._send(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            content=content,
            headers=self._headers(**{"Content-Type": content_type, "x-upsert": "true"}),
        )
        return self.public_url(bucket, path)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{path}"


def _auth_code(response: httpx.Response) -> str:
    if response.status_code == 429:
        return "rate_limited"
    try:
        data = response.json()
    except ValueError:
        data = {}
    code = str(data.get("error_code") or data.get("code") or "") if isinstance(data, dict) else ""
    message = _error_message(response).lower()
    if code == "email_not_confirmed" or "email not confirmed" in message:
        return "email_not_confirmed"
    if code in ("invalid_credentials", "invalid_grant") or "invalid login" in message:
        return "invalid_credentials"
    if code == "user_already_exists" or "already registered" in message:
        return "user_exists"
    if code == "weak_password":
        return "weak_password"
    return "auth_failed"


class SupabaseAuthProvider(SupabaseHTTP, AuthProvider):
    """GoTrue-backed :class:`AuthProvider`.

    Like the official client, one instance tracks exactly one signed-in user,
    so the bot creates an instance per Discord member.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        client: httpx.AsyncClient | None = None,
        *,
        redirect_to: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(base_url, api_key, client)
        self.redirect_to = redirect_to
        self._clock = clock
        self._session: AuthSession | None = None
        self._listeners: list[SessionListener] = []

    # ------------------------------------------------------------------
    # Internal helpers
    def _translate(self, response: httpx.Response) -> Exception:
        if response.status_code >= 500:
            return BackendError(_error_message(response), status=response.status_code)
        return AuthError(_auth_code(response), _error_message(response))

    def _emit(self, event: str) -> None:
        for listener in list(self._listeners):
            listener(event, self._session)

    def _session_from(self, data: dict[str, Any]) -> AuthSession:
        user = data.get("user") or {}
        expires_at = data.get("expires_at")
        if expires_at is None and data.get("expires_in") is not None:
            expires_at = self._clock() + float(data["expires_in"])
        return AuthSession(
            user_id=str(user.get("id", "")),
            email=user.get("email", ""),
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=float(expires_at) if expires_at is not None else None,
            metadata=dict(user.get("user_metadata") or {}),
        )

    def _require_session(self) -> AuthSession:
        if self._session is None:
            raise AuthError("not_authenticated")
        return self._session

    # ------------------------------------------------------------------
    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthSession | None:
        response = await self._send(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": metadata},
            headers=self._headers(),
        )
        data = response.json()
        if not data.get("access_token"):
            log.info("Sign-up for %s awaits email confirmation", email)
            return None
        self._session = self._session_from(data)
        self._emit("SIGNED_IN")
        return self._session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        response = await self._send(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
        )
        self._session = self._session_from(response.json())
        self._emit("SIGNED_IN")
        return self._session

    async def sign_out(self) -> None:
        session, self._session = self._session, None
        try:
            if session is not None:
                await self._send(
                    "POST",
                    "/auth/v1/logout",
                    headers=self._headers(session.access_token),
                )
        finally:
            self._emit("SIGNED_OUT")

    async def refresh(self) -> AuthSession | None:
        session = self._session
        if session is None or not session.refresh_token:
            return None
        try:
            response = await self._send(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": session.refresh_token},
                headers=self._headers(),
            )
        except AuthError:
            log.info("Refresh token rejected; signing out locally")
            self._session = None
            self._emit("SIGNED_OUT")
            return None
        self._session = self._session_from(response.json())
        self._emit("TOKEN_REFRESHED")
        return self._session

    async def get_session(self) -> AuthSession | None:
        session = self._session
        if session and session.expires_at is not None and session.expires_at <= self._clock():
            return await self.refresh()
        return session

    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def reset_password(self, email: str) -> None:
        params = {"redirect_to": self.redirect_to} if self.redirect_to else None
        await self._send(
            "POST",
            "/auth/v1/recover",
            params=params,
            json={"email": email},
            headers=self._headers(),
        )

    async def update_password(self, new_password: str) -> None:
        session = self._require_session()
        await self._send(
            "PUT",
            "/auth/v1/user",
            json={"password": new_password},
            headers=self._headers(session.access_token),
        )
        self._emit("USER_UPDATED")
