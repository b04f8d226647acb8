"""Capability interfaces for the hosted backend.

The application only talks to the backend through these three abstractions,
so the Supabase implementations can be swapped for in-memory doubles in the
tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

Row = dict[str, Any]

# Supported filter operators. ``ilike`` is a case-insensitive substring match.
OPERATORS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte", "ilike", "is"})


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass
class TableQuery:
    """A filtered, ordered and paginated read against one table.

    ``filters`` are combined with AND; ``any_of`` forms one extra OR group.
    """

    filters: list[Filter] = field(default_factory=list)
    any_of: list[Filter] = field(default_factory=list)
    order_by: str | None = None
    descending: bool = False
    limit: int | None = None
    offset: int = 0
    count: bool = False

    def where(self, column: str, op: str, value: Any) -> TableQuery:
        self.filters.append(Filter(column, op, value))
        return self


@dataclass
class QueryResult:
    rows: list[Row]
    # Total number of matching rows ignoring limit/offset, when requested.
    total: int | None = None


@dataclass
class AuthSession:
    user_id: str
    email: str
    access_token: str
    refresh_token: str | None = None
    expires_at: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


SessionListener = Callable[[str, "AuthSession | None"], None]


class AuthProvider(ABC):
    """Remote authentication (sign-up, sign-in, sessions, passwords)."""

    @abstractmethod
    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthSession | None:
        """Register a user.

        Returns the new session, or ``None`` while the account awaits email
        confirmation.
        """

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Exchange credentials for a session."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session."""

    @abstractmethod
    async def get_session(self) -> AuthSession | None:
        """Return the current session, if any."""

    @abstractmethod
    def on_session_change(self, callback: SessionListener) -> Callable[[], None]:
        """Register ``callback(event, session)``; returns an unsubscribe function."""

    @abstractmethod
    async def reset_password(self, email: str) -> None:
        """Send a password reset email."""

    @abstractmethod
    async def update_password(self, new_password: str) -> None:
        """Change the signed-in user's password."""


class TableStore(ABC):
    """REST-queryable tables (activities, categories, tags, user_profiles)."""

    @abstractmethod
    async def query(self, table: str, query: TableQuery) -> QueryResult:
        """Read rows matching ``query``."""

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert ``row`` and return it as stored."""

    @abstractmethod
    async def update(self, table: str, match: Row, values: Row) -> list[Row]:
        """Apply ``values`` to rows equal to ``match``; return updated rows."""


class ObjectStore(ABC):
    """Blob storage for uploaded images."""

    @abstractmethod
    async def upload(
        self, bucket: str, path: str, content: bytes, content_type: str
    ) -> str:
        """Store ``content`` and return its public URL."""
