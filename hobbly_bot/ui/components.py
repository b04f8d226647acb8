"""Presentation components.

These are plain data objects that know how to lay themselves out as text.
They hold no platform types; :mod:`hobbly_bot.ui.views` turns them into
Discord embeds and buttons.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.authorization import is_allowed
from ..core.models import Page, Role
from ..core.pagination import DEFAULT_WINDOW, page_window

MAX_CELL_WIDTH = 24


def get_nested(obj: Any, path: str) -> Any:
    """Resolve a dotted ``path`` through attributes or mapping keys."""
    value = obj
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def _fit(text: str, width: int, align: str) -> str:
    if len(text) > width:
        text = text[: max(width - 1, 0)] + "…"
    if align == "right":
        return text.rjust(width)
    if align == "center":
        return text.center(width)
    return text.ljust(width)


@dataclass
class Column:
    key: str
    label: str
    render: Callable[[Any, Any], str] | None = None
    width: int | None = None
    align: str = "left"


@dataclass
class Table:
    """Rows of ``items`` laid out per ``columns``.

    While ``loading`` the table shows a placeholder; with no items it shows
    ``empty_message``.
    """

    columns: list[Column]
    items: Sequence[Any] = ()
    key: Callable[[Any], str] = lambda item: str(get_nested(item, "id"))
    loading: bool = False
    empty_message: str = "No data available"

    def cell(self, column: Column, item: Any) -> str:
        value = get_nested(item, column.key)
        if column.render is not None:
            return column.render(value, item)
        if value is None or value == "":
            return "-"
        return str(value)

    def rows(self) -> list[list[str]]:
        return [[self.cell(c, item) for c in self.columns] for item in self.items]

    def keys(self) -> list[str]:
        return [self.key(item) for item in self.items]

    def widths(self, rows: list[list[str]]) -> list[int]:
        widths = []
        for i, column in enumerate(self.columns):
            if column.width is not None:
                widths.append(column.width)
                continue
            longest = max([len(column.label)] + [len(r[i]) for r in rows])
            widths.append(min(longest, MAX_CELL_WIDTH))
        return widths

    @property
    def is_empty(self) -> bool:
        return not self.loading and not self.items

    def render(self) -> str:
        if self.loading:
            return "Loading..."
        if not self.items:
            return self.empty_message
        rows = self.rows()
        widths = self.widths(rows)
        header = " | ".join(
            _fit(c.label, w, c.align) for c, w in zip(self.columns, widths)
        )
        lines = [header, "-+-".join("-" * w for w in widths)]
        for row in rows:
            lines.append(
                " | ".join(
                    _fit(text, w, c.align)
                    for text, c, w in zip(row, self.columns, widths)
                )
            )
        return "\n".join(line.rstrip() for line in lines)


@dataclass
class Pagination:
    current: int
    total_pages: int
    window: int = DEFAULT_WINDOW
    show_page_numbers: bool = True

    @classmethod
    def for_page(cls, page: Page[Any], window: int = DEFAULT_WINDOW) -> Pagination:
        return cls(current=page.page, total_pages=page.total_pages, window=window)

    @property
    def pages(self) -> list[int]:
        if not self.show_page_numbers:
            return []
        return page_window(self.current, self.total_pages, self.window)

    @property
    def previous_disabled(self) -> bool:
        return self.current <= 1

    @property
    def next_disabled(self) -> bool:
        return self.current >= self.total_pages

    def render(self) -> str:
        parts = ["‹ Previous" if not self.previous_disabled else "‹"]
        parts += [f"[{p}]" if p == self.current else str(p) for p in self.pages]
        parts.append("Next ›" if not self.next_disabled else "›")
        return "  ".join(parts)


@dataclass
class Button:
    """An action the user can trigger; ``action`` names a route or handler."""

    label: str
    action: str
    variant: str = "primary"
    disabled: bool = False
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class Input:
    label: str
    name: str
    value: str = ""
    required: bool = False
    secret: bool = False
    error: str | None = None
    helper: str | None = None

    @property
    def display_label(self) -> str:
        return f"{self.label}*" if self.required else self.label

    @property
    def display_value(self) -> str:
        shown = "•" * 8 if self.secret and self.value else (self.value or "-")
        if self.error:
            return f"{shown}\n  ⚠ {self.error}"
        if self.helper:
            return f"{shown}\n  {self.helper}"
        return shown

    def render(self) -> str:
        return f"{self.display_label}: {self.display_value}"


@dataclass(frozen=True)
class MenuItem:
    id: str
    label: str
    icon: str
    route: str
    roles: frozenset[str] = frozenset()
    bottom: bool = False


MENU: tuple[MenuItem, ...] = (
    MenuItem("dashboard", "Dashboard", "📊", "dashboard", frozenset({"organizer"})),
    MenuItem("activities", "Activities", "📅", "activities", frozenset({"organizer"})),
    MenuItem("users", "Users", "👥", "users", frozenset({"admin"})),
    MenuItem("personal", "Personal info", "👤", "personal_info"),
    MenuItem("trash", "Trash bin", "🗑️", "trash", frozenset({"organizer"}), bottom=True),
)


@dataclass
class Sidebar:
    role: Role
    active: str | None = None

    def items(self) -> list[MenuItem]:
        visible = [m for m in MENU if is_allowed(self.role, m.roles)]
        return [m for m in visible if not m.bottom] + [m for m in visible if m.bottom]

    def render(self) -> str:
        lines = []
        for item in self.items():
            marker = "▸" if item.route == self.active else " "
            lines.append(f"{marker} {item.icon} {item.label}")
        return "\n".join(lines)


@dataclass
class Header:
    user_name: str
    organization: str | None = None
    search_hint: str = "Search activities"

    def render(self) -> str:
        if self.organization:
            return f"{self.user_name} · {self.organization}"
        return self.user_name
