"""Discord rendering of page screens.

:func:`screen_embed` draws a :class:`~hobbly_bot.pages.base.Screen` as an
embed and :class:`ScreenView` attaches its pagination, row picker and action
buttons. The view knows nothing about pages; it reports clicks through the
callbacks it is given.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import discord

from ..pages.base import Screen
from .components import Button, Pagination, Table

EMBED_LIMIT = 4000
SELECT_LIMIT = 25

PageHandler = Callable[[discord.Interaction, int], Awaitable[None]]
RowHandler = Callable[[discord.Interaction, str], Awaitable[None]]
ActionHandler = Callable[[discord.Interaction, Button], Awaitable[None]]

STYLES = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "danger": discord.ButtonStyle.danger,
    "ghost": discord.ButtonStyle.secondary,
    "success": discord.ButtonStyle.success,
}


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def screen_embed(screen: Screen) -> discord.Embed:
    if screen.error:
        color = discord.Color.red()
    elif screen.notice:
        color = discord.Color.green()
    else:
        color = discord.Color.blurple()

    parts: list[str] = []
    if screen.error:
        parts.append(f"⚠️ {screen.error}")
    if screen.notice:
        parts.append(f"✅ {screen.notice}")
    parts.extend(line for line in screen.lines if line)
    if screen.table is not None:
        parts.append(f"```\n{screen.table.render()}\n```")
    if screen.pagination is not None and screen.pagination.total_pages > 1:
        parts.append(screen.pagination.render())

    e = discord.Embed(
        title=screen.title, description=_clip("\n".join(parts), EMBED_LIMIT), color=color
    )
    if screen.header is not None:
        e.set_author(name=screen.header.render())
    for item in screen.fields[:25]:
        e.add_field(
            name=item.display_label,
            value=_clip(item.display_value, 1024),
            inline=False,
        )
    if screen.sidebar is not None:
        e.set_footer(text=" · ".join(f"{m.icon} {m.label}" for m in screen.sidebar.items()))
    return e


def _row_label(index: int, row: list[str]) -> str:
    text = " · ".join(cell for cell in row[:3] if cell and cell != "-")
    return _clip(text or f"Row {index + 1}", 100)


class ScreenView(discord.ui.View):
    """Buttons and selects for one screen.

    Row 0 holds Previous/Next, row 1 the page numbers, row 2 the row picker
    and rows 3-4 the screen's actions.
    """

    def __init__(
        self,
        screen: Screen,
        *,
        on_page: PageHandler | None = None,
        on_row: RowHandler | None = None,
        on_action: ActionHandler | None = None,
        timeout: float | None = 600,
    ) -> None:
        super().__init__(timeout=timeout)
        self.screen = screen
        if on_page is not None and screen.pagination is not None:
            self._add_pagination(screen.pagination, on_page)
        if on_row is not None and screen.table is not None and screen.table.items:
            self._add_row_picker(screen.table, on_row)
        if on_action is not None:
            self._add_actions(screen.actions, on_action)

    def _add_pagination(self, pagination: Pagination, on_page: PageHandler) -> None:
        if pagination.total_pages <= 1:
            return

        def add(label: str, target: int, *, disabled: bool, row: int, current: bool = False) -> None:
            b = discord.ui.Button(
                label=label,
                style=discord.ButtonStyle.primary if current else discord.ButtonStyle.secondary,
                disabled=disabled,
                row=row,
            )

            async def handler(inter: discord.Interaction, page: int = target) -> None:
                await on_page(inter, page)

            b.callback = handler
            self.add_item(b)

        add("‹ Previous", pagination.current - 1, disabled=pagination.previous_disabled, row=0)
        add("Next ›", pagination.current + 1, disabled=pagination.next_disabled, row=0)
        for number in pagination.pages:
            add(
                str(number),
                number,
                disabled=number == pagination.current,
                row=1,
                current=number == pagination.current,
            )

    def _add_row_picker(self, table: Table, on_row: RowHandler) -> None:
        rows = table.rows()
        options = [
            discord.SelectOption(label=_row_label(i, row), value=key)
            for i, (key, row) in enumerate(zip(table.keys(), rows))
        ][:SELECT_LIMIT]
        select = discord.ui.Select(placeholder="Show details…", options=options, row=2)

        async def on_select(inter: discord.Interaction) -> None:
            await on_row(inter, select.values[0])

        select.callback = on_select
        self.add_item(select)

    def _add_actions(self, actions: list[Button], on_action: ActionHandler) -> None:
        for index, action in enumerate(actions[:10]):
            b = discord.ui.Button(
                label=action.label,
                style=STYLES.get(action.variant, discord.ButtonStyle.secondary),
                disabled=action.disabled,
                row=3 + index // 5,
            )

            async def handler(inter: discord.Interaction, chosen: Button = action) -> None:
                await on_action(inter, chosen)

            b.callback = handler
            self.add_item(b)

    @property
    def is_empty(self) -> bool:
        return not self.children


class ChoiceView(discord.ui.View):
    """A single select menu whose choice is handed to ``on_choice``."""

    def __init__(
        self,
        placeholder: str,
        options: list[tuple[str, str]],
        on_choice: RowHandler,
        *,
        timeout: float | None = 300,
    ) -> None:
        super().__init__(timeout=timeout)
        select = discord.ui.Select(
            placeholder=placeholder,
            options=[
                discord.SelectOption(label=_clip(label, 100), value=value)
                for label, value in options[:SELECT_LIMIT]
            ],
        )

        async def on_select(inter: discord.Interaction) -> None:
            await on_choice(inter, select.values[0])

        select.callback = on_select
        self.add_item(select)
