from __future__ import annotations

from typing import Any

from ..ui.components import Button
from .base import PageController, Screen


class DashboardPage(PageController):
    """Organizer overview: headline numbers and quick actions."""

    route = "dashboard"
    title = "DASHBOARD"

    async def render(self, **kwargs: Any) -> Screen:
        identity = self._user()
        stats = await self.directory.stats(identity.id)
        return self.screen(
            lines=[
                f"Welcome back, {identity.name}!",
                f"Total Activities: {stats.total}",
                f"Active Activities: {stats.active}",
                f"Upcoming: {stats.pending}",
                f"Total Participants: {stats.participants}",
                f"Created This Month: {stats.this_month}",
            ],
            actions=[
                Button("Manage Activities", "activities"),
                Button("Create Activity", "activity_editor", variant="secondary"),
                Button("Update Profile", "personal_info", variant="secondary"),
            ],
            state={"stats": stats.model_dump()},
        )
