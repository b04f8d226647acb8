"""Discord bot for browsing and managing Hobbly activities."""

from __future__ import annotations

from typing import Any

import discord
from discord.ext import commands

from .logging_config import setup_logging


class HobblyBot(commands.Bot):
    """``discord.py`` bot that serves Hobbly's pages as slash commands."""

    def __init__(self, **kwargs: Any) -> None:  # pragma: no cover - trivial
        intents = kwargs.pop("intents", None) or discord.Intents.default()
        # Slash commands and components only; no message content needed.
        intents.message_content = False
        super().__init__(
            command_prefix=kwargs.pop("command_prefix", "!"),
            intents=intents,
            **kwargs,
        )
        self.log = setup_logging()

    async def setup_hook(self) -> None:
        """Sync slash commands so newly added ones show up for users."""
        tree = getattr(self, "tree", None)
        if tree is not None:  # pragma: no cover - exercised in integration
            synced = await tree.sync()
            self.log.info("Synced %d slash commands", len(synced))
        await super().setup_hook()

    async def on_ready(self) -> None:  # pragma: no cover - requires discord
        await self.change_presence(activity=discord.Game(name="Hobbly"))
        self.log.info(
            "Logged in as %s (%s)",
            self.user,
            self.user.id if self.user else "?",
        )


__all__ = ["HobblyBot"]
