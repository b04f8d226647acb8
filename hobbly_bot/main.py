from __future__ import annotations

import asyncio

import httpx

from .adapters.supabase import (
    SupabaseAuthProvider,
    SupabaseObjectStore,
    SupabaseTableStore,
)
from .bot import HobblyBot
from .commands.navigation import Navigator
from .commands.register import register_commands
from .config import Settings, load_settings
from .data.directory import ActivityDirectory
from .data.session import SessionRegistry, SessionStore
from .logging_config import setup_logging


def build_navigator(settings: Settings, client: httpx.AsyncClient) -> Navigator:
    """Wire the Supabase adapters, directory and per-user sessions together."""
    tables = SupabaseTableStore(settings.supabase_url, settings.supabase_key, client)
    objects = SupabaseObjectStore(settings.supabase_url, settings.supabase_key, client)
    directory = ActivityDirectory(
        tables, objects, owner_fallback=settings.owner_fallback
    )

    def new_session() -> SessionStore:
        auth = SupabaseAuthProvider(
            settings.supabase_url,
            settings.supabase_key,
            client,
            redirect_to=settings.reset_redirect_url,
        )
        return SessionStore(auth, tables)

    return Navigator(
        SessionRegistry(new_session), directory, page_size=settings.page_size
    )


def main() -> int:
    settings = load_settings()
    log = setup_logging(settings.log_level)
    missing = settings.missing()
    if missing:
        log.error(
            "%s not set. Export them in your environment or a .env file before running.",
            ", ".join(missing),
        )
        return 2
    if not settings.owner_fallback:
        log.info("Owner fallback disabled; empty organizer listings stay empty")

    async def runner() -> int:
        async with httpx.AsyncClient(timeout=httpx.Timeout(15.0)) as client:
            bot = HobblyBot()
            register_commands(bot, build_navigator(settings, client))
            try:
                async with bot:
                    await bot.start(settings.token)
            except KeyboardInterrupt:
                log.info("Shutting down...")
        return 0

    return asyncio.run(runner())


if __name__ == "__main__":
    raise SystemExit(main())
