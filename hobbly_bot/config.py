import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .core.pagination import DEFAULT_LIMIT

_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    token: str
    supabase_url: str = ""
    supabase_key: str = ""
    page_size: int = DEFAULT_LIMIT
    # Owner listings with no rows fall back to every activity
    owner_fallback: bool = True
    log_level: str = "INFO"
    # Where password reset emails send the user
    reset_redirect_url: str | None = None

    def missing(self) -> list[str]:
        """Names of required environment variables that are not set."""
        required = {
            "DISCORD_BOT_TOKEN": self.token,
            "SUPABASE_URL": self.supabase_url,
            "SUPABASE_ANON_KEY": self.supabase_key,
        }
        return [name for name, value in required.items() if not value]


def _int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        return default


def load_settings(env_file: str | None = None) -> Settings:
    load_dotenv(env_file)
    fallback = os.getenv("HOBBLY_OWNER_FALLBACK", "").strip().lower()
    return Settings(
        token=os.getenv("DISCORD_BOT_TOKEN", "").strip(),
        supabase_url=os.getenv("SUPABASE_URL", "").strip(),
        supabase_key=os.getenv("SUPABASE_ANON_KEY", "").strip(),
        page_size=_int("HOBBLY_PAGE_SIZE", DEFAULT_LIMIT),
        owner_fallback=fallback not in _FALSE,
        log_level=os.getenv("HOBBLY_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        reset_redirect_url=os.getenv("HOBBLY_RESET_REDIRECT_URL", "").strip() or None,
    )
