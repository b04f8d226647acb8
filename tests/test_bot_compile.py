import py_compile
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def test_discord_modules_compile() -> None:
    """The modules that need ``discord`` at import time are at least valid.

    The rest of the suite imports them against stubs only, so a syntax error
    in one of these would otherwise surface only when the bot starts.
    """
    for module in [
        "hobbly_bot/bot.py",
        "hobbly_bot/main.py",
        "hobbly_bot/ui/views.py",
        "hobbly_bot/ui/modals.py",
        "hobbly_bot/commands/register.py",
        "hobbly_bot/commands/navigation.py",
    ]:
        py_compile.compile(str(ROOT / module), doraise=True)
