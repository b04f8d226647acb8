import asyncio
import sys
import types

from hobbly_bot.core.errors import NetworkError
from hobbly_bot.core.models import Category

COMMAND_MODULES = [
    "hobbly_bot.commands.register",
    "hobbly_bot.commands.navigation",
    "hobbly_bot.ui.views",
    "hobbly_bot.ui.modals",
]


def stub_discord(monkeypatch):
    """Provide a minimal discord package for command registration."""
    discord = types.ModuleType("discord")

    class Interaction:
        def __init__(self, user_id=0):
            self.user = types.SimpleNamespace(id=user_id)

    discord.Interaction = Interaction
    discord.Attachment = object
    discord.ButtonStyle = types.SimpleNamespace(
        secondary=1, primary=2, danger=3, success=4
    )
    discord.TextStyle = types.SimpleNamespace(short=1, long=2)

    ui = types.ModuleType("discord.ui")

    class View:
        def __init__(self, *args, **kwargs):
            self.children = []

        def add_item(self, item):
            self.children.append(item)

    class Modal:
        def __init__(self, *args, **kwargs):
            self.children = []

        def add_item(self, item):
            self.children.append(item)

    class TextInput:
        def __init__(self, **kwargs):
            self.value = kwargs.get("default") or ""

    ui.View = View
    ui.Modal = Modal
    ui.TextInput = TextInput
    discord.ui = ui

    app_commands = types.ModuleType("discord.app_commands")

    class Choice:
        def __init__(self, name, value):
            self.name = name
            self.value = value

    def passthrough(**_kwargs):
        def decorator(func):
            return func

        return decorator

    class Command:
        def __init__(self, callback, name, description):
            self.callback = callback
            self.name = name
            self.description = description
            self.autocomplete_callbacks = {}

        def autocomplete(self, param):
            def decorator(func):
                self.autocomplete_callbacks[param] = func
                return func

            return decorator

    class CommandTree:
        def __init__(self):
            self.commands = {}

        def command(self, *, name, description):
            def decorator(func):
                cmd = Command(func, name, description)
                self.commands[name] = cmd
                return cmd

            return decorator

    app_commands.Choice = Choice
    app_commands.describe = passthrough
    app_commands.choices = passthrough
    app_commands.CommandTree = CommandTree
    discord.app_commands = app_commands

    ext = types.ModuleType("discord.ext")
    commands_mod = types.ModuleType("discord.ext.commands")

    class Bot:
        def __init__(self, *args, **kwargs):
            self.tree = CommandTree()

    commands_mod.Bot = Bot
    ext.commands = commands_mod
    discord.ext = ext

    monkeypatch.setitem(sys.modules, "discord", discord)
    monkeypatch.setitem(sys.modules, "discord.ui", ui)
    monkeypatch.setitem(sys.modules, "discord.ext", ext)
    monkeypatch.setitem(sys.modules, "discord.ext.commands", commands_mod)
    monkeypatch.setitem(sys.modules, "discord.app_commands", app_commands)
    for mod in COMMAND_MODULES:
        monkeypatch.delitem(sys.modules, mod, raising=False)
    return discord


class FakeNavigator:
    def __init__(self, categories=None, error=None):
        self.calls = []
        self._categories = categories or []
        self._error = error
        self.directory = types.SimpleNamespace(categories=self.categories)

    async def categories(self):
        if self._error is not None:
            raise self._error
        return self._categories

    def __getattr__(self, name):
        async def record(*args, **kwargs):
            self.calls.append((name, args[1:], kwargs))

        return record


def register(monkeypatch, nav):
    discord = stub_discord(monkeypatch)
    from hobbly_bot.commands.register import register_commands

    bot = discord.ext.commands.Bot()
    register_commands(bot, nav)
    return discord, bot


def teardown_function():
    for mod in COMMAND_MODULES:
        sys.modules.pop(mod, None)


def test_every_page_has_a_command(monkeypatch):
    _, bot = register(monkeypatch, FakeNavigator())
    assert set(bot.tree.commands) == {
        "welcome",
        "login",
        "signup",
        "logout",
        "reset_password",
        "profile",
        "edit_profile",
        "change_password",
        "browse",
        "activity",
        "dashboard",
        "activities",
        "users",
        "trash",
        "create_activity",
        "edit_activity",
        "delete_activity",
        "upload_image",
    }


def test_category_autocomplete_filters_by_name(monkeypatch):
    nav = FakeNavigator(
        categories=[
            Category(id="c1", name="Art"),
            Category(id="c2", name="Sport"),
            Category(id="c3", name="Sports camps"),
        ]
    )
    discord, bot = register(monkeypatch, nav)
    complete = bot.tree.commands["browse"].autocomplete_callbacks["category"]
    choices = asyncio.run(complete(discord.Interaction(), "SPORT"))
    assert [(c.name, c.value) for c in choices] == [("Sport", "c2"), ("Sports camps", "c3")]
    for name in ("create_activity", "edit_activity"):
        assert "category" in bot.tree.commands[name].autocomplete_callbacks


def test_category_autocomplete_survives_backend_failure(monkeypatch):
    nav = FakeNavigator(error=NetworkError("offline"))
    discord, bot = register(monkeypatch, nav)
    complete = bot.tree.commands["create_activity"].autocomplete_callbacks["category"]
    assert asyncio.run(complete(discord.Interaction(), "")) == []


def test_browse_passes_filters(monkeypatch):
    nav = FakeNavigator()
    discord, bot = register(monkeypatch, nav)
    choice = discord.app_commands.Choice(name="Event", value="event")
    asyncio.run(
        bot.tree.commands["browse"].callback(
            discord.Interaction(), search="yoga", type=choice, max_price=20.0
        )
    )
    name, args, kwargs = nav.calls[0]
    assert (name, args) == ("show", ("browse",))
    assert kwargs["type"] == "event"
    assert kwargs["search"] == "yoga"
    assert kwargs["max_price"] == 20.0
    assert kwargs["page"] == 1


def test_edit_activity_without_options_opens_modal(monkeypatch):
    nav = FakeNavigator()
    discord, bot = register(monkeypatch, nav)
    command = bot.tree.commands["edit_activity"].callback
    asyncio.run(command(discord.Interaction(), "a1"))
    asyncio.run(command(discord.Interaction(), "a1", price=5.0))
    assert nav.calls[0][:2] == ("edit_activity", ("a1",))
    name, args, _ = nav.calls[1]
    assert name == "save_activity"
    assert args[0] == "a1"
    assert args[1]["price"] == 5.0
