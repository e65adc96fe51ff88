"""
Tests for the built-in behavior units: Greeter and Addressed, plus how the
built-ins combine with each other.
"""

from base_bot import make_bot_type
from behaviors import (
    BUILTIN_UNITS,
    Addressed,
    BehaviorUnit,
    Greeter,
    Karma,
    Oping,
    PluginLoader,
    candidate,
)
from behaviors.addressed import strip_address
from events import Command, Message
from plugin_registry import PluginRegistry


class Pinger(BehaviorUnit):
    unit_name = "pinger"

    @candidate("on_addressed", r"^ping$")
    def pong(self, bot, event, match):
        return "pong"


class TestGreeter:
    """Greeter relies on a trust capability from another unit."""

    def test_greets_strangers(self):
        """Untrusted nicks get the plain greeting."""
        bot = make_bot_type("GreeterBot", [Oping, Greeter])()
        assert bot.handle(Message("amy", "Hello there")) == [Command.privmsg("amy", "hello, amy")]

    def test_welcomes_trusted_nicks(self):
        """Trusted nicks are welcomed back."""
        bot = make_bot_type("GreeterBot", [Oping, Greeter])()
        bot.handle(Message("x", "trust amy"))
        assert bot.handle(Message("amy", "hi", "#c"))[0].text == "welcome back, amy"

    def test_word_boundary(self):
        """'history' is not a greeting."""
        bot = make_bot_type("GreeterBot", [Oping, Greeter])()
        assert bot.handle(Message("amy", "history")) == []


class TestAddressed:
    """Addressed forwards only messages meant for the bot."""

    def _bot(self, nick="rb"):
        return make_bot_type("PolicyBot", [Addressed, Pinger])(nick=nick)

    def test_strip_address(self):
        """Both ':' and ',' separators are accepted, case-insensitively."""
        assert strip_address("rb", "rb: ping") == "ping"
        assert strip_address("rb", "RB,ping") == "ping"
        assert strip_address("rb", "rbx: ping") is None
        assert strip_address("rb", "ping rb:") is None

    def test_strip_address_escapes_nick(self):
        """Nicks with regex characters are matched literally."""
        assert strip_address("r.b", "r.b: hi") == "hi"
        assert strip_address("r.b", "rxb: hi") is None

    def test_addressed_channel_message(self):
        """'rb: ping' in a channel reaches on_addressed without the prefix."""
        bot = self._bot()
        assert bot.handle(Message("x", "rb: ping", "#c")) == [Command.privmsg("#c", "pong")]

    def test_unaddressed_channel_message_ignored(self):
        """Plain channel chatter is dropped."""
        bot = self._bot()
        assert bot.handle(Message("x", "ping", "#c")) == []

    def test_private_message_always_addressed(self):
        """Private messages need no prefix."""
        bot = self._bot()
        assert bot.handle(Message("x", "ping")) == [Command.privmsg("x", "pong")]

    def test_uses_bot_nick(self):
        """The prefix is the instance's own nick."""
        bot = self._bot(nick="other")
        assert bot.handle(Message("x", "rb: ping", "#c")) == []
        assert bot.handle(Message("x", "other: ping", "#c"))[0].text == "pong"

    def test_addressed_without_listeners(self):
        """No on_addressed candidates means no replies."""
        bot = make_bot_type("BarePolicyBot", [Addressed])(nick="rb")
        assert bot.handle(Message("x", "rb: ping", "#c")) == []

    def test_addressed_plugins_loaded_at_runtime(self):
        """Units attached later can listen on on_addressed."""
        bot = make_bot_type("BarePolicyBot", [Addressed])(nick="rb")
        bot.attach([Pinger])
        assert bot.handle(Message("x", "rb, ping", "#c"))[0].text == "pong"


class TestBuiltinCombinations:
    """The built-in units combine the way their declarations say."""

    def test_builtins_listed(self):
        """Every built-in unit is exported."""
        assert BUILTIN_UNITS == (Karma, Oping, Greeter, Addressed, PluginLoader)
        assert [u.unit_name for u in BUILTIN_UNITS] == [
            "karma", "oping", "greeter", "addressed", "plugin_loader",
        ]

    def test_message_units_share_on_message(self):
        """Karma, Oping, Greeter and PluginLoader all contribute candidates."""
        Bot = make_bot_type("EverythingBot", [Karma, Oping, Greeter, PluginLoader])
        sources = Bot.behavior_set.get("on_message").sources
        assert sources == ("karma", "oping", "greeter", "plugin_loader")

    def test_one_message_reaches_several_units(self):
        """'trust bob++' both trusts 'bob++' and bumps bob's karma."""
        bot = make_bot_type("EverythingBot", [Karma, Oping])()
        commands = bot.handle(Message("x", "trust bob++"))

        assert [c.text for c in commands] == ["ok, bob++ is now trusted"]
        assert bot.unit_state(Karma).scores == {"bob": 1}

    def test_addressed_cannot_join_message_units(self):
        """Addressed takes on_message exclusively, so it cannot sit next to Karma."""
        bot = make_bot_type("KarmaOnly", [Karma])(plugins=PluginRegistry({"addressed": Addressed}))
        bot.attach([PluginLoader])
        reply = bot.handle(Message("x", "youdo addressed"))[0].text
        assert reply.startswith("Could not load addressed")
