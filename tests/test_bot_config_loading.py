"""
Test loading bots from configuration.

Tests config defaults and overrides, the plugin registry, building a bot
from config, and the command-line entry point.
"""

import io
import json
import logging

import pytest

import bot_main
from behaviors import BUILTIN_UNITS, BehaviorUnit, Karma, Oping, PluginLoader, exclusive
from bot_config import BotConfig
from errors import CompositionConflict
from logging_setup import configure_logging, log
from plugin_registry import PluginRegistry, default_registry, import_unit_class, to_snake_case


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("BOT_NICK", raising=False)
    monkeypatch.delenv("BOT_LOG_LEVEL", raising=False)


class TestBotConfig:
    """YAML config over built-in defaults."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """A missing config file is not an error."""
        config = BotConfig.load(tmp_path / "nope.yaml")
        assert config.identity.nick == "botroles"
        assert config.plugins.units == ["karma", "plugin_loader"]
        assert config.plugins.include_builtin is True
        assert config.logging.level == "INFO"

    def test_yaml_overrides_defaults(self, tmp_path):
        """Sections in the file update the defaults key by key."""
        config_file = tmp_path / "bot.yaml"
        config_file.write_text(
            "identity:\n"
            "  nick: karmabot\n"
            "plugins:\n"
            "  units: [oping, karma]\n"
            "  registry:\n"
            "    loader: PluginLoader\n"
        )
        config = BotConfig.load(config_file)

        assert config.identity.nick == "karmabot"
        assert config.plugins.units == ["oping", "karma"]
        assert config.plugins.registry == {"loader": "PluginLoader"}
        assert config.plugins.include_builtin is True

    def test_empty_file(self, tmp_path):
        """An empty YAML document means defaults."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert BotConfig.load(config_file).identity.nick == "botroles"

    def test_unknown_section_rejected(self):
        """Typos in section names are reported."""
        with pytest.raises(ValueError, match="Unknown config section: plugin"):
            BotConfig.from_dict({"plugin": {}})

    def test_environment_overrides(self, monkeypatch):
        """BOT_NICK and BOT_LOG_LEVEL win over the file."""
        monkeypatch.setenv("BOT_NICK", "envbot")
        monkeypatch.setenv("BOT_LOG_LEVEL", "DEBUG")
        config = BotConfig.from_dict({"identity": {"nick": "filebot"}})
        assert config.identity.nick == "envbot"
        assert config.logging.level == "DEBUG"

    def test_defaults_not_shared(self):
        """Mutating one config does not leak into the next."""
        first = BotConfig.from_dict(None)
        first.plugins.units.append("oping")
        assert BotConfig.from_dict(None).plugins.units == ["karma", "plugin_loader"]


class TestPluginRegistry:
    """Plugin names mapped to behavior units."""

    def test_default_registry_has_builtins(self):
        """Built-in units are registered by unit name."""
        registry = default_registry()
        assert registry.names() == sorted(u.unit_name for u in BUILTIN_UNITS)
        assert registry.get("karma") is Karma

    def test_names_case_insensitive(self):
        """Lookups ignore case."""
        registry = PluginRegistry({"Karma": Karma})
        assert registry.get("KARMA") is Karma
        assert "karma" in registry
        assert list(registry) == ["karma"]

    def test_register_rejects_non_units(self):
        """Only behavior units can be registered."""
        with pytest.raises(TypeError):
            PluginRegistry().register("bad", dict)

    def test_import_unit_class_by_name(self):
        """Bare class names resolve inside the behaviors package."""
        assert import_unit_class("PluginLoader") is PluginLoader
        assert import_unit_class("Oping") is Oping

    def test_import_unit_class_by_path(self):
        """module:Class paths are imported directly."""
        assert import_unit_class("behaviors.karma:Karma") is Karma

    def test_import_non_unit_rejected(self):
        """Importable objects that are not units raise TypeError."""
        with pytest.raises(TypeError):
            import_unit_class("behaviors.base:HandlerKind")

    def test_to_snake_case(self):
        """CamelCase class names map to module names."""
        assert to_snake_case("PluginLoader") == "plugin_loader"
        assert to_snake_case("Karma") == "karma"
        assert to_snake_case("KarmaUnit") == "karma"

    def test_load_from_config_skips_failures(self, caplog):
        """Broken entries are logged and skipped; good ones register."""
        registry = PluginRegistry()
        with caplog.at_level(logging.ERROR, logger="botroles"):
            loaded = registry.load_from_config({
                "ops": "Oping",
                "missing": "no_such_module:Thing",
                "absent": "behaviors.karma:Nothing",
            })

        assert loaded == ["ops"]
        assert registry.get("ops") is Oping
        assert "missing" in caplog.text
        assert "absent" in caplog.text


class TestBuildBot:
    """Bots composed from configuration."""

    def test_build_bot_from_config(self):
        """Configured units are composed into a fresh bot type."""
        config = BotConfig.from_dict({"identity": {"nick": "cfg"}, "plugins": {"units": ["karma", "oping"]}})
        bot = bot_main.build_bot(config)

        assert bot.nick == "cfg"
        assert type(bot).behavior_set.units == (Karma, Oping)
        assert "greeter" in bot.plugins
        assert bot.config is config

    def test_registry_without_builtins(self):
        """include_builtin: false leaves only configured plugins."""
        config = BotConfig.from_dict({
            "plugins": {"units": [], "include_builtin": False, "registry": {"karma": "Karma"}},
        })
        assert bot_main.build_registry(config).names() == ["karma"]

    def test_unknown_unit(self):
        """Units missing from the registry are reported by name."""
        config = BotConfig.from_dict({"plugins": {"units": ["weather"]}})
        with pytest.raises(KeyError, match="weather"):
            bot_main.build_bot(config)

    def test_conflicting_units(self, monkeypatch):
        """Custom units that conflict fail at build time."""
        class Hog(BehaviorUnit):
            @exclusive("on_join")
            def everything(self, bot, event):
                return None

        registry = default_registry()
        registry.register("hog", Hog)
        monkeypatch.setattr(bot_main, "build_registry", lambda config: registry)

        config = BotConfig.from_dict({"plugins": {"units": ["oping", "hog"]}})
        with pytest.raises(CompositionConflict):
            bot_main.build_bot(config)


class TestMain:
    """Command-line entry point."""

    def test_main_runs_session(self, tmp_path, monkeypatch, capsys):
        """Lines from stdin produce commands on stdout."""
        monkeypatch.setattr("sys.stdin", io.StringIO(
            ":x!u@h PRIVMSG #c :bob++\n"
            ":x!u@h PRIVMSG #c :karma bob\n"
        ))
        code = bot_main.main(["--config", str(tmp_path / "none.yaml"), "--units", "karma"])

        assert code == 0
        assert capsys.readouterr().out == "PRIVMSG #c :bob has karma 1\r\n"

    def test_main_unknown_unit(self, tmp_path, capsys):
        """Configuration errors exit with status 1."""
        code = bot_main.main(["--config", str(tmp_path / "none.yaml"), "--units", "weather"])

        assert code == 1
        assert "Unknown unit 'weather'" in capsys.readouterr().err


class TestLogging:
    """Structured log output."""

    def test_json_log_file(self, tmp_path):
        """Records land in the JSON file with the bot prefix split out."""
        path = tmp_path / "logs" / "bot.jsonl"
        try:
            assert configure_logging("INFO", path) == path.resolve()
            log.info("[cfg] attached karma")
        finally:
            for handler in list(log.handlers):
                if isinstance(handler, logging.FileHandler):
                    log.removeHandler(handler)
                    handler.close()

        records = [json.loads(line) for line in path.read_text().splitlines()]
        assert records[-1]["bot"] == "cfg"
        assert records[-1]["message"] == "attached karma"
        assert records[-1]["level"] == "INFO"

    def test_console_only(self):
        """Without a path no file handler is installed."""
        assert configure_logging("WARNING") is None
