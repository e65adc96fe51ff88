from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG = {
    "identity": {"nick": "botroles"},
    "plugins": {"units": ["karma", "plugin_loader"], "registry": {}, "include_builtin": True},
    "logging": {"level": "INFO", "json_path": None},
}

@dataclass
class IdentityConfig:
    nick: str

@dataclass
class PluginsConfig:
    units: list[str] = field(default_factory=list)
    registry: dict[str, str] = field(default_factory=dict)
    include_builtin: bool = True

@dataclass
class LoggingConfig:
    level: str = "INFO"
    json_path: str | None = None

@dataclass
class BotConfig:
    identity: IdentityConfig
    plugins: PluginsConfig
    logging: LoggingConfig

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BotConfig:
        config_dict = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in (data or {}).items():
            if section not in config_dict:
                raise ValueError(f"Unknown config section: {section}")
            config_dict[section].update(values or {})

        # Allow environment variable overrides
        if "BOT_NICK" in os.environ:
            config_dict["identity"]["nick"] = os.environ["BOT_NICK"]
        if "BOT_LOG_LEVEL" in os.environ:
            config_dict["logging"]["level"] = os.environ["BOT_LOG_LEVEL"]

        return cls(
            identity=IdentityConfig(**config_dict["identity"]),
            plugins=PluginsConfig(**config_dict["plugins"]),
            logging=LoggingConfig(**config_dict["logging"]),
        )

    @classmethod
    def load(cls, config_path: str | Path = "bot_config.yaml") -> BotConfig:
        """Load config from YAML over the defaults; a missing file means defaults."""
        config_file = Path(config_path)
        data = None
        if config_file.exists():
            with open(config_file) as f:
                data = yaml.safe_load(f)
        return cls.from_dict(data)
