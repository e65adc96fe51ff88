#!/usr/bin/env python3
"""
bot_main.py - run a bot over stdin/stdout.

Reads raw IRC-style lines from stdin, writes outbound commands to stdout.
Connecting to a real server is left to whatever pipes lines in and out.

Usage:
    python bot_main.py --units karma,plugin_loader --nick mybot < session.log
"""
from __future__ import annotations

import argparse
import sys
from typing import Sequence

from base_bot import BaseBot, make_bot_type
from bot_config import BotConfig
from errors import CompositionError
from logging_setup import configure_logging, log
from plugin_registry import PluginRegistry, default_registry
from transport import StreamTransport


def build_registry(config: BotConfig) -> PluginRegistry:
    """Built-in units (unless disabled) plus the configured ones."""
    registry = default_registry() if config.plugins.include_builtin else PluginRegistry()
    registry.load_from_config(config.plugins.registry)
    return registry


def build_bot(config: BotConfig, stream=None) -> BaseBot:
    """
    Compose the configured bot type and create one instance.

    Raises:
        KeyError: If a configured unit is not in the registry
        CompositionError: If the configured units cannot be composed
    """
    registry = build_registry(config)

    units = []
    for name in config.plugins.units:
        unit = registry.get(name)
        if unit is None:
            raise KeyError(f"Unknown unit '{name}' (known: {', '.join(registry.names())})")
        units.append(unit)

    bot_type = make_bot_type("ConfiguredBot", units)
    transport = StreamTransport(stream) if stream is not None else None
    return bot_type(nick=config.identity.nick, transport=transport, plugins=registry, config=config)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point - parse args, compose the bot and run it."""
    parser = argparse.ArgumentParser(description="Composable IRC-style bot")
    parser.add_argument("--config", type=str, default="bot_config.yaml", help="YAML config file")
    parser.add_argument("--nick", type=str, help="Bot nickname (overrides config)")
    parser.add_argument("--units", type=str, help="Comma-separated units to compose (overrides config)")
    parser.add_argument("--log-level", type=str, help="Log level (overrides config)")

    args = parser.parse_args(argv)

    config = BotConfig.load(args.config)
    if args.nick:
        config.identity.nick = args.nick
    if args.units:
        config.plugins.units = [u.strip() for u in args.units.split(",") if u.strip()]
    if args.log_level:
        config.logging.level = args.log_level

    configure_logging(config.logging.level, config.logging.json_path)

    try:
        bot = build_bot(config, stream=sys.stdout)
    except (KeyError, CompositionError) as e:
        print(f"[bot] Error: {e}", file=sys.stderr)
        return 1

    log.info(f"[{bot.nick}] running with units: {', '.join(config.plugins.units) or 'none'}")
    handled = bot.run(sys.stdin)
    bot.close()
    log.info(f"[{bot.nick}] input closed after {handled} event(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
