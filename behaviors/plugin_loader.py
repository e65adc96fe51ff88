"""
PluginLoader - extend the running bot on request.

"youdo <plugin>" looks the plugin up in the bot's registry and attaches it
to this bot instance only. Other bots of the same type are unaffected.

Replies:
- "Loaded <plugin>" on success
- "No such plugin: <plugin>" for unknown names
- "Could not load <plugin>: ..." when the unit conflicts with the bot
"""

from typing import Any

from behaviors.base import BehaviorUnit, candidate, unit_field
from errors import MixinConflict
from logging_setup import log


class PluginLoader(BehaviorUnit):
    """Runtime plugin loading through the bot's plugin registry."""

    unit_name = "plugin_loader"

    loaded = unit_field(list, "plugin names attached so far, in order")

    @candidate("on_message", r"^youdo\s+(?P<plugin>[\w-]+)")
    def load(self, bot: Any, event: Any, match: Any) -> str:
        name = match.group("plugin")
        unit = bot.plugins.get(name)
        if unit is None:
            return f"No such plugin: {name}"

        try:
            bot.attach([unit])
        except MixinConflict as e:
            log.warning(f"[{bot.nick}] plugin {name} rejected: {e}")
            problems = [c.describe() for c in e.conflicts] + [r.describe() for r in e.unsatisfied]
            return f"Could not load {name}: {'; '.join(problems)}"

        self.loaded.append(name)
        return f"Loaded {name}"
