"""
Oping - give channel operator status to trusted nicks when they join.

Provides:
- on_join (exclusive): MODE <channel> +o <nick> for trusted nicks
- is_trusted(nick) (exclusive capability, used by e.g. Greeter)
- "trust <nick>" message command
"""

from typing import Any

from behaviors.base import BehaviorUnit, candidate, exclusive, unit_field
from events import Command


class Oping(BehaviorUnit):
    """Ops trusted nicks on join. Nobody is trusted until told so."""

    unit_name = "oping"

    trusted = unit_field(set, "nicks that get +o on join")

    @exclusive("on_join")
    def op_trusted(self, bot: Any, event: Any) -> Command | None:
        if event.channel and event.nick in self.trusted:
            return Command.mode(event.channel, "+o", event.nick)
        return None

    @exclusive("is_trusted")
    def is_trusted(self, bot: Any, nick: str) -> bool:
        return nick in self.trusted

    @candidate("on_message", r"^trust\s+(?P<nick>\S+)")
    def trust(self, bot: Any, event: Any, match: Any) -> str:
        nick = match.group("nick")
        self.trusted.add(nick)
        return f"ok, {nick} is now trusted"
