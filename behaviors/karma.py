"""
Karma - per-nick karma counters.

Listens for:
- "karma <nick>": reply with the nick's current karma
- "<nick>++": increment, silently
- "<nick>--": decrement, silently
"""

from typing import Any

from behaviors.base import BehaviorUnit, candidate, unit_field


class Karma(BehaviorUnit):
    """Karma tracking. Scores live in memory for the life of the bot."""

    unit_name = "karma"

    scores = unit_field(dict, "nick -> karma score")

    @candidate("on_message", r"^karma\s+(?P<nick>\S+)")
    def report(self, bot: Any, event: Any, match: Any) -> str:
        nick = match.group("nick")
        return f"{nick} has karma {self.scores.get(nick, 0)}"

    @candidate("on_message", r"(?P<nick>\S+?)\+\+")
    def increment(self, bot: Any, event: Any, match: Any) -> None:
        nick = match.group("nick")
        self.scores[nick] = self.scores.get(nick, 0) + 1

    @candidate("on_message", r"(?P<nick>\S+?)--")
    def decrement(self, bot: Any, event: Any, match: Any) -> None:
        nick = match.group("nick")
        self.scores[nick] = self.scores.get(nick, 0) - 1
