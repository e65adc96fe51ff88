"""Greeter - answers "hi"/"hello", warmer for trusted nicks."""

import re
from typing import Any

from behaviors.base import BehaviorUnit, candidate, require


class Greeter(BehaviorUnit):
    unit_name = "greeter"

    # Needs a trust source, e.g. Oping
    requires = (require("is_trusted", "(nick) -> bool"),)

    @candidate("on_message", r"^(?:hi|hello)\b", re.IGNORECASE)
    def greet(self, bot: Any, event: Any, match: Any) -> str:
        if bot.call("is_trusted", event.sender):
            return f"welcome back, {event.sender}"
        return f"hello, {event.sender}"
