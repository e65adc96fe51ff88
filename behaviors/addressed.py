"""
Addressed - only react to messages addressed to the bot.

Handles on_message exclusively and re-dispatches addressed messages as
on_addressed, with the address stripped:

    "mybot: karma bob"  ->  on_addressed(Message(text="karma bob"))

Private messages (no channel) are always addressed. Units meant to run
behind this policy register their candidates under "on_addressed".
"""

import re
from typing import Any

from behaviors.base import BehaviorUnit, exclusive
from events import Command, Message


def strip_address(nick: str, text: str) -> str | None:
    """
    Return the text after a leading "<nick>:" or "<nick>,", or None.

    Matching is case-insensitive.
    """
    match = re.match(rf"^{re.escape(nick)}[:,]\s*(?P<rest>.*)$", text, re.IGNORECASE | re.DOTALL)
    if not match:
        return None
    return match.group("rest")


class Addressed(BehaviorUnit):
    unit_name = "addressed"

    @exclusive("on_message")
    def route(self, bot: Any, event: Message) -> list[Command]:
        if event.channel is None:
            text = event.text
        else:
            text = strip_address(bot.nick, event.text)
            if text is None:
                return []
        return bot.dispatch("on_addressed", Message(event.sender, text, event.channel))
