"""
IRC-style line classifier.

Turns raw protocol lines into Join/Message events. Anything else
(PING, numerics, NOTICE, malformed input) yields None and is dropped
before it reaches the bot.
"""
from __future__ import annotations

import re

from events import Event, Join, Message

# [:prefix ]COMMAND[ params][ :trailing]
IRC_LINE_RE = re.compile(
    r"^(?::(?P<prefix>\S+) )?(?P<command>\S+)(?: (?!:)(?P<params>.+?))?(?: :(?P<trailing>.*))?$"
)


def _nick_from_prefix(prefix: str | None) -> str | None:
    if not prefix:
        return None
    return prefix.split("!", 1)[0] or None


def classify(line: str) -> Event | None:
    """
    Classify one raw protocol line.

    Args:
        line: Raw line, with or without the trailing CRLF

    Returns:
        Join or Message event, or None if the line is not one of those
    """
    match = IRC_LINE_RE.match(line.rstrip("\r\n"))
    if not match:
        return None

    nick = _nick_from_prefix(match.group("prefix"))
    if nick is None:
        return None

    command = match.group("command").upper()
    params = (match.group("params") or "").split()
    trailing = match.group("trailing")

    if command == "JOIN":
        # Some servers send the channel as the trailing parameter
        channel = params[0] if params else trailing
        return Join(nick=nick, channel=channel or None)

    if command == "PRIVMSG":
        if trailing is None and len(params) >= 2:
            # Last parameter sent without the ':' marker
            trailing = params[-1]
        if not params or trailing is None:
            return None
        target = params[0]
        channel = target if target[:1] in "#&+!" else None
        return Message(sender=nick, text=trailing, channel=channel)

    return None
