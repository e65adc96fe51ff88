"""
Event model: inbound occurrences and outbound commands.

Inbound events are produced by the classifier (see classifier.py) and are
consumed exactly once by dispatch. Handlers produce zero or more Commands
which the bot forwards to its transport in order.
"""
from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Iterable
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class Join:
    """Someone joined a channel."""
    nick: str
    channel: str | None = None

    handler_name: ClassVar[str] = "on_join"

    @property
    def payload(self) -> str:
        """Text that guards are matched against."""
        return self.nick

    @property
    def reply_target(self) -> str:
        return self.channel or self.nick


@dataclass(frozen=True)
class Message:
    """A message sent to a channel or directly to the bot."""
    sender: str
    text: str
    channel: str | None = None

    handler_name: ClassVar[str] = "on_message"

    @property
    def payload(self) -> str:
        """Text that guards are matched against."""
        return self.text

    @property
    def reply_target(self) -> str:
        return self.channel or self.sender


Event = Union[Join, Message]


@dataclass(frozen=True)
class Command:
    """
    Outbound protocol command.

    Rendered as "VERB param1 param2 :text"; text is the trailing parameter
    and may contain spaces.
    """
    verb: str
    params: tuple[str, ...] = ()
    text: str | None = None

    @classmethod
    def privmsg(cls, target: str, text: str) -> Command:
        return cls("PRIVMSG", (target,), text)

    @classmethod
    def mode(cls, channel: str, flags: str, nick: str) -> Command:
        return cls("MODE", (channel, flags, nick))

    def render(self) -> str:
        parts = [self.verb, *self.params]
        if self.text is not None:
            parts.append(f":{self.text}")
        return " ".join(parts)

    def __str__(self) -> str:
        return self.render()


def as_commands(result: Any, event: Event) -> list[Command]:
    """
    Normalize a handler's return value into a list of Commands.

    Accepted results:
        None: nothing to send
        Command: sent as-is
        str: reply to the event's reply target (channel, else sender)
        iterable of the above: flattened in order

    Raises:
        TypeError: If the handler returned something else
    """
    if result is None:
        return []
    if isinstance(result, Command):
        return [result]
    if isinstance(result, str):
        return [Command.privmsg(event.reply_target, result)]
    if isinstance(result, Iterable):
        commands: list[Command] = []
        for item in result:
            commands.extend(as_commands(item, event))
        return commands
    raise TypeError(f"Handler returned unsupported result: {result!r}")
