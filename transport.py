"""
Transport collaborators: where a bot's outbound commands go.

The bot only needs send(command). Reading from sockets, reconnecting and
flood control live outside this package.
"""
from __future__ import annotations

from typing import Protocol, TextIO

from events import Command


class Transport(Protocol):
    def send(self, command: Command) -> None:
        ...


class StreamTransport:
    """Writes rendered commands to a text stream, one per line."""

    def __init__(self, stream: TextIO, line_ending: str = "\r\n"):
        self.stream = stream
        self.line_ending = line_ending

    def send(self, command: Command) -> None:
        self.stream.write(command.render() + self.line_ending)
        self.stream.flush()


class RecordingTransport:
    """Keeps every command it is given, in order."""

    def __init__(self) -> None:
        self.sent: list[Command] = []

    def send(self, command: Command) -> None:
        self.sent.append(command)

    @property
    def lines(self) -> list[str]:
        return [command.render() for command in self.sent]

    def clear(self) -> None:
        self.sent.clear()
