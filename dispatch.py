"""
Dispatch engine: routes one event to the matching handler candidates.

The quantifier is chosen explicitly at every call site:
- ALL: invoke every matching candidate; zero matches is fine
- ANY_REQUIRED: invoke every matching candidate; zero matches raises
  DispatchExhausted
- FIRST: invoke at most the first matching candidate

Candidates are evaluated in table order, and matches are invoked in that
order even when an earlier handler changed instance state.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from composition import HandlerEntry, ResolvedHandler
from errors import DispatchExhausted
from events import Command, Event, as_commands
from logging_setup import log


class Quantifier(Enum):
    ALL = "all"
    ANY_REQUIRED = "any-required"
    FIRST = "first"

    @classmethod
    def parse(cls, value: Quantifier | str) -> Quantifier:
        """Accept a Quantifier or its string value ("all", "first", ...)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(q.value for q in cls)
            raise ValueError(f"Unknown quantifier '{value}' (expected one of: {choices})") from None


def dispatch(
    entry: HandlerEntry | None,
    event: Event,
    mode: Quantifier,
    bind: Callable[[ResolvedHandler], Callable[..., Any]],
    name: str = "",
) -> list[Command]:
    """
    Invoke the handlers of one table entry for an event.

    Args:
        entry: Handler table entry, or None if the name is not in the table
        event: Event being dispatched
        mode: Quantifier policy
        bind: Turns a ResolvedHandler into a callable bound to the bot
        name: Handler name, for diagnostics when entry is None

    Returns:
        Commands produced by the invoked handlers, in invocation order

    Raises:
        DispatchExhausted: Under ANY_REQUIRED when nothing matched
    """
    handler_name = entry.name if entry is not None else name
    if entry is None:
        if mode is Quantifier.ANY_REQUIRED:
            raise DispatchExhausted(handler_name, event)
        return []

    commands: list[Command] = []
    matched = 0

    for handler in entry.candidates:
        match = handler.declaration.match(event)
        if not match:
            continue
        matched += 1

        func = bind(handler)
        if entry.is_grouped:
            result = func(event, match)
        else:
            result = func(event)
        produced = as_commands(result, event)
        log.debug(
            f"{handler_name}: {handler.source}.{handler.declaration.func.__name__} "
            f"-> {len(produced)} command(s)"
        )
        commands.extend(produced)

        if mode is Quantifier.FIRST:
            break

    if matched == 0 and mode is Quantifier.ANY_REQUIRED:
        raise DispatchExhausted(handler_name, event)

    return commands
