"""
Runtime mixin engine: extends one bot instance with more behavior units.

The bot type is never touched. Each instance keeps a private overlay
(a BehaviorSet) composed on top of its type:
- Newly attached exclusive handlers replace the existing ones
  ("last attached wins", even for handlers defined on the type itself)
- Newly attached candidates are appended after the existing candidates
- Attaching a handler whose kind differs from the existing entry is a
  conflict

Overlays only grow. A failed attach raises MixinConflict and leaves the
instance exactly as it was.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable

from behaviors.base import BehaviorUnit
from composition import BehaviorSet, HandlerEntry, compose
from errors import CompositionError, Conflict, MixinConflict
from logging_setup import log


def build_overlay(
    base: BehaviorSet,
    overlay: BehaviorSet,
    units: Iterable[type[BehaviorUnit]],
    provided: Iterable[str] = (),
    target: str = "",
) -> BehaviorSet:
    """
    Compute the overlay that results from attaching units.

    Pure function: nothing is committed, so callers can discard the result.

    Args:
        base: The bot type's behavior set
        overlay: The instance's current overlay
        units: Units to attach, in order
        provided: Instance attribute names that satisfy requirements
        target: Instance description used in diagnostics

    Returns:
        The new overlay (previous overlay plus the attached units)

    Raises:
        MixinConflict: If the units conflict among themselves or with the
            current effective behavior set, or a requirement is missing
    """
    current = base.overlaid(overlay)

    try:
        incoming = compose(units, provided=set(provided) | set(current.handlers), name=target)
    except CompositionError as exc:
        raise MixinConflict(exc.conflicts, exc.unsatisfied, target) from exc

    conflicts: list[Conflict] = []
    handlers: dict[str, HandlerEntry] = dict(overlay.handlers)

    for name, entry in incoming.handlers.items():
        existing = current.get(name)
        if existing is None:
            handlers[name] = entry
        elif existing.kind is not entry.kind:
            conflicts.append(Conflict(
                name,
                existing.sources + entry.sources,
                f"attached {entry.kind.value} handler over existing {existing.kind.value} handler",
            ))
        elif entry.is_grouped:
            handlers[name] = existing.extended(entry.candidates)
        else:
            log.info(f"[{target}] '{name}' from {entry.sources[0]} overrides {existing.sources[0]}")
            handlers[name] = entry

    if conflicts:
        raise MixinConflict(conflicts, [], target)

    fields = dict(overlay.fields)
    for unit, declarations in incoming.fields.items():
        if unit not in base.fields:
            fields.setdefault(unit, declarations)

    return BehaviorSet(
        name=overlay.name or target,
        units=overlay.units + incoming.units,
        fields=MappingProxyType(fields),
        handlers=MappingProxyType(handlers),
        requirements=overlay.requirements + incoming.requirements,
    )


def attach(bot: Any, units: Iterable[type[BehaviorUnit]]) -> BehaviorSet:
    """
    Attach units to a single bot instance.

    Equivalent to bot.attach(units); provided for callers that hold a bot
    and a registry lookup result.

    Returns:
        The instance's new overlay
    """
    return bot.attach(units)
