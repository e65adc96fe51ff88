"""
Composition engine: merges behavior units into an immutable BehaviorSet.

Rules, applied per handler name:
- Candidate-grouped declarations from all units are merged into one list,
  ordered by unit order, then by declaration order within a unit
- Two exclusive declarations, or a mix of exclusive and grouped ones, are a
  conflict; unit order never picks a winner
- Definitions made directly on the composing type always win over units
- The base type's entries count as one more source: unit candidates extend
  inherited candidate lists, any other overlap with an inherited entry is a
  conflict

Required capabilities are checked after merging. Every conflict and every
unsatisfied requirement is reported in a single CompositionError, so a
composition either succeeds completely or produces nothing.
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from functools import partial
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from behaviors.base import (
    BehaviorUnit,
    FieldDeclaration,
    HandlerDeclaration,
    HandlerKind,
    RequiredCapability,
    handler_declarations,
)
from errors import CompositionError, Conflict
from logging_setup import log


@dataclass(frozen=True)
class ResolvedHandler:
    """A handler declaration together with where it came from."""
    declaration: HandlerDeclaration
    owner: type[BehaviorUnit] | None  # None: defined on the bot type itself
    source: str

    def bind(self, bot: Any) -> Callable[..., Any]:
        """
        Bind the handler to a bot instance.

        Unit handlers receive the unit's private state as self and the bot
        as first argument; handlers defined on the bot type receive the bot
        as self.
        """
        func = self.declaration.func
        if self.owner is None:
            return partial(func, bot)
        return partial(func, bot.unit_state(self.owner), bot)


@dataclass(frozen=True)
class HandlerEntry:
    """Resolved handler table entry for one name."""
    name: str
    kind: HandlerKind
    candidates: tuple[ResolvedHandler, ...]

    @property
    def is_grouped(self) -> bool:
        return self.kind is HandlerKind.GROUPED

    @property
    def sources(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(c.source for c in self.candidates))

    def extended(self, candidates: Iterable[ResolvedHandler]) -> HandlerEntry:
        """Return a copy with more candidates appended."""
        return HandlerEntry(self.name, self.kind, self.candidates + tuple(candidates))


def _frozen(mapping: Mapping[Any, Any] | None = None) -> Mapping[Any, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class BehaviorSet:
    """
    Result of a successful composition.

    Attributes:
        name: Bot type (or overlay) this set belongs to
        units: Units composed, in order
        fields: Field layout, unit -> its own FieldDeclarations
        handlers: Handler table, name -> HandlerEntry
        requirements: Every declared requirement (all satisfied)
    """
    name: str = ""
    units: tuple[type[BehaviorUnit], ...] = ()
    fields: Mapping[type[BehaviorUnit], tuple[FieldDeclaration, ...]] = field(default_factory=_frozen)
    handlers: Mapping[str, HandlerEntry] = field(default_factory=_frozen)
    requirements: tuple[RequiredCapability, ...] = ()

    def get(self, name: str) -> HandlerEntry | None:
        return self.handlers.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.handlers

    def handler_names(self) -> list[str]:
        return list(self.handlers)

    def is_empty(self) -> bool:
        return not self.units and not self.handlers

    def overlaid(self, overlay: BehaviorSet) -> BehaviorSet:
        """
        Return the effective set with an instance overlay on top.

        Overlay entries take precedence; the overlay already carries the
        merged candidate lists (see mixins.build_overlay).
        """
        if overlay.is_empty():
            return self
        fields = dict(self.fields)
        for unit, declarations in overlay.fields.items():
            fields.setdefault(unit, declarations)
        return BehaviorSet(
            name=self.name,
            units=self.units + overlay.units,
            fields=_frozen(fields),
            handlers=_frozen({**self.handlers, **overlay.handlers}),
            requirements=self.requirements + overlay.requirements,
        )


EMPTY_SET = BehaviorSet()


def _unique_units(units: Iterable[type[BehaviorUnit]]) -> list[type[BehaviorUnit]]:
    seen: list[type[BehaviorUnit]] = []
    for unit in units:
        if not (inspect.isclass(unit) and issubclass(unit, BehaviorUnit)):
            raise TypeError(f"Not a behavior unit: {unit!r}")
        if unit not in seen:
            seen.append(unit)
    return seen


def merge_declarations(name: str, contributions: list[ResolvedHandler]) -> HandlerEntry | Conflict:
    """
    Merge every declaration of one handler name into an entry.

    Returns:
        HandlerEntry on success, Conflict when the declarations are ambiguous
    """
    kinds = {c.declaration.kind for c in contributions}
    sources = tuple(dict.fromkeys(c.source for c in contributions))

    if len(kinds) > 1:
        return Conflict(name, sources, "declared both exclusive and candidate-grouped")

    kind = kinds.pop()
    if kind is HandlerKind.EXCLUSIVE and len(contributions) > 1:
        reason = "exclusive handlers from different units" if len(sources) > 1 \
            else "exclusive handler declared more than once"
        return Conflict(name, sources, reason)

    return HandlerEntry(name, kind, tuple(contributions))


def _merge_inherited(inherited: HandlerEntry, merged: HandlerEntry) -> HandlerEntry | Conflict:
    sources = tuple(dict.fromkeys(inherited.sources + merged.sources))
    if inherited.kind is not merged.kind:
        return Conflict(merged.name, sources, "declared both exclusive and candidate-grouped")
    if not merged.is_grouped:
        return Conflict(merged.name, sources, "exclusive handler already inherited from the base type")
    return inherited.extended(merged.candidates)


def own_handlers(
    namespace: Mapping[str, Any],
    source: str,
    overridable: Iterable[str] = (),
) -> list[ResolvedHandler]:
    """
    Collect handlers defined directly in a bot type's class body.

    Decorated methods contribute their declarations. A plain method whose
    name matches an overridable handler name (declared by a composed unit
    or inherited from the base type) becomes an exclusive handler for that
    name, so the class body wins over units.

    Args:
        namespace: The class body (vars(cls))
        source: Name used in diagnostics (the class name)
        overridable: Handler names plain methods may take over
    """
    overridable = set(overridable)
    handlers: list[ResolvedHandler] = []
    for attr, value in namespace.items():
        declarations = handler_declarations(value)
        if declarations:
            handlers.extend(ResolvedHandler(decl, None, source) for decl in declarations)
        elif inspect.isfunction(value) and attr in overridable:
            declaration = HandlerDeclaration(attr, HandlerKind.EXCLUSIVE, value)
            handlers.append(ResolvedHandler(declaration, None, source))
    return handlers


def _group_by_name(handlers: Iterable[ResolvedHandler]) -> dict[str, list[ResolvedHandler]]:
    grouped: dict[str, list[ResolvedHandler]] = {}
    for handler in handlers:
        grouped.setdefault(handler.declaration.name, []).append(handler)
    return grouped


def compose(
    units: Iterable[type[BehaviorUnit]],
    base: BehaviorSet | None = None,
    own: Iterable[ResolvedHandler] = (),
    provided: Iterable[str] = (),
    name: str = "",
) -> BehaviorSet:
    """
    Compose behavior units into a BehaviorSet.

    Args:
        units: Units to compose, in order (duplicates and units already
               composed into the base are skipped)
        base: Behavior set of the base type, if any
        own: Handlers defined directly on the composing type
        provided: Method names of the composing type and its bot base types
                  that satisfy requirements (BaseBot's own API excluded)
        name: Name of the composing type, used in diagnostics

    Returns:
        The composed BehaviorSet

    Raises:
        CompositionConflict: If any handler name is ambiguous
        UnsatisfiedRequirement: If any required capability is missing
    """
    base = base or EMPTY_SET
    unit_list = [u for u in _unique_units(units) if u not in base.units]

    contributions = _group_by_name(
        ResolvedHandler(decl, unit, unit.unit_name)
        for unit in unit_list
        for decl in unit.handlers
    )
    own_by_name = _group_by_name(own)

    conflicts: list[Conflict] = []
    handlers: dict[str, HandlerEntry] = dict(base.handlers)

    for handler_name, contribs in contributions.items():
        if handler_name in own_by_name:
            log.debug(
                f"[{name}] '{handler_name}' defined on the type; discarding "
                f"{len(contribs)} unit declaration(s)"
            )
            continue
        merged = merge_declarations(handler_name, contribs)
        if isinstance(merged, Conflict):
            conflicts.append(merged)
            continue
        inherited = handlers.get(handler_name)
        if inherited is not None:
            merged = _merge_inherited(inherited, merged)
            if isinstance(merged, Conflict):
                conflicts.append(merged)
                continue
        handlers[handler_name] = merged

    for handler_name, contribs in own_by_name.items():
        merged = merge_declarations(handler_name, contribs)
        if isinstance(merged, Conflict):
            conflicts.append(merged)
            continue
        handlers[handler_name] = merged

    available = set(handlers) | set(provided)
    requirements = [req for unit in unit_list for req in unit.requirements]
    unsatisfied = [req for req in requirements if req.name not in available]

    CompositionError.raise_for(conflicts, unsatisfied, name)

    fields = dict(base.fields)
    for unit in unit_list:
        fields.setdefault(unit, unit.fields)

    return BehaviorSet(
        name=name or base.name,
        units=base.units + tuple(unit_list),
        fields=_frozen(fields),
        handlers=_frozen(handlers),
        requirements=base.requirements + tuple(requirements),
    )
