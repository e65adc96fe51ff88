"""
Base bot class: static composition, runtime extension and event handling.

A bot type is a BaseBot subclass listing its behavior units:

    class KarmaBot(BaseBot):
        units = (Karma, Oping)

Composition runs when the class statement executes, so conflicts and
missing capabilities fail at definition time, before any instance exists.
The resulting BehaviorSet is shared by all instances and never changes.

Each instance adds:
- Private state for every composed unit
- An append-only overlay for units attached at runtime (attach())
- The runtime loop: classify -> dispatch (ALL) -> send commands

An instance is single-owner: events for it must be handled one at a time,
on the thread (or task) that owns it.
"""
from __future__ import annotations

import inspect
from typing import Any, Callable, ClassVar, Iterable

from behaviors.base import BehaviorUnit
from classifier import classify
from composition import (
    EMPTY_SET,
    BehaviorSet,
    HandlerEntry,
    ResolvedHandler,
    compose,
    own_handlers,
)
from dispatch import Quantifier, dispatch
from errors import BotClosedError, DispatchExhausted
from events import Command, Event
from logging_setup import log
from mixins import build_overlay
from plugin_registry import PluginRegistry
from transport import Transport


def _parent_behavior_set(cls: type) -> BehaviorSet:
    for klass in cls.__mro__[1:]:
        if "behavior_set" in vars(klass):
            return vars(klass)["behavior_set"]
    return EMPTY_SET


def _provided_methods(cls: type) -> set[str]:
    """Methods of a bot type and its bases below BaseBot; these can satisfy requirements."""
    names: set[str] = set()
    for klass in cls.__mro__:
        if klass is BaseBot or klass is object:
            continue
        for attr, value in vars(klass).items():
            if attr.startswith("__"):
                continue
            if inspect.isfunction(value) or isinstance(value, (staticmethod, classmethod)):
                names.add(attr)
    return names


class BaseBot:
    """
    Base class for all bot types.

    Class attributes:
        units: Behavior units composed into this type (not inherited;
               the parent's composed set is the base instead)
        behavior_set: Composed BehaviorSet, filled in at class creation

    Subclasses may define handlers directly in the class body with the
    @exclusive / @candidate decorators, or by defining a plain method named
    like a unit handler. Those definitions always win over units.
    """

    units: ClassVar[tuple[type[BehaviorUnit], ...]] = ()
    behavior_set: ClassVar[BehaviorSet] = EMPTY_SET

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        base = _parent_behavior_set(cls)
        units = tuple(cls.__dict__.get("units", ()))

        overridable = set(base.handlers)
        for unit in units:
            overridable.update(unit.handler_names())

        own = own_handlers(vars(cls), cls.__name__, overridable)
        provided = _provided_methods(cls)

        cls.behavior_set = compose(
            units,
            base=base,
            own=own,
            provided=provided,
            name=cls.__name__,
        )
        log.debug(
            f"[{cls.__name__}] composed {len(cls.behavior_set.units)} unit(s): "
            f"{', '.join(cls.behavior_set.handler_names()) or 'no handlers'}"
        )

    def __init__(
        self,
        nick: str = "botroles",
        transport: Transport | None = None,
        plugins: PluginRegistry | None = None,
        config: Any = None,
    ):
        """
        Initialize a bot instance.

        Args:
            nick: The bot's own nickname (used by addressing policies)
            transport: Receives outbound commands; None keeps them local
            plugins: Registry consulted by plugin-loading handlers
            config: Bot configuration (from bot_config.py)
        """
        self.nick = nick
        self.transport = transport
        self.plugins = plugins if plugins is not None else PluginRegistry()
        self.config = config
        self.closed = False

        self._overlay: BehaviorSet = EMPTY_SET
        self._unit_states: dict[type[BehaviorUnit], BehaviorUnit] = {
            unit: unit() for unit in self.behavior_set.fields
        }

    # ===========================
    # Behavior set
    # ===========================

    @property
    def overlay(self) -> BehaviorSet:
        """Units attached to this instance only."""
        return self._overlay

    def effective_behaviors(self) -> BehaviorSet:
        """Type behavior set with this instance's overlay on top."""
        return self.behavior_set.overlaid(self._overlay)

    def lookup(self, name: str) -> HandlerEntry | None:
        """Effective handler table entry for a name (overlay first)."""
        entry = self._overlay.get(name)
        if entry is not None:
            return entry
        return self.behavior_set.get(name)

    def has_unit(self, unit: type[BehaviorUnit]) -> bool:
        return unit in self._unit_states

    def unit_state(self, unit: type[BehaviorUnit]) -> BehaviorUnit:
        """
        Return this instance's private state for a composed unit.

        Raises:
            LookupError: If the unit is neither composed nor attached
        """
        try:
            return self._unit_states[unit]
        except KeyError:
            raise LookupError(f"[{self.nick}] unit {unit.unit_name} is not part of this bot") from None

    def bind(self, handler: ResolvedHandler) -> Callable[..., Any]:
        return handler.bind(self)

    # ===========================
    # Dispatch
    # ===========================

    def dispatch(
        self,
        name: str,
        event: Event,
        mode: Quantifier | str = Quantifier.ALL,
    ) -> list[Command]:
        """
        Route an event to the handlers registered under a name.

        Args:
            name: Handler name (e.g. "on_message")
            event: Event to dispatch
            mode: Quantifier policy (ALL, ANY_REQUIRED or FIRST)

        Returns:
            Commands produced, in invocation order

        Raises:
            DispatchExhausted: Under ANY_REQUIRED when nothing matched
        """
        return dispatch(self.lookup(name), event, Quantifier.parse(mode), self.bind, name=name)

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke a capability by name.

        Exclusive handlers are preferred; otherwise a plain method or
        attribute of the bot with that name is used.

        Raises:
            TypeError: If the name is a candidate-grouped handler
            AttributeError: If nothing provides the capability
        """
        entry = self.lookup(name)
        if entry is not None:
            if entry.is_grouped:
                raise TypeError(f"'{name}' is candidate-grouped; use dispatch() instead")
            return self.bind(entry.candidates[0])(*args, **kwargs)

        method = getattr(self, name, None)
        if callable(method):
            return method(*args, **kwargs)
        raise AttributeError(f"[{self.nick}] no capability named '{name}'")

    # ===========================
    # Runtime extension
    # ===========================

    def attach(self, units: Iterable[type[BehaviorUnit]]) -> BehaviorSet:
        """
        Mix behavior units into this instance only.

        Args:
            units: Non-empty collection of units, composed in order

        Returns:
            The new overlay

        Raises:
            ValueError: If units is empty
            BotClosedError: If the bot was closed
            MixinConflict: If composition fails; nothing is changed
        """
        units = list(units)
        if not units:
            raise ValueError("attach() needs at least one behavior unit")
        if self.closed:
            raise BotClosedError(f"[{self.nick}] bot is closed; cannot attach {units}")

        target = f"{type(self).__name__}({self.nick})"
        provided = _provided_methods(type(self))
        overlay = build_overlay(self.behavior_set, self._overlay, units, provided, target)

        new_states = {
            unit: unit() for unit in overlay.fields if unit not in self._unit_states
        }
        self._unit_states.update(new_states)
        self._overlay = overlay

        log.info(f"[{self.nick}] attached {', '.join(u.unit_name for u in units)}")
        return overlay

    # ===========================
    # Runtime loop
    # ===========================

    def send(self, command: Command) -> None:
        if self.transport is not None:
            self.transport.send(command)

    def handle(self, event: Event) -> list[Command]:
        """
        Dispatch one event with the ALL quantifier and send its commands.

        DispatchExhausted raised by a handler (e.g. a policy unit using
        ANY_REQUIRED) is logged; the session continues.

        Returns:
            Commands sent, in order
        """
        try:
            commands = self.dispatch(event.handler_name, event, Quantifier.ALL)
        except DispatchExhausted as exc:
            log.warning(f"[{self.nick}] {exc}")
            return []

        for command in commands:
            self.send(command)
        return commands

    def handle_line(self, line: str) -> list[Command] | None:
        """
        Classify and handle one raw line.

        Returns:
            Commands sent, or None if the line was not a Join/Message
        """
        event = classify(line)
        if event is None:
            return None
        return self.handle(event)

    def run(self, lines: Iterable[str]) -> int:
        """
        Handle raw lines in order until the input ends or the bot is closed.

        A failing handler only loses its own line; it is logged with its
        traceback and the loop continues.

        Returns:
            Number of lines that produced an event
        """
        handled = 0
        for line in lines:
            if self.closed:
                break
            try:
                if self.handle_line(line) is not None:
                    handled += 1
            except Exception:
                log.exception(f"[{self.nick}] failed to handle line: {line.rstrip()!r}")
        return handled

    def close(self) -> None:
        """Finalize the instance; no further attach is allowed."""
        self.closed = True

    def __repr__(self) -> str:
        attached = ", ".join(u.unit_name for u in self._overlay.units)
        return f"<{type(self).__name__} nick={self.nick!r} attached=[{attached}]>"


def make_bot_type(
    name: str,
    units: Iterable[type[BehaviorUnit]],
    base: type[BaseBot] = BaseBot,
    **namespace: Any,
) -> type[BaseBot]:
    """
    Build a bot type programmatically.

    Args:
        name: Class name of the new type
        units: Units to compose
        base: Base bot type
        **namespace: Extra class-body definitions (these win over units)

    Raises:
        CompositionConflict / UnsatisfiedRequirement: As for a class statement
    """
    return type(name, (base,), {"units": tuple(units), **namespace})
