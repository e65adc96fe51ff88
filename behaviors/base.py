"""
Base class and declarations for composable bot behaviors.

A behavior unit is a reusable template bundling:
- Unit-scoped state fields (unit_field)
- Handlers (@exclusive / @candidate decorated methods)
- Required capabilities it uses but does not implement (requires)

Units never own bot instances. Each bot instance creates one state object
per composed unit (an instance of the unit class), so two units may declare
same-named fields without sharing anything.

Handler kinds:
- Exclusive: no guard, exactly one implementation per handler name
- Candidate: guarded by a regex or predicate over the event payload;
  any number of candidates may share a handler name
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, ClassVar

HANDLER_ATTR = "__behavior_handlers__"


class HandlerKind(Enum):
    EXCLUSIVE = "exclusive"
    GROUPED = "candidate-grouped"


@dataclass(frozen=True)
class FieldDeclaration:
    """A state field private to the declaring unit."""
    name: str
    factory: Callable[[], Any]
    doc: str = ""


@dataclass(frozen=True)
class RequiredCapability:
    """A handler a unit calls but expects another source to implement."""
    name: str
    signature: str = ""
    unit: str = ""

    def describe(self) -> str:
        owner = self.unit or "<unknown unit>"
        return f"{owner} requires '{self.name}{self.signature}'"


@dataclass(frozen=True)
class HandlerDeclaration:
    """
    One handler declared by a unit or directly on a bot type.

    Attributes:
        name: Handler name (e.g. "on_message", "is_trusted")
        kind: Exclusive or candidate-grouped
        func: The underlying function
        guard: Predicate over the event; returns a match value or None
        guard_source: Human-readable guard (regex text or predicate name)
    """
    name: str
    kind: HandlerKind
    func: Callable[..., Any]
    guard: Callable[[Any], Any] | None = None
    guard_source: str = ""

    @property
    def is_grouped(self) -> bool:
        return self.kind is HandlerKind.GROUPED

    def match(self, event: Any) -> Any:
        """
        Evaluate the guard against an event.

        Returns:
            A truthy match value (re.Match for regex guards, True when there
            is no guard), or a falsy value when the event is not accepted
        """
        if self.guard is None:
            return True
        return self.guard(event)


def _compile_guard(guard: Any, flags: int = 0) -> tuple[Callable[[Any], Any] | None, str]:
    if guard is None:
        return None, ""
    if isinstance(guard, str):
        guard = re.compile(guard, flags)
    if isinstance(guard, re.Pattern):
        pattern = guard

        def regex_guard(event: Any) -> re.Match[str] | None:
            return pattern.search(event.payload)

        return regex_guard, f"/{pattern.pattern}/"
    if callable(guard):
        return guard, getattr(guard, "__name__", repr(guard))
    raise TypeError(f"Unsupported guard: {guard!r}")


def _declare(func: Callable[..., Any], declaration: HandlerDeclaration) -> Callable[..., Any]:
    declarations = list(getattr(func, HANDLER_ATTR, ()))
    declarations.append(declaration)
    setattr(func, HANDLER_ATTR, tuple(declarations))
    return func


def exclusive(name: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Declare an exclusive handler.

    Two units declaring the same exclusive handler cannot be composed
    together. The method is called as func(self, bot, *args): for events
    args is (event,); for capabilities invoked with bot.call() the caller's
    arguments are passed through.

    Example:
        ```python
        class Oping(BehaviorUnit):
            @exclusive("on_join")
            def op_trusted(self, bot, event):
                ...
        ```
    """
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        return _declare(func, HandlerDeclaration(name or func.__name__, HandlerKind.EXCLUSIVE, func))
    return decorator


def candidate(
    name: str,
    guard: Any = None,
    flags: int = 0,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Declare a guarded candidate handler.

    Candidates from every composed unit are merged into one ordered list per
    handler name. The method is called as func(self, bot, event, match).

    Args:
        name: Handler name to join (e.g. "on_message")
        guard: Regex (string or compiled, searched in the event payload),
               a predicate taking the event, or None to accept everything
        flags: re flags used when guard is a string

    Example:
        ```python
        class Karma(BehaviorUnit):
            @candidate("on_message", r"^karma\\s+(?P<nick>\\S+)")
            def report(self, bot, event, match):
                return f"{match['nick']} has karma {self.scores.get(match['nick'], 0)}"
        ```
    """
    predicate, source = _compile_guard(guard, flags)

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        return _declare(
            func,
            HandlerDeclaration(name, HandlerKind.GROUPED, func, predicate, source),
        )
    return decorator


def unit_field(factory: Callable[[], Any] | None = None, doc: str = "", default: Any = None) -> FieldDeclaration:
    """
    Declare a unit-scoped state field.

    Args:
        factory: Called once per bot instance to build the initial value
        doc: Short description used in diagnostics
        default: Immutable initial value, used when factory is None
    """
    if factory is None:
        def constant() -> Any:
            return default
        factory = constant
    return FieldDeclaration(name="", factory=factory, doc=doc)


def require(name: str, signature: str = "") -> RequiredCapability:
    """Declare a capability the unit depends on but does not implement."""
    return RequiredCapability(name=name, signature=signature)


def handler_declarations(value: Any) -> tuple[HandlerDeclaration, ...]:
    """Return the handler declarations attached to a function, if any."""
    if not inspect.isfunction(value):
        return ()
    return tuple(getattr(value, HANDLER_ATTR, ()))


class BehaviorUnit:
    """
    Base class for composable bot behaviors.

    Subclasses declare fields, handlers and requirements in the class body.
    Declarations are collected once, when the subclass is defined, and are
    immutable afterwards.

    Example:
        ```python
        class Karma(BehaviorUnit):
            unit_name = "karma"
            scores = unit_field(dict, "nick -> score")

            @candidate("on_message", r"(?P<nick>\\S+?)\\+\\+")
            def increment(self, bot, event, match):
                nick = match.group("nick")
                self.scores[nick] = self.scores.get(nick, 0) + 1
        ```

    Class attributes filled in automatically:
        unit_name: Defaults to the class name
        fields: Ordered FieldDeclarations
        handlers: Ordered HandlerDeclarations
        requirements: RequiredCapabilities, tagged with unit_name
    """

    unit_name: ClassVar[str] = ""
    requires: ClassVar[tuple[Any, ...]] = ()

    fields: ClassVar[tuple[FieldDeclaration, ...]] = ()
    handlers: ClassVar[tuple[HandlerDeclaration, ...]] = ()
    requirements: ClassVar[tuple[RequiredCapability, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get("unit_name"):
            cls.unit_name = cls.__name__

        fields: dict[str, FieldDeclaration] = {}
        handlers: dict[str, tuple[HandlerDeclaration, ...]] = {}
        requirements: dict[str, RequiredCapability] = {}

        # Walk base units first so subclasses extend (or override by attribute) their parents
        for klass in reversed(cls.__mro__):
            if not issubclass(klass, BehaviorUnit):
                continue
            for attr, value in vars(klass).items():
                if isinstance(value, FieldDeclaration):
                    fields[attr] = replace(value, name=attr)
                elif handler_declarations(value):
                    handlers[attr] = handler_declarations(value)
                elif attr in handlers:
                    # Redefined without a decorator: no longer a handler
                    del handlers[attr]
            for requirement in vars(klass).get("requires", ()):
                if isinstance(requirement, str):
                    requirement = RequiredCapability(requirement)
                requirements[requirement.name] = replace(requirement, unit=cls.unit_name)

        cls.fields = tuple(fields.values())
        cls.handlers = tuple(decl for decls in handlers.values() for decl in decls)
        cls.requirements = tuple(requirements.values())

    def __init__(self) -> None:
        for declaration in type(self).fields:
            setattr(self, declaration.name, declaration.factory())

    @classmethod
    def handler_names(cls) -> list[str]:
        """Distinct handler names this unit contributes, in declaration order."""
        return list(dict.fromkeys(decl.name for decl in cls.handlers))

    def __repr__(self) -> str:
        state = ", ".join(f"{f.name}={getattr(self, f.name, None)!r}" for f in type(self).fields)
        return f"<{type(self).unit_name} unit state {state}>"
