"""
Error taxonomy for bot composition and dispatch.

Definition-time errors (raised while a bot type is being composed):
- CompositionConflict: two exclusive handlers share a name, or a name is
  declared both exclusive and candidate-grouped
- UnsatisfiedRequirement: a unit requires a capability nobody provides

Runtime errors:
- MixinConflict: attach() on one instance failed (same shape as above)
- DispatchExhausted: any-required dispatch found no matching candidate
- BotClosedError: attach() on an instance that was already closed

Composition errors always carry the complete list of problems found,
not just the first one.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Conflict:
    """One ambiguous handler name found during composition."""
    handler: str
    sources: tuple[str, ...]
    reason: str = "exclusive handlers from different units"

    def describe(self) -> str:
        return f"'{self.handler}' ({self.reason}): {', '.join(self.sources)}"


class CompositionError(ValueError):
    """
    Base class for composition failures.

    Attributes:
        conflicts: Every ambiguous handler name found
        unsatisfied: Every required capability left unimplemented
        target: Name of the bot type (or instance) being composed
    """

    def __init__(
        self,
        conflicts: list[Conflict] | None = None,
        unsatisfied: list[Any] | None = None,
        target: str = "",
    ):
        self.conflicts = list(conflicts or [])
        self.unsatisfied = list(unsatisfied or [])
        self.target = target
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [f"Cannot compose {self.target or 'behavior set'}:"]
        for conflict in self.conflicts:
            lines.append(f"  conflict: {conflict.describe()}")
        for requirement in self.unsatisfied:
            lines.append(f"  unsatisfied: {requirement.describe()}")
        return "\n".join(lines)

    @classmethod
    def raise_for(
        cls,
        conflicts: list[Conflict],
        unsatisfied: list[Any],
        target: str = "",
    ) -> None:
        """
        Raise the most specific error for the problems found, if any.

        CompositionConflict wins when there is at least one conflict,
        otherwise UnsatisfiedRequirement. Both carry both lists.
        """
        if conflicts:
            raise CompositionConflict(conflicts, unsatisfied, target)
        if unsatisfied:
            raise UnsatisfiedRequirement(conflicts, unsatisfied, target)


class CompositionConflict(CompositionError):
    """Ambiguous handler names; no unit order decides a winner."""


class UnsatisfiedRequirement(CompositionError):
    """Declared dependencies that no composed source implements."""


class MixinConflict(CompositionError):
    """Runtime attach failed; the instance is left unchanged."""


class DispatchExhausted(LookupError):
    """No candidate matched under the any-required quantifier."""

    def __init__(self, handler: str, event: Any = None):
        self.handler = handler
        self.event = event
        super().__init__(f"No handler candidate for '{handler}' accepted {event!r}")


class BotClosedError(RuntimeError):
    """The bot instance is closed and can no longer be extended."""
