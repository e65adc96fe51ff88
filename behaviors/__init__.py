"""
Composable bot behaviors.

Units bundle unit-scoped state and handlers, and are composed into bot
types (statically) or attached to single bot instances (at runtime).

Example:
    ```python
    from behaviors import BehaviorUnit, candidate, unit_field

    class Echo(BehaviorUnit):
        said = unit_field(list)

        @candidate("on_message", r"^echo (?P<text>.+)")
        def echo(self, bot, event, match):
            self.said.append(match["text"])
            return match["text"]
    ```
"""

from behaviors.base import (
    BehaviorUnit,
    FieldDeclaration,
    HandlerDeclaration,
    HandlerKind,
    RequiredCapability,
    candidate,
    exclusive,
    require,
    unit_field,
)
from behaviors.karma import Karma
from behaviors.oping import Oping
from behaviors.greeter import Greeter
from behaviors.addressed import Addressed
from behaviors.plugin_loader import PluginLoader

BUILTIN_UNITS = (Karma, Oping, Greeter, Addressed, PluginLoader)

__all__ = [
    "BehaviorUnit",
    "FieldDeclaration",
    "HandlerDeclaration",
    "HandlerKind",
    "RequiredCapability",
    "candidate",
    "exclusive",
    "require",
    "unit_field",
    "Karma",
    "Oping",
    "Greeter",
    "Addressed",
    "PluginLoader",
    "BUILTIN_UNITS",
]
