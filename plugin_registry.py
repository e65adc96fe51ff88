"""
Plugin registry - maps plugin names to behavior units.

Consulted by handlers that extend a running bot (see PluginLoader).
Populated from the built-in units and from configuration:

    plugins:
      registry:
        karma: Karma                      # unit class in the behaviors package
        weather: mybot.weather:Weather    # module:Class
"""
from __future__ import annotations

import importlib
import inspect
import re
from typing import Iterator, Mapping

from behaviors.base import BehaviorUnit
from logging_setup import log


class PluginRegistry:
    """
    Registry of loadable behavior units.

    Names are case-insensitive. Registering a name twice replaces the
    previous unit.
    """

    def __init__(self, plugins: Mapping[str, type[BehaviorUnit]] | None = None):
        self._plugins: dict[str, type[BehaviorUnit]] = {}
        for name, unit in (plugins or {}).items():
            self.register(name, unit)

    def register(self, name: str, unit: type[BehaviorUnit]) -> None:
        """
        Register a unit under a plugin name.

        Raises:
            TypeError: If unit is not a BehaviorUnit subclass
        """
        if not (inspect.isclass(unit) and issubclass(unit, BehaviorUnit)):
            raise TypeError(f"Plugin '{name}' is not a behavior unit: {unit!r}")
        self._plugins[name.lower()] = unit

    def get(self, name: str) -> type[BehaviorUnit] | None:
        return self._plugins.get(name.lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._plugins

    def __iter__(self) -> Iterator[str]:
        return iter(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def names(self) -> list[str]:
        return sorted(self._plugins)

    def load_from_config(self, entries: Mapping[str, str] | None) -> list[str]:
        """
        Import and register units named in configuration.

        Entries that fail to import are logged and skipped.

        Args:
            entries: Plugin name -> "module:Class" or unit class name

        Returns:
            Names that were registered
        """
        loaded = []
        for name, spec in (entries or {}).items():
            try:
                self.register(name, import_unit_class(spec))
                loaded.append(name)
                log.info(f"[plugins] Registered plugin: {name} ({spec})")
            except (ImportError, AttributeError, TypeError) as e:
                log.error(f"[plugins] Failed to load plugin {name} ({spec}): {e}")
        return loaded


def import_unit_class(spec: str) -> type[BehaviorUnit]:
    """
    Import a behavior unit class.

    Args:
        spec: "package.module:ClassName", or a bare CamelCase class name
              looked up in the behaviors package (e.g. "PluginLoader"
              -> behaviors.plugin_loader.PluginLoader)

    Returns:
        The unit class

    Raises:
        ImportError: If the module cannot be imported
        AttributeError: If the class is missing
        TypeError: If the object is not a behavior unit
    """
    if ":" in spec:
        module_name, class_name = spec.split(":", 1)
    else:
        class_name = spec
        module_name = f"behaviors.{to_snake_case(spec)}"

    module = importlib.import_module(module_name)
    unit = getattr(module, class_name)
    if not (inspect.isclass(unit) and issubclass(unit, BehaviorUnit)):
        raise TypeError(f"{spec} is not a behavior unit")
    return unit


def to_snake_case(name: str) -> str:
    """
    Convert CamelCase to snake_case, removing a "Unit" suffix.

    Examples:
        Karma -> karma
        PluginLoader -> plugin_loader
        KarmaUnit -> karma
    """
    if name.endswith("Unit") and name != "Unit":
        name = name[:-4]
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def default_registry() -> PluginRegistry:
    """Registry of the built-in units, keyed by their unit names."""
    from behaviors import BUILTIN_UNITS

    return PluginRegistry({unit.unit_name: unit for unit in BUILTIN_UNITS})
