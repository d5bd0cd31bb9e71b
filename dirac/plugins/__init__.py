"""DIRAC — Plugins. Named behaviours looked up by the shell's built-in dispatch."""
from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from dirac.plugins.base_plugin import BasePlugin, HistoryPlugin


class PluginRegistry:
    def __init__(self):
        self._plugins: Dict[str, BasePlugin] = {}

    def register(self, plugin: BasePlugin) -> None:
        self._plugins[plugin.name] = plugin

    def lookup_by_name(self, name: str) -> Optional[BasePlugin]:
        return self._plugins.get(name)

    def list(self) -> List[Tuple[str, str]]:
        return [(p.name, p.description) for p in self._plugins.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._plugins

    def __len__(self):
        return len(self._plugins)


def default_registry() -> PluginRegistry:
    registry = PluginRegistry()
    registry.register(HistoryPlugin())
    return registry


__all__ = ["BasePlugin", "HistoryPlugin", "PluginRegistry", "default_registry"]
