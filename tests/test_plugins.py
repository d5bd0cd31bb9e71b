from __future__ import annotations

from dirac.plugins import BasePlugin, HistoryPlugin, PluginRegistry, default_registry


class EchoPlugin(BasePlugin):
    def __init__(self):
        super().__init__(name="echo", description="Repeats its input")

    def execute(self, input: str) -> str:
        return input


def test_registry_lookup_and_list() -> None:
    registry = PluginRegistry()
    registry.register(EchoPlugin())

    assert "echo" in registry
    assert registry.lookup_by_name("echo").execute("hi") == "hi"
    assert registry.lookup_by_name("missing") is None
    assert registry.list() == [("echo", "Repeats its input")]


def test_default_registry_has_history() -> None:
    registry = default_registry()
    assert len(registry) == 1
    assert isinstance(registry.lookup_by_name("history"), HistoryPlugin)


def test_history_plugin_numbers_entries() -> None:
    plugin = HistoryPlugin()
    for line in ("ls", "  ", "cd src", "git status"):
        plugin.record(line)

    assert plugin.entries == ["ls", "cd src", "git status"]
    assert plugin.execute("history") == "1  ls\n2  cd src\n3  git status"
    assert plugin.execute("something else") == ""


def test_history_plugin_keeps_latest() -> None:
    plugin = HistoryPlugin(limit=2)
    for line in ("a", "b", "c"):
        plugin.record(line)
    assert plugin.entries == ["b", "c"]
