from __future__ import annotations
from dataclasses import dataclass, field
from typing import List


@dataclass
class BasePlugin:
    name: str = "base"
    description: str = ""

    def execute(self, input: str) -> str:
        return ""


@dataclass
class HistoryPlugin(BasePlugin):
    name: str = "history"
    description: str = "Manages command history and provides history-related commands"
    entries: List[str] = field(default_factory=list)
    limit: int = 500

    def record(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        self.entries.append(line)
        if len(self.entries) > self.limit:
            self.entries = self.entries[-self.limit:]

    def execute(self, input: str) -> str:
        if input.strip() != "history":
            return ""
        width = len(str(len(self.entries)))
        return "\n".join(f"{i:>{width}}  {line}" for i, line in enumerate(self.entries, 1))
