"""
DIRAC — signals.py
Forwards interrupt / suspend / resume signals to the main loop through a
single-slot queue, so the loop can wait on "next line or next signal".
"""
from __future__ import annotations

import asyncio, logging, platform, signal
from typing import Dict, List, Optional

log = logging.getLogger(__name__)

INTERRUPT = "INT"
SUSPEND   = "TSTP"
RESUME    = "CONT"

_IS_WINDOWS = platform.system() == "Windows"


def watched_signals() -> Dict[int, str]:
    names = {"SIGINT": INTERRUPT, "SIGTSTP": SUSPEND, "SIGCONT": RESUME}
    return {getattr(signal, n): tag for n, tag in names.items() if hasattr(signal, n)}


class SignalBridge:
    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._installed: List[int] = []

    def start(self, loop: asyncio.AbstractEventLoop = None) -> bool:
        """Install the handlers on ``loop``. Returns False where that is unsupported."""
        self._loop = loop or asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=1)
        if _IS_WINDOWS:
            return False
        for signum, tag in watched_signals().items():
            try:
                self._loop.add_signal_handler(signum, self.deliver, tag)
            except (NotImplementedError, RuntimeError, ValueError) as exc:
                log.debug("cannot watch %s: %s", tag, exc)
                continue
            self._installed.append(signum)
        log.debug("signal bridge watching %s", self._installed)
        return bool(self._installed)

    def deliver(self, tag: str) -> None:
        try:
            self._queue.put_nowait(tag)
        except asyncio.QueueFull:
            log.debug("dropped %s, slot already taken", tag)

    async def next_signal(self) -> str:
        return await self._queue.get()

    def stop(self) -> None:
        for signum in self._installed:
            self._loop.remove_signal_handler(signum)
        self._installed.clear()
