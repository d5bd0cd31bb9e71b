from __future__ import annotations

import asyncio
import os
import signal

import pytest

from dirac.signals import INTERRUPT, RESUME, SUSPEND, SignalBridge, watched_signals


def test_watched_signals_cover_posix_controls() -> None:
    tags = set(watched_signals().values())
    assert INTERRUPT in tags
    if hasattr(signal, "SIGTSTP"):
        assert {SUSPEND, RESUME} <= tags


def test_single_slot_drops_extra_notifications() -> None:
    async def scenario():
        bridge = SignalBridge()
        bridge.start()
        try:
            bridge.deliver(INTERRUPT)
            bridge.deliver(SUSPEND)
            first = await bridge.next_signal()
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(bridge.next_signal(), timeout=0.05)
            return first
        finally:
            bridge.stop()

    assert asyncio.run(scenario()) == INTERRUPT


@pytest.mark.skipif(not hasattr(signal, "SIGCONT"), reason="POSIX only")
def test_real_signal_is_forwarded() -> None:
    async def scenario():
        bridge = SignalBridge()
        assert bridge.start() is True
        try:
            os.kill(os.getpid(), signal.SIGCONT)
            return await asyncio.wait_for(bridge.next_signal(), timeout=2)
        finally:
            bridge.stop()

    assert asyncio.run(scenario()) == RESUME
