"""Latched, reusable completion barrier between a transport thread and the caller."""

from __future__ import annotations

import threading
from typing import Optional


class CompletionBarrier:
    """Blocks one waiter until a terminal signal arrives for the current generation.

    The signal is latched: a release that happens before ``wait()`` is not lost.
    A successful ``wait()`` consumes the signal and advances the generation, so
    releases tagged with an older generation are ignored afterwards.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._generation = 0
        self._released = False

    @property
    def generation(self) -> int:
        with self._cond:
            return self._generation

    @property
    def released(self) -> bool:
        with self._cond:
            return self._released

    def release(self, generation: Optional[int] = None) -> bool:
        """Signal completion. Returns False for stale or repeated signals."""
        with self._cond:
            if generation is not None and generation != self._generation:
                return False
            if self._released:
                return False
            self._released = True
            self._cond.notify_all()
            return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until released, then reset for the next generation.

        Returns False if ``timeout`` elapsed first; the barrier is left untouched.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._released, timeout):
                return False
            self._released = False
            self._generation += 1
            return True


__all__ = ["CompletionBarrier"]
