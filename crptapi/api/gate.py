"""Fixed-window admission gate enforcing the API call quota.

At most ``capacity`` permits are handed out per window. An owned background
task restores the full capacity once per window; permits consumed anywhere
inside a window all come back together at the next tick (a fixed-window
reset, not a continuous refill).

All state is mutated from the event loop without intervening awaits, so the
loop itself serializes ``acquire``, ``replenish`` and ``close``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Protocol

from ..errors import ConfigurationError, GateShutdownError

logger = logging.getLogger(__name__)


class Gate(Protocol):
    """Admission strategy consumed by the submission pipeline."""

    async def acquire(self) -> None: ...

    async def close(self) -> None: ...


class AdmissionGate:
    """FIFO-fair permit gate with periodic full replenishment."""

    def __init__(self, capacity: int, window: float):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ConfigurationError(f"capacity must be a positive integer, got {capacity!r}")
        if window <= 0:
            raise ConfigurationError(f"window must be > 0 seconds, got {window!r}")

        self._capacity = capacity
        self._window = float(window)
        self._available = capacity
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._cycle: asyncio.Task[None] | None = None
        self._closed = False

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the cycle starts on first acquire()/start().
            pass
        else:
            self.start()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def window(self) -> float:
        return self._window

    @property
    def available(self) -> int:
        return self._available

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the replenishment cycle (first tick one window from now)."""
        if self._closed:
            raise GateShutdownError("admission gate is closed")
        loop = asyncio.get_running_loop()
        cycle = self._cycle
        # A cycle left behind by a finished event loop (asyncio.run) is dead.
        if cycle is None or cycle.done() or cycle.get_loop() is not loop:
            self._cycle = loop.create_task(self._run_cycle())

    async def acquire(self) -> None:
        """Consume one permit, waiting in FIFO order while none are available."""
        if self._closed:
            raise GateShutdownError("admission gate is closed")
        self.start()

        if self._available > 0 and not self._waiters:
            self._available -= 1
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        logger.debug("waiting for permit", extra={"queued": len(self._waiters)})
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled() and fut.exception() is None:
                # Granted but the caller went away before using it.
                self._available = min(self._capacity, self._available + 1)
                self._grant_waiters()
            else:
                try:
                    self._waiters.remove(fut)
                except ValueError:
                    pass
            raise

    def replenish(self) -> None:
        """Reset availability to exactly ``capacity`` and wake queued waiters."""
        if self._closed:
            return
        consumed = self._capacity - self._available
        self._available = self._capacity
        self._grant_waiters()
        logger.debug(
            "permits replenished",
            extra={"consumed": consumed, "available": self._available, "queued": self.waiting},
        )

    async def close(self) -> None:
        """Stop the cycle and fail every caller still waiting for a permit."""
        if self._closed:
            return
        self._closed = True

        cycle, self._cycle = self._cycle, None
        if cycle is not None and not cycle.done() and cycle.get_loop() is asyncio.get_running_loop():
            cycle.cancel()
            try:
                await cycle
            except asyncio.CancelledError:
                pass

        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_exception(GateShutdownError("admission gate closed while waiting for a permit"))
        logger.debug("admission gate closed")

    def _grant_waiters(self) -> None:
        while self._available > 0 and self._waiters:
            fut = self._waiters.popleft()
            if fut.done():
                continue
            self._available -= 1
            fut.set_result(None)

    async def _run_cycle(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            deadline += self._window
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            self.replenish()
