"""In-flight request tracking for graceful shutdown."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from src.cybertask.core.logging import get_logger

logger = get_logger(__name__)


class RequestTracker:
    """Counts in-flight requests so shutdown can wait for them to drain."""

    def __init__(self) -> None:
        self._in_flight = 0
        self._shutting_down = False
        self._lock = asyncio.Lock()
        self._drain_event = asyncio.Event()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return self._in_flight

    @asynccontextmanager
    async def track_request(self) -> AsyncGenerator[None]:
        """Count the wrapped block as one in-flight request."""
        async with self._lock:
            self._in_flight += 1
        try:
            yield
        finally:
            async with self._lock:
                self._in_flight -= 1
                if self._in_flight == 0 and self._shutting_down:
                    logger.info("All requests drained")
                    self._drain_event.set()

    async def start_shutdown(self) -> None:
        """Enter shutdown mode. /health reports draining from here on."""
        self._shutting_down = True
        async with self._lock:
            if self._in_flight == 0:
                self._drain_event.set()
            else:
                logger.info("Waiting for in-flight requests", in_flight=self._in_flight)

    async def wait_for_drain(self, timeout: float) -> bool:
        """Wait until no request is in flight.

        Returns:
            True if drained within ``timeout`` seconds, False otherwise.
        """
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            logger.warning(
                "Shutdown timeout with requests still in flight",
                timeout=timeout,
                in_flight=self._in_flight,
            )
            return False

    def reset(self) -> None:
        """Reset tracker state (tests only)."""
        self._in_flight = 0
        self._shutting_down = False
        self._drain_event = asyncio.Event()


request_tracker = RequestTracker()
