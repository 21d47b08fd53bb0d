"""Bound on in-flight provider calls, with a capped waiting line."""

import asyncio
import logging
from types import TracebackType

from src.core.errors import ProviderBusyError

logger = logging.getLogger(__name__)


class CallLimiter:
    """Async context manager allowing ``max_concurrent`` calls at once.

    Up to ``max_queued`` further callers wait for a slot in FIFO order; any
    caller beyond that is refused with ProviderBusyError instead of waiting.

    Usage::

        limiter = CallLimiter(max_concurrent=3, max_queued=100)
        async with limiter:
            raw = await provider.complete(prompt)
    """

    def __init__(self, max_concurrent: int = 3, max_queued: int = 100) -> None:
        self._max_concurrent = max_concurrent
        self._max_queued = max_queued
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._active = 0
        self._waiting = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return self._waiting

    async def __aenter__(self) -> "CallLimiter":
        if self._active >= self._max_concurrent:
            if self._waiting >= self._max_queued:
                msg = f"{self._waiting} calls already waiting for a provider slot"
                raise ProviderBusyError(msg)
            logger.debug("All %d provider slots busy; waiting", self._max_concurrent)
        self._waiting += 1
        try:
            await self._semaphore.acquire()
        finally:
            self._waiting -= 1
        self._active += 1
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._active -= 1
        self._semaphore.release()
