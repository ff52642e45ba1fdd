"""
Request Pacer

Keeps outbound requests spaced according to a requests-per-second budget
and slows down after the exchange answers HTTP 429.

The exchange enforces a steady-state ceiling plus a punitive cooldown after
a rejection. A single cooldown flag, consumed by the next paced request, is
enough to honour both: the request following a 429 waits for the slow
cooldown interval, and the one after that is back to the normal rate.

Rate resolution for each request (first match wins):
    1. cooldown flag set   -> cooldown rate (flag is cleared)
    2. per-call rate given -> that rate
    3. otherwise           -> normal rate

Usage:
    pacer = Pacer.from_settings(settings)

    async with pacer.pace("POST", "private/create-order", 150):
        ...  # send the request

    # inside the block, after seeing HTTP 429:
    await pacer.on_rate_limit_error("POST", "private/create-order")
"""

import asyncio
import time
import weakref
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from pydantic import BaseModel, Field, model_validator

from core.config import Settings
from core.logging import get_logger


logger = get_logger(__name__)


# ============================================
# Rate Budget State
# ============================================

class RateBudget(BaseModel):
    """
    Mutable pacing state owned by a single Pacer.

    Attributes:
        normal_rate: Requests per second used by default
        cooldown_rate: Requests per second for the request after a 429
        cooldown_active: Set by a 429, cleared by the next paced request
        last_request: Monotonic clock reading of the last finished attempt
    """

    normal_rate: float = Field(..., gt=0, description="Default requests per second")
    cooldown_rate: float = Field(..., gt=0, description="Requests per second after a 429")
    cooldown_active: bool = Field(default=False)
    last_request: Optional[float] = Field(default=None)

    @model_validator(mode="after")
    def check_cooldown_slower(self) -> "RateBudget":
        if self.cooldown_rate >= self.normal_rate:
            raise ValueError(
                f"cooldown_rate ({self.cooldown_rate}) must be lower than normal_rate ({self.normal_rate})"
            )
        return self


# ============================================
# Hook Interface
# ============================================

class RateLimitHooks(ABC):
    """
    Strategy interface the dispatcher drives around every attempt.

    Implementations only provide the three hooks; pace() wraps them into
    the critical section the dispatcher uses. Implementations may raise
    from before_request to veto a request instead of waiting for it.
    """

    @abstractmethod
    async def before_request(self, method: str, path: str, requests_per_second: float = 0) -> None:
        """Wait (or refuse) until the request may be sent."""

    @abstractmethod
    async def after_request(self) -> None:
        """Record that an attempt finished, successful or not."""

    @abstractmethod
    async def on_rate_limit_error(self, method: str, path: str) -> None:
        """React to an HTTP 429 for the given call."""

    def _loop_lock(self) -> asyncio.Lock:
        """
        Lock serializing attempts on the running event loop.

        asyncio.Lock binds to one loop, so a hooks object that outlives an
        asyncio.run() (the process-wide default pacer) keeps one lock per loop.
        """
        locks = self.__dict__.get("_locks")
        if locks is None:
            locks = self.__dict__["_locks"] = weakref.WeakKeyDictionary()
        loop = asyncio.get_running_loop()
        lock = locks.get(loop)
        if lock is None:
            lock = locks[loop] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def pace(self, method: str, path: str, requests_per_second: float = 0) -> AsyncIterator[None]:
        """
        Critical section around one request attempt.

        after_request runs whenever before_request returned, including when
        the body of the block raises. A veto raised by before_request skips it.
        """
        async with self._loop_lock():
            await self.before_request(method, path, requests_per_second)
            try:
                yield
            finally:
                await self.after_request()


# ============================================
# Pacer
# ============================================

class Pacer(RateLimitHooks):
    """
    Default RateLimitHooks implementation.

    Requests that share one Pacer are serialized through pace(): the lock
    is held from before_request until after_request, so no two requests
    leave closer together than the effective interval. The pacing state is
    shared across event loops; the lock is per loop.

    Attributes:
        budget: The RateBudget being mutated
        clock: Monotonic time source in seconds (injectable for tests)
        sleep: Awaitable sleep function (injectable for tests)
    """

    def __init__(
        self,
        normal_rate: float = 100.0,
        cooldown_rate: float = 0.01666666667,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.budget = RateBudget(normal_rate=normal_rate, cooldown_rate=cooldown_rate)
        self.clock = clock
        self.sleep = sleep

    @classmethod
    def from_settings(cls, config: Settings) -> "Pacer":
        """Build a Pacer from the configured normal and cooldown rates."""
        return cls(
            normal_rate=config.normal_requests_per_second,
            cooldown_rate=config.cooldown_requests_per_second
        )

    def resolve_rate(self, requests_per_second: float = 0) -> float:
        """
        Pick the effective rate for the next request.

        Consumes the cooldown flag when it is set.
        """
        if self.budget.cooldown_active:
            self.budget.cooldown_active = False
            return self.budget.cooldown_rate
        if requests_per_second:
            return requests_per_second
        return self.budget.normal_rate

    async def before_request(self, method: str, path: str, requests_per_second: float = 0) -> None:
        rate = self.resolve_rate(requests_per_second)
        if self.budget.last_request is None:
            return

        interval = 1.0 / rate
        elapsed = self.clock() - self.budget.last_request
        if elapsed < interval:
            delay = interval - elapsed
            logger.debug(f"Pacing {method} {path}: sleeping {delay:.3f}s ({rate:g} req/s)")
            await self.sleep(delay)

    async def after_request(self) -> None:
        self.budget.last_request = self.clock()

    async def on_rate_limit_error(self, method: str, path: str) -> None:
        logger.warning(
            f"Rate limited on {method} {path}, next request paced at "
            f"{self.budget.cooldown_rate:g} req/s"
        )
        self.budget.cooldown_active = True


# Pacer shared by clients that were not handed one explicitly
_default_pacer: Optional[Pacer] = None


def get_default_pacer() -> Pacer:
    """
    Return the process-wide Pacer, creating it from settings on first use.

    Safe to reuse across successive asyncio.run() calls.
    """
    global _default_pacer
    if _default_pacer is None:
        from core.config import settings
        _default_pacer = Pacer.from_settings(settings)
    return _default_pacer
