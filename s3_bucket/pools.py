from __future__ import annotations
"""Bounded, FIFO admission pools, one per operation kind."""
import asyncio
from collections import deque
from contextlib import asynccontextmanager
import logging
import time
from typing import AsyncIterator, Callable, Optional

from .errors import PoolClosedError, PoolError, PoolSaturatedError, PoolTimeoutError
from .models import OperationKind, PoolConfig
from .settings import ClientSettings

LOGGER = logging.getLogger(__name__)

ResourceFactory = Callable[[], object]


class Slot:
    """Admission ticket handed out by :meth:`ResourcePool.acquire`."""

    __slots__ = ("_pool", "resource", "_released")

    def __init__(self, pool: ResourcePool, resource: object = None):
        self._pool = pool
        self.resource = resource
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._pool.release(self)


class ResourcePool:
    """A semaphore-like gate with a bounded wait queue.

    Waiters are admitted strictly in arrival order. A released slot is handed
    straight to the oldest waiter so a newcomer can never overtake it. When a
    ``resource_factory`` is supplied every slot carries a resource, created on
    demand and reused afterwards; idle resources above the ``prefetch`` floor
    are dropped by :meth:`reclaim_idle`.
    """

    def __init__(
        self,
        name: str,
        config: PoolConfig,
        *,
        resource_factory: ResourceFactory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config
        self._factory = resource_factory
        self._clock = clock
        self._waiters: deque[asyncio.Future] = deque()
        self._in_use = 0
        self._idle: list[object] = []
        self._last_activity = clock()
        self._closed = False

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    @property
    def idle_resources(self) -> int:
        return len(self._idle)

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self) -> Slot:
        if self._closed:
            raise PoolClosedError(self.name)
        self._last_activity = self._clock()
        if self._in_use < self.config.max_concurrent and not self._waiters:
            self._in_use += 1
            return self._new_slot()
        if len(self._waiters) >= self.config.max_queue_depth:
            raise PoolSaturatedError(self.name, self.config.max_queue_depth)

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        LOGGER.debug("Waiting for a '%s' slot (%d queued)", self.name, len(self._waiters))
        try:
            if self.config.acquire_timeout is None:
                await waiter
            else:
                await asyncio.wait_for(waiter, self.config.acquire_timeout)
        except asyncio.TimeoutError:
            self._abandon(waiter)
            raise PoolTimeoutError(self.name, self.config.acquire_timeout) from None
        except asyncio.CancelledError:
            self._abandon(waiter)
            raise
        # A woken waiter inherits the releasing slot, so in_use is unchanged.
        return self._new_slot()

    def release(self, slot: Slot) -> None:
        if slot._pool is not self:
            raise PoolError(f"slot does not belong to the '{self.name}' pool")
        if slot._released:
            raise PoolError(f"'{self.name}' slot released twice")
        slot._released = True
        self._last_activity = self._clock()
        if self._factory is not None and not self._closed:
            self._idle.append(slot.resource)
        self._hand_off()

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[Slot]:
        """Hold a slot for the duration of the block, releasing it on any exit."""

        acquired = await self.acquire()
        try:
            yield acquired
        finally:
            self.release(acquired)

    def reclaim_idle(self, now: Optional[float] = None) -> int:
        """Drop idle resources above the prefetch floor after a quiet period."""

        if self._factory is None:
            return 0
        now = self._clock() if now is None else now
        if now - self._last_activity < self.config.idle_timeout:
            return 0
        surplus = len(self._idle) - self.config.prefetch
        if surplus <= 0:
            return 0
        del self._idle[:surplus]
        LOGGER.debug("Reclaimed %d idle '%s' resource(s)", surplus, self.name)
        return surplus

    def close(self) -> None:
        self._closed = True
        self._idle.clear()
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(PoolClosedError(self.name))

    def _new_slot(self) -> Slot:
        resource = None
        if self._factory is not None:
            resource = self._idle.pop() if self._idle else self._factory()
        return Slot(self, resource)

    def _hand_off(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._in_use -= 1

    def _abandon(self, waiter: asyncio.Future) -> None:
        try:
            self._waiters.remove(waiter)
        except ValueError:
            # Already dequeued: if a slot was handed over, pass it along.
            if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
                self._hand_off()


class PoolRegistry:
    """Owns one :class:`ResourcePool` per :class:`OperationKind`."""

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        resource_factory: ResourceFactory | None = None,
    ):
        settings = settings or ClientSettings()
        self._pools = {
            kind: ResourcePool(kind.value, settings.pool_config(kind), resource_factory=resource_factory)
            for kind in OperationKind
        }

    def pool(self, kind: OperationKind) -> ResourcePool:
        return self._pools[kind]

    def slot(self, kind: OperationKind):
        return self._pools[kind].slot()

    def reclaim_idle(self) -> int:
        return sum(pool.reclaim_idle() for pool in self._pools.values())

    def close(self) -> None:
        for pool in self._pools.values():
            pool.close()

    def __iter__(self):
        return iter(self._pools.values())
