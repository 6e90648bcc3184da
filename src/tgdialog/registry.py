"""Correlation registries — single-use waiters keyed by conversation or file.

A waiter is a one-shot continuation registered against a key and resolved
by a later feed event. Resolution pops the waiter from the table and calls
it in one synchronous step, so a replaced or discarded waiter is never
resolved. Nothing here suspends except wait()/wait_for(), which keeps the
tables consistent on a single event loop without locking.

What happens when a key is already occupied is a WaiterPolicy:
  - REPLACE: last writer wins; the displaced waiter never resolves (logged)
  - REJECT: register() raises WaiterOccupiedError
  - QUEUE: waiters are served first-in-first-out

Key classes: WaiterRegistry, Waiter, Registries.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class WaiterPolicy(str, Enum):
    REPLACE = "replace"
    REJECT = "reject"
    QUEUE = "queue"


class WaiterOccupiedError(RuntimeError):
    """Raised under WaiterPolicy.REJECT when a key already has a waiter."""

    def __init__(self, registry: str, key: Hashable) -> None:
        super().__init__(f"{registry}: a waiter is already pending for {key!r}")
        self.registry = registry
        self.key = key


@dataclass(eq=False)
class Waiter(Generic[K, V]):
    """One pending continuation; ``future`` is set for expect()-created waiters."""

    key: K
    resolve: Callable[[V], None]
    future: "asyncio.Future[V] | None" = field(default=None, repr=False)
    fail: Callable[[BaseException], None] | None = field(default=None, repr=False)


def _settle(future: "asyncio.Future[Any]", payload: Any) -> None:
    # A future cancelled by a timeout may still be settled by a racing event
    if not future.done():
        future.set_result(payload)


def _fail(future: "asyncio.Future[Any]", error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)


class WaiterRegistry(Generic[K, V]):
    """Key -> waiter table with configurable occupancy policy."""

    def __init__(self, name: str, policy: WaiterPolicy = WaiterPolicy.REPLACE) -> None:
        self.name = name
        self.policy = WaiterPolicy(policy)
        self._waiters: dict[K, deque[Waiter[K, V]]] = {}

    def __len__(self) -> int:
        return sum(len(slot) for slot in self._waiters.values())

    def has(self, key: K) -> bool:
        return key in self._waiters

    def register(self, key: K, resolve: Callable[[V], None]) -> Waiter[K, V]:
        return self._install(Waiter(key, resolve))

    def expect(self, key: K) -> Waiter[K, V]:
        """Register a future-backed waiter for ``key``.

        Must be called from a running event loop.
        """
        future: asyncio.Future[V] = asyncio.get_running_loop().create_future()
        waiter: Waiter[K, V] = Waiter(key, lambda payload: _settle(future, payload))
        waiter.future = future
        waiter.fail = lambda error: _fail(future, error)
        return self._install(waiter)

    def resolve_and_remove(self, key: K, payload: V) -> bool:
        """Resolve the oldest waiter for ``key`` with ``payload``.

        Returns False (and does nothing) when no waiter is registered.
        """
        waiter = self._pop(key)
        if waiter is None:
            return False
        logger.debug("%s: resolving waiter for %s", self.name, key)
        waiter.resolve(payload)
        return True

    def fail_and_remove(self, key: K, error: BaseException) -> bool:
        """Fail the oldest waiter for ``key`` with ``error``.

        Waiters created by register() have nothing to fail and are dropped.
        """
        waiter = self._pop(key)
        if waiter is None:
            return False
        logger.debug("%s: failing waiter for %s: %s", self.name, key, error)
        if waiter.fail is not None:
            waiter.fail(error)
        return True

    def discard(self, waiter: Waiter[K, V]) -> bool:
        """Remove ``waiter`` if it is still registered; returns whether it was."""
        slot = self._waiters.get(waiter.key)
        if not slot or waiter not in slot:
            return False
        slot.remove(waiter)
        if not slot:
            del self._waiters[waiter.key]
        logger.debug("%s: discarded waiter for %s", self.name, waiter.key)
        return True

    def clear(self) -> None:
        self._waiters.clear()

    async def wait_for(self, waiter: Waiter[K, V], timeout: float | None = None) -> V:
        """Await an expect()-created waiter, optionally bounded by ``timeout``.

        The waiter is discarded on every exit path, so a timed-out or
        cancelled wait leaves no stale entry behind.
        """
        if waiter.future is None:
            raise ValueError("wait_for() needs a waiter created by expect()")
        try:
            if timeout is None:
                return await waiter.future
            return await asyncio.wait_for(waiter.future, timeout)
        finally:
            self.discard(waiter)

    async def wait(self, key: K, timeout: float | None = None) -> V:
        return await self.wait_for(self.expect(key), timeout)

    def _pop(self, key: K) -> Waiter[K, V] | None:
        slot = self._waiters.get(key)
        if not slot:
            return None
        waiter = slot.popleft()
        if not slot:
            del self._waiters[key]
        return waiter

    def _install(self, waiter: Waiter[K, V]) -> Waiter[K, V]:
        slot = self._waiters.get(waiter.key)
        if slot:
            if self.policy is WaiterPolicy.REJECT:
                raise WaiterOccupiedError(self.name, waiter.key)
            if self.policy is WaiterPolicy.REPLACE:
                logger.warning(
                    "%s: replacing pending waiter for %s; it will never resolve",
                    self.name,
                    waiter.key,
                )
                slot.clear()
        self._waiters.setdefault(waiter.key, deque()).append(waiter)
        return waiter


@dataclass
class Registries:
    """The three registries the dialog engine correlates through."""

    replies: WaiterRegistry[int, Any]
    downloads: WaiterRegistry[str, str]
    interactions: WaiterRegistry[int, Any]

    @classmethod
    def create(cls, policy: WaiterPolicy = WaiterPolicy.REPLACE) -> "Registries":
        return cls(
            replies=WaiterRegistry("replies", policy),
            downloads=WaiterRegistry("downloads", policy),
            interactions=WaiterRegistry("interactions", policy),
        )
