from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    Hashable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

from utils.logger import get_logger

_logger = get_logger(__name__)

T = TypeVar("T")
CacheKey = Tuple[Hashable, ...]
InvalidationCallback = Callable[[CacheKey], None]


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """Snapshot of a query: its data, or why there is none yet."""

    data: Optional[T] = None
    is_loading: bool = False
    is_fetched: bool = False
    error: Optional[BaseException] = None

    @classmethod
    def loading(cls) -> QueryResult[T]:
        return cls(is_loading=True)

    @classmethod
    def success(cls, data: T) -> QueryResult[T]:
        return cls(data=data, is_fetched=True)

    @classmethod
    def failure(cls, error: BaseException) -> QueryResult[T]:
        return cls(error=error, is_fetched=True)

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass
class _Entry:
    data: Any
    stale: bool = False


def key_matches(prefix: CacheKey, key: CacheKey) -> bool:
    return key[: len(prefix)] == prefix


class QueryCache:
    """
    Query results addressed by tuple keys such as ``("product", "sofa-1")``.

    A cached value is served until its key is invalidated. Invalidation takes
    a key prefix, so ``("product",)`` covers every single-product entry.
    Concurrent fetches of one key share a single call until the key is
    invalidated; a fetch issued after that starts a new call. A call that lands
    after its key was invalidated (or after ``clear``) is not served as fresh.
    Invalidated entries nobody subscribed to are dropped rather than kept stale.
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, _Entry] = {}
        self._inflight: Dict[CacheKey, asyncio.Task] = {}
        # generations are tracked only while a call for the key is running
        self._generations: Dict[CacheKey, int] = {}
        self._running: Dict[CacheKey, int] = {}
        self._epoch = 0
        self._subscribers: List[Tuple[CacheKey, InvalidationCallback]] = []

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def is_stale(self, key: CacheKey) -> bool:
        entry = self._entries.get(key)
        return entry is None or entry.stale

    def peek(self, key: CacheKey) -> Optional[Any]:
        """Cached data for key without fetching, stale or not."""
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def set(self, key: CacheKey, data: Any) -> None:
        self._entries[key] = _Entry(data)

    async def fetch(self, key: CacheKey, fn: Callable[[], Awaitable[T]]) -> QueryResult[T]:
        entry = self._entries.get(key)
        if entry is not None and not entry.stale:
            return QueryResult.success(entry.data)

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(
                self._run(key, fn, self._generations.get(key, 0), self._epoch)
            )
            self._inflight[key] = task
            self._running[key] = self._running.get(key, 0) + 1

        try:
            # shielded, so a caller going away does not cancel a shared fetch
            data = await asyncio.shield(task)
        except Exception as exc:
            _logger.warning(f"Query {key} failed: {exc}")
            return QueryResult.failure(exc)
        return QueryResult.success(data)

    async def _run(
        self,
        key: CacheKey,
        fn: Callable[[], Awaitable[Any]],
        generation: int,
        epoch: int,
    ) -> Any:
        _logger.debug(f"Fetching {key}")
        try:
            data = await fn()
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]
            stale = self._generations.get(key, 0) != generation
            self._release(key)

        if epoch == self._epoch:
            current = self._entries.get(key)
            # a stale result never replaces a fresher one
            if not stale or current is None or current.stale:
                self._entries[key] = _Entry(data, stale=stale)
        return data

    def _release(self, key: CacheKey) -> None:
        remaining = self._running.get(key, 0) - 1
        if remaining > 0:
            self._running[key] = remaining
        else:
            self._running.pop(key, None)
            self._generations.pop(key, None)

    def _watched(self, key: CacheKey) -> bool:
        return any(key_matches(sub_key, key) for sub_key, _ in self._subscribers)

    def invalidate(self, prefix: CacheKey) -> List[CacheKey]:
        """Mark every key under prefix stale and tell matching subscribers.

        Calls already in flight for those keys are detached, so the next fetch
        goes back to the source instead of joining them.
        """
        matched = [
            key
            for key in set(self._entries) | set(self._running)
            if key_matches(prefix, key)
        ]
        for key in matched:
            if key in self._running:
                self._generations[key] = self._generations.get(key, 0) + 1
            self._inflight.pop(key, None)
            if key not in self._entries:
                continue
            if self._watched(key):
                self._entries[key].stale = True
            else:
                del self._entries[key]

        _logger.debug(f"Invalidated {prefix}: {len(matched)} entries")
        for sub_key, callback in list(self._subscribers):
            if key_matches(prefix, sub_key) or key_matches(sub_key, prefix):
                callback(prefix)
        return matched

    def subscribe(self, key: CacheKey, callback: InvalidationCallback) -> Callable[[], None]:
        """Call back whenever key, a key under it, or a prefix of it, is invalidated."""
        subscription = (key, callback)
        self._subscribers.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

        return unsubscribe

    def clear(self) -> None:
        """Forget everything; results of calls still in flight are discarded."""
        self._entries.clear()
        self._generations.clear()
        self._inflight.clear()
        self._epoch += 1
        _logger.debug("Query cache cleared")
