"""
Stream combinators over async iterables of probe results.

Each combinator consumes any async iterable (a ``ProbeStream`` or another
combinator) and returns an async iterator. Combinators pull lazily, stop
pulling as soon as they are done, and close their upstream when they stop
early, so an abandoned pipeline never leaves a ping process running.

Sized combinators validate their size when called, not on first pull.

``PingStream`` binds the same combinators to one ``Ping`` as chainable
methods::

    async for stats in PingStream(Ping("example.com").set_count(0)).rolling_stats(5):
        ...
"""

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Optional,
    TypeVar,
)

from ..models.results import ProbeResult, RollingStats
from ..validation import validate_positive_float, validate_positive_integer
from .stats import calculate_rolling_stats

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

# Returned by _next() instead of raising StopAsyncIteration across tasks.
_EXHAUSTED = object()

DEFAULT_BATCH_TIMEOUT_MS = 5000.0
DEFAULT_STATS_WINDOW_SIZE = 10


async def _next(iterator: AsyncIterator[T]) -> Any:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _EXHAUSTED


async def _close(iterator: Any) -> None:
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()


@asynccontextmanager
async def _upstream(source: AsyncIterable[T]):
    """Iterate ``source`` and close it however the consumer exits."""
    iterator = source.__aiter__()
    try:
        yield iterator
    finally:
        await _close(iterator)


async def _cancel_pending(tasks) -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Discarded upstream error after close: {e}")


def _validate_size(size: Any, field_name: str) -> int:
    return validate_positive_integer(size, min_value=1, field_name=field_name)


# --- Element-wise combinators ---

async def take(source: AsyncIterable[T], n: int) -> AsyncIterator[T]:
    """Yield at most ``n`` elements; ``n <= 0`` never pulls upstream."""
    if n <= 0:
        await _close(source)
        return
    emitted = 0
    async with _upstream(source) as iterator:
        async for item in iterator:
            yield item
            emitted += 1
            if emitted >= n:
                break


async def filter_results(source: AsyncIterable[T], predicate: Callable[[T], bool]) -> AsyncIterator[T]:
    async with _upstream(source) as iterator:
        async for item in iterator:
            if predicate(item):
                yield item


async def map_results(source: AsyncIterable[T], mapper: Callable[[T], U]) -> AsyncIterator[U]:
    async with _upstream(source) as iterator:
        async for item in iterator:
            yield mapper(item)


def skip_failures(source: AsyncIterable[ProbeResult]) -> AsyncIterator[ProbeResult]:
    """Only successful results."""
    return filter_results(source, lambda result: result.is_success())


def skip_successes(source: AsyncIterable[ProbeResult]) -> AsyncIterator[ProbeResult]:
    """Only failed results."""
    return filter_results(source, lambda result: result.is_failure())


# --- Grouping combinators ---

def window(source: AsyncIterable[T], size: int) -> AsyncIterator[List[T]]:
    """
    Sliding window of the last ``size`` elements.

    The first list is emitted once ``size`` elements have arrived, then one
    list per element. Every emitted list is an independent copy of exactly
    ``size`` elements.

    Raises:
        ValidationError: If ``size`` < 1
    """
    return _window(source, _validate_size(size, "size"))


async def _window(source: AsyncIterable[T], size: int) -> AsyncIterator[List[T]]:
    buffer: deque = deque(maxlen=size)
    async with _upstream(source) as iterator:
        async for item in iterator:
            buffer.append(item)
            if len(buffer) == size:
                yield list(buffer)


def batch(source: AsyncIterable[T], size: int) -> AsyncIterator[List[T]]:
    """
    Consecutive, non-overlapping lists of ``size`` elements.

    A final shorter list carries any remainder when the source ends.

    Raises:
        ValidationError: If ``size`` < 1
    """
    return _batch(source, _validate_size(size, "size"))


async def _batch(source: AsyncIterable[T], size: int) -> AsyncIterator[List[T]]:
    current: List[T] = []
    async with _upstream(source) as iterator:
        async for item in iterator:
            current.append(item)
            if len(current) >= size:
                yield current
                current = []
    if current:
        yield current


def batch_with_timeout(source: AsyncIterable[T], size: int,
                       timeout_ms: float = DEFAULT_BATCH_TIMEOUT_MS) -> AsyncIterator[List[T]]:
    """
    Like ``batch``, but a partial batch is flushed once ``timeout_ms`` has
    elapsed since its first element arrived.

    The upstream pull that was in progress when the timer fired keeps running
    and its element lands in the next batch.

    Raises:
        ValidationError: If ``size`` < 1 or ``timeout_ms`` <= 0
    """
    size = _validate_size(size, "size")
    timeout_ms = validate_positive_float(timeout_ms, min_value=0.0, field_name="timeout_ms", exclusive_min=True)
    return _batch_with_timeout(source, size, timeout_ms / 1000.0)


async def _batch_with_timeout(source: AsyncIterable[T], size: int, timeout_seconds: float) -> AsyncIterator[List[T]]:
    loop = asyncio.get_running_loop()
    current: List[T] = []
    deadline: Optional[float] = None
    pending: Optional[asyncio.Future] = None

    async with _upstream(source) as iterator:
        try:
            while True:
                if pending is None:
                    pending = asyncio.ensure_future(_next(iterator))

                wait_for = None if deadline is None else max(0.0, deadline - loop.time())
                done, _ = await asyncio.wait([pending], timeout=wait_for)

                if not done:
                    logger.debug(f"Batch timer fired with {len(current)} of {size} elements")
                    yield current
                    current, deadline = [], None
                    continue

                item = pending.result()
                pending = None
                if item is _EXHAUSTED:
                    break

                current.append(item)
                if len(current) == 1:
                    deadline = loop.time() + timeout_seconds
                if len(current) >= size:
                    yield current
                    current, deadline = [], None
        finally:
            if pending is not None:
                await _cancel_pending([pending])

    if current:
        yield current


def rolling_stats(source: AsyncIterable[ProbeResult],
                  window_size: int = DEFAULT_STATS_WINDOW_SIZE) -> AsyncIterator[RollingStats]:
    """
    Rolling response-time statistics over the last ``window_size`` results.

    Emits on every successful result once ``min(3, window_size)`` successes
    are in the window. Failures only contribute to the packet loss figure.

    Raises:
        ValidationError: If ``window_size`` < 1
    """
    return _rolling_stats(source, _validate_size(window_size, "window_size"))


async def _rolling_stats(source: AsyncIterable[ProbeResult], window_size: int) -> AsyncIterator[RollingStats]:
    successes: deque = deque(maxlen=window_size)
    all_results: deque = deque(maxlen=window_size)
    threshold = min(3, window_size)

    async with _upstream(source) as iterator:
        async for result in iterator:
            all_results.append(result)
            if not result.is_success():
                continue
            successes.append(result)
            if len(successes) >= threshold:
                yield calculate_rolling_stats(list(successes), list(all_results))


# --- Fan-in ---

async def combine(*sources: AsyncIterable[T]) -> AsyncIterator[T]:
    """
    Merge several sources, yielding elements in arrival order.

    Every source is pulled concurrently with at most one outstanding pull
    each. The merged stream ends when all sources have ended. If the consumer
    stops early, outstanding pulls are cancelled and every source is closed.
    An error from any source propagates after the others are closed.
    """
    iterators = [source.__aiter__() for source in sources]
    pending: Dict[asyncio.Future, int] = {
        asyncio.ensure_future(_next(iterator)): index for index, iterator in enumerate(iterators)
    }

    try:
        while pending:
            done, _ = await asyncio.wait(list(pending), return_when=asyncio.FIRST_COMPLETED)
            # Simultaneous arrivals are yielded in source order.
            for task in sorted(done, key=lambda t: pending[t]):
                index = pending.pop(task)
                item = task.result()
                if item is _EXHAUSTED:
                    logger.debug(f"Combined source {index} ended, {len(pending)} still active")
                    continue
                yield item
                pending[asyncio.ensure_future(_next(iterators[index]))] = index
    finally:
        await _cancel_pending(list(pending))
        for iterator in iterators:
            await _close(iterator)


# --- Facade ---

def _as_source(source: Any) -> AsyncIterable:
    # A Ping (anything with a stream() factory) or an async iterable.
    stream_factory = getattr(source, "stream", None)
    if callable(stream_factory):
        return stream_factory()
    return source


class PingStream:
    """
    Chainable combinator facade.

    Wraps a ``Ping`` (its ``stream()`` is opened lazily on first pull) or any
    async iterable; each method returns a new ``PingStream`` over the
    combined sequence.
    """

    def __init__(self, source: Any):
        self._source: AsyncIterable = _as_source(source)

    def __aiter__(self) -> AsyncIterator:
        return self._source.__aiter__()

    async def aclose(self) -> None:
        await _close(self._source)

    def take(self, n: int) -> "PingStream":
        return PingStream(take(self._source, n))

    def filter(self, predicate: Optional[Callable[[Any], bool]]) -> "PingStream":
        if predicate is None:
            return self
        return PingStream(filter_results(self._source, predicate))

    def map(self, mapper: Optional[Callable[[Any], Any]]) -> "PingStream":
        if mapper is None:
            return self
        return PingStream(map_results(self._source, mapper))

    def skip_failures(self) -> "PingStream":
        return PingStream(skip_failures(self._source))

    def skip_successes(self) -> "PingStream":
        return PingStream(skip_successes(self._source))

    def window(self, size: int) -> "PingStream":
        return PingStream(window(self._source, size))

    def batch(self, size: int) -> "PingStream":
        return PingStream(batch(self._source, size))

    def batch_with_timeout(self, size: int, timeout_ms: float = DEFAULT_BATCH_TIMEOUT_MS) -> "PingStream":
        return PingStream(batch_with_timeout(self._source, size, timeout_ms))

    def rolling_stats(self, window_size: int = DEFAULT_STATS_WINDOW_SIZE) -> "PingStream":
        return PingStream(rolling_stats(self._source, window_size))

    def combine(self, *others: Any) -> "PingStream":
        return PingStream(combine(self._source, *(_as_source(other) for other in others)))

    async def collect(self) -> List[Any]:
        """Drain the stream into a list; use ``take`` first on endless streams."""
        return [item async for item in self]


def combine_pings(pings: List[Any]) -> PingStream:
    """Merge the streams of several ``Ping`` instances."""
    return PingStream(combine(*(_as_source(ping) for ping in pings)))

