"""
Tests for the stream combinators and the PingStream facade.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from pingmonitor import Ping
from pingmonitor.streaming import (
    PingStream,
    batch,
    batch_with_timeout,
    combine,
    filter_results,
    map_results,
    rolling_stats,
    skip_failures,
    skip_successes,
    take,
    window,
)
from pingmonitor.streaming.combinators import combine_pings
from pingmonitor.system import PlatformFamily
from pingmonitor.validation import ValidationError


class TrackingSource:
    """Async iterator that records how far it was pulled and whether it was closed."""

    def __init__(self, items, delay: float = 0.0):
        self.items = list(items)
        self.delay = delay
        self.pulls = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.closed or self.pulls >= len(self.items):
            raise StopAsyncIteration
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.items[self.pulls]
        self.pulls += 1
        return item

    async def aclose(self):
        self.closed = True


@pytest.mark.unit
class TestElementWise:
    """Test cases for take, filter and map."""

    @pytest.mark.asyncio
    async def test_take(self, test_utils):
        source = TrackingSource(range(10))

        assert await test_utils.collect(take(source, 3)) == [0, 1, 2]
        assert source.pulls == 3
        assert source.closed is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [0, -1])
    async def test_take_non_positive_never_pulls(self, test_utils, n):
        source = TrackingSource(range(10))

        assert await test_utils.collect(take(source, n)) == []
        assert source.pulls == 0

    @pytest.mark.asyncio
    async def test_take_more_than_available(self, test_utils):
        assert await test_utils.collect(take(test_utils.agen([1, 2]), 5)) == [1, 2]

    @pytest.mark.asyncio
    async def test_filter_and_map(self, test_utils):
        evens = filter_results(test_utils.agen(range(6)), lambda x: x % 2 == 0)
        assert await test_utils.collect(map_results(evens, lambda x: x * 10)) == [0, 20, 40]

    @pytest.mark.asyncio
    async def test_skip_failures_and_successes(self, test_utils):
        results = [test_utils.success(), test_utils.failure(), test_utils.success()]

        successes = await test_utils.collect(skip_failures(test_utils.agen(results)))
        failures = await test_utils.collect(skip_successes(test_utils.agen(results)))

        assert successes == [results[0], results[2]]
        assert failures == [results[1]]


@pytest.mark.unit
class TestGrouping:
    """Test cases for window and batch."""

    @pytest.mark.asyncio
    async def test_window(self, test_utils):
        windows = await test_utils.collect(window(test_utils.agen([1, 2, 3, 4]), 3))
        assert windows == [[1, 2, 3], [2, 3, 4]]

    @pytest.mark.asyncio
    async def test_window_copies_are_independent(self, test_utils):
        windows = await test_utils.collect(window(test_utils.agen([1, 2, 3]), 2))
        windows[0].append(99)
        assert windows[1] == [2, 3]

    @pytest.mark.asyncio
    async def test_window_larger_than_source(self, test_utils):
        assert await test_utils.collect(window(test_utils.agen([1, 2]), 3)) == []

    @pytest.mark.asyncio
    async def test_batch(self, test_utils):
        batches = await test_utils.collect(batch(test_utils.agen(range(7)), 3))
        assert batches == [[0, 1, 2], [3, 4, 5], [6]]

    @pytest.mark.asyncio
    async def test_batch_exact_multiple_has_no_partial(self, test_utils):
        batches = await test_utils.collect(batch(test_utils.agen(range(6)), 3))
        assert batches == [[0, 1, 2], [3, 4, 5]]

    @pytest.mark.asyncio
    async def test_batch_empty_source(self, test_utils):
        assert await test_utils.collect(batch(test_utils.agen([]), 3)) == []

    @pytest.mark.parametrize("size", [0, -2])
    def test_sizes_validated_on_call(self, test_utils, size):
        with pytest.raises(ValidationError):
            window(test_utils.agen([]), size)
        with pytest.raises(ValidationError):
            batch(test_utils.agen([]), size)
        with pytest.raises(ValidationError):
            batch_with_timeout(test_utils.agen([]), size)
        with pytest.raises(ValidationError):
            rolling_stats(test_utils.agen([]), size)

    def test_batch_timeout_validated_on_call(self, test_utils):
        with pytest.raises(ValidationError):
            batch_with_timeout(test_utils.agen([]), 2, timeout_ms=0)


@pytest.mark.unit
class TestBatchWithTimeout:
    """Test cases for time-bounded batching."""

    @pytest.mark.asyncio
    async def test_full_batches_without_timer(self, test_utils):
        batches = await test_utils.collect(batch_with_timeout(test_utils.agen(range(5)), 2, timeout_ms=10_000))
        assert batches == [[0, 1], [2, 3], [4]]

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_timer_flushes_partial_batch(self, test_utils):
        async def source():
            yield 1
            await asyncio.sleep(0.3)
            yield 2
            yield 3

        batches = await test_utils.collect(batch_with_timeout(source(), 5, timeout_ms=100))

        assert batches == [[1], [2, 3]]

    @pytest.mark.asyncio
    async def test_early_stop_closes_source(self, test_utils):
        source = TrackingSource(range(10))
        stream = batch_with_timeout(source, 2, timeout_ms=10_000)

        assert await stream.__anext__() == [0, 1]
        await stream.aclose()

        assert source.closed is True


@pytest.mark.unit
class TestRollingStats:
    """Test cases for rolling statistics."""

    @pytest.mark.asyncio
    async def test_emits_after_three_successes(self, test_utils):
        results = [test_utils.success(t) for t in (10.0, 20.0, 30.0, 40.0)]

        stats = await test_utils.collect(rolling_stats(test_utils.agen(results), 10))

        assert len(stats) == 2
        first = stats[0]
        assert first.count == 3
        assert first.average == 20.0
        assert first.minimum == 10.0
        assert first.maximum == 30.0
        assert first.standard_deviation == 8.16
        assert first.jitter == 6.67
        assert first.packet_loss == 0.0

    @pytest.mark.asyncio
    async def test_small_window_threshold(self, test_utils):
        results = [test_utils.success(5.0), test_utils.success(7.0)]

        stats = await test_utils.collect(rolling_stats(test_utils.agen(results), 1))

        assert [s.average for s in stats] == [5.0, 7.0]
        assert all(s.count == 1 for s in stats)

    @pytest.mark.asyncio
    async def test_identical_times_have_no_spread(self, test_utils):
        results = [test_utils.success(15.0) for _ in range(3)]

        (stats,) = await test_utils.collect(rolling_stats(test_utils.agen(results), 5))

        assert stats.standard_deviation == 0.0
        assert stats.jitter == 0.0

    @pytest.mark.asyncio
    async def test_failures_count_towards_loss(self, test_utils):
        results = [
            test_utils.success(10.0),
            test_utils.failure(),
            test_utils.success(10.0),
            test_utils.success(10.0),
        ]

        stats = await test_utils.collect(rolling_stats(test_utils.agen(results), 10))

        assert len(stats) == 1
        assert stats[0].packet_loss == 25.0

    @pytest.mark.asyncio
    async def test_only_failures_never_emit(self, test_utils):
        results = [test_utils.failure() for _ in range(5)]
        assert await test_utils.collect(rolling_stats(test_utils.agen(results), 3)) == []

    @pytest.mark.asyncio
    async def test_window_slides(self, test_utils):
        results = [test_utils.success(t) for t in (100.0, 1.0, 1.0, 1.0)]

        stats = await test_utils.collect(rolling_stats(test_utils.agen(results), 3))

        assert stats[-1].average == 1.0
        assert stats[-1].maximum == 1.0


@pytest.mark.unit
class TestCombine:
    """Test cases for concurrent fan-in."""

    @pytest.mark.asyncio
    async def test_arrival_order(self, test_utils):
        slow = TrackingSource(["slow"], delay=0.2)
        fast = TrackingSource(["fast-1", "fast-2"], delay=0.01)

        assert await test_utils.collect(combine(slow, fast)) == ["fast-1", "fast-2", "slow"]

    @pytest.mark.asyncio
    async def test_ends_when_all_sources_end(self, test_utils):
        merged = await test_utils.collect(combine(test_utils.agen([1, 2]), test_utils.agen([]), test_utils.agen([3])))
        assert sorted(merged) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_early_stop_closes_all_sources(self, test_utils):
        first = TrackingSource(range(100), delay=0.01)
        second = TrackingSource(range(100), delay=0.01)

        assert len(await test_utils.collect(take(combine(first, second), 3))) == 3
        assert first.closed is True
        assert second.closed is True

    @pytest.mark.asyncio
    async def test_source_error_propagates(self, test_utils):
        async def broken():
            yield 1
            raise RuntimeError("source failed")

        healthy = TrackingSource(range(100), delay=0.05)

        with pytest.raises(RuntimeError, match="source failed"):
            await test_utils.collect(combine(broken(), healthy))

        assert healthy.closed is True


@pytest.mark.unit
class TestPingStream:
    """Test cases for the chainable facade."""

    @pytest.mark.asyncio
    async def test_chaining_over_iterable(self, test_utils):
        results = [test_utils.success(1.0), test_utils.failure(), test_utils.success(2.0), test_utils.success(3.0)]

        collected = await (
            PingStream(test_utils.agen(results))
            .skip_failures()
            .map(lambda r: r.average_response_time_ms())
            .take(2)
            .collect()
        )

        assert collected == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_none_filter_and_map_are_identity(self, test_utils):
        stream = PingStream(test_utils.agen([1, 2]))
        assert stream.filter(None) is stream
        assert stream.map(None) is stream
        assert await stream.collect() == [1, 2]

    @pytest.mark.asyncio
    async def test_window_and_batch(self, test_utils):
        assert await PingStream(test_utils.agen(range(4))).window(2).collect() == [[0, 1], [1, 2], [2, 3]]
        assert await PingStream(test_utils.agen(range(4))).batch(3).collect() == [[0, 1, 2], [3]]

    @pytest.mark.asyncio
    async def test_over_pings(self, test_utils):
        ping_a = Ping("a.example", platform_family=PlatformFamily.LINUX).set_count(2).set_interval(0)
        ping_b = Ping("b.example", platform_family=PlatformFamily.LINUX).set_count(1).set_interval(0)

        with patch.object(Ping, "run_async", new=AsyncMock(return_value=test_utils.success())):
            via_method = await PingStream(ping_a).combine(ping_b).collect()
            via_helper = await combine_pings([ping_a, ping_b]).collect()
            stats = await ping_a.set_count(3).pipeline().rolling_stats(3).collect()

        assert len(via_method) == 3
        assert len(via_helper) == 3
        assert len(stats) == 1

    @pytest.mark.asyncio
    async def test_aclose_closes_source(self):
        source = TrackingSource(range(3))
        await PingStream(source).aclose()
        assert source.closed is True
