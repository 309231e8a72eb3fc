import itertools

import pytest

import sluice as s


class CountingSource:
    """Infinite 0, 1, 2, ... source recording pulls and closes."""

    def __init__(self):
        self.pulled = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        value = self.pulled
        self.pulled += 1
        return value

    async def aclose(self):
        self.closed = True


async def test_take_operation():
    assert await (range(10) | s.take(3)).collect() == [0, 1, 2]


async def test_take_stops_infinite_source_and_closes_it():
    source = CountingSource()
    result = await (source | s.take(3)).collect()

    assert result == [0, 1, 2]
    assert source.pulled == 3
    assert source.closed


async def test_take_from_plain_infinite_iterator():
    assert await (itertools.count() | s.take(4)).collect() == [0, 1, 2, 3]


async def test_take_zero_never_pulls():
    source = CountingSource()
    assert await (source | s.take(0)).collect() == []
    assert source.pulled == 0
    assert source.closed


async def test_take_more_than_available():
    assert await ([1, 2] | s.take(5)).collect() == [1, 2]


async def test_take_infinity():
    assert await (range(5) | s.take(float("inf"))).collect() == [0, 1, 2, 3, 4]


async def test_take_stops_upstream_mapper():
    calls = []

    def record(x):
        calls.append(x)
        return x * 10

    source = CountingSource()
    result = await (source | s.map(record) | s.take(2)).collect()

    assert result == [0, 10]
    assert source.closed
    assert len(calls) <= 3


async def test_nested_pipeline_with_take():
    transform_pipeline = s.map(lambda x: x * 3) | s.filter(lambda x: x > 5)
    pipeline = range(5) | transform_pipeline | s.take(2)
    assert await pipeline.collect() == [6, 9]


@pytest.mark.parametrize(
    "count, expected",
    [("2", 2), (2.7, 2), ("abc", 0), (None, 0), (float("nan"), 0), ([], 0)],
)
async def test_take_count_coercion(count, expected):
    assert await (range(10) | s.take(count)).collect() == list(range(expected))


def test_negative_count_is_out_of_range():
    with pytest.raises(s.OutOfRangeError) as exc_info:
        s.take(-1)
    assert exc_info.value.code == "ERR_OUT_OF_RANGE"


async def test_take_with_cancelled_signal():
    signal = s.CancelSignal()
    signal.cancel()
    source = CountingSource()

    with pytest.raises(s.AbortError):
        await (source | s.take(3, signal=signal)).collect()
    assert source.pulled == 0
