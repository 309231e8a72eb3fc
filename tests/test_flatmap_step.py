import asyncio

import pytest

import sluice as s


async def test_flat_map_operation():
    pipeline = [3, 2, 4] | s.flat_map(range)
    assert await pipeline.collect() == [0, 1, 2, 0, 1, 0, 1, 2, 3]


async def test_flat_map_with_method():
    sentences = ["hello world", "python rocks"]
    result = await (sentences | s.flat_map(str.split)).collect()
    assert result == ["hello", "world", "python", "rocks"]


async def test_flat_map_with_async_generators():
    async def expand(n):
        for i in range(n):
            await asyncio.sleep(0)
            yield f"{n}:{i}"

    result = await ([2, 0, 1] | s.flat_map(expand)).collect()
    assert result == ["2:0", "2:1", "1:0"]


async def test_flat_map_with_awaited_lists_keeps_order():
    async def slow_split(word):
        await asyncio.sleep(0.001 * len(word))
        return list(word)

    words = ["abcde", "f", "ghi"]
    result = await (words | s.flat_map(slow_split, concurrency=3)).collect()
    assert result == list("abcdefghi")


async def test_empty_sub_sequences_contribute_nothing():
    result = await ([[], [1], [], [2, 3]] | s.flat_map(lambda x: x)).collect()
    assert result == [1, 2, 3]


async def test_take_closes_inner_sequence():
    closed = []

    async def inner(n):
        try:
            for i in range(100):
                yield (n, i)
        finally:
            closed.append(n)

    result = await ([7, 8] | s.flat_map(inner) | s.take(2)).collect()
    assert result == [(7, 0), (7, 1)]
    assert closed == [7]


async def test_non_iterable_result_fails():
    with pytest.raises(s.InvalidArgumentTypeError):
        await ([1] | s.flat_map(lambda x: x)).collect()
